from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_client_or_404, get_db, get_practitioner
from ..services.plan_pipeline import PipelineError, create_plan_from_template
from ..services.progress_analysis import template_effectiveness

router = APIRouter()


@router.get("/templates", response_model=list[schemas.MealPlanTemplateOut])
def list_templates(
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    return (
        db.query(models.MealPlanTemplate)
        .filter(models.MealPlanTemplate.practitioner_id == practitioner.id)
        .order_by(models.MealPlanTemplate.usage_count.desc(), models.MealPlanTemplate.created_at)
        .all()
    )


@router.post("/templates", response_model=schemas.MealPlanTemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    data: schemas.MealPlanTemplateCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    payload = data.model_dump()
    template = models.MealPlanTemplate(practitioner_id=practitioner.id, **payload)
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


@router.get("/templates/effectiveness", response_model=list[schemas.TemplateEffectiveness])
def get_template_effectiveness(
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Success, dropout and weight-change statistics per template, best first."""
    return template_effectiveness(db, practitioner)


def _get_template_or_404(db: Session, practitioner: models.Practitioner, template_id: str) -> models.MealPlanTemplate:
    template = db.query(models.MealPlanTemplate).filter(
        models.MealPlanTemplate.id == template_id,
        models.MealPlanTemplate.practitioner_id == practitioner.id,
    ).first()
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.post(
    "/templates/{template_id}/meal-plans",
    response_model=schemas.MealPlanOut,
    status_code=status.HTTP_201_CREATED,
)
def create_plan_from_template_endpoint(
    template_id: str,
    data: schemas.TemplatePlanCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Save the template's meals as a plan for a client, linking recipes by meal name."""
    template = _get_template_or_404(db, practitioner, template_id)
    client = get_client_or_404(db, practitioner, data.client_id)

    try:
        meal_plan, _ = create_plan_from_template(db, practitioner, template, client=client, name=data.name)
    except PipelineError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    db.commit()
    db.refresh(meal_plan)
    return meal_plan


@router.post(
    "/templates/{template_id}/assignments",
    response_model=schemas.TemplateAssignmentOut,
    status_code=status.HTTP_201_CREATED,
)
def assign_template(
    template_id: str,
    data: schemas.TemplateAssignmentCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    template = _get_template_or_404(db, practitioner, template_id)
    client = get_client_or_404(db, practitioner, data.client_id)

    assignment = db.query(models.TemplateAssignment).filter(
        models.TemplateAssignment.template_id == template.id,
        models.TemplateAssignment.client_id == client.id,
    ).first()
    if assignment:
        assignment.status = data.status
    else:
        assignment = models.TemplateAssignment(template_id=template.id, client_id=client.id, status=data.status)
        db.add(assignment)
        template.usage_count = (template.usage_count or 0) + 1

    db.commit()
    db.refresh(assignment)
    return assignment

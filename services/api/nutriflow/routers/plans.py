import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from nutriflow.infra.idempotency import idempotency_clear_key, idempotency_precheck, idempotency_store_result

from .. import models, schemas
from ..deps import get_client_or_404, get_db, get_notification_dispatcher, get_practitioner
from ..services.notifications import NotificationDispatcher
from ..services.nutrition_service import summarize_meal_plan
from ..services.plan_pipeline import PipelineError, add_selected_food, run_plan_pipeline
from ..settings import settings

router = APIRouter()
logger = logging.getLogger("nutriflow.plans")

limiter = Limiter(key_func=get_remote_address)


def _get_plan_or_404(db: Session, practitioner: models.Practitioner, plan_id: str) -> models.MealPlan:
    plan = db.scalar(
        select(models.MealPlan)
        .options(
            selectinload(models.MealPlan.days)
            .selectinload(models.MealPlanDay.slots)
            .selectinload(models.MealSlot.foods)
        )
        .where(models.MealPlan.id == plan_id, models.MealPlan.practitioner_id == practitioner.id)
    )
    if not plan:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return plan


@router.post("/plans/materialize", response_model=schemas.PipelineResultOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_materialize)
async def materialize_plan(
    request: Request,
    body: schemas.MaterializePlanRequest,
    db: Session = Depends(get_db),
    practitioner: models.Practitioner = Depends(get_practitioner),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Turn a generated plan into ingredients, recipes, a saved plan and optionally a shopping list."""
    pre = await idempotency_precheck(request, practitioner_id=str(practitioner.id), route_key="plans_materialize")
    if isinstance(pre, JSONResponse):
        return pre
    redis_key, fingerprint = pre

    try:
        client = get_client_or_404(db, practitioner, body.client_id) if body.client_id else None
        try:
            result = run_plan_pipeline(db, practitioner, body, dispatcher=dispatcher, client=client)
        except PipelineError as e:
            db.rollback()
            raise HTTPException(status_code=422, detail=str(e))

        resp = schemas.PipelineResultOut(**vars(result))
        await idempotency_store_result(redis_key, fingerprint, status=201, body=resp.model_dump(mode="json"))
        return resp
    except Exception:
        await idempotency_clear_key(redis_key)
        raise


@router.get("/plans", response_model=list[schemas.MealPlanSummaryOut])
def list_plans(
    client_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    query = db.query(models.MealPlan).filter(models.MealPlan.practitioner_id == practitioner.id)
    if client_id:
        query = query.filter(models.MealPlan.client_id == client_id)
    return query.order_by(models.MealPlan.created_at.desc()).limit(limit).offset(offset).all()


@router.get("/plans/{plan_id}", response_model=schemas.MealPlanOut)
def get_plan(
    plan_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    return _get_plan_or_404(db, practitioner, plan_id)


@router.get("/plans/{plan_id}/nutrition", response_model=schemas.PlanNutrition)
def get_plan_nutrition(
    plan_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Daily and plan totals: baseline plus manually added foods."""
    return summarize_meal_plan(_get_plan_or_404(db, practitioner, plan_id))


@router.post(
    "/plans/{plan_id}/slots/{slot_id}/foods",
    response_model=schemas.SelectedFoodOut,
    status_code=status.HTTP_201_CREATED,
)
def add_food_to_slot(
    plan_id: str,
    slot_id: str,
    data: schemas.SelectedFoodIn,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    plan = _get_plan_or_404(db, practitioner, plan_id)
    slot = next((s for d in plan.days for s in d.slots if s.id == slot_id), None)
    if not slot:
        raise HTTPException(status_code=404, detail="Meal slot not found")

    food = add_selected_food(db, slot, data)
    db.commit()
    db.refresh(food)
    return food


@router.delete("/plans/{plan_id}/foods/{food_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_food(
    plan_id: str,
    food_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    plan = _get_plan_or_404(db, practitioner, plan_id)
    food = next((f for d in plan.days for s in d.slots for f in s.foods if f.id == food_id), None)
    if not food:
        raise HTTPException(status_code=404, detail="Food not found")

    food.slot.foods.remove(food)
    db.commit()
    return None

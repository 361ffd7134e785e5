from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..deps import get_client_or_404, get_db, get_practitioner
from ..services import shopping_list as shopping

router = APIRouter()


def _get_list_or_404(db: Session, practitioner: models.Practitioner, list_id: str) -> models.ShoppingList:
    shopping_list = db.query(models.ShoppingList).filter(
        models.ShoppingList.id == list_id,
        models.ShoppingList.practitioner_id == practitioner.id,
    ).first()
    if not shopping_list:
        raise HTTPException(status_code=404, detail="Shopping list not found")
    return shopping_list


def _get_item_or_404(db: Session, shopping_list: models.ShoppingList, item_id: str) -> models.ShoppingListItem:
    item = db.query(models.ShoppingListItem).filter(
        models.ShoppingListItem.id == item_id,
        models.ShoppingListItem.shopping_list_id == shopping_list.id,
    ).first()
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.get("/shopping-lists", response_model=list[schemas.ShoppingListOut])
def list_shopping_lists(
    client_id: Optional[str] = None,
    status_filter: Optional[str] = None,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    query = (
        db.query(models.ShoppingList)
        .options(selectinload(models.ShoppingList.items))
        .filter(models.ShoppingList.practitioner_id == practitioner.id)
    )
    if client_id:
        query = query.filter(models.ShoppingList.client_id == client_id)
    if status_filter:
        query = query.filter(models.ShoppingList.status == status_filter)
    return query.order_by(models.ShoppingList.created_at.desc()).all()


@router.post("/shopping-lists", response_model=schemas.ShoppingListOut, status_code=status.HTTP_201_CREATED)
def create_shopping_list(
    data: schemas.ShoppingListCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    if data.client_id:
        get_client_or_404(db, practitioner, data.client_id)

    shopping_list = shopping.create_shopping_list(
        db,
        practitioner,
        name=data.name,
        description=data.description,
        client_id=data.client_id,
    )
    for item in data.items:
        shopping.add_item(db, shopping_list, item)

    db.commit()
    db.refresh(shopping_list)
    return shopping_list


@router.post("/shopping-lists/generate", response_model=schemas.ShoppingListOut, status_code=status.HTTP_201_CREATED)
def generate_shopping_list(
    data: schemas.GenerateShoppingListRequest,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Build a consolidated list from a saved meal plan or a template."""
    if bool(data.meal_plan_id) == bool(data.template_id):
        raise HTTPException(status_code=422, detail="Provide exactly one of meal_plan_id or template_id")
    if data.client_id:
        get_client_or_404(db, practitioner, data.client_id)

    if data.meal_plan_id:
        plan = db.query(models.MealPlan).filter(
            models.MealPlan.id == data.meal_plan_id,
            models.MealPlan.practitioner_id == practitioner.id,
        ).first()
        if not plan:
            raise HTTPException(status_code=404, detail="Meal plan not found")
        shopping_list = shopping.generate_from_meal_plan(
            db, practitioner, plan,
            name=data.name, client_id=data.client_id, exclude=data.exclude_ingredients,
        )
    else:
        template = db.query(models.MealPlanTemplate).filter(
            models.MealPlanTemplate.id == data.template_id,
            models.MealPlanTemplate.practitioner_id == practitioner.id,
        ).first()
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        shopping_list = shopping.generate_from_template(
            db, practitioner, template,
            name=data.name, client_id=data.client_id,
            servings=data.servings, exclude=data.exclude_ingredients,
        )

    db.commit()
    db.refresh(shopping_list)
    return shopping_list


@router.get("/shopping-lists/{list_id}", response_model=schemas.ShoppingListOut)
def get_shopping_list(
    list_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    return _get_list_or_404(db, practitioner, list_id)


@router.patch("/shopping-lists/{list_id}", response_model=schemas.ShoppingListOut)
def update_shopping_list(
    list_id: str,
    data: schemas.ShoppingListUpdate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if field in ("name", "status") and value is None:
            continue
        setattr(shopping_list, field, value)
    db.commit()
    db.refresh(shopping_list)
    return shopping_list


@router.delete("/shopping-lists/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shopping_list(
    list_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    db.delete(shopping_list)
    db.commit()
    return None


@router.post(
    "/shopping-lists/{list_id}/items",
    response_model=schemas.ShoppingListItemOut,
    status_code=status.HTTP_201_CREATED,
)
def add_shopping_list_item(
    list_id: str,
    data: schemas.ShoppingListItemCreate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    item = shopping.add_item(db, shopping_list, data)
    db.commit()
    db.refresh(item)
    return item


@router.put("/shopping-lists/{list_id}/items/{item_id}", response_model=schemas.ShoppingListItemOut)
def update_shopping_list_item(
    list_id: str,
    item_id: str,
    data: schemas.ShoppingListItemUpdate,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    item = _get_item_or_404(db, shopping_list, item_id)
    shopping.update_item(db, shopping_list, item, data)
    db.commit()
    db.refresh(item)
    return item


@router.patch("/shopping-lists/{list_id}/items/{item_id}", response_model=schemas.ShoppingListItemOut)
def toggle_shopping_list_item(
    list_id: str,
    item_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """Flip the purchased flag."""
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    item = _get_item_or_404(db, shopping_list, item_id)
    shopping.toggle_item(db, shopping_list, item)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/shopping-lists/{list_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shopping_list_item(
    list_id: str,
    item_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    shopping_list = _get_list_or_404(db, practitioner, list_id)
    item = _get_item_or_404(db, shopping_list, item_id)
    shopping.delete_item(db, shopping_list, item)
    db.commit()
    return None

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..deps import get_db, get_practitioner

router = APIRouter()


@router.get("/recipes", response_model=list[schemas.RecipeOut])
def list_recipes(
    q: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = 0,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    """List the practitioner's recipes, newest first."""
    query = (
        db.query(models.Recipe)
        .options(selectinload(models.Recipe.ingredients))
        .filter(models.Recipe.practitioner_id == practitioner.id)
    )
    if q:
        query = query.filter(func.lower(models.Recipe.name).contains(q.lower()))
    if category:
        query = query.filter(models.Recipe.category == category)
    return query.order_by(models.Recipe.created_at.desc()).limit(limit).offset(offset).all()


@router.get("/recipes/{recipe_id}", response_model=schemas.RecipeOut)
def get_recipe(
    recipe_id: str,
    practitioner: models.Practitioner = Depends(get_practitioner),
    db: Session = Depends(get_db),
):
    recipe = db.query(models.Recipe).filter(
        models.Recipe.id == recipe_id,
        models.Recipe.practitioner_id == practitioner.id,
    ).first()
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


@router.get("/ingredients", response_model=list[schemas.IngredientOut])
def list_ingredients(
    q: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = 0,
    db: Session = Depends(get_db),
):
    """Global ingredient directory, shared by every practitioner."""
    query = db.query(models.Ingredient)
    if q:
        query = query.filter(func.lower(models.Ingredient.name).contains(q.lower()))
    return query.order_by(models.Ingredient.name).limit(limit).offset(offset).all()

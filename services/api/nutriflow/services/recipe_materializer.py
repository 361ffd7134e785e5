"""Recipe materialization: turn each meal of a generated plan into a reusable,
owner-scoped Recipe with ordered ingredient rows.

Re-running on the same plan is idempotent: recipes are unique per
(practitioner, name) and an existing one is reused instead of recreated.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Practitioner, Recipe, RecipeIngredient
from ..parsing import parse_ingredient_line, parse_leading_token
from ..schemas import GeneratedMeal, GeneratedPlan
from .ingredient_directory import find_ingredient
from .plan_shapes import normalize_meal_type

logger = logging.getLogger("nutriflow.recipes")

DEFAULT_TAG = "ai-generated"
DEFAULT_UNIT = "piece"


@dataclass
class MaterializationResult:
    recipes: list[Recipe] = field(default_factory=list)
    created: int = 0
    reused: int = 0
    failed_meals: list[str] = field(default_factory=list)

    def touch(self, recipe: Recipe) -> None:
        if all(r.id != recipe.id for r in self.recipes):
            self.recipes.append(recipe)


def find_recipe(db: Session, practitioner_id: str, name: str) -> Optional[Recipe]:
    return db.scalar(
        select(Recipe).where(Recipe.practitioner_id == practitioner_id, Recipe.name == name)
    )


def build_recipe_rows(db: Session, meal: GeneratedMeal) -> list[RecipeIngredient]:
    """
    Build unsaved ingredient rows for a meal.

    Structured nutrition row i is paired with free-text entry i; the text gives the
    quantity, the nutrition row gives the unit and the directory name.
    Without structured nutrition only the first token of each string is inspected.
    """
    rows: list[RecipeIngredient] = []

    if meal.ingredients_nutrition:
        for i, item in enumerate(meal.ingredients_nutrition):
            text = meal.ingredients[i] if i < len(meal.ingredients) else item.name
            parsed = parse_ingredient_line(text)
            name = (item.name or parsed.name).strip()
            unit = item.unit or parsed.unit
            if unit is None and parsed.quantity is not None:
                unit = DEFAULT_UNIT
            rows.append(RecipeIngredient(
                name=name,
                quantity=parsed.quantity,
                unit=unit,
                order_index=i,
            ))
    else:
        for i, text in enumerate(meal.ingredients):
            parsed = parse_leading_token(text)
            unit = parsed.unit
            if unit is None and parsed.quantity is not None:
                unit = DEFAULT_UNIT
            rows.append(RecipeIngredient(
                name=parsed.name,
                quantity=parsed.quantity,
                unit=unit,
                order_index=i,
            ))

    # Weak reference into the directory; unresolved names stay NULL
    for row in rows:
        ingredient = find_ingredient(db, row.name)
        row.ingredient_id = ingredient.id if ingredient else None

    return rows


def _new_recipe(practitioner: Practitioner, meal: GeneratedMeal) -> Recipe:
    return Recipe(
        practitioner_id=practitioner.id,
        name=meal.name,
        description=meal.description,
        category=normalize_meal_type(meal.type),
        servings=1,
        prep_time=meal.prep_time,
        cook_time=meal.cook_time,
        difficulty="medium",
        calories_per_serving=meal.calories,
        protein_per_serving=meal.protein,
        carbs_per_serving=meal.carbs,
        fat_per_serving=meal.fat,
        fiber_per_serving=meal.fiber,
        instructions=list(meal.instructions or []),
        tags=list(meal.tags or [DEFAULT_TAG]),
    )


def materialize_recipes(
    db: Session,
    practitioner: Practitioner,
    plan: GeneratedPlan,
    audit=None,
) -> MaterializationResult:
    """Create or reuse one Recipe per meal. Meals without ingredients are skipped."""
    result = MaterializationResult()

    for day in plan.days:
        for meal in day.meals:
            if not meal.ingredients:
                continue

            existing = find_recipe(db, practitioner.id, meal.name)
            if existing:
                result.reused += 1
                result.touch(existing)
                continue

            try:
                with db.begin_nested():
                    recipe = _new_recipe(practitioner, meal)
                    db.add(recipe)
            except IntegrityError:
                # Lost a race on (practitioner_id, name): reuse the winner
                logger.warning(f"Recipe '{meal.name}' already exists, reusing it")
                existing = find_recipe(db, practitioner.id, meal.name)
                if existing:
                    result.reused += 1
                    result.touch(existing)
                else:
                    result.failed_meals.append(meal.name)
                continue

            result.created += 1
            result.touch(recipe)
            if audit:
                audit.record("recipe_created", entity_type="recipe", entity_id=recipe.id,
                             details={"name": recipe.name, "category": recipe.category})

            try:
                rows = build_recipe_rows(db, meal)
                with db.begin_nested():
                    for row in rows:
                        row.recipe_id = recipe.id
                        db.add(row)
            except SQLAlchemyError as e:
                # Recipe is kept without its rows
                logger.error(f"Failed to save ingredients for recipe '{meal.name}': {e}")
                result.failed_meals.append(meal.name)
                if audit:
                    audit.record("recipe_ingredients_failed", entity_type="recipe",
                                 entity_id=recipe.id, details={"error": str(e)[:200]})

    logger.info(
        f"Materialized recipes: created={result.created} reused={result.reused} "
        f"failed={len(result.failed_meals)}"
    )
    return result

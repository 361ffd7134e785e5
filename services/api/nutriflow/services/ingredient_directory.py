"""Global ingredient directory: extract ingredient rows from a generated plan and
create the ones the directory does not know yet."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Ingredient, UNIT_TYPE_MASS, UNIT_TYPE_VOLUME, UNIT_TYPE_COUNT
from ..parsing import parse_ingredient_line
from ..schemas import GeneratedPlan

logger = logging.getLogger("nutriflow.ingredients")

NUTRIENTS = ("calories", "protein", "carbs", "fat", "fiber")

# Declared unit -> (unit_type, column suffix); anything else uses the mass columns
UNIT_GROUPS = {
    "g": (UNIT_TYPE_MASS, "per_100g"),
    "ml": (UNIT_TYPE_VOLUME, "per_100ml"),
    "piece": (UNIT_TYPE_COUNT, "per_piece"),
}


@dataclass
class IngredientRow:
    name: str
    unit: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None


def extract_ingredient_rows(plan: GeneratedPlan) -> list[IngredientRow]:
    """Collect one row per ingredient mention, in plan order.

    Structured nutrition wins; meals without it contribute their parsed
    free-text names with no nutrition.
    """
    rows: list[IngredientRow] = []
    for day in plan.days:
        for meal in day.meals:
            if meal.ingredients_nutrition:
                for item in meal.ingredients_nutrition:
                    rows.append(IngredientRow(
                        name=item.name.strip(),
                        unit=item.unit,
                        calories=item.calories_per_100,
                        protein=item.protein_per_100,
                        carbs=item.carbs_per_100,
                        fat=item.fat_per_100,
                        fiber=item.fiber_per_100,
                    ))
                continue
            for text in meal.ingredients:
                parsed = parse_ingredient_line(text)
                if parsed.name:
                    rows.append(IngredientRow(name=parsed.name, unit=parsed.unit))
    return rows


def find_ingredient(db: Session, name: str) -> Optional[Ingredient]:
    """Exact, case-sensitive lookup."""
    return db.scalar(select(Ingredient).where(Ingredient.name == name))


def build_ingredient(row: IngredientRow) -> Ingredient:
    unit_type, suffix = UNIT_GROUPS.get((row.unit or "").lower(), (UNIT_TYPE_MASS, "per_100g"))
    values = {f"{nutrient}_{suffix}": getattr(row, nutrient) for nutrient in NUTRIENTS}
    return Ingredient(name=row.name, unit_type=unit_type, **values)


def save_ingredients_to_directory(db: Session, rows: list[IngredientRow]) -> list[Ingredient]:
    """
    Insert the rows whose name is not in the directory yet.
    First writer wins: existing entries are never updated.
    Returns only the newly created ingredients. A failing row is logged and skipped.
    """
    created: list[Ingredient] = []
    for row in rows:
        if not row.name:
            continue
        ingredient = None
        try:
            # Lookup and insert share one savepoint
            with db.begin_nested():
                if find_ingredient(db, row.name) is None:
                    ingredient = build_ingredient(row)
                    db.add(ingredient)
        except IntegrityError:
            # Same name under another casing, or a concurrent insert
            logger.warning(f"Ingredient '{row.name}' already exists, skipping")
            continue
        except SQLAlchemyError as e:
            logger.warning(f"Failed to save ingredient '{row.name}': {e}")
            continue
        if ingredient is not None:
            created.append(ingredient)

    if created:
        logger.info(f"Created {len(created)} ingredients")
    return created

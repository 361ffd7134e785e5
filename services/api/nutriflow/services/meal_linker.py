"""Re-attach materialized recipes to the meal slots of a normalized plan.

Normalized slots carry display labels ("Petit-déjeuner") rather than meal names,
so the original meal name is recovered before matching against recipe names.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from ..models import Recipe
from ..parsing import normalize_name
from ..schemas import DynamicMealPlan, DynamicMealPlanDay, GeneratedPlan
from .plan_shapes import meal_label

logger = logging.getLogger("nutriflow.linker")


def _original_names_by_label(original: Optional[GeneratedPlan], day_number: int) -> dict[str, list[str]]:
    names: dict[str, list[str]] = defaultdict(list)
    if not original:
        return names
    for day in original.days:
        if day.day != day_number:
            continue
        for meal in day.meals:
            names[meal_label(meal.type)].append(meal.name)
    return names


def recover_original_names(day: DynamicMealPlanDay, original: Optional[GeneratedPlan]) -> list[Optional[str]]:
    """
    Original meal name for each slot of a day, in slot order.

    An explicit original_meal_name wins. Otherwise the n-th slot showing a label
    pairs with the n-th original meal of that day mapping to the same label.
    """
    by_label = _original_names_by_label(original, day.day)
    seen: dict[str, int] = defaultdict(int)
    recovered: list[Optional[str]] = []

    for slot in day.meals:
        occurrence = seen[slot.name]
        seen[slot.name] += 1
        if slot.original_meal_name:
            recovered.append(slot.original_meal_name)
            continue
        candidates = by_label.get(slot.name, [])
        recovered.append(candidates[occurrence] if occurrence < len(candidates) else None)

    return recovered


def link_recipes_to_plan(
    normalized: DynamicMealPlan,
    original: Optional[GeneratedPlan],
    recipes: Iterable[Recipe],
) -> int:
    """Set recipe_id on every slot whose recovered name matches a recipe. Returns the count."""
    exact: dict[str, Recipe] = {}
    loose: dict[str, Recipe] = {}
    for recipe in recipes:
        exact.setdefault(recipe.name, recipe)
        loose.setdefault(normalize_name(recipe.name), recipe)

    linked = 0
    for day in normalized.days:
        for slot, name in zip(day.meals, recover_original_names(day, original)):
            if not name:
                continue
            recipe = exact.get(name) or loose.get(normalize_name(name))
            if recipe is None:
                continue
            slot.recipe_id = recipe.id
            if not slot.original_meal_name:
                slot.original_meal_name = name
            linked += 1

    logger.info(f"Linked {linked} meal slots to recipes")
    return linked

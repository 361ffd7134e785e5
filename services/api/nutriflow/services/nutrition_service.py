"""Nutrition aggregation.

Daily totals = baseline (what the plan carried at generation time) + manually added foods.
Linked recipes are never added: their nutrition is already part of the baseline.
"""

import math
from typing import Iterable, Optional

from ..models import MealPlan, MealPlanDay
from ..schemas import (
    DayNutrition,
    MacroPercentages,
    MacroTargets,
    NutritionTotals,
    PlanNutrition,
)

MACRO_FACTORS = {"protein": 4, "carbs": 4, "fat": 9}

NUTRIENT_FIELDS = {
    "calories": "energy_kcal_per_100",
    "protein": "protein_per_100",
    "carbs": "carbs_per_100",
    "fat": "fat_per_100",
    "fiber": "fiber_per_100",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _r1(value: float) -> float:
    # Avoid float artifacts such as 628.0000000001
    return round(value, 1)


def macro_calories(protein: float, carbs: float, fat: float) -> float:
    return (
        (protein or 0) * MACRO_FACTORS["protein"]
        + (carbs or 0) * MACRO_FACTORS["carbs"]
        + (fat or 0) * MACRO_FACTORS["fat"]
    )


def macro_percentages(protein: float, carbs: float, fat: float) -> MacroPercentages:
    """Share of macro calories per macro, rounded to integers. All 0 when there are no macro calories."""
    total = macro_calories(protein, carbs, fat)
    if total <= 0:
        return MacroPercentages(protein=0, carbs=0, fat=0)
    return MacroPercentages(
        protein=_round_half_up((protein or 0) * MACRO_FACTORS["protein"] / total * 100),
        carbs=_round_half_up((carbs or 0) * MACRO_FACTORS["carbs"] / total * 100),
        fat=_round_half_up((fat or 0) * MACRO_FACTORS["fat"] / total * 100),
    )


def target_macro_grams(
    daily_calories: float,
    protein_pct: float,
    carbs_pct: float,
    fat_pct: float,
) -> MacroTargets:
    return MacroTargets(
        calories=daily_calories,
        protein_g=_round_half_up(daily_calories * (protein_pct or 0) / 100 / MACRO_FACTORS["protein"]),
        carbs_g=_round_half_up(daily_calories * (carbs_pct or 0) / 100 / MACRO_FACTORS["carbs"]),
        fat_g=_round_half_up(daily_calories * (fat_pct or 0) / 100 / MACRO_FACTORS["fat"]),
    )


def food_contribution(food) -> NutritionTotals:
    """per_100 * quantity / 100 for each nutrient. Accepts ORM rows and schema objects."""
    quantity = float(food.quantity or 0)
    return NutritionTotals(**{
        nutrient: float(getattr(food, field) or 0) * quantity / 100
        for nutrient, field in NUTRIENT_FIELDS.items()
    })


def add_totals(*totals: NutritionTotals) -> NutritionTotals:
    return NutritionTotals(**{
        nutrient: _r1(sum(getattr(t, nutrient) for t in totals))
        for nutrient in NUTRIENT_FIELDS
    })


def aggregate_day(baseline: NutritionTotals, foods: Iterable, day_index: int = 1) -> DayNutrition:
    added = add_totals(NutritionTotals(), *(food_contribution(f) for f in foods))
    total = add_totals(baseline, added)
    return DayNutrition(
        day_index=day_index,
        baseline=baseline,
        added=added,
        total=total,
        percentages=macro_percentages(total.protein, total.carbs, total.fat),
    )


def aggregate_plan(
    days: list[DayNutrition],
    target_calories: Optional[float] = None,
    target_percentages: Optional[tuple[float, float, float]] = None,
) -> PlanNutrition:
    totals = add_totals(NutritionTotals(), *(d.total for d in days))
    count = len(days) or 1
    daily_average = NutritionTotals(**{
        nutrient: _r1(getattr(totals, nutrient) / count) for nutrient in NUTRIENT_FIELDS
    })

    targets = None
    if target_calories and target_percentages:
        targets = target_macro_grams(target_calories, *target_percentages)

    return PlanNutrition(
        days=days,
        totals=totals,
        daily_average=daily_average,
        percentages=macro_percentages(totals.protein, totals.carbs, totals.fat),
        targets=targets,
    )


def day_baseline(day: MealPlanDay) -> NutritionTotals:
    """Stored day totals when present, otherwise the sum of the slot snapshots."""
    slots = list(day.slots)
    fiber = sum(s.fiber or 0 for s in slots)
    if any((day.total_calories, day.total_protein, day.total_carbs, day.total_fat)):
        return NutritionTotals(
            calories=day.total_calories or 0,
            protein=day.total_protein or 0,
            carbs=day.total_carbs or 0,
            fat=day.total_fat or 0,
            fiber=_r1(fiber),
        )
    return NutritionTotals(
        calories=_r1(sum(s.calories or 0 for s in slots)),
        protein=_r1(sum(s.protein or 0 for s in slots)),
        carbs=_r1(sum(s.carbs or 0 for s in slots)),
        fat=_r1(sum(s.fat or 0 for s in slots)),
        fiber=_r1(fiber),
    )


def summarize_meal_plan(plan: MealPlan) -> PlanNutrition:
    days = [
        aggregate_day(
            day_baseline(day),
            [food for slot in day.slots for food in slot.foods],
            day_index=day.day_index,
        )
        for day in plan.days
    ]

    percentages = None
    if plan.protein_percentage is not None and plan.carbs_percentage is not None and plan.fat_percentage is not None:
        percentages = (plan.protein_percentage, plan.carbs_percentage, plan.fat_percentage)

    return aggregate_plan(days, target_calories=plan.target_calories, target_percentages=percentages)

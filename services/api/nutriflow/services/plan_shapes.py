"""Plan shapes.

A plan reaches the pipeline either as the producer's generated shape or as the
normalized (dynamic) shape used for storage. `to_dynamic_plan` is the only place
that converts between them.
"""

from typing import Optional

from ..schemas import (
    DynamicMealPlan,
    DynamicMealPlanDay,
    DynamicMealSlot,
    GeneratedDay,
    GeneratedMeal,
    GeneratedPlan,
    GeneratedPlanPayload,
    PlanPayload,
    TemplateDay,
)

MEAL_TYPE_LABELS = {
    "breakfast": "Petit-déjeuner",
    "lunch": "Déjeuner",
    "dinner": "Dîner",
    "snack": "Collation",
}

MEAL_TIMES = {
    "breakfast": "08:00",
    "lunch": "12:30",
    "dinner": "19:30",
    "snack": "16:00",
}


def normalize_meal_type(meal_type: Optional[str]) -> str:
    """Map producer meal types onto breakfast/lunch/dinner/snack; unknown -> snack."""
    key = (meal_type or "").strip().lower()
    if key == "snacks":
        key = "snack"
    return key if key in MEAL_TYPE_LABELS else "snack"


def meal_label(meal_type: Optional[str]) -> str:
    return MEAL_TYPE_LABELS[normalize_meal_type(meal_type)]


def _from_generated(plan: GeneratedPlan) -> DynamicMealPlan:
    days = []
    for day in plan.days:
        slots = []
        for order, meal in enumerate(day.meals):
            meal_type = normalize_meal_type(meal.type)
            slots.append(DynamicMealSlot(
                id=f"{day.day}-{meal_type}-{order}",
                name=MEAL_TYPE_LABELS[meal_type],
                meal_type=meal_type,
                time=MEAL_TIMES[meal_type],
                description=meal.description,
                calories_target=meal.calories,
                calories=meal.calories,
                protein=meal.protein,
                carbs=meal.carbs,
                fat=meal.fat,
                fiber=meal.fiber,
                ingredients=list(meal.ingredients),
                order=order,
                original_meal_name=meal.name,
            ))
        days.append(DynamicMealPlanDay(
            day=day.day,
            date=day.date,
            meals=slots,
            total_calories=day.total_calories,
            total_protein=day.total_protein,
            total_carbs=day.total_carbs,
            total_fat=day.total_fat,
        ))

    goals = plan.nutritional_goals
    target_macros = None
    if goals and any(v is not None for v in (goals.protein_percentage, goals.carb_percentage, goals.fat_percentage)):
        target_macros = {
            "protein": goals.protein_percentage or 0,
            "carbs": goals.carb_percentage or 0,
            "fat": goals.fat_percentage or 0,
        }

    return DynamicMealPlan(
        title=plan.title,
        description=plan.description,
        generated_by="ai",
        duration_days=plan.duration or len(plan.days),
        target_calories=goals.daily_calories if goals else None,
        target_macros=target_macros,
        days=days,
    )


def to_dynamic_plan(payload: PlanPayload) -> DynamicMealPlan:
    if isinstance(payload, GeneratedPlanPayload):
        return _from_generated(payload.plan)
    return payload.plan


def generated_plan_of(payload: PlanPayload) -> Optional[GeneratedPlan]:
    """The producer's shape when the payload carries it, else None."""
    if isinstance(payload, GeneratedPlanPayload):
        return payload.plan
    return None


def template_to_generated_plan(name: str, meal_structure: list) -> GeneratedPlan:
    """Read a template's stored meal_structure as a generated plan.

    Meals without a type become lunches, like producer meals without one.
    """
    days = [TemplateDay.model_validate(day) for day in meal_structure or []]
    return GeneratedPlan(
        title=name,
        duration=len(days),
        days=[
            GeneratedDay(
                day=day.day,
                meals=[
                    GeneratedMeal(type=meal.type or "lunch", name=meal.name, ingredients=meal.ingredients)
                    for meal in day.meals
                ],
            )
            for day in days
        ],
    )


def template_to_dynamic_plan(name: str, meal_structure: list) -> DynamicMealPlan:
    plan = _from_generated(template_to_generated_plan(name, meal_structure))
    plan.generated_by = "template"
    return plan

"""Plan materialization pipeline.

Runs sequentially in one request:
ingredients -> recipes -> slot links -> saved plan (+ manual foods)
-> optional shopping list -> commit -> notification.

The notification is sent after the commit and can never roll the plan back.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Client, MealPlan, MealPlanDay, MealPlanTemplate, MealSlot, Practitioner, Recipe, SelectedFood
from ..schemas import DynamicMealPlan, ManualFoodIn, MaterializePlanRequest, SelectedFoodIn
from .audit import PipelineAudit
from .ingredient_directory import extract_ingredient_rows, save_ingredients_to_directory
from .meal_linker import link_recipes_to_plan
from .notifications import NotificationDispatcher
from .plan_shapes import (
    MEAL_TYPE_LABELS,
    generated_plan_of,
    normalize_meal_type,
    template_to_dynamic_plan,
    to_dynamic_plan,
)
from .recipe_materializer import materialize_recipes
from .shopping_list import generate_from_meal_plan

logger = logging.getLogger("nutriflow.pipeline")

LABEL_TO_MEAL_TYPE = {label: meal_type for meal_type, label in MEAL_TYPE_LABELS.items()}


class PipelineError(ValueError):
    pass


@dataclass
class PipelineResult:
    run_id: str
    plan_id: str
    linked_slots: int = 0
    ingredients_created: int = 0
    recipes_created: int = 0
    recipes_reused: int = 0
    failed_meals: list[str] = field(default_factory=list)
    shopping_list_id: Optional[str] = None
    notification_sent: bool = False


def _slot_meal_type(meal_type: Optional[str], label: str) -> str:
    if meal_type:
        return normalize_meal_type(meal_type)
    return LABEL_TO_MEAL_TYPE.get(label, "snack")


def _selected_food(data: SelectedFoodIn) -> SelectedFood:
    return SelectedFood(
        name=data.name,
        quantity=data.quantity,
        energy_kcal_per_100=data.energy_kcal_per_100,
        protein_per_100=data.protein_per_100,
        carbs_per_100=data.carbs_per_100,
        fat_per_100=data.fat_per_100,
        fiber_per_100=data.fiber_per_100,
    )


def add_selected_food(db: Session, slot: MealSlot, data: SelectedFoodIn) -> SelectedFood:
    food = _selected_food(data)
    slot.foods.append(food)
    db.flush()
    return food


def save_meal_plan(
    db: Session,
    practitioner: Practitioner,
    plan: DynamicMealPlan,
    *,
    client: Optional[Client] = None,
    name: Optional[str] = None,
    manual_foods: Sequence[ManualFoodIn] = (),
) -> MealPlan:
    day_numbers = [d.day for d in plan.days]
    if len(day_numbers) != len(set(day_numbers)):
        raise PipelineError("Plan contains duplicate day numbers")

    macros = plan.target_macros or {}
    meal_plan = MealPlan(
        practitioner_id=practitioner.id,
        client_id=client.id if client else None,
        name=name or plan.title,
        description=plan.description,
        duration_days=plan.duration_days or len(plan.days) or 1,
        status="active" if client else "draft",
        target_calories=plan.target_calories,
        protein_percentage=macros.get("protein"),
        carbs_percentage=macros.get("carbs"),
        fat_percentage=macros.get("fat"),
        plan_content=plan.model_dump(mode="json"),
    )
    db.add(meal_plan)

    for day in plan.days:
        plan_day = MealPlanDay(
            day_index=day.day,
            date=day.date,
            total_calories=day.total_calories or 0,
            total_protein=day.total_protein or 0,
            total_carbs=day.total_carbs or 0,
            total_fat=day.total_fat or 0,
            notes=day.notes,
        )
        meal_plan.days.append(plan_day)

        for index, slot in enumerate(day.meals):
            if not slot.enabled:
                continue
            meal_slot = MealSlot(
                meal_type=_slot_meal_type(slot.meal_type, slot.name),
                name=slot.name,
                original_meal_name=slot.original_meal_name,
                time=slot.time,
                description=slot.description,
                order_index=slot.order if slot.order is not None else index,
                calories=slot.calories,
                protein=slot.protein,
                carbs=slot.carbs,
                fat=slot.fat,
                fiber=slot.fiber,
                ingredients=[i if isinstance(i, str) else i.model_dump() for i in slot.ingredients],
                recipe_id=slot.recipe_id,
            )
            for food in day.selected_foods.get(slot.id, []):
                meal_slot.foods.append(_selected_food(food))
            plan_day.slots.append(meal_slot)

    for food in manual_foods:
        slot = _find_slot(meal_plan, food.day, normalize_meal_type(food.meal_type))
        if slot is None:
            logger.warning(f"No {food.meal_type} slot on day {food.day} for '{food.name}', skipping")
            continue
        slot.foods.append(_selected_food(food))

    db.flush()
    return meal_plan


def _find_slot(meal_plan: MealPlan, day_index: int, meal_type: str) -> Optional[MealSlot]:
    for day in meal_plan.days:
        if day.day_index != day_index:
            continue
        for slot in day.slots:
            if slot.meal_type == meal_type:
                return slot
    return None


def _notification_payload(meal_plan: MealPlan, practitioner: Practitioner, client: Optional[Client], linked: int) -> dict:
    return {
        "plan_id": meal_plan.id,
        "plan_name": meal_plan.name,
        "duration_days": meal_plan.duration_days,
        "linked_slots": linked,
        "practitioner_name": practitioner.name,
        "recipient_name": client.name if client else None,
        "recipient_email": client.email if client else None,
    }


def run_plan_pipeline(
    db: Session,
    practitioner: Practitioner,
    request: MaterializePlanRequest,
    *,
    dispatcher: NotificationDispatcher,
    client: Optional[Client] = None,
    audit: Optional[PipelineAudit] = None,
) -> PipelineResult:
    audit = audit or PipelineAudit(db, practitioner.id)
    original = generated_plan_of(request.plan)
    dynamic = to_dynamic_plan(request.plan)

    ingredients_created = recipes_created = recipes_reused = 0
    failed_meals: list[str] = []

    if original is not None:
        created = save_ingredients_to_directory(db, extract_ingredient_rows(original))
        ingredients_created = len(created)
        audit.record("ingredients_saved", details={"created": [i.name for i in created][:50]})

        materialized = materialize_recipes(db, practitioner, original, audit=audit)
        recipes = materialized.recipes
        recipes_created, recipes_reused = materialized.created, materialized.reused
        failed_meals = materialized.failed_meals
    else:
        # Already normalized: link against recipes materialized by earlier runs
        recipes = list(db.scalars(select(Recipe).where(Recipe.practitioner_id == practitioner.id)))

    linked = link_recipes_to_plan(dynamic, original, recipes)

    meal_plan = save_meal_plan(
        db,
        practitioner,
        dynamic,
        client=client,
        name=request.name,
        manual_foods=request.selected_foods,
    )
    audit.record("plan_saved", entity_type="meal_plan", entity_id=meal_plan.id,
                 details={"days": len(dynamic.days), "linked_slots": linked})

    shopping_list_id = None
    if request.generate_shopping_list:
        shopping_list = generate_from_meal_plan(
            db, practitioner, meal_plan, exclude=request.exclude_ingredients
        )
        shopping_list_id = shopping_list.id
        audit.record("shopping_list_created", entity_type="shopping_list", entity_id=shopping_list.id,
                     details={"items": shopping_list.total_items})

    db.commit()

    result = PipelineResult(
        run_id=audit.run_id,
        plan_id=meal_plan.id,
        linked_slots=linked,
        ingredients_created=ingredients_created,
        recipes_created=recipes_created,
        recipes_reused=recipes_reused,
        failed_meals=failed_meals,
        shopping_list_id=shopping_list_id,
    )

    if request.notify:
        try:
            result.notification_sent = bool(dispatcher.send_plan_ready(
                _notification_payload(meal_plan, practitioner, client, linked)
            ))
        except Exception as e:
            # Plan is already committed
            logger.warning(f"Plan {meal_plan.id} saved but notification failed: {e}")
            audit.record("notification_failed", entity_type="meal_plan", entity_id=meal_plan.id,
                         details={"error": str(e)[:200]})
            db.commit()

    logger.info(
        f"Pipeline {result.run_id}: plan={result.plan_id} ingredients={ingredients_created} "
        f"recipes={recipes_created}/{recipes_reused} linked={linked} failed={len(failed_meals)}"
    )
    return result


def create_plan_from_template(
    db: Session,
    practitioner: Practitioner,
    template: MealPlanTemplate,
    *,
    client: Client,
    name: Optional[str] = None,
) -> tuple[MealPlan, int]:
    """Save a template's meal structure as a plan for a client, linked to the practitioner's recipes.

    Returns the plan and the number of linked slots. The caller commits.
    """
    dynamic = template_to_dynamic_plan(template.name, template.meal_structure)
    if not dynamic.days:
        raise PipelineError(f"Template '{template.name}' has no days")

    recipes = list(db.scalars(select(Recipe).where(Recipe.practitioner_id == practitioner.id)))
    linked = link_recipes_to_plan(dynamic, None, recipes)

    meal_plan = save_meal_plan(db, practitioner, dynamic, client=client, name=name or template.name)
    template.usage_count = (template.usage_count or 0) + 1
    db.flush()

    logger.info(f"Plan {meal_plan.id} created from template {template.id}: linked={linked}")
    return meal_plan, linked

from nutriflow.models import Recipe
from nutriflow.schemas import DynamicMealPlan, GeneratedPlan, GeneratedPlanPayload
from nutriflow.services.meal_linker import link_recipes_to_plan, recover_original_names
from nutriflow.services.plan_shapes import normalize_meal_type, to_dynamic_plan


def _original():
    return GeneratedPlan.model_validate({
        "title": "Plan",
        "days": [{
            "day": 1,
            "meals": [
                {"type": "breakfast", "name": "Porridge", "ingredients": ["50g avoine"]},
                {"type": "snacks", "name": "Pomme", "ingredients": ["1 pomme"]},
                {"type": "snack", "name": "Amandes", "ingredients": ["30g amandes"]},
                {"type": "dinner", "name": "Saumon grillé", "ingredients": ["150g saumon"]},
            ],
        }],
    })


def _recipe(name):
    return Recipe(id=f"r-{name}", name=name, category="lunch")


def test_normalize_meal_type():
    assert normalize_meal_type("Snacks") == "snack"
    assert normalize_meal_type("brunch") == "snack"
    assert normalize_meal_type(" Dinner ") == "dinner"


def test_generated_plan_becomes_labelled_slots():
    dynamic = to_dynamic_plan(GeneratedPlanPayload(plan=_original()))
    labels = [s.name for s in dynamic.days[0].meals]
    assert labels == ["Petit-déjeuner", "Collation", "Collation", "Dîner"]
    assert dynamic.days[0].meals[1].id == "1-snack-1"


def test_recover_names_pairs_repeated_labels_by_occurrence():
    original = _original()
    dynamic = to_dynamic_plan(GeneratedPlanPayload(plan=original))
    for slot in dynamic.days[0].meals:
        slot.original_meal_name = None

    assert recover_original_names(dynamic.days[0], original) == [
        "Porridge", "Pomme", "Amandes", "Saumon grillé",
    ]


def test_link_exact_then_normalized_names():
    original = _original()
    dynamic = to_dynamic_plan(GeneratedPlanPayload(plan=original))
    recipes = [_recipe("Porridge"), _recipe("saumon  GRILLÉ")]

    linked = link_recipes_to_plan(dynamic, original, recipes)

    slots = dynamic.days[0].meals
    assert linked == 2
    assert slots[0].recipe_id == "r-Porridge"
    assert slots[3].recipe_id == "r-saumon  GRILLÉ"
    assert slots[1].recipe_id is None


def test_link_without_original_uses_stored_names():
    dynamic = DynamicMealPlan.model_validate({
        "days": [{"day": 1, "meals": [
            {"id": "a", "name": "Déjeuner", "original_meal_name": "Bowl de quinoa"},
            {"id": "b", "name": "Dîner"},
        ]}],
    })
    linked = link_recipes_to_plan(dynamic, None, [_recipe("Bowl de quinoa")])
    assert linked == 1
    assert dynamic.days[0].meals[0].recipe_id == "r-Bowl de quinoa"
    assert dynamic.days[0].meals[1].recipe_id is None

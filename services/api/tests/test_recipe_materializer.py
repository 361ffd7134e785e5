from nutriflow.models import Recipe, RecipeIngredient
from nutriflow.schemas import GeneratedMeal, GeneratedPlan
from nutriflow.services import recipe_materializer
from nutriflow.services.audit import PipelineAudit
from nutriflow.services.ingredient_directory import extract_ingredient_rows, save_ingredients_to_directory
from nutriflow.services.recipe_materializer import build_recipe_rows, materialize_recipes


BOWL = {
    "type": "lunch",
    "name": "Bowl de quinoa",
    "calories": 520,
    "prepTime": 10,
    "ingredients": ["150g quinoa", "1 avocat", "50ml huile d'olive"],
    "ingredientsNutrition": [
        {"name": "quinoa", "unit": "g", "caloriesPer100": 368},
        {"name": "avocat", "unit": "piece", "caloriesPer100": 240},
        {"name": "huile d'olive", "unit": "ml", "caloriesPer100": 884},
    ],
}


def _plan(*meals):
    return GeneratedPlan.model_validate({"title": "Plan", "days": [{"day": 1, "meals": list(meals)}]})


def test_structured_rows_pair_text_with_nutrition(db_session):
    plan = _plan(BOWL)
    save_ingredients_to_directory(db_session, extract_ingredient_rows(plan))

    rows = build_recipe_rows(db_session, plan.days[0].meals[0])
    assert [(r.name, r.quantity, r.unit, r.order_index) for r in rows] == [
        ("quinoa", 150.0, "g", 0),
        ("avocat", 1.0, "piece", 1),
        ("huile d'olive", 50.0, "ml", 2),
    ]
    assert all(r.ingredient_id for r in rows)


def test_fallback_rows_inspect_first_token_only(db_session):
    meal = GeneratedMeal(name="Omelette", ingredients=["3 oeufs", "10g beurre", "sel"])
    rows = build_recipe_rows(db_session, meal)
    assert [(r.name, r.quantity, r.unit) for r in rows] == [
        ("oeufs", 3.0, "piece"),
        ("beurre", 10.0, "g"),
        ("sel", None, None),
    ]
    assert all(r.ingredient_id is None for r in rows)


def test_materialize_creates_then_reuses(db_session, practitioner):
    plan = _plan(BOWL, {"type": "snack", "name": "Pomme", "ingredients": []})

    first = materialize_recipes(db_session, practitioner, plan)
    db_session.commit()
    assert (first.created, first.reused) == (1, 0)

    recipe = first.recipes[0]
    assert recipe.category == "lunch"
    assert recipe.tags == ["ai-generated"]
    assert recipe.prep_time == 10
    assert len(recipe.ingredients) == 3

    second = materialize_recipes(db_session, practitioner, plan)
    db_session.commit()
    assert (second.created, second.reused) == (0, 1)
    assert second.recipes[0].id == recipe.id
    assert db_session.query(Recipe).count() == 1
    assert db_session.query(RecipeIngredient).count() == 3


def test_ingredient_row_failure_keeps_recipe(db_session, practitioner, monkeypatch):
    def broken_rows(db, meal):
        return [RecipeIngredient(name=None, order_index=0)]

    monkeypatch.setattr(recipe_materializer, "build_recipe_rows", broken_rows)
    audit = PipelineAudit(db_session, practitioner.id)

    result = materialize_recipes(db_session, practitioner, _plan(BOWL), audit=audit)
    db_session.commit()

    assert result.created == 1
    assert result.failed_meals == ["Bowl de quinoa"]
    assert db_session.query(Recipe).count() == 1
    assert db_session.query(RecipeIngredient).count() == 0
    assert audit.actions() == ["recipe_created", "recipe_ingredients_failed"]

from sqlalchemy.exc import OperationalError

from nutriflow.models import Ingredient
from nutriflow.schemas import GeneratedPlan
from nutriflow.services import ingredient_directory
from nutriflow.services.ingredient_directory import (
    IngredientRow,
    extract_ingredient_rows,
    find_ingredient,
    save_ingredients_to_directory,
)


def _plan():
    return GeneratedPlan.model_validate({
        "title": "Plan test",
        "days": [{
            "day": 1,
            "meals": [
                {
                    "type": "lunch",
                    "name": "Bowl de quinoa",
                    "ingredients": ["150g quinoa", "1 avocat", "50ml huile d'olive"],
                    "ingredientsNutrition": [
                        {"name": "quinoa", "unit": "g", "caloriesPer100": 368, "proteinPer100": 14},
                        {"name": "avocat", "unit": "piece", "caloriesPer100": 240},
                        {"name": "huile d'olive", "unit": "ml", "caloriesPer100": 884, "fatPer100": 100},
                    ],
                },
                {"type": "dinner", "name": "Soupe", "ingredients": ["200g carottes", "sel"]},
            ],
        }],
    })


def test_extract_prefers_structured_rows():
    rows = extract_ingredient_rows(_plan())
    assert [r.name for r in rows] == ["quinoa", "avocat", "huile d'olive", "carottes", "sel"]
    assert rows[0].calories == 368
    assert rows[3].calories is None


def test_save_fills_unit_group_matching_unit(db_session):
    created = save_ingredients_to_directory(db_session, extract_ingredient_rows(_plan()))
    db_session.commit()
    assert len(created) == 5

    avocat = find_ingredient(db_session, "avocat")
    assert avocat.unit_type == "count"
    assert avocat.calories_per_piece == 240
    assert avocat.calories_per_100g is None

    oil = find_ingredient(db_session, "huile d'olive")
    assert oil.unit_type == "volume"
    assert oil.fat_per_100ml == 100

    quinoa = find_ingredient(db_session, "quinoa")
    assert quinoa.unit_type == "mass"
    assert quinoa.protein_per_100g == 14


def test_existing_entries_are_never_updated(db_session):
    save_ingredients_to_directory(db_session, [IngredientRow(name="quinoa", unit="g", calories=368)])
    db_session.commit()

    created = save_ingredients_to_directory(db_session, [IngredientRow(name="quinoa", unit="g", calories=999)])
    db_session.commit()

    assert created == []
    assert find_ingredient(db_session, "quinoa").calories_per_100g == 368


def test_case_variant_is_skipped_without_aborting_batch(db_session):
    save_ingredients_to_directory(db_session, [IngredientRow(name="Quinoa")])
    db_session.commit()

    created = save_ingredients_to_directory(db_session, [
        IngredientRow(name="quinoa"),
        IngredientRow(name="lentilles"),
    ])
    db_session.commit()

    assert [i.name for i in created] == ["lentilles"]
    assert db_session.query(Ingredient).count() == 2


def test_failed_lookup_is_skipped_and_batch_continues(db_session, monkeypatch):
    real_find = ingredient_directory.find_ingredient

    def flaky_find(db, name):
        if name == "tofu":
            raise OperationalError("SELECT ingredients", {}, Exception("connection reset"))
        return real_find(db, name)

    monkeypatch.setattr(ingredient_directory, "find_ingredient", flaky_find)
    created = save_ingredients_to_directory(db_session, [
        IngredientRow(name="tofu"),
        IngredientRow(name="lentilles"),
        IngredientRow(name="lentilles"),
    ])
    db_session.commit()

    assert [i.name for i in created] == ["lentilles"]
    assert db_session.query(Ingredient).count() == 1

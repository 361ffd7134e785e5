"""End-to-end tests for POST /api/plans/materialize.

Covers:
- Ingredients, recipes and slot links created from a generated plan
- Daily totals including manually added foods
- Idempotent replay and re-running the same plan
- Notification failures after commit
"""

import uuid

from nutriflow.models import AuditEvent, Ingredient, MealPlan, Recipe


def _generated_plan():
    return {
        "title": "Semaine équilibrée",
        "nutritionalGoals": {"dailyCalories": 1800, "proteinPercentage": 25, "carbPercentage": 45, "fatPercentage": 30},
        "days": [{
            "day": 1,
            "totalCalories": 520,
            "totalProtein": 14,
            "totalCarbs": 45,
            "totalFat": 32,
            "meals": [{
                "type": "lunch",
                "name": "Bowl de quinoa",
                "calories": 520,
                "protein": 14,
                "carbs": 45,
                "fat": 32,
                "ingredients": ["150g quinoa", "1 avocat", "50ml huile d'olive"],
                "ingredientsNutrition": [
                    {"name": "quinoa", "unit": "g", "caloriesPer100": 368, "proteinPer100": 14},
                    {"name": "avocat", "unit": "piece", "caloriesPer100": 240},
                    {"name": "huile d'olive", "unit": "ml", "caloriesPer100": 884, "fatPer100": 100},
                ],
            }],
        }],
    }


def _materialize(client, body, key=None):
    return client.post(
        "/api/plans/materialize",
        json=body,
        headers={"Idempotency-Key": key or str(uuid.uuid4())},
    )


def _body(**overrides):
    body = {
        "plan": {"kind": "generated", "plan": _generated_plan()},
        "selected_foods": [
            {"day": 1, "meal_type": "lunch", "name": "banane", "quantity": 120, "energy_kcal_per_100": 90},
        ],
    }
    body.update(overrides)
    return body


def test_bowl_de_quinoa_end_to_end(client, practitioner, patient, db_session, dispatcher):
    response = _materialize(client, _body(client_id=patient.id))
    assert response.status_code == 201
    result = response.json()

    assert result["ingredients_created"] == 3
    assert result["recipes_created"] == 1
    assert result["recipes_reused"] == 0
    assert result["linked_slots"] == 1
    assert result["failed_meals"] == []
    assert result["notification_sent"] is True

    recipe = db_session.query(Recipe).one()
    assert recipe.name == "Bowl de quinoa"
    assert db_session.query(Ingredient).count() == 3

    plan = client.get(f"/api/plans/{result['plan_id']}").json()
    assert plan["status"] == "active"
    assert plan["client_id"] == patient.id
    slot = plan["days"][0]["slots"][0]
    assert slot["recipe_id"] == recipe.id
    assert slot["name"] == "Déjeuner"
    assert slot["original_meal_name"] == "Bowl de quinoa"
    assert [f["name"] for f in slot["foods"]] == ["banane"]

    nutrition = client.get(f"/api/plans/{result['plan_id']}/nutrition").json()
    day = nutrition["days"][0]
    assert day["baseline"]["calories"] == 520
    assert day["added"]["calories"] == 108
    assert day["total"]["calories"] == 628
    assert nutrition["targets"]["protein_g"] == 113

    assert dispatcher.sent[0]["plan_id"] == result["plan_id"]
    assert dispatcher.sent[0]["recipient_email"] == "alice@example.com"

    actions = {e.action for e in db_session.query(AuditEvent).filter(AuditEvent.run_id == result["run_id"])}
    assert {"ingredients_saved", "recipe_created", "plan_saved"} <= actions


def test_rerun_reuses_recipes_and_directory(client, practitioner):
    assert _materialize(client, _body()).status_code == 201

    result = _materialize(client, _body()).json()
    assert result["ingredients_created"] == 0
    assert result["recipes_created"] == 0
    assert result["recipes_reused"] == 1
    assert result["linked_slots"] == 1


def test_same_idempotency_key_replays_result(client, practitioner, db_session):
    key = str(uuid.uuid4())
    first = _materialize(client, _body(), key=key)
    second = _materialize(client, _body(), key=key)

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json() == first.json()
    assert db_session.query(MealPlan).count() == 1


def test_idempotency_key_with_different_payload_conflicts(client, practitioner):
    key = str(uuid.uuid4())
    assert _materialize(client, _body(), key=key).status_code == 201
    assert _materialize(client, _body(name="Autre nom"), key=key).status_code == 409


def test_missing_idempotency_key(client, practitioner):
    response = client.post("/api/plans/materialize", json=_body())
    assert response.status_code == 400


def test_notification_failure_keeps_plan(client, practitioner, db_session, dispatcher):
    dispatcher.fail = True
    response = _materialize(client, _body())
    assert response.status_code == 201
    result = response.json()

    assert result["notification_sent"] is False
    assert db_session.get(MealPlan, result["plan_id"]) is not None
    failed = db_session.query(AuditEvent).filter(AuditEvent.action == "notification_failed").one()
    assert failed.entity_id == result["plan_id"]


def test_shopping_list_generated_with_exclusions(client, practitioner):
    result = _materialize(client, _body(
        generate_shopping_list=True,
        exclude_ingredients=["avocat"],
    )).json()

    shopping_list = client.get(f"/api/shopping-lists/{result['shopping_list_id']}").json()
    assert shopping_list["meal_plan_id"] == result["plan_id"]
    assert [i["name"] for i in shopping_list["items"]] == ["quinoa", "huile d'olive"]
    assert shopping_list["total_items"] == 2


def test_dynamic_plan_links_existing_recipes(client, practitioner, db_session):
    _materialize(client, _body())

    dynamic = {
        "title": "Plan manuel",
        "generated_by": "manual",
        "days": [{
            "day": 1,
            "meals": [
                {"id": "d1-lunch", "name": "Déjeuner", "original_meal_name": "bowl de quinoa"},
                {"id": "d1-dinner", "name": "Dîner", "meal_type": "dinner"},
            ],
            "selected_foods": {
                "d1-dinner": [{"name": "riz", "quantity": 100, "energy_kcal_per_100": 130}],
            },
        }],
    }
    response = _materialize(client, {"plan": {"kind": "dynamic", "plan": dynamic}})
    assert response.status_code == 201
    result = response.json()
    assert result["linked_slots"] == 1
    assert result["ingredients_created"] == 0

    plan = client.get(f"/api/plans/{result['plan_id']}").json()
    assert plan["status"] == "draft"
    lunch, dinner = plan["days"][0]["slots"]
    assert lunch["meal_type"] == "lunch"
    assert lunch["recipe_id"] == db_session.query(Recipe).one().id
    assert [f["name"] for f in dinner["foods"]] == ["riz"]


def test_duplicate_days_rejected(client, practitioner):
    plan = _generated_plan()
    plan["days"].append(dict(plan["days"][0]))
    response = _materialize(client, {"plan": {"kind": "generated", "plan": plan}})
    assert response.status_code == 422


def test_add_and_remove_food_updates_totals(client, practitioner):
    result = _materialize(client, _body(selected_foods=[])).json()
    plan = client.get(f"/api/plans/{result['plan_id']}").json()
    slot_id = plan["days"][0]["slots"][0]["id"]

    food = client.post(
        f"/api/plans/{result['plan_id']}/slots/{slot_id}/foods",
        json={"name": "yaourt", "quantity": 125, "energy_kcal_per_100": 60},
    )
    assert food.status_code == 201
    totals = client.get(f"/api/plans/{result['plan_id']}/nutrition").json()["days"][0]["total"]
    assert totals["calories"] == 595

    assert client.delete(f"/api/plans/{result['plan_id']}/foods/{food.json()['id']}").status_code == 204
    totals = client.get(f"/api/plans/{result['plan_id']}/nutrition").json()["days"][0]["total"]
    assert totals["calories"] == 520


def test_unknown_client_is_404(client, practitioner):
    response = _materialize(client, _body(client_id=str(uuid.uuid4())))
    assert response.status_code == 404

"""Tests for turning a template into a client's meal plan."""

from nutriflow.models import MealPlanTemplate, Recipe
from nutriflow.services.plan_shapes import template_to_dynamic_plan

STRUCTURE = [
    {"day": 1, "meals": [
        {"name": "Porridge", "type": "breakfast", "ingredients": ["50g flocons d'avoine"]},
        {"name": "Riz sauté", "type": "dinner", "ingredients": ["100g riz", "1 oignon"]},
    ]},
    {"day": 2, "meals": [{"name": "Salade niçoise", "ingredients": ["1 oeuf"]}]},
]


def test_template_structure_becomes_dynamic_plan():
    plan = template_to_dynamic_plan("Semaine type", STRUCTURE)

    assert plan.generated_by == "template"
    assert plan.duration_days == 2
    breakfast, dinner = plan.days[0].meals
    assert (breakfast.name, breakfast.original_meal_name) == ("Petit-déjeuner", "Porridge")
    assert dinner.meal_type == "dinner"
    assert plan.days[1].meals[0].meal_type == "lunch"


def test_plan_from_template_links_recipes(client, practitioner, patient, db_session):
    recipe = Recipe(practitioner_id=practitioner.id, name="riz sauté", category="dinner")
    db_session.add(recipe)
    db_session.commit()

    template = client.post("/api/templates", json={"name": "Semaine type", "meal_structure": STRUCTURE}).json()
    response = client.post(f"/api/templates/{template['id']}/meal-plans", json={"client_id": patient.id})
    assert response.status_code == 201

    plan = response.json()
    assert plan["client_id"] == patient.id
    assert plan["name"] == "Semaine type"
    assert plan["status"] == "active"
    assert [d["day_index"] for d in plan["days"]] == [1, 2]

    porridge, riz = plan["days"][0]["slots"]
    assert porridge["recipe_id"] is None
    assert riz["recipe_id"] == recipe.id
    assert riz["ingredients"] == ["100g riz", "1 oignon"]

    assert client.get("/api/templates").json()[0]["usage_count"] == 1
    assert client.get("/api/plans", params={"client_id": patient.id}).json()[0]["id"] == plan["id"]


def test_plan_from_empty_template_is_rejected(client, practitioner, patient, db_session):
    template = client.post("/api/templates", json={"name": "Vide"}).json()
    response = client.post(f"/api/templates/{template['id']}/meal-plans", json={"client_id": patient.id})
    assert response.status_code == 422
    assert db_session.get(MealPlanTemplate, template["id"]).usage_count == 0


def test_plan_from_unknown_template_is_404(client, practitioner, patient):
    response = client.post("/api/templates/missing/meal-plans", json={"client_id": patient.id})
    assert response.status_code == 404

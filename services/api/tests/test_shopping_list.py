"""Tests for shopping list consolidation and the shopping list endpoints."""

from nutriflow.models import MealPlanTemplate
from nutriflow.services.shopping_list import (
    ShoppingEntry,
    consolidate_ingredients,
    exclude_ingredients,
    extract_from_template,
    parse_shopping_ingredient,
)


# --- Consolidation ---


def test_same_name_and_unit_are_summed():
    merged = consolidate_ingredients([
        parse_shopping_ingredient("150g riz"),
        parse_shopping_ingredient("150g Riz"),
    ])
    assert len(merged) == 1
    assert merged[0].name == "riz"
    assert merged[0].quantity == "300"
    assert merged[0].unit == "g"


def test_different_units_stay_separate():
    merged = consolidate_ingredients([
        parse_shopping_ingredient("200ml lait"),
        parse_shopping_ingredient("1l lait"),
    ])
    assert [(e.quantity, e.unit) for e in merged] == [("200", "ml"), ("1", "l")]


def test_unquantified_mentions_collapse():
    merged = consolidate_ingredients([
        parse_shopping_ingredient("sel"),
        parse_shopping_ingredient("Sel"),
    ])
    assert len(merged) == 1
    assert merged[0].quantity is None


def test_quantity_on_one_side_only_is_not_merged():
    merged = consolidate_ingredients([
        ShoppingEntry(name="persil", quantity=None),
        ShoppingEntry(name="persil", quantity="1"),
    ])
    assert len(merged) == 2


def test_numeric_quantities_sum_after_unquantified_mention():
    merged = consolidate_ingredients([
        parse_shopping_ingredient("avocat"),
        parse_shopping_ingredient("1 avocat"),
        parse_shopping_ingredient("2 avocat"),
    ])
    assert [(e.name, e.quantity) for e in merged] == [("avocat", None), ("avocat", "3")]


def test_numeric_quantities_sum_after_non_numeric_quantity():
    merged = consolidate_ingredients([
        ShoppingEntry(name="sel", quantity="une pincée", unit="g"),
        ShoppingEntry(name="sel", quantity="5", unit="g"),
        ShoppingEntry(name="Sel", quantity="3", unit="g"),
    ])
    assert [e.quantity for e in merged] == ["une pincée", "8"]


def test_structured_ingredient_dict():
    entry = parse_shopping_ingredient({"name": "pois chiches", "quantity": 100.0, "unit": "g"})
    assert entry == ShoppingEntry(name="pois chiches", quantity="100", unit="g", category="other")


def test_exclusion_is_case_insensitive():
    entries = [ShoppingEntry(name="Ail"), ShoppingEntry(name="riz")]
    assert [e.name for e in exclude_ingredients(entries, ["ail "])] == ["riz"]


def test_template_extraction_scales_by_servings():
    template = MealPlanTemplate(
        name="Semaine légère",
        meal_structure=[
            {"day": 1, "meals": [{"name": "Riz sauté", "ingredients": ["100g riz", "1 oignon"]}]},
            {"day": 2, "meals": [{"name": "Riz au lait", "ingredients": ["50g riz"]}]},
        ],
    )
    entries = extract_from_template(template, servings=2)
    by_name = {e.name: e for e in entries}
    assert by_name["riz"].quantity == "300"
    assert by_name["oignon"].quantity == "2"
    assert by_name["oignon"].category == "fruits-vegetables"


# --- API ---


def _template_with_garlic(client):
    meal_structure = [
        {"day": day, "meals": [{"name": f"Plat {day}", "ingredients": ["1 ail", f"{day}00g tomate"]}]}
        for day in (1, 2, 3)
    ]
    response = client.post("/api/templates", json={"name": "Provençal", "meal_structure": meal_structure})
    assert response.status_code == 201
    return response.json()


def test_generate_from_template_excludes_ingredient(client, practitioner):
    template = _template_with_garlic(client)

    response = client.post("/api/shopping-lists/generate", json={
        "template_id": template["id"],
        "exclude_ingredients": ["ail"],
    })
    assert response.status_code == 201
    data = response.json()

    names = [item["name"] for item in data["items"]]
    assert "ail" not in names
    assert names == ["tomate"]
    assert data["items"][0]["quantity"] == "600"
    assert data["template_id"] == template["id"]
    assert data["total_items"] == 1


def test_generate_requires_exactly_one_source(client, practitioner):
    response = client.post("/api/shopping-lists/generate", json={})
    assert response.status_code == 422

    response = client.post("/api/shopping-lists/generate", json={"meal_plan_id": "x", "template_id": "y"})
    assert response.status_code == 422


def test_item_mutations_keep_totals_in_sync(client, practitioner):
    response = client.post("/api/shopping-lists", json={
        "name": "Courses",
        "items": [{"name": "pommes"}, {"name": "lait", "quantity": "1", "unit": "l"}],
    })
    assert response.status_code == 201
    shopping_list = response.json()
    list_id = shopping_list["id"]
    assert shopping_list["total_items"] == 2
    assert shopping_list["completed_items"] == 0
    assert [i["order_index"] for i in shopping_list["items"]] == [0, 1]
    assert shopping_list["items"][1]["category"] == "dairy"

    added = client.post(f"/api/shopping-lists/{list_id}/items", json={"name": "pain", "category": "bakery"}).json()
    assert added["order_index"] == 2
    assert added["category"] == "bakery"

    toggled = client.patch(f"/api/shopping-lists/{list_id}/items/{added['id']}").json()
    assert toggled["is_purchased"] is True

    data = client.get(f"/api/shopping-lists/{list_id}").json()
    assert data["total_items"] == 3
    assert data["completed_items"] == 1

    lait_id = shopping_list["items"][1]["id"]
    updated = client.put(f"/api/shopping-lists/{list_id}/items/{lait_id}", json={"is_purchased": True, "quantity": "2"})
    assert updated.json()["quantity"] == "2"
    assert client.get(f"/api/shopping-lists/{list_id}").json()["completed_items"] == 2

    assert client.delete(f"/api/shopping-lists/{list_id}/items/{added['id']}").status_code == 204
    data = client.get(f"/api/shopping-lists/{list_id}").json()
    assert data["total_items"] == 2
    assert data["completed_items"] == 1


def test_list_filters_and_status_update(client, practitioner):
    list_id = client.post("/api/shopping-lists", json={"name": "Semaine 1"}).json()["id"]
    client.post("/api/shopping-lists", json={"name": "Semaine 2"})

    response = client.patch(f"/api/shopping-lists/{list_id}", json={"status": "completed"})
    assert response.json()["status"] == "completed"

    completed = client.get("/api/shopping-lists", params={"status_filter": "completed"}).json()
    assert [sl["name"] for sl in completed] == ["Semaine 1"]

    assert client.delete(f"/api/shopping-lists/{list_id}").status_code == 204
    assert client.get(f"/api/shopping-lists/{list_id}").status_code == 404

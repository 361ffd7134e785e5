"""Shopping list consolidation and persistence.

Extraction -> categorization -> consolidation -> exclusion -> persistence.
Every item mutation ends with refresh_list_totals() inside the same transaction,
so the cached total_items / completed_items always match the live item set.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import MealPlan, MealPlanTemplate, Practitioner, ShoppingList, ShoppingListItem
from ..parsing import format_quantity, parse_ingredient_line, sanitize_ingredient_text
from ..schemas import ShoppingListItemCreate, ShoppingListItemUpdate
from .categories import categorize_ingredient

logger = logging.getLogger("nutriflow.shopping")


@dataclass
class ShoppingEntry:
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None
    category: str = "other"


def _as_number(quantity: Optional[str]) -> Optional[float]:
    if quantity is None:
        return None
    try:
        return float(str(quantity).replace(",", "."))
    except ValueError:
        return None


def parse_shopping_ingredient(raw: Union[str, dict]) -> ShoppingEntry:
    """Accepts a free-text line or an already structured {name, quantity, unit} dict."""
    if isinstance(raw, dict):
        name = sanitize_ingredient_text(str(raw.get("name") or ""))
        quantity = raw.get("quantity")
        if isinstance(quantity, (int, float)):
            quantity = format_quantity(quantity)
        return ShoppingEntry(
            name=name,
            quantity=str(quantity) if quantity not in (None, "") else None,
            unit=raw.get("unit") or None,
            category=categorize_ingredient(name),
        )

    parsed = parse_ingredient_line(str(raw))
    return ShoppingEntry(
        name=parsed.name,
        quantity=format_quantity(parsed.quantity),
        unit=parsed.unit,
        category=categorize_ingredient(parsed.name),
    )


def scale_entry(entry: ShoppingEntry, servings: int) -> ShoppingEntry:
    qty = _as_number(entry.quantity)
    if servings == 1 or qty is None:
        return entry
    return replace(entry, quantity=format_quantity(qty * servings))


def consolidate_ingredients(entries: Iterable[ShoppingEntry]) -> list[ShoppingEntry]:
    """
    Merge entries sharing lower-cased name and identical unit.

    All numeric quantities of a key are summed into one entry, and unquantified
    mentions collapse into another. Non-numeric quantities ("une pincée") each
    stay a separate entry. First-seen order is kept.
    """
    merged: list[ShoppingEntry] = []
    numeric_heads: dict[tuple[str, Optional[str]], ShoppingEntry] = {}
    bare_heads: dict[tuple[str, Optional[str]], ShoppingEntry] = {}

    for entry in entries:
        if not entry.name:
            continue
        key = (entry.name.lower(), entry.unit)

        if entry.quantity is None:
            if key not in bare_heads:
                bare_heads[key] = replace(entry)
                merged.append(bare_heads[key])
            continue

        qty = _as_number(entry.quantity)
        if qty is None:
            merged.append(replace(entry))
            continue

        head = numeric_heads.get(key)
        if head is None:
            numeric_heads[key] = replace(entry)
            merged.append(numeric_heads[key])
        else:
            head.quantity = format_quantity(_as_number(head.quantity) + qty)

    return merged


def exclude_ingredients(entries: Iterable[ShoppingEntry], excluded: Iterable[str]) -> list[ShoppingEntry]:
    names = {e.strip().lower() for e in excluded if e and e.strip()}
    return [e for e in entries if e.name.lower() not in names]


def extract_from_template(template: MealPlanTemplate, servings: int = 1) -> list[ShoppingEntry]:
    entries = []
    for day in template.meal_structure or []:
        for meal in day.get("meals") or []:
            for raw in meal.get("ingredients") or []:
                entries.append(scale_entry(parse_shopping_ingredient(raw), servings))
    return consolidate_ingredients(entries)


def extract_from_meal_plan(plan: MealPlan) -> list[ShoppingEntry]:
    entries = []
    for day in plan.days:
        for slot in day.slots:
            for raw in slot.ingredients or []:
                entries.append(parse_shopping_ingredient(raw))
    return consolidate_ingredients(entries)


def refresh_list_totals(db: Session, shopping_list: ShoppingList) -> None:
    """Recount from the live item set. Must run after every item mutation."""
    db.flush()
    total = db.scalar(
        select(func.count(ShoppingListItem.id))
        .where(ShoppingListItem.shopping_list_id == shopping_list.id)
    )
    completed = db.scalar(
        select(func.count(ShoppingListItem.id))
        .where(
            ShoppingListItem.shopping_list_id == shopping_list.id,
            ShoppingListItem.is_purchased.is_(True),
        )
    )
    shopping_list.total_items = total or 0
    shopping_list.completed_items = completed or 0
    db.flush()


def create_shopping_list(
    db: Session,
    practitioner: Practitioner,
    *,
    name: str,
    description: Optional[str] = None,
    client_id: Optional[str] = None,
    meal_plan_id: Optional[str] = None,
    template_id: Optional[str] = None,
    entries: Iterable[ShoppingEntry] = (),
) -> ShoppingList:
    shopping_list = ShoppingList(
        practitioner_id=practitioner.id,
        client_id=client_id,
        name=name,
        description=description,
        status="active",
        meal_plan_id=meal_plan_id,
        template_id=template_id,
    )
    db.add(shopping_list)

    for index, entry in enumerate(entries):
        shopping_list.items.append(ShoppingListItem(
            name=entry.name,
            quantity=entry.quantity,
            unit=entry.unit,
            category=entry.category,
            is_purchased=False,
            order_index=index,
        ))

    refresh_list_totals(db, shopping_list)
    logger.info(f"Created shopping list {shopping_list.id} with {shopping_list.total_items} items")
    return shopping_list


def generate_from_meal_plan(
    db: Session,
    practitioner: Practitioner,
    plan: MealPlan,
    *,
    name: Optional[str] = None,
    client_id: Optional[str] = None,
    exclude: Iterable[str] = (),
) -> ShoppingList:
    entries = exclude_ingredients(extract_from_meal_plan(plan), exclude)
    return create_shopping_list(
        db,
        practitioner,
        name=name or f"Shopping list for {plan.name}",
        description=f'Generated from meal plan "{plan.name}"',
        client_id=client_id or plan.client_id,
        meal_plan_id=plan.id,
        entries=entries,
    )


def generate_from_template(
    db: Session,
    practitioner: Practitioner,
    template: MealPlanTemplate,
    *,
    name: Optional[str] = None,
    client_id: Optional[str] = None,
    servings: int = 1,
    exclude: Iterable[str] = (),
) -> ShoppingList:
    entries = exclude_ingredients(extract_from_template(template, servings), exclude)
    return create_shopping_list(
        db,
        practitioner,
        name=name or f"Shopping list for {template.name}",
        description=f'Generated from template "{template.name}"',
        client_id=client_id,
        template_id=template.id,
        entries=entries,
    )


def add_item(db: Session, shopping_list: ShoppingList, data: ShoppingListItemCreate) -> ShoppingListItem:
    next_index = db.scalar(
        select(func.coalesce(func.max(ShoppingListItem.order_index) + 1, 0))
        .where(ShoppingListItem.shopping_list_id == shopping_list.id)
    )
    item = ShoppingListItem(
        name=data.name.strip(),
        quantity=data.quantity,
        unit=data.unit,
        category=data.category or categorize_ingredient(data.name),
        is_purchased=data.is_purchased,
        notes=data.notes,
        order_index=next_index or 0,
    )
    shopping_list.items.append(item)
    refresh_list_totals(db, shopping_list)
    return item


def update_item(
    db: Session,
    shopping_list: ShoppingList,
    item: ShoppingListItem,
    data: ShoppingListItemUpdate,
) -> ShoppingListItem:
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("name", "category", "is_purchased", "order_index") and value is None:
            continue
        setattr(item, key, value)
    refresh_list_totals(db, shopping_list)
    return item


def toggle_item(db: Session, shopping_list: ShoppingList, item: ShoppingListItem) -> ShoppingListItem:
    item.is_purchased = not item.is_purchased
    refresh_list_totals(db, shopping_list)
    return item


def delete_item(db: Session, shopping_list: ShoppingList, item: ShoppingListItem) -> None:
    shopping_list.items.remove(item)
    refresh_list_totals(db, shopping_list)

"""SQLAlchemy ORM models for NutriFlow.

Tables:
- practitioners / clients: owner scoping and the people plans are written for
- ingredients: global nutritional reference directory, unique by name
- recipes / recipe_ingredients: owner-scoped reusable compositions materialized from meals
- meal_plans / meal_plan_days / meal_slots / selected_foods: a saved plan and its manual additions
- meal_plan_templates / template_assignments: reusable plan skeletons and who follows them
- shopping_lists / shopping_list_items: consolidated purchasable lists with cached counts
- progress_entries: client weight history
- audit_events: per-pipeline audit trail
"""

from __future__ import annotations

import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Text,
    Integer,
    Boolean,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    desc,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func, false
from sqlalchemy.types import JSON

from .db import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


# Ingredient.unit_type values
UNIT_TYPE_MASS = "mass"
UNIT_TYPE_VOLUME = "volume"
UNIT_TYPE_COUNT = "count"

# ShoppingList.status values
SHOPPING_LIST_STATUSES = ("active", "completed", "archived")

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")


class Practitioner(Base):
    """Owner of recipes, plans, templates and shopping lists.

    Resolved per request via header/env/fallback, the same way a tenant is.
    """
    __tablename__ = "practitioners"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    slug: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    clients: Mapped[list["Client"]] = relationship(
        "Client", back_populates="practitioner", cascade="all, delete-orphan"
    )
    recipes: Mapped[list["Recipe"]] = relationship(
        "Recipe", back_populates="practitioner", cascade="all, delete-orphan"
    )


class Client(Base):
    """A practitioner's client. current_weight is a projection of the latest progress entry."""
    __tablename__ = "clients"
    __table_args__ = (
        Index("ix_clients_practitioner_id", "practitioner_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    goal_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    practitioner: Mapped["Practitioner"] = relationship("Practitioner", back_populates="clients")
    progress_entries: Mapped[list["ProgressEntry"]] = relationship(
        "ProgressEntry", back_populates="client", cascade="all, delete-orphan",
        order_by="ProgressEntry.recorded_date.desc()"
    )


class Ingredient(Base):
    """Global ingredient directory entry.

    Only the nutrition group matching unit_type is filled:
    mass -> *_per_100g, volume -> *_per_100ml, count -> *_per_piece.
    """
    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    unit_type: Mapped[str] = mapped_column(String(10), nullable=False, default=UNIT_TYPE_MASS)

    calories_per_100g: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein_per_100g: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs_per_100g: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat_per_100g: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fiber_per_100g: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    calories_per_100ml: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein_per_100ml: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs_per_100ml: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat_per_100ml: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fiber_per_100ml: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    calories_per_piece: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein_per_piece: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs_per_piece: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat_per_piece: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fiber_per_piece: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# Case-insensitive uniqueness; lookups stay exact-match
Index("uq_ingredients_name_lower", func.lower(Ingredient.name), unique=True)


class Recipe(Base):
    """Reusable recipe owned by a practitioner, unique by name per owner."""
    __tablename__ = "recipes"
    __table_args__ = (
        UniqueConstraint("practitioner_id", "name", name="uq_recipes_practitioner_name"),
        Index("ix_recipes_practitioner_id", "practitioner_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # breakfast | lunch | dinner | snack
    servings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    prep_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")

    # Per serving
    calories_per_serving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein_per_serving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs_per_serving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat_per_serving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fiber_per_serving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    instructions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    practitioner: Mapped["Practitioner"] = relationship("Practitioner", back_populates="recipes")
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient", back_populates="recipe", cascade="all, delete-orphan",
        order_by="RecipeIngredient.order_index"
    )


class RecipeIngredient(Base):
    """Ordered ingredient row; ingredient_id is a weak reference into the directory."""
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        Index("ix_recipe_ingredients_recipe_id", "recipe_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")
    ingredient: Mapped[Optional["Ingredient"]] = relationship("Ingredient")


class MealPlan(Base):
    """Saved multi-day plan. plan_content keeps the normalized plan as delivered."""
    __tablename__ = "meal_plans"
    __table_args__ = (
        Index("ix_meal_plans_practitioner_created", "practitioner_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")  # draft | active | completed

    target_calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    plan_content: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    days: Mapped[list["MealPlanDay"]] = relationship(
        "MealPlanDay", back_populates="meal_plan", cascade="all, delete-orphan",
        order_by="MealPlanDay.day_index"
    )
    client: Mapped[Optional["Client"]] = relationship("Client")


class MealPlanDay(Base):
    """One day of a plan; total_* columns are the baseline from generation time."""
    __tablename__ = "meal_plan_days"
    __table_args__ = (
        UniqueConstraint("plan_id", "day_index", name="uq_meal_plan_days_plan_day"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False
    )
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..N
    date: Mapped[Optional[datetime]] = mapped_column(Date, nullable=True)

    total_calories: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    meal_plan: Mapped["MealPlan"] = relationship("MealPlan", back_populates="days")
    slots: Mapped[list["MealSlot"]] = relationship(
        "MealSlot", back_populates="day", cascade="all, delete-orphan",
        order_by="MealSlot.order_index"
    )


class MealSlot(Base):
    """Single meal within a day. recipe_id is a back-reference, not ownership."""
    __tablename__ = "meal_slots"
    __table_args__ = (
        Index("ix_meal_slots_day_id", "day_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    day_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_plan_days.id", ondelete="CASCADE"), nullable=False
    )

    meal_type: Mapped[str] = mapped_column(String(20), nullable=False)  # breakfast | lunch | dinner | snack
    name: Mapped[str] = mapped_column(String(200), nullable=False)  # display label
    original_meal_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    time: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Nutrition snapshot at generation time
    calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    protein: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    carbs: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    fiber: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    ingredients: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    recipe_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )

    day: Mapped["MealPlanDay"] = relationship("MealPlanDay", back_populates="slots")
    recipe: Mapped[Optional["Recipe"]] = relationship("Recipe")
    foods: Mapped[list["SelectedFood"]] = relationship(
        "SelectedFood", back_populates="slot", cascade="all, delete-orphan",
        order_by="SelectedFood.created_at"
    )


class SelectedFood(Base):
    """Food manually added to a meal slot, with nutrition per 100 g."""
    __tablename__ = "selected_foods"
    __table_args__ = (
        Index("ix_selected_foods_slot_id", "slot_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    slot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_slots.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)  # grams

    energy_kcal_per_100: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    protein_per_100: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs_per_100: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat_per_100: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fiber_per_100: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    slot: Mapped["MealSlot"] = relationship("MealSlot", back_populates="foods")


class MealPlanTemplate(Base):
    """Reusable plan skeleton.

    meal_structure: [{"day": 1, "meals": [{"name": ..., "ingredients": ["150g riz", ...]}]}]
    """
    __tablename__ = "meal_plan_templates"
    __table_args__ = (
        Index("ix_meal_plan_templates_practitioner_id", "practitioner_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    goal_type: Mapped[str] = mapped_column(String(30), nullable=False, default="maintenance")  # weight_loss | weight_gain | maintenance
    meal_structure: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    assignments: Mapped[list["TemplateAssignment"]] = relationship(
        "TemplateAssignment", back_populates="template", cascade="all, delete-orphan"
    )


class TemplateAssignment(Base):
    """A client following a template."""
    __tablename__ = "template_assignments"
    __table_args__ = (
        UniqueConstraint("template_id", "client_id", name="uq_template_assignments_template_client"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_plan_templates.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active | paused | completed
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    template: Mapped["MealPlanTemplate"] = relationship("MealPlanTemplate", back_populates="assignments")
    client: Mapped["Client"] = relationship("Client")


class ShoppingList(Base):
    """Shopping list. total_items/completed_items are a cache refreshed after every item mutation."""
    __tablename__ = "shopping_lists"
    __table_args__ = (
        Index("ix_shopping_lists_practitioner_created", "practitioner_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    meal_plan_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("meal_plans.id", ondelete="SET NULL"), nullable=True
    )
    template_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("meal_plan_templates.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items: Mapped[list["ShoppingListItem"]] = relationship(
        "ShoppingListItem", back_populates="shopping_list", cascade="all, delete-orphan",
        order_by="ShoppingListItem.order_index"
    )


class ShoppingListItem(Base):
    """Item in a shopping list. quantity/unit are free text."""
    __tablename__ = "shopping_list_items"
    __table_args__ = (
        Index("ix_shopping_list_items_list_id", "shopping_list_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    shopping_list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="other")
    is_purchased: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    shopping_list: Mapped["ShoppingList"] = relationship("ShoppingList", back_populates="items")


class ProgressEntry(Base):
    """Client weight record. Immutable once created; deletion recomputes Client.current_weight."""
    __tablename__ = "progress_entries"
    __table_args__ = (
        Index("ix_progress_entries_client_date", "client_id", desc("recorded_date")),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )

    weight: Mapped[float] = mapped_column(Float, nullable=False)
    body_fat_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    muscle_mass: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    measurements: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # chest, waist, hips, thigh, arm
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    client: Mapped["Client"] = relationship("Client", back_populates="progress_entries")


class AuditEvent(Base):
    """Audit trail written by the per-invocation PipelineAudit."""
    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_practitioner_created", "practitioner_id", desc("created_at")),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    practitioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False
    )
    run_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

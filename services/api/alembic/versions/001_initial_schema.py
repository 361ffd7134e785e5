"""Initial schema: practitioners, clients, ingredients, recipes, meal plans,
templates, shopping lists, progress entries, audit events

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _nutrition_columns(suffix: str) -> list[sa.Column]:
    return [
        sa.Column(f"{nutrient}_{suffix}", sa.Float, nullable=True)
        for nutrient in ("calories", "protein", "carbs", "fat", "fiber")
    ]


def upgrade() -> None:
    op.create_table(
        "practitioners",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("slug", sa.String(80), unique=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(254), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(254), nullable=True),
        sa.Column("goal_weight", sa.Float, nullable=True),
        sa.Column("current_weight", sa.Float, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_clients_practitioner_id", "clients", ["practitioner_id"])

    # Global directory; only the group matching unit_type is filled
    op.create_table(
        "ingredients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("unit_type", sa.String(10), nullable=False, server_default="mass"),
        *_nutrition_columns("per_100g"),
        *_nutrition_columns("per_100ml"),
        *_nutrition_columns("per_piece"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("uq_ingredients_name_lower", "ingredients", [sa.text("lower(name)")], unique=True)

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("servings", sa.Integer, nullable=False, server_default="1"),
        sa.Column("prep_time", sa.Integer, nullable=True),
        sa.Column("cook_time", sa.Integer, nullable=True),
        sa.Column("difficulty", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("calories_per_serving", sa.Float, nullable=True),
        sa.Column("protein_per_serving", sa.Float, nullable=True),
        sa.Column("carbs_per_serving", sa.Float, nullable=True),
        sa.Column("fat_per_serving", sa.Float, nullable=True),
        sa.Column("fiber_per_serving", sa.Float, nullable=True),
        sa.Column("instructions", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("tags", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("practitioner_id", "name", name="uq_recipes_practitioner_name"),
    )
    op.create_index("ix_recipes_practitioner_id", "recipes", ["practitioner_id"])

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ingredient_id", sa.String(36), sa.ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Float, nullable=True),
        sa.Column("unit", sa.String(20), nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_recipe_ingredients_recipe_id", "recipe_ingredients", ["recipe_id"])

    op.create_table(
        "meal_plans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("duration_days", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("target_calories", sa.Float, nullable=True),
        sa.Column("protein_percentage", sa.Float, nullable=True),
        sa.Column("carbs_percentage", sa.Float, nullable=True),
        sa.Column("fat_percentage", sa.Float, nullable=True),
        sa.Column("plan_content", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_meal_plans_practitioner_created", "meal_plans", ["practitioner_id", "created_at"])

    op.create_table(
        "meal_plan_days",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("plan_id", sa.String(36), sa.ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_index", sa.Integer, nullable=False),
        sa.Column("date", sa.Date, nullable=True),
        sa.Column("total_calories", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_protein", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_carbs", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_fat", sa.Float, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.UniqueConstraint("plan_id", "day_index", name="uq_meal_plan_days_plan_day"),
    )

    op.create_table(
        "meal_slots",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("day_id", sa.String(36), sa.ForeignKey("meal_plan_days.id", ondelete="CASCADE"), nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("original_meal_name", sa.String(200), nullable=True),
        sa.Column("time", sa.String(10), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("calories", sa.Float, nullable=True),
        sa.Column("protein", sa.Float, nullable=True),
        sa.Column("carbs", sa.Float, nullable=True),
        sa.Column("fat", sa.Float, nullable=True),
        sa.Column("fiber", sa.Float, nullable=True),
        sa.Column("ingredients", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_meal_slots_day_id", "meal_slots", ["day_id"])

    # Foods added by hand to a slot, nutrition per 100 g
    op.create_table(
        "selected_foods",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("slot_id", sa.String(36), sa.ForeignKey("meal_slots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("quantity", sa.Float, nullable=False),
        sa.Column("energy_kcal_per_100", sa.Float, nullable=False, server_default="0"),
        sa.Column("protein_per_100", sa.Float, nullable=False, server_default="0"),
        sa.Column("carbs_per_100", sa.Float, nullable=False, server_default="0"),
        sa.Column("fat_per_100", sa.Float, nullable=False, server_default="0"),
        sa.Column("fiber_per_100", sa.Float, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_selected_foods_slot_id", "selected_foods", ["slot_id"])

    op.create_table(
        "meal_plan_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("goal_type", sa.String(30), nullable=False, server_default="maintenance"),
        sa.Column("meal_structure", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating", sa.Float, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_meal_plan_templates_practitioner_id", "meal_plan_templates", ["practitioner_id"])

    op.create_table(
        "template_assignments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("template_id", sa.String(36), sa.ForeignKey("meal_plan_templates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("template_id", "client_id", name="uq_template_assignments_template_client"),
    )

    op.create_table(
        "shopping_lists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("total_items", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_items", sa.Integer, nullable=False, server_default="0"),
        sa.Column("meal_plan_id", sa.String(36), sa.ForeignKey("meal_plans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("template_id", sa.String(36), sa.ForeignKey("meal_plan_templates.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_shopping_lists_practitioner_created", "shopping_lists", ["practitioner_id", "created_at"])

    op.create_table(
        "shopping_list_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("shopping_list_id", sa.String(36), sa.ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("quantity", sa.String(50), nullable=True),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("category", sa.String(30), nullable=False, server_default="other"),
        sa.Column("is_purchased", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_shopping_list_items_list_id", "shopping_list_items", ["shopping_list_id"])

    op.create_table(
        "progress_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("weight", sa.Float, nullable=False),
        sa.Column("body_fat_percentage", sa.Float, nullable=True),
        sa.Column("muscle_mass", sa.Float, nullable=True),
        sa.Column("measurements", sa.JSON, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("recorded_date", sa.Date, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_progress_entries_client_date", "progress_entries", ["client_id", sa.text("recorded_date DESC")])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("practitioner_id", sa.String(36), sa.ForeignKey("practitioners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("run_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(80), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_events_practitioner_created", "audit_events", ["practitioner_id", sa.text("created_at DESC")])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("progress_entries")
    op.drop_table("shopping_list_items")
    op.drop_table("shopping_lists")
    op.drop_table("template_assignments")
    op.drop_table("meal_plan_templates")
    op.drop_table("selected_foods")
    op.drop_table("meal_slots")
    op.drop_table("meal_plan_days")
    op.drop_table("meal_plans")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_index("uq_ingredients_name_lower", table_name="ingredients")
    op.drop_table("ingredients")
    op.drop_table("clients")
    op.drop_table("practitioners")

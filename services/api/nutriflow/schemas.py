"""Pydantic schemas for NutriFlow API.

Request/response models for:
- Generated plans (camelCase wire shape from the plan producer) and normalized plans
- Recipes, ingredients, saved meal plans
- Nutrition summaries
- Shopping lists
- Progress analysis and template effectiveness
"""

import datetime as dt
from datetime import datetime, date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


# --- Practitioners / Clients ---

class PractitionerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None


class PractitionerOut(BaseModel):
    id: str
    slug: str
    name: str
    email: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    goal_weight: Optional[float] = Field(None, gt=0)
    current_weight: Optional[float] = Field(None, gt=0)


class ClientOut(BaseModel):
    id: str
    practitioner_id: str
    name: str
    email: Optional[str]
    goal_weight: Optional[float]
    current_weight: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


# --- Generated plan (plan producer wire shape) ---

class IngredientNutritionIn(BaseModel):
    name: str
    unit: Optional[str] = None
    calories_per_100: Optional[float] = Field(None, alias="caloriesPer100")
    protein_per_100: Optional[float] = Field(None, alias="proteinPer100")
    carbs_per_100: Optional[float] = Field(None, alias="carbsPer100")
    fat_per_100: Optional[float] = Field(None, alias="fatPer100")
    fiber_per_100: Optional[float] = Field(None, alias="fiberPer100")

    class Config:
        populate_by_name = True


class GeneratedMeal(BaseModel):
    type: str = "lunch"
    name: str
    description: Optional[str] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None
    prep_time: Optional[int] = Field(None, alias="prepTime")
    cook_time: Optional[int] = Field(None, alias="cookTime")
    ingredients: list[str] = []
    ingredients_nutrition: Optional[list[IngredientNutritionIn]] = Field(None, alias="ingredientsNutrition")
    instructions: Optional[list[str]] = None
    tags: Optional[list[str]] = None

    class Config:
        populate_by_name = True


class GeneratedDay(BaseModel):
    day: int = Field(..., ge=1)
    date: Optional[dt.date] = None
    meals: list[GeneratedMeal] = []
    total_calories: Optional[float] = Field(None, alias="totalCalories")
    total_protein: Optional[float] = Field(None, alias="totalProtein")
    total_carbs: Optional[float] = Field(None, alias="totalCarbs")
    total_fat: Optional[float] = Field(None, alias="totalFat")

    class Config:
        populate_by_name = True


class NutritionalGoals(BaseModel):
    daily_calories: Optional[float] = Field(None, alias="dailyCalories")
    protein_percentage: Optional[float] = Field(None, alias="proteinPercentage")
    carb_percentage: Optional[float] = Field(None, alias="carbPercentage")
    fat_percentage: Optional[float] = Field(None, alias="fatPercentage")

    class Config:
        populate_by_name = True


class GeneratedPlan(BaseModel):
    title: str
    description: Optional[str] = None
    duration: Optional[int] = None
    nutritional_goals: Optional[NutritionalGoals] = Field(None, alias="nutritionalGoals")
    days: list[GeneratedDay] = []

    class Config:
        populate_by_name = True


# --- Normalized (dynamic) plan ---

class SelectedFoodIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., gt=0)  # grams
    energy_kcal_per_100: float = Field(0, ge=0)
    protein_per_100: float = Field(0, ge=0)
    carbs_per_100: float = Field(0, ge=0)
    fat_per_100: float = Field(0, ge=0)
    fiber_per_100: float = Field(0, ge=0)


class StructuredIngredient(BaseModel):
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None


class DynamicMealSlot(BaseModel):
    id: str
    name: str  # display label, e.g. "Petit-déjeuner"
    meal_type: Optional[str] = None
    time: Optional[str] = None
    description: Optional[str] = None
    calories_target: Optional[float] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None
    ingredients: list[Union[StructuredIngredient, str]] = []
    enabled: bool = True
    order: int = 0
    recipe_id: Optional[str] = None
    original_meal_name: Optional[str] = None


class DynamicMealPlanDay(BaseModel):
    day: int = Field(..., ge=1)
    date: Optional[dt.date] = None
    meals: list[DynamicMealSlot] = []
    notes: Optional[str] = None
    total_calories: Optional[float] = None
    total_protein: Optional[float] = None
    total_carbs: Optional[float] = None
    total_fat: Optional[float] = None
    # Keyed by slot id
    selected_foods: dict[str, list[SelectedFoodIn]] = {}


class DynamicMealPlan(BaseModel):
    title: str = "Meal plan"
    description: Optional[str] = None
    generated_by: Literal["template", "ai", "manual"] = "ai"
    duration_days: Optional[int] = None
    target_calories: Optional[float] = None
    target_macros: Optional[dict[str, float]] = None
    days: list[DynamicMealPlanDay] = []


class GeneratedPlanPayload(BaseModel):
    kind: Literal["generated"] = "generated"
    plan: GeneratedPlan


class DynamicPlanPayload(BaseModel):
    kind: Literal["dynamic"] = "dynamic"
    plan: DynamicMealPlan


PlanPayload = Annotated[
    Union[GeneratedPlanPayload, DynamicPlanPayload],
    Field(discriminator="kind"),
]


# --- Pipeline ---

class ManualFoodIn(SelectedFoodIn):
    day: int = Field(..., ge=1)
    meal_type: str


class MaterializePlanRequest(BaseModel):
    plan: PlanPayload
    client_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    selected_foods: list[ManualFoodIn] = []
    generate_shopping_list: bool = False
    exclude_ingredients: list[str] = []
    notify: bool = True


class PipelineResultOut(BaseModel):
    run_id: str
    plan_id: str
    linked_slots: int
    ingredients_created: int
    recipes_created: int
    recipes_reused: int
    failed_meals: list[str] = []
    shopping_list_id: Optional[str] = None
    notification_sent: bool = False


# --- Ingredients / Recipes ---

class IngredientOut(BaseModel):
    id: str
    name: str
    category: Optional[str]
    unit_type: str
    calories_per_100g: Optional[float]
    protein_per_100g: Optional[float]
    carbs_per_100g: Optional[float]
    fat_per_100g: Optional[float]
    fiber_per_100g: Optional[float]
    calories_per_100ml: Optional[float]
    protein_per_100ml: Optional[float]
    carbs_per_100ml: Optional[float]
    fat_per_100ml: Optional[float]
    fiber_per_100ml: Optional[float]
    calories_per_piece: Optional[float]
    protein_per_piece: Optional[float]
    carbs_per_piece: Optional[float]
    fat_per_piece: Optional[float]
    fiber_per_piece: Optional[float]

    class Config:
        from_attributes = True


class RecipeIngredientOut(BaseModel):
    id: str
    ingredient_id: Optional[str]
    name: str
    quantity: Optional[float]
    unit: Optional[str]
    order_index: int

    class Config:
        from_attributes = True


class RecipeOut(BaseModel):
    id: str
    practitioner_id: str
    name: str
    description: Optional[str]
    category: str
    servings: int
    prep_time: Optional[int]
    cook_time: Optional[int]
    difficulty: str
    calories_per_serving: Optional[float]
    protein_per_serving: Optional[float]
    carbs_per_serving: Optional[float]
    fat_per_serving: Optional[float]
    fiber_per_serving: Optional[float]
    instructions: list[str] = []
    tags: list[str] = []
    ingredients: list[RecipeIngredientOut] = []
    created_at: datetime

    class Config:
        from_attributes = True


# --- Saved meal plans ---

class SelectedFoodOut(SelectedFoodIn):
    id: str
    slot_id: str

    class Config:
        from_attributes = True


class MealSlotOut(BaseModel):
    id: str
    meal_type: str
    name: str
    original_meal_name: Optional[str]
    time: Optional[str]
    description: Optional[str]
    order_index: int
    calories: Optional[float]
    protein: Optional[float]
    carbs: Optional[float]
    fat: Optional[float]
    fiber: Optional[float]
    ingredients: list = []
    recipe_id: Optional[str]
    foods: list[SelectedFoodOut] = []

    class Config:
        from_attributes = True


class MealPlanDayOut(BaseModel):
    id: str
    day_index: int
    date: Optional[dt.date]
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float
    notes: Optional[str]
    slots: list[MealSlotOut] = []

    class Config:
        from_attributes = True


class MealPlanOut(BaseModel):
    id: str
    practitioner_id: str
    client_id: Optional[str]
    name: str
    description: Optional[str]
    duration_days: int
    status: str
    target_calories: Optional[float]
    protein_percentage: Optional[float]
    carbs_percentage: Optional[float]
    fat_percentage: Optional[float]
    days: list[MealPlanDayOut] = []
    created_at: datetime

    class Config:
        from_attributes = True


class MealPlanSummaryOut(BaseModel):
    id: str
    name: str
    client_id: Optional[str]
    duration_days: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


# --- Nutrition ---

class NutritionTotals(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0


class MacroPercentages(BaseModel):
    protein: int = 0
    carbs: int = 0
    fat: int = 0


class MacroTargets(BaseModel):
    calories: float
    protein_g: int
    carbs_g: int
    fat_g: int


class DayNutrition(BaseModel):
    day_index: int
    baseline: NutritionTotals
    added: NutritionTotals
    total: NutritionTotals
    percentages: MacroPercentages


class PlanNutrition(BaseModel):
    days: list[DayNutrition] = []
    totals: NutritionTotals
    daily_average: NutritionTotals
    percentages: MacroPercentages
    targets: Optional[MacroTargets] = None


# --- Templates ---

class TemplateMeal(BaseModel):
    name: str
    type: Optional[str] = None
    ingredients: list[str] = []


class TemplateDay(BaseModel):
    day: int = Field(..., ge=1)
    meals: list[TemplateMeal] = []


class MealPlanTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    goal_type: Literal["weight_loss", "weight_gain", "maintenance"] = "maintenance"
    meal_structure: list[TemplateDay] = []
    rating: Optional[float] = Field(None, ge=0, le=5)


class MealPlanTemplateOut(BaseModel):
    id: str
    practitioner_id: str
    name: str
    category: Optional[str]
    goal_type: str
    meal_structure: list
    usage_count: int
    rating: Optional[float]
    created_at: datetime

    class Config:
        from_attributes = True


class TemplateAssignmentCreate(BaseModel):
    client_id: str
    status: Literal["active", "paused", "completed"] = "active"


class TemplateAssignmentOut(BaseModel):
    id: str
    template_id: str
    client_id: str
    status: str

    class Config:
        from_attributes = True


class TemplatePlanCreate(BaseModel):
    client_id: str
    name: Optional[str] = Field(None, max_length=200)


# --- Shopping lists ---

ShoppingCategory = Literal[
    "fruits-vegetables", "proteins", "dairy", "grains", "condiments",
    "beverages", "frozen", "bakery", "other",
]


class ShoppingListItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    quantity: Optional[str] = Field(None, max_length=50)
    unit: Optional[str] = Field(None, max_length=50)
    category: Optional[ShoppingCategory] = None  # None -> categorized from the name
    is_purchased: bool = False
    notes: Optional[str] = None


class ShoppingListItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    quantity: Optional[str] = Field(None, max_length=50)
    unit: Optional[str] = Field(None, max_length=50)
    category: Optional[ShoppingCategory] = None
    is_purchased: Optional[bool] = None
    notes: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class ShoppingListItemOut(BaseModel):
    id: str
    shopping_list_id: str
    name: str
    quantity: Optional[str]
    unit: Optional[str]
    category: str
    is_purchased: bool
    notes: Optional[str]
    order_index: int

    class Config:
        from_attributes = True


class ShoppingListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    client_id: Optional[str] = None
    items: list[ShoppingListItemCreate] = []


class ShoppingListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[Literal["active", "completed", "archived"]] = None


class ShoppingListOut(BaseModel):
    id: str
    practitioner_id: str
    client_id: Optional[str]
    name: str
    description: Optional[str]
    status: str
    total_items: int
    completed_items: int
    meal_plan_id: Optional[str]
    template_id: Optional[str]
    created_at: datetime
    items: list[ShoppingListItemOut] = []

    class Config:
        from_attributes = True


class GenerateShoppingListRequest(BaseModel):
    meal_plan_id: Optional[str] = None
    template_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    client_id: Optional[str] = None
    servings: int = Field(1, ge=1)
    exclude_ingredients: list[str] = []


# --- Progress ---

class ProgressEntryCreate(BaseModel):
    weight: float = Field(..., gt=0)
    body_fat_percentage: Optional[float] = Field(None, ge=0, le=100)
    muscle_mass: Optional[float] = Field(None, ge=0)
    measurements: Optional[dict[str, float]] = None
    notes: Optional[str] = None
    recorded_date: date


class ProgressEntryOut(BaseModel):
    id: str
    client_id: str
    weight: float
    body_fat_percentage: Optional[float]
    muscle_mass: Optional[float]
    measurements: Optional[dict[str, float]]
    notes: Optional[str]
    recorded_date: date
    created_at: datetime

    class Config:
        from_attributes = True


class NextMilestone(BaseModel):
    target: float
    weeks: int
    estimated_date: date


class ProgressAnalysis(BaseModel):
    client_id: Optional[str] = None
    current_weight: float
    goal_weight: float
    starting_weight: float
    weight_change: float
    progress_percentage: float
    weekly_average_loss: float
    monthly_trend: Literal["losing", "gaining", "stable"]
    next_milestone: NextMilestone
    effectiveness_score: float
    recommended_templates: list[str] = []


class TemplateEffectiveness(BaseModel):
    template_id: str
    template_name: str
    client_count: int
    success_rate: float
    average_weight_loss: float
    average_duration: float
    client_satisfaction: float
    dropout_rate: float


class ProgressReport(BaseModel):
    analysis: ProgressAnalysis
    effectiveness: list[TemplateEffectiveness] = []
    recommendations: list[str] = []

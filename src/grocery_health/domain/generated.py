"""Models for validating loosely structured text-generation output."""

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lenient_amount(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


class GeneratedNutrition(BaseModel):
    """Nutrition block as emitted by the text service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    saturated_fat: float = Field(default=0.0, alias="saturatedFat")

    @field_validator("*", mode="before")
    @classmethod
    def _non_negative_number(cls, value: object) -> float:
        return _lenient_amount(value)


class GeneratedIngredient(BaseModel):
    """Ingredient usage proposed for a generated meal."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    servings: float = 1.0
    nutrition: GeneratedNutrition = Field(default_factory=GeneratedNutrition)

    @field_validator("servings", mode="before")
    @classmethod
    def _servings(cls, value: object) -> float:
        return _lenient_amount(value)


class GeneratedMeal(BaseModel):
    """A meal proposed by the text service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    type: str = "snack"
    ingredients: list[GeneratedIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    total_nutrition: GeneratedNutrition | None = Field(
        default=None, alias="totalNutrition"
    )


class GeneratedDayPlan(BaseModel):
    """One day of a generated meal plan."""

    model_config = ConfigDict(extra="ignore")

    date: str
    meals: list[GeneratedMeal] = Field(default_factory=list)


class GeneratedProduct(BaseModel):
    """A product proposed by the search prompt."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    brand: str = ""
    price: float = 0.0
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    saturated_fat: float = Field(default=0.0, alias="saturatedFat")
    ingredient_statement: str = Field(default="", alias="ingredientStatement")
    warnings: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)

    @field_validator(
        "price",
        "calories",
        "protein",
        "carbs",
        "fat",
        "fiber",
        "sugar",
        "sodium",
        "saturated_fat",
        mode="before",
    )
    @classmethod
    def _amount(cls, value: object) -> float:
        return _lenient_amount(value)

    @field_validator("ingredient_statement", "brand", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class GeneratedServingEstimate(BaseModel):
    """Package size guess."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    servings_per_container: float = Field(alias="servingsPerContainer", gt=0)
    serving_size: str = Field(default="1 serving", alias="servingSize", min_length=1)


class GeneratedIngredientNarrative(BaseModel):
    """Narrative detail for a risky ingredient."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    health_impact: str = Field(default="", alias="healthImpact")
    alternatives: list[str] = Field(default_factory=list)

"""Nutrition domain models."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields

from grocery_health.errors import ValidationError


@dataclass(frozen=True)
class NutritionFacts:
    """Nutrients for one reference serving.

    Units: grams for macros, fiber and sugar, milligrams for sodium. Whether
    the reference is "per 100g" or "per item" is decided by the caller and
    must stay consistent within one record.
    """

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    saturated_fat: float = 0.0

    def __post_init__(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise ValidationError(f"{field.name} must be a number")
            if not math.isfinite(value):
                raise ValidationError(f"{field.name} must be finite")
            if value < 0:
                raise ValidationError(f"{field.name} must be non-negative")
            object.__setattr__(self, field.name, float(value))

    def __add__(self, other: "NutritionFacts") -> "NutritionFacts":
        if not isinstance(other, NutritionFacts):
            return NotImplemented
        return NutritionFacts(
            **{
                f.name: getattr(self, f.name) + getattr(other, f.name)
                for f in fields(self)
            }
        )

    def scaled(self, factor: float) -> "NutritionFacts":
        """Return these facts multiplied by a non-negative factor."""
        if not math.isfinite(factor) or factor < 0:
            raise ValidationError("Scale factor must be finite and non-negative")
        return NutritionFacts(
            **{f.name: getattr(self, f.name) * factor for f in fields(self)}
        )

    @classmethod
    def coerce(cls, raw: Mapping[str, object] | None) -> "NutritionFacts":
        """Build facts from untrusted data, replacing unusable values with 0."""
        if not raw:
            return cls()
        values: dict[str, float] = {}
        for field in fields(cls):
            value = raw.get(field.name)
            if value is None and field.name == "saturated_fat":
                value = raw.get("saturatedFat")
            values[field.name] = _safe_amount(value)
        return cls(**values)


ZERO_NUTRITION = NutritionFacts()


def sum_nutrition(values: Iterable[NutritionFacts]) -> NutritionFacts:
    """Sum nutrition facts."""
    total = ZERO_NUTRITION
    for value in values:
        total = total + value
    return total


def _safe_amount(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 0.0
    if not isinstance(value, int | float):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)

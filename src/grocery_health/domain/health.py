"""Health assessment domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class Severity(StrEnum):
    """Ingredient risk classification, from best to worst."""

    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    CONCERNING = "concerning"
    AVOID = "avoid"

    @property
    def rank(self) -> int:
        """Position in the ordering; higher is worse."""
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = (
    Severity.EXCELLENT,
    Severity.GOOD,
    Severity.MODERATE,
    Severity.CONCERNING,
    Severity.AVOID,
)


class CategoryStatus(StrEnum):
    """Label for a 0-100 score band."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    BAD = "bad"


@dataclass(frozen=True)
class CategoryScore:
    """Score for one health category."""

    score: int
    status: CategoryStatus
    message: str


@dataclass(frozen=True)
class HealthCategories:
    """The fixed set of category scores."""

    sugar: CategoryScore
    fat: CategoryScore
    saturated_fat: CategoryScore
    sodium: CategoryScore
    fiber: CategoryScore
    processed_foods: CategoryScore

    def items(self) -> list[tuple[str, CategoryScore]]:
        """Return (name, score) pairs in a stable order."""
        return [
            ("sugar", self.sugar),
            ("fat", self.fat),
            ("saturated_fat", self.saturated_fat),
            ("sodium", self.sodium),
            ("fiber", self.fiber),
            ("processed_foods", self.processed_foods),
        ]


@dataclass(frozen=True)
class BadIngredient:
    """A risky ingredient found across the inventory."""

    name: str
    severity: Severity
    reason: str
    found_in: tuple[str, ...]
    health_impact: str
    alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class HealthScoreRecord:
    """Stored result of an aggregate health assessment."""

    overall: int
    categories: HealthCategories
    recommendations: tuple[str, ...]
    bad_ingredients: tuple[BadIngredient, ...]
    timestamp: datetime

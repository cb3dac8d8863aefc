"""Product evaluation models."""

from dataclasses import dataclass

from grocery_health.domain.nutrition import NutritionFacts


@dataclass(frozen=True)
class ProductRiskResult:
    """Health evaluation of a single product."""

    score: int
    warnings: tuple[str, ...]
    benefits: tuple[str, ...]
    alternatives: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ProductCandidate:
    """A product proposed by search before it is scored."""

    name: str
    brand: str
    price: float
    nutrition: NutritionFacts
    ingredient_statement: str = ""
    warnings: tuple[str, ...] = ()
    benefits: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredProduct:
    """A search candidate together with its evaluation."""

    candidate: ProductCandidate
    result: ProductRiskResult


@dataclass(frozen=True)
class ServingEstimate:
    """Package size estimate used when adding a product to the inventory."""

    servings_per_container: float
    serving_size: str

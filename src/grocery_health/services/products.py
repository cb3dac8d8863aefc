"""Per-product health scoring and its best-effort enrichments."""

import asyncio
import logging
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from pydantic import ValidationError as PydanticValidationError

from grocery_health.domain.generated import (
    GeneratedProduct,
    GeneratedServingEstimate,
)
from grocery_health.domain.nutrition import NutritionFacts
from grocery_health.domain.products import (
    ProductCandidate,
    ProductRiskResult,
    ScoredProduct,
    ServingEstimate,
)
from grocery_health.errors import DependencyDegradedError
from grocery_health.services.cache import Cache
from grocery_health.services.freshness import LatestRequestGuard
from grocery_health.services.lexicon import match_ingredients
from grocery_health.services.text_generation import TextGenerationService

_logger = logging.getLogger(__name__)

# Daily reference values the base score is measured against.
SUGAR_REFERENCE_G = 50
SODIUM_REFERENCE_MG = 2300
SATURATED_FAT_REFERENCE_G = 20
FAT_REFERENCE_G = 78
FIBER_REFERENCE_G = 30
PROTEIN_REFERENCE_G = 50

ALTERNATIVES_THRESHOLD = 60
MAX_SEARCH_RESULTS = 10
DEFAULT_SERVINGS = ServingEstimate(servings_per_container=1, serving_size="1 serving")


def base_score(nutrition: NutritionFacts) -> float:
    """Nutrient-only score in [0, 100] before ingredient penalties."""
    raw = (
        100
        - 20 * (nutrition.sugar / SUGAR_REFERENCE_G)
        - 20 * (nutrition.sodium / SODIUM_REFERENCE_MG)
        - 15 * (nutrition.saturated_fat / SATURATED_FAT_REFERENCE_G)
        - 10 * (nutrition.fat / FAT_REFERENCE_G)
        + 15 * (nutrition.fiber / FIBER_REFERENCE_G)
        + 10 * (nutrition.protein / PROTEIN_REFERENCE_G)
    )
    return min(100.0, max(0.0, raw))


def clamp_score(value: float) -> int:
    """Round half up and clamp to an integer in [0, 100]."""
    return min(100, max(0, math.floor(value + 0.5)))


def score_product(
    nutrition: NutritionFacts,
    ingredient_statement: str | None = None,
    *,
    extra_warnings: Iterable[str] = (),
    extra_benefits: Iterable[str] = (),
) -> ProductRiskResult:
    """Score a product from its nutrition facts and ingredient statement.

    ``extra_warnings`` and ``extra_benefits`` carry labels supplied with the
    product data; they are merged with the derived ones and deduplicated.
    """
    statement = (ingredient_statement or "").lower()
    matches = match_ingredients(statement)
    artificial_penalty = sum(entry.points for entry in matches)
    final = clamp_score(max(0.0, base_score(nutrition) - artificial_penalty))

    warnings = dict.fromkeys(w for w in extra_warnings if w)
    if nutrition.sugar > 15:
        warnings["High in sugar"] = None
    if nutrition.sodium > 400:
        warnings["High in sodium"] = None
    if nutrition.saturated_fat > 5:
        warnings["High in saturated fat"] = None
    if matches:
        names = ", ".join(entry.fragment for entry in matches[:2])
        warnings[f"Contains: {names}"] = None

    benefits = dict.fromkeys(b for b in extra_benefits if b)
    if nutrition.protein > 10:
        benefits["Good protein source"] = None
    if nutrition.fiber > 5:
        benefits["High fiber"] = None
    if not matches and "artificial" not in statement:
        benefits["No artificial ingredients"] = None

    return ProductRiskResult(
        score=final,
        warnings=tuple(warnings),
        benefits=tuple(benefits),
    )


@dataclass
class ProductService:
    """Scores products and attaches optional enrichments."""

    text_service: TextGenerationService
    default_unit_price: float = 3.50

    def evaluate(
        self,
        nutrition: NutritionFacts,
        ingredient_statement: str | None = None,
        *,
        extra_warnings: Iterable[str] = (),
        extra_benefits: Iterable[str] = (),
    ) -> ProductRiskResult:
        """Return the core result. Never touches the network."""
        return score_product(
            nutrition,
            ingredient_statement,
            extra_warnings=extra_warnings,
            extra_benefits=extra_benefits,
        )

    async def enrich_alternatives(
        self, product_label: str, result: ProductRiskResult
    ) -> ProductRiskResult:
        """Attach healthier alternatives to a low-scoring result.

        Returns ``result`` unchanged when the score is acceptable or the text
        service cannot provide a usable list.
        """
        if result.score >= ALTERNATIVES_THRESHOLD:
            return result
        prompt = (
            f'For this product: "{product_label}", suggest 2-3 healthier brand '
            "alternatives available in US grocery stores. Return as a simple "
            'JSON array of strings. For example: ["Brand A Product", '
            '"Brand B Product"]'
        )
        try:
            parsed = await self.text_service.generate_json_array(
                prompt, action="alternatives"
            )
        except DependencyDegradedError:
            _logger.warning("Alternatives unavailable for %s", product_label)
            return result
        alternatives = tuple(
            item.strip() for item in parsed if isinstance(item, str) and item.strip()
        )
        if not alternatives:
            return result
        return replace(result, alternatives=alternatives)

    async def estimate_unit_price(self, product_info: str) -> float:
        """Estimate the price of one unit, falling back to the default."""
        prompt = (
            "Based on this product information, estimate the price for ONE UNIT "
            "(one bar, one bottle, one serving, etc.) of this product in USD. "
            "Return ONLY a number between 0.50 and 20.00, no currency symbols "
            f"or explanations.\n\n{product_info}"
        )
        try:
            reply = await self.text_service.generate(prompt, action="price estimate")
        except DependencyDegradedError:
            return self.default_unit_price
        price = parse_price(reply)
        if price is None:
            _logger.warning("Unusable price estimate: %r", reply[:80])
            return self.default_unit_price
        return price

    async def estimate_servings(self, name: str, brand: str | None) -> ServingEstimate:
        """Estimate servings per package, falling back to one serving."""
        prompt = (
            "Based on this product information, determine:\n"
            "1. How many servings are in this package/container?\n"
            "2. What is a realistic serving size?\n\n"
            f"Product: {name}\nBrand: {brand or 'Unknown'}\n\n"
            "Return ONLY a JSON object:\n"
            '{\n  "servingsPerContainer": 12,\n  "servingSize": "1 bar (40g)"\n}'
        )
        try:
            parsed = await self.text_service.generate_json_object(
                prompt, action="serving estimate"
            )
            estimate = GeneratedServingEstimate.model_validate(parsed)
        except (DependencyDegradedError, PydanticValidationError):
            _logger.warning("Serving estimate unavailable for %s", name)
            return DEFAULT_SERVINGS
        return ServingEstimate(
            servings_per_container=estimate.servings_per_container,
            serving_size=estimate.serving_size,
        )


def parse_price(reply: str) -> float | None:
    """Read the first number in a reply; accept only 0 < price < 100."""
    match = re.search(r"\d+(?:\.\d+)?", reply.replace(",", ""))
    if match is None:
        return None
    price = float(match.group(0))
    if 0 < price < 100:
        return price
    return None


@dataclass
class ProductSearchService:
    """Generates, scores and caches grocery product search results."""

    text_service: TextGenerationService
    product_service: ProductService
    cache: Cache
    guard: LatestRequestGuard = field(default_factory=LatestRequestGuard)
    default_price: float = 4.99
    cache_ttl_seconds: int = 900

    async def search(self, query: str) -> list[ScoredProduct] | None:
        """Search for products matching ``query``.

        Returns ``None`` when a newer search started before this one
        finished; the stale results are discarded.
        """
        normalized = query.strip().lower()
        ticket = self.guard.issue("search")
        cache_key = f"search:{normalized}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            results = cached
        else:
            results = await self._generate(query.strip())
            self.cache.set(cache_key, results, ttl_seconds=self.cache_ttl_seconds)
        if not self.guard.is_current(ticket):
            _logger.info("Discarding stale search results for %r", query)
            return None
        self.cache.set("search:latest", results, ttl_seconds=self.cache_ttl_seconds)
        return results

    def latest_results(self) -> list[ScoredProduct]:
        """Results of the most recent search that completed in order."""
        cached = self.cache.get("search:latest")
        return cached if isinstance(cached, list) else []

    def clear(self) -> None:
        """Forget the latest results and discard searches still running."""
        self.guard.issue("search")
        self.cache.delete("search:latest")

    async def _generate(self, query: str) -> list[ScoredProduct]:
        prompt = (
            "You are a nutrition specialist for American grocery shoppers. The "
            f'user is searching for "{query}". Return ONLY a JSON array (no '
            "markdown) of 6 unique products from well-known US grocery brands. "
            "Each object must have name, brand, price (USD number), calories, "
            "protein, carbs, fat, fiber, sugar, saturatedFat (grams), sodium "
            "(milligrams), ingredientStatement (comma-separated ingredients), "
            "warnings and benefits (arrays, can be empty)."
        )
        parsed = await self.text_service.generate_json_array(
            prompt, action="product search"
        )
        candidates = [
            candidate
            for candidate in (
                self._to_candidate(raw) for raw in parsed[:MAX_SEARCH_RESULTS]
            )
            if candidate is not None
        ]
        return list(
            await asyncio.gather(*(self._score(candidate) for candidate in candidates))
        )

    def _to_candidate(self, raw: object) -> ProductCandidate | None:
        try:
            product = GeneratedProduct.model_validate(raw)
        except PydanticValidationError:
            _logger.warning("Dropping malformed search result: %r", raw)
            return None
        return ProductCandidate(
            name=product.name,
            brand=product.brand,
            price=product.price if product.price > 0 else self.default_price,
            nutrition=NutritionFacts(
                calories=product.calories,
                protein=product.protein,
                carbs=product.carbs,
                fat=product.fat,
                fiber=product.fiber,
                sugar=product.sugar,
                sodium=product.sodium,
                saturated_fat=product.saturated_fat,
            ),
            ingredient_statement=product.ingredient_statement,
            warnings=tuple(product.warnings),
            benefits=tuple(product.benefits),
        )

    async def _score(self, candidate: ProductCandidate) -> ScoredProduct:
        result = self.product_service.evaluate(
            candidate.nutrition,
            candidate.ingredient_statement,
            extra_warnings=candidate.warnings,
            extra_benefits=candidate.benefits,
        )
        label = f"{candidate.brand} {candidate.name}".strip()
        enriched = await self.product_service.enrich_alternatives(label, result)
        return ScoredProduct(candidate=candidate, result=enriched)

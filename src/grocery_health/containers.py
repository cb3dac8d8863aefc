"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from grocery_health.adapters.favorites_client import HttpxFavoritesClient
from grocery_health.adapters.openai_text_client import OpenAITextClient
from grocery_health.adapters.store_repositories import (
    StoreBudgetRepository,
    StoreFavoritesRepository,
    StoreGroceryHistoryRepository,
    StoreHealthScoreRepository,
    StoreInventoryRepository,
    StoreMealPlanRepository,
    StoreProfileRepository,
    StoreWeightRepository,
)
from grocery_health.adapters.supabase_store import SupabaseDurableStore
from grocery_health.config import Settings, parse_csv_list
from grocery_health.domain.profile import DietaryPreference, UserProfile
from grocery_health.services.budget import BudgetService
from grocery_health.services.cache import InMemoryCache
from grocery_health.services.consumption import MealConsumptionService
from grocery_health.services.favorites import (
    FavoritesService,
    GroceryHistoryService,
    RemoteFavoritesService,
)
from grocery_health.services.health import HealthAssessmentService
from grocery_health.services.inventory import InventoryLedger
from grocery_health.services.meal_plans import MealPlanService
from grocery_health.services.products import ProductSearchService, ProductService
from grocery_health.services.profile import ProfileService
from grocery_health.services.purchases import PurchaseService
from grocery_health.services.store import DurableStore
from grocery_health.services.text_generation import (
    TextGenerationClient,
    TextGenerationService,
)
from grocery_health.services.trends import TrendService, WeightLogService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: DurableStore
    text_service: TextGenerationService
    profile_service: ProfileService
    ledger: InventoryLedger
    product_service: ProductService
    search_service: ProductSearchService
    budget_service: BudgetService
    purchase_service: PurchaseService
    meal_plan_service: MealPlanService
    consumption_service: MealConsumptionService
    health_service: HealthAssessmentService
    weight_service: WeightLogService
    trend_service: TrendService
    favorites_service: FavoritesService
    grocery_history_service: GroceryHistoryService
    remote_favorites: RemoteFavoritesService
    close_resources: Callable[[], Awaitable[None]]


def default_profile(settings: Settings) -> UserProfile:
    """Profile used before the user saves one."""
    preferences = tuple(
        DietaryPreference(value)
        for value in parse_csv_list(settings.default_dietary_preferences)
        if value in {preference.value for preference in DietaryPreference}
    )
    return UserProfile(dietary_preferences=preferences)


def build_services(  # noqa: PLR0913
    settings: Settings,
    store: DurableStore,
    text_client: TextGenerationClient,
    remote_favorites: RemoteFavoritesService,
    close_resources: Callable[[], Awaitable[None]],
    ledger_store: DurableStore | None = None,
) -> AppContainer:
    """Wire every service over the given store and clients.

    Inventory and meal plan writes go through ``ledger_store`` when given.
    The ledger retries those itself once its lock is released, so that store
    should not retry on its own.
    """
    text_service = TextGenerationService(
        client=text_client,
        timeout_seconds=settings.text_generation_timeout_seconds,
        retry_attempts=settings.text_generation_retry_attempts,
        retry_delay_seconds=settings.retry_delay_seconds,
    )
    locked_store = ledger_store if ledger_store is not None else store
    ledger = InventoryLedger(
        StoreInventoryRepository(locked_store),
        retry_attempts=settings.store_retry_attempts if ledger_store is not None else 0,
        retry_delay_seconds=settings.retry_delay_seconds,
    )
    meal_plan_repository = StoreMealPlanRepository(locked_store)
    health_repository = StoreHealthScoreRepository(store)
    weight_repository = StoreWeightRepository(store)
    product_service = ProductService(
        text_service=text_service,
        default_unit_price=settings.default_unit_price,
    )
    budget_service = BudgetService(
        StoreBudgetRepository(store), default_price=settings.default_purchase_price
    )
    return AppContainer(
        settings=settings,
        store=store,
        text_service=text_service,
        profile_service=ProfileService(
            StoreProfileRepository(store), default_profile=default_profile(settings)
        ),
        ledger=ledger,
        product_service=product_service,
        search_service=ProductSearchService(
            text_service=text_service,
            product_service=product_service,
            cache=InMemoryCache(),
            default_price=settings.default_search_price,
        ),
        budget_service=budget_service,
        purchase_service=PurchaseService(
            budget=budget_service, ledger=ledger, product_service=product_service
        ),
        meal_plan_service=MealPlanService(
            ledger=ledger, repository=meal_plan_repository, text_service=text_service
        ),
        consumption_service=MealConsumptionService(
            ledger=ledger, meal_plans=meal_plan_repository
        ),
        health_service=HealthAssessmentService(
            ledger=ledger, repository=health_repository, text_service=text_service
        ),
        weight_service=WeightLogService(weight_repository),
        trend_service=TrendService(
            weights=weight_repository,
            meal_plans=StoreMealPlanRepository(store),
            health_scores=health_repository,
        ),
        favorites_service=FavoritesService(StoreFavoritesRepository(store)),
        grocery_history_service=GroceryHistoryService(
            StoreGroceryHistoryRepository(store)
        ),
        remote_favorites=remote_favorites,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    store = SupabaseDurableStore(
        client=supabase_client,
        table=resolved_settings.store_table,
        retry_attempts=resolved_settings.store_retry_attempts,
        retry_delay_seconds=resolved_settings.retry_delay_seconds,
    )
    ledger_store = SupabaseDurableStore(
        client=supabase_client, table=resolved_settings.store_table, retry_attempts=0
    )
    text_client = OpenAITextClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
    )
    favorites_client = HttpxFavoritesClient.create(
        resolved_settings.favorites_api_base_url,
        admin_token=resolved_settings.admin_token,
    )
    remote_favorites = RemoteFavoritesService(
        client=favorites_client,
        retry_attempts=resolved_settings.favorites_retry_attempts,
        retry_delay_seconds=resolved_settings.retry_delay_seconds,
        timeout_seconds=resolved_settings.favorites_timeout_seconds,
    )

    async def close_resources() -> None:
        await text_client.close()
        await favorites_client.close()

    return build_services(
        resolved_settings,
        store=store,
        text_client=text_client,
        remote_favorites=remote_favorites,
        close_resources=close_resources,
        ledger_store=ledger_store,
    )

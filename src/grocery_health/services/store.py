"""Key/value durable store interface."""

import json
import threading
from typing import Protocol

from grocery_health.errors import StorageError

# Stable keys, one per collection.
PROFILE_KEY = "userProfile"
BUDGET_KEY = "budgetEntries"
INVENTORY_KEY = "groceryInventory"
MEAL_PLANS_KEY = "mealPlans"
HEALTH_SCORE_KEY = "healthScore"
WEIGHT_HISTORY_KEY = "weightHistory"
FAVORITES_KEY = "favorites"
GROCERY_HISTORY_KEY = "groceryHistory"


class DurableStore(Protocol):
    """JSON blobs stored under stable keys.

    A missing key means an empty collection, not an error.
    """

    def get(self, key: str) -> object | None:
        """Return the decoded value for ``key``, or ``None``."""

    def set(self, key: str, value: object) -> None:
        """Store ``value`` under ``key``."""


class InMemoryDurableStore(DurableStore):
    """Process-local store that keeps values as JSON text."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        """Return a decoded copy of the stored value."""
        with self._lock:
            raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: object) -> None:
        """Encode and store the value; nothing is written if encoding fails."""
        try:
            raw = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key} is not JSON serialisable") from exc
        with self._lock:
            self._values[key] = raw

"""Supabase-backed durable store."""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar

from supabase import Client

from grocery_health.errors import StorageError
from grocery_health.services.retry import status_code_from_exception
from grocery_health.services.store import DurableStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SupabaseDurableStore(DurableStore):
    """Key/value rows ``{key, value, updated_at}`` in one Supabase table."""

    client: Client
    table: str = "kv_store"
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.5

    def get(self, key: str) -> object | None:
        """Return the stored value for ``key``."""
        response = self._with_retry(
            f"read {key}",
            lambda: self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute(),
        )
        if not response.data:
            return None
        value = response.data[0].get("value")
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise StorageError(f"Stored value for {key} is not JSON") from exc
        return value

    def set(self, key: str, value: object) -> None:
        """Upsert ``value`` under ``key``.

        The value is encoded before any request is made, so a value that is
        not valid JSON never reaches the table.
        """
        try:
            payload = json.loads(json.dumps(value, allow_nan=False))
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key} is not JSON serialisable") from exc
        self._with_retry(
            f"write {key}",
            lambda: self.client.table(self.table)
            .upsert(
                {
                    "key": key,
                    "value": payload,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="key",
            )
            .execute(),
        )

    def _with_retry(self, action: str, func: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return func()
            except Exception as exc:
                attempt += 1
                if attempt > self.retry_attempts:
                    _logger.error(
                        "Store %s failed after %s attempts (status=%s): %s",
                        action,
                        attempt,
                        status_code_from_exception(exc),
                        exc,
                    )
                    raise StorageError(f"Store {action} failed") from exc
                _logger.warning(
                    "Store %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                time.sleep(self.retry_delay_seconds)

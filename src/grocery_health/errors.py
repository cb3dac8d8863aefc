"""Error taxonomy for the engine."""


class GroceryHealthError(Exception):
    """Base class for engine errors."""


class ValidationError(GroceryHealthError, ValueError):
    """Malformed or out-of-range input to a computation."""


class DependencyDegradedError(GroceryHealthError):
    """An external service returned unusable data, timed out or failed."""

    def __init__(self, action: str, message: str | None = None) -> None:
        self.action = action
        super().__init__(message or f"External dependency degraded during {action}")


class StorageError(GroceryHealthError):
    """The durable store could not be read or written. Safe to retry."""


class EmptyInventoryError(GroceryHealthError):
    """A computation needs at least one grocery item in the inventory."""


class NotFoundError(GroceryHealthError, KeyError):
    """A referenced record does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Not found"

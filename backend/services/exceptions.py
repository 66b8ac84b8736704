"""
Erreurs typées du moteur d'inventaire.

Chaque erreur porte un `code` stable (utilisable côté API) et des données
structurées, pour que l'appelant attrape par type et non par message.

    InventoryError
    +-- StoreUnavailableError
    +-- InventoryNotFoundError
    +-- InventoryValidationError
    +-- AuditViolationError
    +-- InventorySyncError
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")


class StoreUnavailableError(InventoryError):
    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Entity store unavailable during {operation}")


class InventoryNotFoundError(InventoryError):
    code = "INVENTORY_NOT_FOUND"

    def __init__(self, inventory_id: int | None = None, *, shop_id: int | None = None, product_id: int | None = None):
        self.inventory_id = inventory_id
        self.shop_id = shop_id
        self.product_id = product_id
        if inventory_id is not None:
            detail = f"Inventory item {inventory_id} not found"
        else:
            detail = f"Inventory item not found for shop={shop_id} product={product_id}"
        super().__init__(detail)


class InventoryValidationError(InventoryError):
    code = "INVENTORY_VALIDATION"

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"{field}: {detail}")


class AuditViolationError(InventoryError):
    code = "AUDIT_VIOLATION"


class InventorySyncError(InventoryError):
    """Une ou plusieurs étapes du sync ont échoué ; les autres restent commitées."""

    code = "INVENTORY_SYNC_FAILED"

    def __init__(self, errors: Mapping[str, BaseException], completed: tuple[str, ...] = ()):
        self.errors = dict(errors)
        self.failed = tuple(sorted(self.errors))
        self.completed = completed
        super().__init__(f"Inventory sync failed: {', '.join(self.failed)} failed")


@contextmanager
def store_call(operation: str) -> Iterator[None]:
    """Traduit les pannes de connexion SQLAlchemy en StoreUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        raise StoreUnavailableError(operation) from exc

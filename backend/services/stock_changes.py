"""
Quantity mutator.

Point d'entrée UNIQUE pour modifier Inventory.quantity. Chaque changement
écrit, dans la même transaction :
    - la nouvelle quantité sur la ligne d'inventaire
    - exactement un InventoryHistory (previous / new / delta / type / acteur)

Toute autre écriture de quantity est refusée au flush (backend.app.db.audit).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import ChangeType
from backend.app.db.models.models_v1 import Inventory, InventoryHistory
from backend.services.exceptions import (
    InventoryNotFoundError,
    InventoryValidationError,
    store_call,
)

logger = structlog.get_logger(__name__)


def _coerce_change_type(change_type: ChangeType | str) -> ChangeType:
    if isinstance(change_type, ChangeType):
        return change_type
    try:
        return ChangeType(change_type)
    except ValueError:
        allowed = ", ".join(ct.value for ct in ChangeType)
        raise InventoryValidationError(
            "change_type",
            f"unknown change type {change_type!r} (expected one of: {allowed})",
        ) from None


def _validate_quantity(field: str, value: int, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InventoryValidationError(field, f"must be an integer, got {value!r}")
    if value < minimum:
        raise InventoryValidationError(field, f"must be >= {minimum}, got {value}")
    return value


def _validate_actor(actor_id: str) -> str:
    if actor_id is None or not str(actor_id).strip():
        raise InventoryValidationError("actor_id", "is required")
    return str(actor_id).strip()


def _lock_inventory(db: Session, inventory_id: int) -> Inventory | None:
    return (
        db.execute(
            select(Inventory)
            .where(Inventory.id == inventory_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )


def _apply_locked(
    db: Session,
    inv: Inventory,
    *,
    new_quantity: int,
    change_type: ChangeType,
    reason: str | None,
    actor_id: str,
) -> InventoryHistory:
    previous_quantity = int(inv.quantity)

    inv.quantity = new_quantity
    if new_quantity > previous_quantity:
        inv.last_restocked = datetime.now(timezone.utc)

    history = InventoryHistory(
        inventory_id=inv.id,
        shop_id=inv.shop_id,
        product_id=inv.product_id,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        change_amount=new_quantity - previous_quantity,
        change_type=change_type,
        reason=reason or f"Admin {change_type.value}",
        updated_by=actor_id,
    )
    db.add(history)
    return history


def apply_inventory_change(
    db: Session,
    *,
    inventory_id: int,
    new_quantity: int,
    change_type: ChangeType | str,
    reason: str | None = None,
    actor_id: str,
) -> InventoryHistory:
    """
    Fixe la quantité d'une ligne et journalise le changement.

    Erreurs :
    - InventoryValidationError : new_quantity < 0, change_type inconnu, acteur vide
    - InventoryNotFoundError   : ligne inexistante
    """
    new_quantity = _validate_quantity("new_quantity", new_quantity, minimum=0)
    change_type = _coerce_change_type(change_type)
    actor_id = _validate_actor(actor_id)

    with store_call("inventory change"):
        try:
            inv = _lock_inventory(db, inventory_id)
            if inv is None:
                raise InventoryNotFoundError(inventory_id)

            history = _apply_locked(
                db,
                inv,
                new_quantity=new_quantity,
                change_type=change_type,
                reason=reason,
                actor_id=actor_id,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(history)
    logger.info(
        "inventory.change.applied",
        inventory_id=history.inventory_id,
        change_type=history.change_type.value,
        previous_quantity=history.previous_quantity,
        new_quantity=history.new_quantity,
        actor_id=history.updated_by,
    )
    return history


def restock_inventory(
    db: Session,
    *,
    shop_id: int,
    product_id: int,
    quantity: int,
    reason: str | None = None,
    actor_id: str,
) -> InventoryHistory:
    """Ajoute `quantity` (> 0) au stock courant du couple (shop, product)."""
    quantity = _validate_quantity("quantity", quantity, minimum=1)
    actor_id = _validate_actor(actor_id)

    with store_call("inventory restock"):
        try:
            # addition faite sous verrou
            inv = (
                db.execute(
                    select(Inventory)
                    .where(Inventory.shop_id == shop_id)
                    .where(Inventory.product_id == product_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                .scalar_one_or_none()
            )
            if inv is None:
                raise InventoryNotFoundError(shop_id=shop_id, product_id=product_id)

            history = _apply_locked(
                db,
                inv,
                new_quantity=int(inv.quantity) + quantity,
                change_type=ChangeType.restock,
                reason=reason,
                actor_id=actor_id,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(history)
    logger.info(
        "inventory.restocked",
        inventory_id=history.inventory_id,
        added=quantity,
        new_quantity=history.new_quantity,
        actor_id=history.updated_by,
    )
    return history


# ---------- LECTURE DE L'HISTORIQUE ----------
@dataclass(frozen=True)
class HistoryPage:
    items: list[InventoryHistory]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


def _history_page(db: Session, condition, *, page: int, limit: int) -> HistoryPage:
    page = _validate_quantity("page", page, minimum=1)
    limit = _validate_quantity("limit", limit, minimum=1)

    with store_call("inventory history"):
        total = db.execute(
            select(func.count()).select_from(InventoryHistory).where(condition)
        ).scalar_one()
        items = (
            db.execute(
                select(InventoryHistory)
                .where(condition)
                .order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
    return HistoryPage(items=list(items), total=int(total), page=page, limit=limit)


def get_inventory_history(
    db: Session,
    inventory_id: int,
    *,
    page: int = 1,
    limit: int = 50,
) -> HistoryPage:
    """Historique d'une ligne, du plus récent au plus ancien."""
    return _history_page(db, InventoryHistory.inventory_id == inventory_id, page=page, limit=limit)


def get_shop_inventory_history(
    db: Session,
    shop_id: int,
    *,
    page: int = 1,
    limit: int = 50,
) -> HistoryPage:
    """
    Journal d'une boutique, tous produits confondus, du plus récent au plus ancien.

    Inclut les entrées des lignes supprimées par le cleanup.
    """
    return _history_page(db, InventoryHistory.shop_id == shop_id, page=page, limit=limit)


def audit_inventory_trajectory(db: Session, inventory_id: int) -> list[str]:
    """
    Rejoue l'historique (ordre de création) et retourne les ruptures trouvées.

    Liste vide = trajectoire reconstructible. La première entrée part de 0.
    """
    with store_call("inventory trajectory audit"):
        entries = (
            db.execute(
                select(InventoryHistory)
                .where(InventoryHistory.inventory_id == inventory_id)
                .order_by(InventoryHistory.created_at.asc(), InventoryHistory.id.asc())
            )
            .scalars()
            .all()
        )
        current = db.execute(
            select(Inventory.quantity).where(Inventory.id == inventory_id)
        ).scalar_one_or_none()

    breaks: list[str] = []
    expected = 0
    for entry in entries:
        if entry.previous_quantity != expected:
            breaks.append(
                f"history {entry.id}: previous_quantity={entry.previous_quantity}, expected {expected}"
            )
        if entry.change_amount != entry.new_quantity - entry.previous_quantity:
            breaks.append(f"history {entry.id}: change_amount={entry.change_amount} is inconsistent")
        expected = entry.new_quantity

    # Ligne supprimée par le cleanup : l'historique reste, rien à comparer
    if current is not None and int(current) != expected:
        breaks.append(f"inventory {inventory_id}: quantity={current}, history ends at {expected}")
    return breaks

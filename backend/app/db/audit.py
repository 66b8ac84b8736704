"""
Garde d'audit sur les sessions.

Règles vérifiées à chaque flush :
- Inventory.quantity ne change jamais sans un InventoryHistory en attente
  pour la même ligne (point d'entrée unique : backend.services.stock_changes)
- InventoryHistory est append-only (ni UPDATE ni DELETE)
"""

from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, sessionmaker

from backend.app.db.models.models_v1 import Inventory, InventoryHistory
from backend.services.exceptions import AuditViolationError


def enforce_inventory_audit(session: Session, flush_context, instances) -> None:
    for obj in session.deleted:
        if isinstance(obj, InventoryHistory):
            raise AuditViolationError(f"InventoryHistory {obj.id} cannot be deleted")

    audited: set[int] = set()
    for obj in session.new:
        if isinstance(obj, InventoryHistory):
            audited.add(obj.inventory_id)

    for obj in session.dirty:
        if isinstance(obj, InventoryHistory) and session.is_modified(obj):
            raise AuditViolationError(f"InventoryHistory {obj.id} is immutable")

        if isinstance(obj, Inventory):
            if inspect(obj).attrs.quantity.history.has_changes() and obj.id not in audited:
                raise AuditViolationError(
                    f"Inventory {obj.id} quantity changed without a history record"
                )


def install_audit_guard(factory: sessionmaker) -> sessionmaker:
    if not event.contains(factory, "before_flush", enforce_inventory_audit):
        event.listen(factory, "before_flush", enforce_inventory_audit)
    return factory

"""
Orchestrateur de réconciliation.

sync = completeness (insert des paires manquantes) + cleanup (delete des
lignes périmées). Les deux étapes :
- ont des écritures disjointes (insert-only / delete-only)
- relisent chacune les ensembles actifs
- tournent chacune dans sa propre session (donc peuvent tourner en parallèle)

Si une étape échoue, on lève InventorySyncError : l'autre étape reste
commitée (chaque étape est idempotente, relancer le sync complet est sûr).
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, TypeVar

import structlog
from sqlalchemy.orm import Session, sessionmaker

from backend.app.core.config import get_settings
from backend.services.exceptions import InventorySyncError
from backend.services.inventory import (
    CleanupResult,
    CompletenessResult,
    cleanup_inactive_inventory,
    ensure_inventory_completeness,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

STEP_COMPLETENESS = "completeness"
STEP_CLEANUP = "cleanup"


@dataclass(frozen=True)
class SyncResult:
    created: int
    removed: int
    checked: int
    message: str


def _run_step(session_factory: sessionmaker, step: Callable[[Session], T]) -> T:
    with session_factory() as db:
        return step(db)


def sync_inventory_system(
    session_factory: sessionmaker,
    *,
    concurrent: bool | None = None,
) -> SyncResult:
    if concurrent is None:
        concurrent = get_settings().sync_concurrent

    steps = {
        STEP_COMPLETENESS: ensure_inventory_completeness,
        STEP_CLEANUP: cleanup_inactive_inventory,
    }
    results: dict[str, object] = {}
    errors: dict[str, BaseException] = {}

    logger.info("inventory.sync.started", concurrent=concurrent)

    if concurrent:
        with ThreadPoolExecutor(max_workers=len(steps), thread_name_prefix="inventory-sync") as pool:
            futures = {name: pool.submit(_run_step, session_factory, fn) for name, fn in steps.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    errors[name] = exc
    else:
        for name, fn in steps.items():
            try:
                results[name] = _run_step(session_factory, fn)
            except Exception as exc:
                errors[name] = exc

    if errors:
        completed = tuple(sorted(results))
        logger.error(
            "inventory.sync.failed",
            failed=sorted(errors),
            completed=list(completed),
        )
        first = errors[STEP_COMPLETENESS] if STEP_COMPLETENESS in errors else errors[STEP_CLEANUP]
        raise InventorySyncError(errors, completed=completed) from first

    completeness: CompletenessResult = results[STEP_COMPLETENESS]  # type: ignore[assignment]
    cleanup: CleanupResult = results[STEP_CLEANUP]  # type: ignore[assignment]

    result = SyncResult(
        created=completeness.created,
        removed=cleanup.removed,
        checked=completeness.checked,
        message=f"Sync complete: {completeness.created} created, {cleanup.removed} removed",
    )
    logger.info(
        "inventory.sync.done",
        created=result.created,
        removed=result.removed,
        checked=result.checked,
    )
    return result

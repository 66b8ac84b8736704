"""
Job de synchronisation de l'inventaire (cron ou lancement manuel).

    python -m backend.scripts.sync_inventory [--sequential]
"""

from __future__ import annotations

import argparse
import sys

import structlog

from backend.app.core.config import get_settings
from backend.app.core.logging import configure_logging
from backend.app.db.session import dispose_engine, get_session_factory
from backend.services.exceptions import InventoryError
from backend.services.reconciliation import sync_inventory_system

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reconcile inventory rows with active shops and products.")
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="run completeness and cleanup one after the other instead of in parallel",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    concurrent = False if args.sequential else settings.sync_concurrent
    logger.info("inventory.sync.job_started", concurrent=concurrent)
    try:
        result = sync_inventory_system(get_session_factory(), concurrent=concurrent)
    except InventoryError as exc:
        logger.error("inventory.sync.job_failed", code=exc.code, detail=exc.message)
        return 1
    finally:
        dispose_engine()

    print("=== Inventory Sync Results ===")
    print(f"Entries created: {result.created}")
    print(f"Entries removed: {result.removed}")
    print(f"Entries checked: {result.checked}")
    print(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())

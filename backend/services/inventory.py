from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.config import get_settings
from backend.app.db.models.models_v1 import Inventory, Product, Shop
from backend.services.exceptions import store_call

logger = structlog.get_logger(__name__)

# Dialectes qui savent faire INSERT ... ON CONFLICT DO NOTHING
_ON_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class CompletenessResult:
    created: int
    checked: int
    message: str


@dataclass(frozen=True)
class CleanupResult:
    removed: int
    message: str


def get_active_shop_ids(db: Session) -> list[int]:
    with store_call("active shops lookup"):
        rows = db.execute(
            select(Shop.id).where(Shop.is_active.is_(True)).order_by(Shop.id)
        ).scalars().all()
    return [int(sid) for sid in rows]


def get_active_product_ids(db: Session) -> list[int]:
    with store_call("active products lookup"):
        rows = db.execute(
            select(Product.id).where(Product.is_active.is_(True)).order_by(Product.id)
        ).scalars().all()
    return [int(pid) for pid in rows]


def _insert_inventory_if_missing(db: Session, shop_id: int, product_id: int) -> bool:
    """
    Insère la ligne (shop, product) à quantité 0.

    La contrainte uq_inventory_shop_product fait foi : si un autre run
    l'a créée entre-temps, l'insert est un no-op et on retourne False.
    """
    settings = get_settings()
    values = {
        "shop_id": shop_id,
        "product_id": product_id,
        "quantity": 0,
        "min_stock_level": settings.default_min_stock_level,
        "max_stock_level": settings.default_max_stock_level,
    }

    insert_fn = _ON_CONFLICT_INSERTS.get(db.get_bind().dialect.name)
    if insert_fn is not None:
        stmt = (
            insert_fn(Inventory.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["shop_id", "product_id"])
        )
        return db.execute(stmt).rowcount == 1

    # Autres dialectes : SAVEPOINT, seule la violation d'unicité est absorbée
    try:
        with db.begin_nested():
            db.add(Inventory(**values))
    except IntegrityError:
        exists = db.execute(
            select(Inventory.id)
            .where(Inventory.shop_id == shop_id)
            .where(Inventory.product_id == product_id)
        ).scalar_one_or_none()
        if exists is None:
            raise
        return False
    return True


def _complete_pairs(db: Session, shop_ids: list[int], product_ids: list[int]) -> int:
    """Crée les paires manquantes de shop_ids × product_ids. Retourne le nombre créé."""
    with store_call("inventory completeness"):
        existing = set(
            db.execute(
                select(Inventory.shop_id, Inventory.product_id)
                .where(Inventory.shop_id.in_(shop_ids))
                .where(Inventory.product_id.in_(product_ids))
            ).all()
        )

        created = 0
        try:
            for shop_id in shop_ids:
                for product_id in product_ids:
                    if (shop_id, product_id) in existing:
                        continue
                    if _insert_inventory_if_missing(db, shop_id, product_id):
                        created += 1
            db.commit()
        except Exception:
            db.rollback()
            raise

    return created


def ensure_inventory_completeness(db: Session) -> CompletenessResult:
    """
    Garantit une ligne d'inventaire pour chaque couple (shop actif, produit actif).

    Propriétés :
    - idempotent (2e appel sans changement => created == 0)
    - ne modifie jamais une ligne existante
    - checked = nb shops actifs × nb produits actifs
    """
    shop_ids = get_active_shop_ids(db)
    product_ids = get_active_product_ids(db)

    if not shop_ids or not product_ids:
        logger.info(
            "inventory.completeness.skipped",
            active_shops=len(shop_ids),
            active_products=len(product_ids),
        )
        return CompletenessResult(
            created=0,
            checked=0,
            message="No active shops or products found",
        )

    checked = len(shop_ids) * len(product_ids)
    created = _complete_pairs(db, shop_ids, product_ids)

    logger.info("inventory.completeness.done", created=created, checked=checked)
    return CompletenessResult(
        created=created,
        checked=checked,
        message=(
            f"Created {created} missing inventory entries"
            if created > 0
            else "All inventory entries are complete"
        ),
    )


def initialize_shop_inventory(db: Session, shop_id: int) -> int:
    """Nouvelle boutique : une ligne par produit actif. Retourne le nb créé."""
    if int(shop_id) not in set(get_active_shop_ids(db)):
        return 0
    product_ids = get_active_product_ids(db)
    if not product_ids:
        return 0

    created = _complete_pairs(db, [int(shop_id)], product_ids)
    logger.info("inventory.shop_initialized", shop_id=shop_id, created=created)
    return created


def initialize_product_inventory(db: Session, product_id: int) -> int:
    """Nouveau produit : une ligne par boutique active. Retourne le nb créé."""
    if int(product_id) not in set(get_active_product_ids(db)):
        return 0
    shop_ids = get_active_shop_ids(db)
    if not shop_ids:
        return 0

    created = _complete_pairs(db, shop_ids, [int(product_id)])
    logger.info("inventory.product_initialized", product_id=product_id, created=created)
    return created


def cleanup_inactive_inventory(db: Session) -> CleanupResult:
    """
    Supprime les lignes d'inventaire dont le shop OU le produit est inactif.

    Les deux ensembles actifs sont calculés AVANT toute suppression : si l'un
    des deux échoue, rien n'est supprimé. L'historique n'est jamais touché.
    """
    active_shop_ids = get_active_shop_ids(db)
    active_product_ids = get_active_product_ids(db)

    removed = _delete_inventory_outside(db, active_shop_ids, active_product_ids)

    logger.info(
        "inventory.cleanup.done",
        removed=removed,
        active_shops=len(active_shop_ids),
        active_products=len(active_product_ids),
    )
    return CleanupResult(
        removed=removed,
        message=f"Removed {removed} inventory entries for inactive shops/products",
    )


def _delete_inventory_outside(
    db: Session,
    shop_ids: Iterable[int],
    product_ids: Iterable[int],
) -> int:
    stmt = (
        delete(Inventory)
        .where(
            or_(
                Inventory.shop_id.not_in(list(shop_ids)),
                Inventory.product_id.not_in(list(product_ids)),
            )
        )
        .execution_options(synchronize_session=False)
    )

    with store_call("inventory cleanup"):
        try:
            removed = db.execute(stmt).rowcount or 0
            db.commit()
        except Exception:
            db.rollback()
            raise
    return int(removed)

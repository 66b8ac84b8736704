from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from backend.app.db.models.models_v1 import Product, Shop
from backend.app.db.session import dispose_engine, get_session_factory
from backend.services.inventory import ensure_inventory_completeness

SHOPS = [
    {"name": "Depot Central", "address": "12 Industrial Road", "phone": "+254700000001"},
    {"name": "Depot Lakeside", "address": "4 Harbour Street", "phone": "+254700000002"},
]

PRODUCTS = [
    {"name": "Portland Cement", "brand": "Bamburi", "variant": "42.5N", "size": 50, "price": Decimal("750.00")},
    {"name": "Portland Cement", "brand": "Savannah", "variant": "32.5R", "size": 50, "price": Decimal("690.00")},
    {"name": "Masonry Cement", "brand": "Mombasa", "variant": "22.5X", "size": 25, "price": Decimal("420.00")},
]


def run_seed():
    db = get_session_factory()()
    try:
        # 1) Boutiques
        for data in SHOPS:
            if not db.scalar(select(Shop).where(Shop.name == data["name"])):
                db.add(Shop(is_active=True, **data))

        # 2) Produits
        for data in PRODUCTS:
            exists = db.scalar(
                select(Product)
                .where(Product.name == data["name"])
                .where(Product.brand == data["brand"])
            )
            if not exists:
                db.add(Product(is_active=True, **data))
        db.commit()

        # 3) Inventaire à 0 pour chaque couple actif
        result = ensure_inventory_completeness(db)
        print(f"SEED OK: shops={len(SHOPS)}, products={len(PRODUCTS)}, inventory created={result.created}")
    finally:
        db.close()
        dispose_engine()


if __name__ == "__main__":
    run_seed()

"""Rapports inventaire (lecture seule)."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Inventory, Product, Shop
from backend.services.exceptions import store_call


def get_low_stock_items(db: Session) -> list[dict]:
    """Lignes sous le seuil minimum (quantity < min_stock_level)."""
    stmt = (
        select(
            Inventory.id,
            Inventory.quantity,
            Inventory.min_stock_level,
            Shop.id.label("shop_id"),
            Shop.name.label("shop_name"),
            Shop.address.label("shop_address"),
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            Product.brand,
            Product.size,
            Product.price,
        )
        .join(Shop, Shop.id == Inventory.shop_id)
        .join(Product, Product.id == Inventory.product_id)
        .where(Inventory.quantity < Inventory.min_stock_level)
        .order_by(Shop.name, Product.name, Inventory.id)
    )
    with store_call("low stock report"):
        rows = db.execute(stmt).mappings().all()
    return [
        {
            "inventory_id": int(r["id"]),
            "quantity": int(r["quantity"]),
            "min_stock_level": int(r["min_stock_level"]),
            "product": {
                "id": int(r["product_id"]),
                "name": r["product_name"],
                "brand": r["brand"],
                "size": r["size"],
                "price": r["price"],
            },
            "shop": {
                "id": int(r["shop_id"]),
                "name": r["shop_name"],
                "address": r["shop_address"],
            },
        }
        for r in rows
    ]


def get_inventory_stats(db: Session, shop_id: int | None = None) -> dict:
    """
    Totaux globaux (ou d'une boutique).

    - low_stock_items : 0 < quantity <= min_stock_level
    - out_of_stock_items : quantity == 0
    """
    stmt = select(
        func.count(Inventory.id),
        func.coalesce(func.sum(Inventory.quantity), 0),
        func.coalesce(func.sum(Inventory.quantity * Product.price), 0),
        func.coalesce(
            func.sum(
                case(
                    (and_(Inventory.quantity > 0, Inventory.quantity <= Inventory.min_stock_level), 1),
                    else_=0,
                )
            ),
            0,
        ),
        func.coalesce(func.sum(case((Inventory.quantity == 0, 1), else_=0)), 0),
    ).join(Product, Product.id == Inventory.product_id)

    if shop_id is not None:
        stmt = stmt.where(Inventory.shop_id == shop_id)

    with store_call("inventory stats"):
        total, quantity, value, low, out = db.execute(stmt).one()

    return {
        "total_products": int(total),
        "total_quantity": int(quantity),
        "total_value": Decimal(str(value)),
        "low_stock_items": int(low),
        "out_of_stock_items": int(out),
    }


def get_inventory_summary(db: Session) -> list[dict]:
    """Une ligne par boutique active, y compris celles sans inventaire."""
    totals = (
        select(
            Inventory.shop_id.label("shop_id"),
            func.sum(Inventory.quantity).label("total_items"),
            func.sum(Inventory.quantity * Product.price).label("total_value"),
            func.sum(case((Inventory.quantity < Inventory.min_stock_level, 1), else_=0)).label("low_stock_count"),
        )
        .join(Product, Product.id == Inventory.product_id)
        .group_by(Inventory.shop_id)
        .subquery()
    )

    stmt = (
        select(
            Shop.id,
            Shop.name,
            Shop.address,
            func.coalesce(totals.c.total_items, 0),
            func.coalesce(totals.c.total_value, 0),
            func.coalesce(totals.c.low_stock_count, 0),
        )
        .outerjoin(totals, totals.c.shop_id == Shop.id)
        .where(Shop.is_active.is_(True))
        .order_by(Shop.name, Shop.id)
    )

    with store_call("inventory summary"):
        rows = db.execute(stmt).all()

    return [
        {
            "shop_id": int(sid),
            "shop_name": name,
            "shop_location": address,
            "total_items": int(items),
            "total_value": Decimal(str(value)),
            "low_stock_count": int(low),
        }
        for sid, name, address, items, value, low in rows
    ]

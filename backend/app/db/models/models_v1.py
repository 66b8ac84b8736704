from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base, BigIntPK
from backend.app.db.models.core_types import ChangeType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- MASTER DATA ----------
class Shop(Base):
    __tablename__ = "shops"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    # Désactivation = soft delete (on ne supprime jamais la ligne)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    variant: Mapped[str | None] = mapped_column(String(128))
    brand: Mapped[str | None] = mapped_column(String(128))
    size: Mapped[int] = mapped_column(Integer, nullable=False)  # kg par sac
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("size > 0", name="ck_product_size_pos"),
        CheckConstraint("price >= 0", name="ck_product_price_nonneg"),
    )


# ---------- INVENTORY ----------
class Inventory(Base):
    __tablename__ = "inventory"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    shop_id: Mapped[int] = mapped_column(
        ForeignKey("shops.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Écrit uniquement via backend.services.stock_changes (voir backend.app.db.audit)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock_level: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    max_stock_level: Mapped[int] = mapped_column(Integer, default=1000, nullable=False)
    last_restocked: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    shop: Mapped[Shop] = relationship()
    product: Mapped[Product] = relationship()

    __table_args__ = (
        UniqueConstraint("shop_id", "product_id", name="uq_inventory_shop_product"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        CheckConstraint("min_stock_level >= 0", name="ck_inventory_min_stock_nonneg"),
        CheckConstraint("max_stock_level >= min_stock_level", name="ck_inventory_max_ge_min"),
        {"sqlite_autoincrement": True},
    )


# ---------- AUDIT ----------
class InventoryHistory(Base):
    __tablename__ = "inventory_history"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    # Pas de FK : l'historique survit à la suppression de la ligne d'inventaire
    inventory_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    shop_id: Mapped[int] = mapped_column(ForeignKey("shops.id", ondelete="RESTRICT"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    previous_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(
            ChangeType,
            name="inventory_change_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(String(255))
    updated_by: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "change_amount = new_quantity - previous_quantity",
            name="ck_inventory_history_change_amount",
        ),
        CheckConstraint("previous_quantity >= 0", name="ck_inventory_history_previous_nonneg"),
        CheckConstraint("new_quantity >= 0", name="ck_inventory_history_new_nonneg"),
        Index("ix_inventory_history_inventory_time", "inventory_id", "created_at", "id"),
        Index("ix_inventory_history_shop_time", "shop_id", "created_at"),
        Index("ix_inventory_history_product_time", "product_id", "created_at"),
        Index("ix_inventory_history_actor_time", "updated_by", "created_at"),
        {"sqlite_autoincrement": True},
    )

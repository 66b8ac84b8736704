"""create shops, products, inventory, inventory_history

Revision ID: 3a8f1c2d9e47
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3a8f1c2d9e47"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CHANGE_TYPES = ("increase", "decrease", "restock", "adjustment", "sale", "return")


def upgrade() -> None:
    op.create_table(
        "shops",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_shops_is_active", "shops", ["is_active"])

    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("variant", sa.String(128)),
        sa.Column("brand", sa.String(128)),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("size > 0", name="ck_product_size_pos"),
        sa.CheckConstraint("price >= 0", name="ck_product_price_nonneg"),
    )
    op.create_index("ix_products_is_active", "products", ["is_active"])

    op.create_table(
        "inventory",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("shop_id", sa.BigInteger(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("max_stock_level", sa.Integer(), nullable=False, server_default="1000"),
        sa.Column("last_restocked", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("shop_id", "product_id", name="uq_inventory_shop_product"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_inventory_min_stock_nonneg"),
        sa.CheckConstraint("max_stock_level >= min_stock_level", name="ck_inventory_max_ge_min"),
    )
    op.create_index("ix_inventory_shop_id", "inventory", ["shop_id"])
    op.create_index("ix_inventory_product_id", "inventory", ["product_id"])

    op.create_table(
        "inventory_history",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        # Pas de FK vers inventory : l'historique survit au cleanup
        sa.Column("inventory_id", sa.BigInteger(), nullable=False),
        sa.Column("shop_id", sa.BigInteger(), sa.ForeignKey("shops.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("previous_quantity", sa.Integer(), nullable=False),
        sa.Column("new_quantity", sa.Integer(), nullable=False),
        sa.Column("change_amount", sa.Integer(), nullable=False),
        sa.Column(
            "change_type",
            sa.Enum(*CHANGE_TYPES, name="inventory_change_type"),
            nullable=False,
        ),
        sa.Column("reason", sa.String(255)),
        sa.Column("updated_by", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "change_amount = new_quantity - previous_quantity",
            name="ck_inventory_history_change_amount",
        ),
        sa.CheckConstraint("previous_quantity >= 0", name="ck_inventory_history_previous_nonneg"),
        sa.CheckConstraint("new_quantity >= 0", name="ck_inventory_history_new_nonneg"),
    )
    op.create_index(
        "ix_inventory_history_inventory_time",
        "inventory_history",
        ["inventory_id", "created_at", "id"],
    )
    op.create_index("ix_inventory_history_shop_time", "inventory_history", ["shop_id", "created_at"])
    op.create_index("ix_inventory_history_product_time", "inventory_history", ["product_id", "created_at"])
    op.create_index("ix_inventory_history_actor_time", "inventory_history", ["updated_by", "created_at"])


def downgrade() -> None:
    op.drop_table("inventory_history")
    op.drop_table("inventory")
    op.drop_table("products")
    op.drop_table("shops")
    sa.Enum(name="inventory_change_type").drop(op.get_bind(), checkfirst=True)

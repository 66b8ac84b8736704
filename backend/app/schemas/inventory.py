from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from backend.app.db.models.core_types import ChangeType


# ---------- Résultats de réconciliation (formes exposées telles quelles) ----------
class SyncResultRead(BaseModel):
    created: int
    removed: int
    checked: int
    message: str


class CompletenessResultRead(BaseModel):
    created: int
    checked: int
    message: str


class CleanupResultRead(BaseModel):
    removed: int
    message: str


# ---------- Inventaire ----------
class InventoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shop_id: int
    product_id: int

    quantity: int  # READ ONLY : modifié uniquement via /changes ou /restock
    min_stock_level: int
    max_stock_level: int
    last_restocked: datetime | None = None


class InventoryHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    inventory_id: int
    shop_id: int
    product_id: int
    previous_quantity: int
    new_quantity: int
    change_amount: int
    change_type: ChangeType
    reason: str | None = None
    updated_by: str
    created_at: datetime


class InventoryHistoryPage(BaseModel):
    items: list[InventoryHistoryRead]
    total: int
    page: int
    limit: int
    pages: int


class InventoryChangeCreate(BaseModel):
    new_quantity: int = Field(ge=0)
    change_type: ChangeType
    reason: str | None = Field(default=None, max_length=255)
    actor_id: str = Field(min_length=1, max_length=64)


class RestockCreate(BaseModel):
    shop_id: int
    product_id: int
    quantity: int = Field(gt=0)
    reason: str | None = Field(default=None, max_length=255)
    actor_id: str = Field(min_length=1, max_length=64)


# ---------- Rapports ----------
class InventoryStatsRead(BaseModel):
    total_products: int
    total_quantity: int
    total_value: Decimal
    low_stock_items: int
    out_of_stock_items: int


class ShopInventorySummaryRead(BaseModel):
    shop_id: int
    shop_name: str
    shop_location: str
    total_items: int
    total_value: Decimal
    low_stock_count: int

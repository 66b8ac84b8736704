from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from backend.app.api.deps import get_db, get_sessionmaker
from backend.app.db.models.models_v1 import Inventory, Product, Shop
from backend.app.schemas.inventory import (
    CleanupResultRead,
    CompletenessResultRead,
    InventoryChangeCreate,
    InventoryHistoryPage,
    InventoryHistoryRead,
    InventoryRead,
    InventoryStatsRead,
    RestockCreate,
    ShopInventorySummaryRead,
    SyncResultRead,
)
from backend.services.inventory import cleanup_inactive_inventory, ensure_inventory_completeness
from backend.services.reconciliation import sync_inventory_system
from backend.services.reporting import get_inventory_stats, get_inventory_summary, get_low_stock_items
from backend.services.stock_changes import (
    HistoryPage,
    apply_inventory_change,
    get_inventory_history,
    get_shop_inventory_history,
    restock_inventory,
)

router = APIRouter(prefix="/inventory")


def _page_body(result: HistoryPage) -> dict:
    return {
        "items": result.items,
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "pages": result.pages,
    }


# ---------- Réconciliation ----------
@router.post("/sync", response_model=SyncResultRead)
def sync_inventory(session_factory: sessionmaker = Depends(get_sessionmaker)):
    return asdict(sync_inventory_system(session_factory))


@router.post("/ensure-completeness", response_model=CompletenessResultRead)
def ensure_completeness(db: Session = Depends(get_db)):
    return asdict(ensure_inventory_completeness(db))


@router.post("/cleanup", response_model=CleanupResultRead)
def cleanup_inactive(db: Session = Depends(get_db)):
    return asdict(cleanup_inactive_inventory(db))


# ---------- Lecture ----------
@router.get("", response_model=list[InventoryRead])
def list_inventory(
    shop_id: int | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    stmt = (
        select(Inventory)
        .join(Shop, Shop.id == Inventory.shop_id)
        .join(Product, Product.id == Inventory.product_id)
        .order_by(Shop.name, Product.name, Inventory.id)
    )
    if shop_id is not None:
        stmt = stmt.where(Inventory.shop_id == shop_id)
    if product_id is not None:
        stmt = stmt.where(Inventory.product_id == product_id)

    return db.execute(stmt).scalars().all()


@router.get("/low-stock")
def low_stock(db: Session = Depends(get_db)):
    return get_low_stock_items(db)


@router.get("/stats", response_model=InventoryStatsRead)
def inventory_stats(shop_id: int | None = None, db: Session = Depends(get_db)):
    return get_inventory_stats(db, shop_id=shop_id)


@router.get("/summary", response_model=list[ShopInventorySummaryRead])
def inventory_summary(db: Session = Depends(get_db)):
    return get_inventory_summary(db)


@router.get("/history", response_model=InventoryHistoryPage)
def shop_inventory_history(
    shop_id: int = Query(...),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return _page_body(get_shop_inventory_history(db, shop_id, page=page, limit=limit))


@router.get("/{inventory_id}", response_model=InventoryRead)
def get_inventory_item(inventory_id: int, db: Session = Depends(get_db)):
    inv = db.get(Inventory, inventory_id)
    if not inv:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return inv


@router.get("/{inventory_id}/history", response_model=InventoryHistoryPage)
def inventory_history(
    inventory_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return _page_body(get_inventory_history(db, inventory_id, page=page, limit=limit))


# ---------- Mutations (toujours journalisées) ----------
@router.post("/{inventory_id}/changes", response_model=InventoryHistoryRead)
def change_inventory(
    inventory_id: int,
    payload: InventoryChangeCreate,
    db: Session = Depends(get_db),
):
    return apply_inventory_change(
        db,
        inventory_id=inventory_id,
        new_quantity=payload.new_quantity,
        change_type=payload.change_type,
        reason=payload.reason,
        actor_id=payload.actor_id,
    )


@router.post("/restock", response_model=InventoryHistoryRead)
def restock(payload: RestockCreate, db: Session = Depends(get_db)):
    return restock_inventory(
        db,
        shop_id=payload.shop_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        reason=payload.reason,
        actor_id=payload.actor_id,
    )

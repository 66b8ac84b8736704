import pytest
from sqlalchemy import func, select

from backend.app.db.models.core_types import ChangeType
from backend.app.db.models.models_v1 import Inventory, InventoryHistory
from backend.services import inventory as inventory_service
from backend.services.exceptions import StoreUnavailableError
from backend.services.inventory import cleanup_inactive_inventory, ensure_inventory_completeness
from backend.services.stock_changes import (
    apply_inventory_change,
    audit_inventory_trajectory,
    get_inventory_history,
    restock_inventory,
)


def _count(db_session, model) -> int:
    return db_session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def two_shops_three_products(db_session, make_shop, make_product):
    shops = [make_shop() for _ in range(2)]
    products = [make_product() for _ in range(3)]
    ensure_inventory_completeness(db_session)
    return shops, products


def test_cleanup_removes_rows_of_deactivated_shop(db_session, deactivate, two_shops_three_products):
    """
    GIVEN 6 lignes (2 boutiques × 3 produits)
    WHEN une boutique est désactivée puis cleanup
    THEN removed=3, il reste 3 lignes
    """
    shops, _ = two_shops_three_products
    deactivate(shops[0])

    result = cleanup_inactive_inventory(db_session)

    assert result.removed == 3
    assert result.message == "Removed 3 inventory entries for inactive shops/products"
    remaining = db_session.execute(select(Inventory)).scalars().all()
    assert len(remaining) == 3
    assert {r.shop_id for r in remaining} == {shops[1].id}


def test_cleanup_removes_rows_of_deactivated_product(db_session, deactivate, two_shops_three_products):
    _, products = two_shops_three_products
    deactivate(products[2])

    result = cleanup_inactive_inventory(db_session)

    assert result.removed == 2
    assert products[2].id not in set(db_session.execute(select(Inventory.product_id)).scalars())


def test_cleanup_is_idempotent(db_session, deactivate, two_shops_three_products):
    shops, _ = two_shops_three_products
    deactivate(shops[1])

    assert cleanup_inactive_inventory(db_session).removed == 3
    second = cleanup_inactive_inventory(db_session)

    assert second.removed == 0
    assert second.message == "Removed 0 inventory entries for inactive shops/products"


def test_cleanup_leaves_no_row_referencing_inactive_entities(
    db_session, deactivate, two_shops_three_products
):
    shops, products = two_shops_three_products
    deactivate(shops[0])
    deactivate(products[1])

    cleanup_inactive_inventory(db_session)

    rows = db_session.execute(select(Inventory)).scalars().all()
    assert len(rows) == 2
    assert all(r.shop.is_active and r.product.is_active for r in rows)


def test_cleanup_with_no_active_shop_removes_everything(db_session, deactivate, two_shops_three_products):
    shops, _ = two_shops_three_products
    for shop in shops:
        deactivate(shop)

    assert cleanup_inactive_inventory(db_session).removed == 6
    assert _count(db_session, Inventory) == 0


def test_cleanup_keeps_history(db_session, deactivate, two_shops_three_products):
    _, products = two_shops_three_products
    row = db_session.execute(
        select(Inventory).where(Inventory.product_id == products[0].id).order_by(Inventory.id)
    ).scalars().first()
    apply_inventory_change(
        db_session,
        inventory_id=row.id,
        new_quantity=40,
        change_type=ChangeType.restock,
        actor_id="user-1",
    )
    inventory_id = row.id
    deactivate(products[0])

    cleanup_inactive_inventory(db_session)

    assert db_session.get(Inventory, inventory_id) is None
    assert _count(db_session, InventoryHistory) == 1
    assert audit_inventory_trajectory(db_session, inventory_id) == []


def test_cleanup_aborts_without_deleting_when_active_sets_fail(
    db_session, deactivate, monkeypatch, two_shops_three_products
):
    shops, _ = two_shops_three_products
    deactivate(shops[0])

    def _store_down(db):
        raise StoreUnavailableError("active products lookup")

    monkeypatch.setattr(inventory_service, "get_active_product_ids", _store_down)

    with pytest.raises(StoreUnavailableError):
        cleanup_inactive_inventory(db_session)

    assert _count(db_session, Inventory) == 6


def test_reactivated_pair_gets_a_fresh_inventory_id(db_session, make_shop, make_product, deactivate):
    """
    GIVEN une ligne restockée à 15 puis supprimée par le cleanup
    WHEN le produit est réactivé puis la complétude relancée
    THEN la nouvelle ligne a un id neuf : son historique part de zéro
         et celui de l'ancienne ligne reste intact
    """
    shop = make_shop()
    product = make_product()
    ensure_inventory_completeness(db_session)
    restock_inventory(db_session, shop_id=shop.id, product_id=product.id, quantity=15, actor_id="user-1")
    old_id = db_session.execute(select(Inventory.id)).scalar_one()

    deactivate(product)
    assert cleanup_inactive_inventory(db_session).removed == 1
    product.is_active = True
    db_session.commit()
    assert ensure_inventory_completeness(db_session).created == 1

    new_row = db_session.execute(select(Inventory)).scalar_one()
    assert new_row.id != old_id
    assert new_row.quantity == 0
    assert get_inventory_history(db_session, new_row.id).total == 0
    assert audit_inventory_trajectory(db_session, new_row.id) == []

    old_history = get_inventory_history(db_session, old_id)
    assert [(h.previous_quantity, h.new_quantity) for h in old_history.items] == [(0, 15)]
    assert audit_inventory_trajectory(db_session, old_id) == []

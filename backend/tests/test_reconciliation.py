import pytest
from sqlalchemy import func, select

from backend.app.db.models.models_v1 import Inventory
from backend.services import reconciliation
from backend.services.exceptions import InventorySyncError, StoreUnavailableError
from backend.services.inventory import ensure_inventory_completeness
from backend.services.reconciliation import sync_inventory_system


@pytest.fixture
def one_missing_one_stale(db_session, make_shop, make_product, deactivate):
    """
    1 boutique, produits P1 et P2 déjà en inventaire,
    puis P2 désactivé (ligne périmée) et P3 ajouté (paire manquante).
    """
    shop = make_shop()
    p1 = make_product()
    p2 = make_product()
    ensure_inventory_completeness(db_session)

    deactivate(p2)
    p3 = make_product()
    return shop, (p1, p2, p3)


@pytest.mark.parametrize("concurrent", [False, True])
def test_sync_creates_missing_and_removes_stale(db_session, session_factory, one_missing_one_stale, concurrent):
    shop, (p1, p2, p3) = one_missing_one_stale

    result = sync_inventory_system(session_factory, concurrent=concurrent)

    assert result.created == 1
    assert result.removed == 1
    assert result.checked == 2
    assert result.message == "Sync complete: 1 created, 1 removed"

    pairs = set(db_session.execute(select(Inventory.shop_id, Inventory.product_id)).all())
    assert pairs == {(shop.id, p1.id), (shop.id, p3.id)}


@pytest.mark.parametrize("concurrent", [False, True])
def test_sync_is_idempotent(session_factory, one_missing_one_stale, concurrent):
    sync_inventory_system(session_factory, concurrent=concurrent)

    again = sync_inventory_system(session_factory, concurrent=concurrent)

    assert (again.created, again.removed, again.checked) == (0, 0, 2)
    assert again.message == "Sync complete: 0 created, 0 removed"


def test_sync_on_empty_store(session_factory):
    result = sync_inventory_system(session_factory, concurrent=False)

    assert (result.created, result.removed, result.checked) == (0, 0, 0)


@pytest.mark.parametrize("concurrent", [False, True])
def test_sync_reports_failure_and_keeps_other_step(
    db_session, session_factory, monkeypatch, one_missing_one_stale, concurrent
):
    def _cleanup_down(db):
        raise StoreUnavailableError("active shops lookup")

    monkeypatch.setattr(reconciliation, "cleanup_inactive_inventory", _cleanup_down)

    with pytest.raises(InventorySyncError) as excinfo:
        sync_inventory_system(session_factory, concurrent=concurrent)

    err = excinfo.value
    assert err.failed == ("cleanup",)
    assert err.completed == ("completeness",)
    assert isinstance(err.__cause__, StoreUnavailableError)
    assert "created" not in str(err)

    # completeness déjà commitée : la paire manquante existe, la périmée aussi
    assert db_session.scalar(select(func.count()).select_from(Inventory)) == 3


def test_sync_reports_every_failed_step(session_factory, monkeypatch):
    def _down(db):
        raise StoreUnavailableError("active shops lookup")

    monkeypatch.setattr(reconciliation, "ensure_inventory_completeness", _down)
    monkeypatch.setattr(reconciliation, "cleanup_inactive_inventory", _down)

    with pytest.raises(InventorySyncError) as excinfo:
        sync_inventory_system(session_factory, concurrent=True)

    assert excinfo.value.failed == ("cleanup", "completeness")
    assert excinfo.value.completed == ()

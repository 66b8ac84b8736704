import pytest

from backend.scripts import sync_inventory
from backend.services import reconciliation
from backend.services.exceptions import StoreUnavailableError


@pytest.fixture
def job(monkeypatch, session_factory):
    monkeypatch.setattr(sync_inventory, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(sync_inventory, "configure_logging", lambda *args, **kwargs: None)
    return sync_inventory.main


def test_sync_job_prints_report(job, capsys, make_shop, make_product):
    make_shop()
    make_product()

    assert job(["--sequential"]) == 0

    out = capsys.readouterr().out
    assert "Entries created: 1" in out
    assert "Entries removed: 0" in out
    assert "Entries checked: 1" in out
    assert "Sync complete: 1 created, 0 removed" in out


def test_sync_job_exit_code_on_failure(job, monkeypatch, capsys):
    def _down(db):
        raise StoreUnavailableError("active shops lookup")

    monkeypatch.setattr(reconciliation, "ensure_inventory_completeness", _down)

    assert job([]) == 1
    assert "Sync complete" not in capsys.readouterr().out

import itertools
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session

from backend.app.db.base import Base
from backend.app.db.models.models_v1 import Product, Shop
from backend.app.db.session import make_session_factory


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    Base SQLite neuve par test.

    Fichier (et non :memory:) : le sync parallèle ouvre de vraies connexions
    séparées, comme en prod.
    """
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'inventory.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_shop(db_session):
    counter = itertools.count(1)

    def _make(name: str | None = None, is_active: bool = True) -> Shop:
        n = next(counter)
        shop = Shop(
            name=name or f"TEST-SHOP-{n}",
            address=f"{n} Test Road",
            phone=f"+25470000{n:04d}",
            is_active=is_active,
        )
        db_session.add(shop)
        db_session.commit()
        return shop

    return _make


@pytest.fixture
def make_product(db_session):
    counter = itertools.count(1)

    def _make(
        name: str | None = None,
        price: Decimal = Decimal("700.00"),
        is_active: bool = True,
    ) -> Product:
        n = next(counter)
        product = Product(
            name=name or f"TEST-CEMENT-{n}",
            brand="TEST-BRAND",
            variant="42.5N",
            size=50,
            price=price,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def deactivate(db_session):
    """Soft delete d'un Shop ou d'un Product."""

    def _deactivate(entity) -> None:
        entity.is_active = False
        db_session.commit()

    return _deactivate

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from backend.app.core.config import get_settings
from backend.app.db.audit import install_audit_guard


def make_session_factory(engine: Engine) -> sessionmaker:
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return install_audit_guard(factory)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    # Créé au premier usage, libéré par dispose_engine() à l'arrêt
    return create_engine(get_settings().database_url, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return make_session_factory(get_engine())


def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()

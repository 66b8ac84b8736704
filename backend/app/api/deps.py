from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import sessionmaker

from backend.app.db.session import get_session_factory


def get_sessionmaker() -> sessionmaker:
    return get_session_factory()


def get_db() -> Generator:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()

"""Database infrastructure — SQLModel engine, session, table models, repository."""

from .engine import SessionFactory, build_engine, init_db, make_session_factory
from .models import NewsItemDB, StockSnapshotDB
from .repositories import StockRepository

__all__ = [
    "SessionFactory",
    "build_engine",
    "init_db",
    "make_session_factory",
    "NewsItemDB",
    "StockSnapshotDB",
    "StockRepository",
]

"""SQLAlchemy adapter package for importflow."""

from __future__ import annotations

from .store import (
    SqlAlchemyRecordStore,
    StartupError,
    configured_engine,
    create_store_engine,
    is_started,
    shutdown,
    startup,
)
from .tables import create_all_tables, metadata, table_registry

__all__ = [
    "SqlAlchemyRecordStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "create_store_engine",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
    "table_registry",
]

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from importflow.adapters.sqlalchemy import (
    SqlAlchemyRecordStore,
    create_store_engine,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(scope="session")
def analysis_envelope() -> dict[str, object]:
    return json.loads((DATA_DIR / "agreement_analysis.json").read_text())


@pytest.fixture
def registry_path() -> Path:
    return DATA_DIR / "feature_registry.json"


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyRecordStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyRecordStore()
    finally:
        shutdown()

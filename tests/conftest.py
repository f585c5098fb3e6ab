from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from storelink.adapters.sqlalchemy import IdentityStore, start_mappers
from storelink.adapters.sqlalchemy.migrations import upgrade_head
from storelink.config import SyncConfig
from tests.helpers.gateways import FakePos, FakeStorefront

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed so that every session gets its own connection
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(sqlite_engine: Engine) -> Iterator[IdentityStore]:
    with IdentityStore.open(engine=sqlite_engine, migrate=False) as opened:
        yield opened


@pytest.fixture
def storefront() -> FakeStorefront:
    return FakeStorefront()


@pytest.fixture
def pos() -> FakePos:
    return FakePos()


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig()

"""Pytest configuration and shared fixtures.

This module provides fixtures for testing productcollect, including an
in-memory database, a controllable clock and sample catalog data.
"""

from datetime import datetime, timedelta
from typing import Generator

import pytest

from productcollect.catalog import SkuCatalog
from productcollect.collects import CollectManager, CollectRepository
from productcollect.config import reset_config
from productcollect.db.sqlite import Database, reset_db


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory database with all tables."""
    reset_db()
    reset_config()

    database = Database(":memory:")
    database.create_tables()
    yield database

    reset_db()


@pytest.fixture
def clock() -> FakeClock:
    """A clock starting at a fixed instant."""
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0))


@pytest.fixture
def repository(db: Database, clock: FakeClock) -> CollectRepository:
    """Create a repository driven by the fake clock."""
    return CollectRepository(db, clock=clock)


@pytest.fixture
def manager(db: Database, repository: CollectRepository) -> CollectManager:
    """Create a manager without a collection limit."""
    return CollectManager(db, repository=repository)


@pytest.fixture
def catalog(db: Database) -> SkuCatalog:
    """Create a SKU catalog."""
    return SkuCatalog(db)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_skus(catalog: SkuCatalog) -> list[str]:
    """Register a few SKUs and return their ids."""
    data = [
        ("SKU-001", "Espresso Machine", ["https://img.example.com/espresso.jpg"]),
        ("SKU-002", "Milk Frother", [{"url": "https://img.example.com/frother.jpg"}]),
        ("SKU-003", "Coffee Grinder", None),
    ]
    for sku_id, title, thumbs in data:
        catalog.add_sku(sku_id, title, thumbs=thumbs)
    return [sku_id for sku_id, _, _ in data]

"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy import create_engine, select

from hierarchylib import Hierarchy
from hierarchylib.testing import load_electronics


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: large randomized sweeps")


@pytest.fixture
def engine():
    """In-memory SQLite engine."""
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def tables(engine):
    """The Electronics category and products tables, loaded but not refreshed."""
    return load_electronics(engine)


@pytest.fixture
def hier(engine, tables):
    """A refreshed Hierarchy over the Electronics categories."""
    hierarchy = Hierarchy(engine, "category")
    hierarchy.refresh()
    return hierarchy


@pytest.fixture
def category_rows(engine, tables):
    """Callable returning every category row as a dict, ordered by id."""
    category = tables["category"]

    def _rows():
        with engine.connect() as conn:
            result = conn.execute(select(category).order_by(category.c.id))
            return [dict(row) for row in result.mappings()]

    return _rows

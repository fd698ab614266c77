"""Shared pytest fixtures for retaildiscount tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from retaildiscount.config.settings import DiscountSettings
from retaildiscount.domain.customers import Customer
from retaildiscount.domain.types import CustomerTier
from retaildiscount.infrastructure.database.engine import init_database
from retaildiscount.infrastructure.store import Store

# Fixed evaluation date so tenure-based tiers never drift with the clock.
TODAY = date(2026, 6, 15)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer config and env overrides out of the tests."""
    monkeypatch.delenv("RETAILDISCOUNT_CONFIG", raising=False)
    monkeypatch.delenv("RETAILDISCOUNT_STORE__PATH", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "test.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings(tmp_path: Path) -> DiscountSettings:
    return DiscountSettings.from_cli(project_root=tmp_path, sync=True)


@pytest.fixture
def store(settings: DiscountSettings) -> Iterator[Store]:
    """Store on a temp database with a synchronous event bus."""
    s = Store(settings)
    s.init_event_bus(sync=True)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def employee() -> Customer:
    return Customer("EMP001", CustomerTier.EMPLOYEE, date(2023, 1, 10))


@pytest.fixture
def affiliate() -> Customer:
    return Customer("AFF001", CustomerTier.AFFILIATE, date(2024, 6, 1))


@pytest.fixture
def long_term() -> Customer:
    """Regular customer with more than two full years on TODAY."""
    return Customer("CUST001", CustomerTier.REGULAR, date(2023, 3, 1))


@pytest.fixture
def regular() -> Customer:
    """Regular customer with under two full years on TODAY."""
    return Customer("CUST002", CustomerTier.REGULAR, date(2025, 12, 15))


@pytest.fixture
def _isolated_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_store")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)

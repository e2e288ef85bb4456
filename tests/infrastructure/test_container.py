"""Tests for the composition root."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from budget_ledger.infrastructure import container
from budget_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from budget_ledger.infrastructure.memory_store import InMemoryLedgerStore
from budget_ledger.infrastructure.settings import LedgerSettings


@pytest.fixture(autouse=True)
def _quiet_loggers(monkeypatch):
    monkeypatch.setattr(container, "get_app_logger", lambda: MagicMock())
    monkeypatch.setattr(container, "get_audit_logger", lambda: MagicMock())


def test_build_ledger_services_shares_one_store() -> None:
    settings = LedgerSettings(
        backend="memory",
        currency="EUR",
        low_balance_threshold=Decimal("50"),
    )

    services = container.build_ledger_services(settings)

    assert isinstance(services.store, InMemoryLedgerStore)
    for use_case in (
        services.accounts,
        services.transactions,
        services.budgets,
        services.recurring,
        services.periods,
    ):
        assert use_case._store is services.store
    assert services.recurring._engine is services.transactions
    assert services.periods._budget_tracker is services.budgets
    assert services.transactions._currency == "EUR"
    assert services.accounts._low_balance_threshold == Decimal("50")


def test_build_ledger_services_accepts_explicit_store() -> None:
    store = InMemoryLedgerStore()

    services = container.build_ledger_services(LedgerSettings(), store=store)

    assert services.store is store


def test_build_database_adapter_uses_settings_url() -> None:
    adapter = container.build_database_adapter(
        LedgerSettings(db_url="sqlite://")
    )

    assert isinstance(adapter, SqlAlchemyDatabaseEngineAdapter)
    assert adapter._db_url == "sqlite://"

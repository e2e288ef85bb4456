"""Factory helpers to select the ledger store backend."""

from budget_ledger.application.ports.database import DatabaseEnginePort
from budget_ledger.application.ports.ledger_store import LedgerStorePort
from budget_ledger.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.infrastructure.memory_store import InMemoryLedgerStore
from budget_ledger.infrastructure.settings import LedgerSettings
from budget_ledger.infrastructure.sql_store import SqlAlchemyLedgerStore


def create_ledger_store(
    db_port: DatabaseEnginePort | None = None,
    logger=None,
    settings: LedgerSettings | None = None,
) -> LedgerStorePort:
    """Return a ledger store implementation based on configuration.

    Args:
        db_port: Optional port providing the ledger engine (SQL backend).
            Defaults to an adapter built from ``settings.db_url``.
        logger: Optional logger compatible with logging.Logger-like API.
        settings: Optional settings; read from the environment when omitted.

    Returns:
        LedgerStorePort: Concrete store implementation.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    resolved_logger = logger or get_app_logger()
    resolved_settings = settings or LedgerSettings.from_env()
    backend = resolved_settings.backend.strip().lower()

    if backend == "sqlalchemy":
        resolved_db = db_port or SqlAlchemyDatabaseEngineAdapter(
            resolved_settings.db_url
        )
        return SqlAlchemyLedgerStore(resolved_db, logger=resolved_logger)

    if backend == "memory":
        resolved_logger.warning(
            "Using the in-memory ledger store; data is lost on exit"
        )
        return InMemoryLedgerStore()

    raise ValueError(
        "Unsupported ledger backend: "
        f"{backend}. Expected sqlalchemy or memory."
    )


__all__ = ["create_ledger_store"]

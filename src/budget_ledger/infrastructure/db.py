"""Database infrastructure for the ledger.

This module exposes helpers to create and reuse the SQLAlchemy engine
connected to the ledger database. It belongs to the infrastructure layer
because it deals with an external system.
"""

import os
from typing import Optional

import dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.pool import QueuePool, StaticPool

from budget_ledger.application.ports.database import DatabaseEnginePort


def _get_env_var(name: str) -> str:
    """Read an environment variable or raise a descriptive error.

    A ``.env`` file in the working directory is loaded first.

    Args:
        name: Name of the environment variable to read.

    Returns:
        str: The raw value of the environment variable.

    Raises:
        RuntimeError: If the environment variable is missing or empty.
    """
    dotenv.load_dotenv()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}")
    return value


def _create_engine(db_url: str) -> Engine:
    """Create a configured SQLAlchemy engine for the ledger database.

    In-memory SQLite URLs get a single shared connection so every unit of
    work sees the same database; everything else gets a small pool with
    health checks.

    Args:
        db_url: Fully qualified database URL (including driver and credentials)

    Returns:
        Engine: A configured SQLAlchemy engine instance.
    """
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            db_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            future=True,
        )
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=5,
        pool_pre_ping=True,
        future=True,
    )


_ledger_engine: Optional[Engine] = None


def get_ledger_engine() -> Engine:
    """Get a singleton SQLAlchemy engine for the ledger database.

    Returns:
        Engine: Lazily initialized engine connected to ``LEDGER_DB_URL``.
    """
    global _ledger_engine
    if _ledger_engine is None:
        db_url = _get_env_var("LEDGER_DB_URL")
        _ledger_engine = _create_engine(db_url)
    return _ledger_engine


class SqlAlchemyDatabaseEngineAdapter(DatabaseEnginePort):
    """DatabaseEnginePort implementation backed by SQLAlchemy engines.

    The adapter hides configuration details (environment variables, pooling)
    behind the port. An explicit URL bypasses the environment and the
    process-wide engine, which is how tests point it at a scratch database.
    """

    def __init__(self, db_url: str | None = None) -> None:
        self._db_url = db_url
        self._engine: Optional[Engine] = None

    def get_ledger_engine(self) -> Engine:
        """Get the engine for the ledger database.

        Returns:
            Engine: SQLAlchemy engine connected to the ledger database.
        """
        if self._db_url is None:
            return get_ledger_engine()
        if self._engine is None:
            self._engine = _create_engine(self._db_url)
        return self._engine


__all__ = [
    "get_ledger_engine",
    "SqlAlchemyDatabaseEngineAdapter",
]

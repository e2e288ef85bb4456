"""Database port for the ledger.

Infrastructure implementations provide the concrete engine; application code
only sees this protocol.
"""

from typing import Protocol

from sqlalchemy.engine import Engine


class DatabaseEnginePort(Protocol):
    """Port exposing the engine backing the ledger store."""

    def get_ledger_engine(self) -> Engine:
        """Get the engine for the ledger database.

        Returns:
            Engine: SQLAlchemy engine connected to the ledger database.
        """


__all__ = ["DatabaseEnginePort"]

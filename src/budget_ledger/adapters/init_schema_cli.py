"""CLI adapter creating the ledger tables on the configured database."""

from budget_ledger.infrastructure.container import build_database_adapter
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.infrastructure.sql_store import SqlAlchemyLedgerStore


def main() -> None:
    """Create any missing ledger tables."""
    logger = get_app_logger()
    db_adapter = build_database_adapter()
    store = SqlAlchemyLedgerStore(db_adapter, logger=logger)

    store.create_schema()

    print(f"Ledger schema ready at {db_adapter.get_ledger_engine().url}.")


if __name__ == "__main__":  # pragma: no cover
    main()

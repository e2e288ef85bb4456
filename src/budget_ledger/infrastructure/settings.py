"""Settings helpers for infrastructure adapters."""

from dataclasses import dataclass
from decimal import Decimal
import os

import dotenv

from budget_ledger.domain.models.accounts import DEFAULT_LOW_BALANCE_THRESHOLD
from budget_ledger.domain.models.transactions import DEFAULT_CURRENCY
from budget_ledger.infrastructure.logging.logger import get_app_logger
from budget_ledger.utils.decimal_utils import coerce_decimal


SUPPORTED_BACKENDS = ("sqlalchemy", "memory")


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for the ledger store and defaults.

    Attributes:
        backend: Store identifier (sqlalchemy or memory).
        db_url: Database URL for the sqlalchemy backend.
        currency: Currency code stamped on new transactions.
        low_balance_threshold: Balance under which accounts are reported
            as low in account summaries.
    """

    backend: str = "sqlalchemy"
    db_url: str | None = None
    currency: str = DEFAULT_CURRENCY
    low_balance_threshold: Decimal = DEFAULT_LOW_BALANCE_THRESHOLD

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Build settings from environment variables (and a ``.env`` file).

        Returns:
            LedgerSettings: Settings sourced from environment variables.
        """
        dotenv.load_dotenv()
        logger = get_app_logger()
        backend = os.getenv("LEDGER_BACKEND", "sqlalchemy").strip().lower()
        currency = cls._normalize_currency(
            os.getenv("LEDGER_CURRENCY", DEFAULT_CURRENCY),
            logger=logger,
        )
        threshold = cls._parse_threshold(
            os.getenv("LEDGER_LOW_BALANCE_THRESHOLD"),
            logger=logger,
        )
        return cls(
            backend=backend,
            db_url=os.getenv("LEDGER_DB_URL") or None,
            currency=currency,
            low_balance_threshold=threshold,
        )

    @staticmethod
    def _normalize_currency(raw_value: str, logger) -> str:
        value = raw_value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            logger.warning(
                f"Invalid LEDGER_CURRENCY {raw_value!r}; "
                f"falling back to {DEFAULT_CURRENCY}"
            )
            return DEFAULT_CURRENCY
        return value

    @staticmethod
    def _parse_threshold(raw_value: str | None, logger) -> Decimal:
        if not raw_value:
            return DEFAULT_LOW_BALANCE_THRESHOLD
        try:
            return coerce_decimal(raw_value)
        except ValueError:
            logger.warning(
                f"Invalid LEDGER_LOW_BALANCE_THRESHOLD {raw_value!r}; "
                f"using {DEFAULT_LOW_BALANCE_THRESHOLD}"
            )
            return DEFAULT_LOW_BALANCE_THRESHOLD


__all__ = ["LedgerSettings", "SUPPORTED_BACKENDS"]

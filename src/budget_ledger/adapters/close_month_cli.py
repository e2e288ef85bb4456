"""CLI adapter closing a calendar month and printing its summary."""

import argparse
import sys

from budget_ledger.domain.errors import LedgerError, StateError
from budget_ledger.infrastructure.container import build_ledger_services


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Deactivate every budget of a month."
    )
    parser.add_argument("year", type=int)
    parser.add_argument("month", type=int)
    parser.add_argument(
        "--roll-forward",
        action="store_true",
        help="Copy the month's budgets into the following month first.",
    )
    return parser.parse_args(argv)


def _close_month(periods, year: int, month: int, roll_forward: bool) -> None:
    try:
        summary = periods.summarize(year, month)
    except StateError:
        summary = None
    if summary is not None:
        print(
            f"{year}-{month:02d}: {summary.total_spent} spent of "
            f"{summary.total_allocated} ({summary.utilization}%), "
            f"{summary.over_budget_count} over budget."
        )

    if roll_forward:
        next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
        created = periods.initialize_period(next_year, next_month, year, month)
        print(f"Rolled {len(created)} budgets into {next_year}-{next_month:02d}.")

    closed = periods.close_period(year, month)
    print(f"Closed {closed} budgets for {year}-{month:02d}.")


def main(argv: list[str] | None = None) -> None:
    """Close the month, optionally rolling its budgets forward first.

    Exits with status 1 when the ledger rejects the request, for example a
    month in the future or a roll-forward onto overlapping budgets.
    """
    args = _parse_args(argv)
    services = build_ledger_services()

    try:
        _close_month(services.periods, args.year, args.month, args.roll_forward)
    except LedgerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()

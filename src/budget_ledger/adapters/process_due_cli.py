"""CLI adapter generating due recurring expenses.

Meant to be run once a day by an external scheduler (cron, systemd timer).
Exits with status 1 when any template failed so the scheduler can alert.
"""

import argparse
from datetime import date
import sys

from budget_ledger.infrastructure.container import build_ledger_services


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate transactions for due recurring expenses."
    )
    parser.add_argument(
        "run_date",
        nargs="?",
        type=date.fromisoformat,
        default=None,
        help="Process templates due on or before this date (YYYY-MM-DD). "
        "Defaults to today.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run due-processing and print the counts."""
    args = _parse_args(argv)
    services = build_ledger_services()
    run_date = args.run_date or date.today()

    result = services.recurring.process_due(run_date)

    print(
        f"Processed {result.due_count} due recurring expenses for {run_date}: "
        f"{result.generated_count} generated, {result.skipped_count} skipped, "
        f"{result.failed_count} failed."
    )
    for failure in result.failures:
        print(f"  #{failure.recurring_expense_id}: {failure.error}")
    if result.failed_count:
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()

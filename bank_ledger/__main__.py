"""
CLI entry point for batch ledger jobs.

Loads the snapshot named by the configuration, runs one job and writes the
snapshot back when the job changed balances.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .amounts import format_amount
from .config import LedgerConfig, get_config
from .errors import PersistenceUnavailableError
from .ledger import Ledger
from .logging_config import configure_logging, log_action
from .storage import CsvSnapshotStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bank-ledger",
        description="Bank Ledger - batch jobs over the account snapshot"
    )
    parser.add_argument(
        "--data-file",
        type=Path,
        help="Snapshot file (default: configured snapshot_path)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Print every account in account-number order")
    commands.add_parser("accrue-interest", help="Credit one month of interest to every account")
    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[LedgerConfig] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    settings = settings or get_config()
    logger = configure_logging(settings)

    store = CsvSnapshotStore(args.data_file) if args.data_file else CsvSnapshotStore.from_config(settings)
    ledger = Ledger.open(store, config=settings)

    if args.command == "list":
        for row in ledger.list_accounts():
            print(f"{row.account_number}\t{row.holder_name}\t{row.category.value}\t{format_amount(row.balance)}")
        return 0

    report = ledger.accrue_interest_all()
    try:
        ledger.save(store)
    except PersistenceUnavailableError as e:
        log_action(logger, "error", f"Could not save snapshot: {e}", action="save")
        return 1

    print(f"Interest credited to {len(report.credited)} accounts, "
          f"total {format_amount(report.total_interest)}")
    return 0 if report.completed else 1


if __name__ == "__main__":
    sys.exit(main())

import argparse
import logging
import sys
from typing import Optional, Sequence

from account_writer import write_accounts
from engine import PaymentsEngine
from models import BalanceOverflowError
from transaction_reader import TransactionParseError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-engine",
        description="Apply a CSV log of transactions and print final client balances as CSV.",
    )
    parser.add_argument("input", help="Path to the transactions CSV file.")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        type=str.upper,
        help="Diagnostics written to stderr (default: WARNING).",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    engine = PaymentsEngine()
    try:
        accounts = engine.process_file(args.input)
    except (TransactionParseError, BalanceOverflowError) as e:
        logger.error(str(e))
        return 1

    write_accounts((accounts[client_id] for client_id in sorted(accounts)), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())

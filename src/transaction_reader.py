import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
AMOUNT_PRECISION = Decimal("0.0001")

REQUIRED_COLUMNS = ("type", "client", "tx")


class TransactionParseError(ValueError):
    """A record could not be turned into a Transaction. Fatal for the whole run."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        self.reason = message
        self.path = path
        self.line = line
        location = ""
        if line is not None:
            location = f" at line {line}"
        if path is not None:
            location += f" of {path}"
        super().__init__(f"Failed to parse record{location}: {message}")


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """
    Yield transactions from a CSV file in file order.
    Stops with TransactionParseError on the first malformed record.
    """
    try:
        f = open(filepath, "r", newline="")
    except OSError as e:
        raise TransactionParseError(f"cannot open file ({e.strerror})", path=filepath) from e

    with f:
        reader = csv.DictReader(f)
        fieldnames = [name.strip() for name in reader.fieldnames or []]
        missing = [column for column in REQUIRED_COLUMNS if column not in fieldnames]
        if missing:
            raise TransactionParseError(f"missing columns {missing} in header", path=filepath, line=1)

        for row in reader:
            try:
                yield parse_row(row)
            except TransactionParseError as e:
                raise TransactionParseError(e.reason, path=filepath, line=reader.line_num) from e


def parse_row(row: Dict[Optional[str], object]) -> Transaction:
    """Parse CSV row into Transaction."""
    if None in row:
        raise TransactionParseError(f"too many fields: {row[None]}")

    normalized = {k.strip(): (v or "").strip() for k, v in row.items()}

    transaction_type_str = normalized.get("type", "").lower()
    try:
        transaction_type = TransactionType(transaction_type_str)
    except ValueError:
        raise TransactionParseError(f"unknown transaction type {transaction_type_str!r}") from None

    client_id = _parse_id(normalized.get("client", ""), "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized.get("tx", ""), "tx", MAX_TRANSACTION_ID)

    amount = None
    amount_str = normalized.get("amount", "")
    if transaction_type.carries_amount:
        if not amount_str:
            raise TransactionParseError(f"{transaction_type.value} tx {transaction_id} has no amount")
        amount = _parse_amount(amount_str)
    elif amount_str:
        logger.debug(f"Ignoring amount {amount_str!r} on {transaction_type.value} tx {transaction_id}")

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, column: str, upper_bound: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise TransactionParseError(f"{column} {value!r} is not an integer") from None
    if not 0 <= parsed <= upper_bound:
        raise TransactionParseError(f"{column} {parsed} out of range 0..{upper_bound}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise TransactionParseError(f"amount {value!r} is not a decimal number") from None
    if not amount.is_finite():
        raise TransactionParseError(f"amount {value!r} is not a finite number")
    try:
        exact = amount.quantize(AMOUNT_PRECISION) == amount
    except InvalidOperation:
        raise TransactionParseError(f"amount {value!r} is too large") from None
    if not exact:
        raise TransactionParseError(f"amount {value!r} has more than 4 decimal places")
    return amount

import csv
from decimal import Decimal, localcontext
from typing import Iterable, TextIO

from models import BALANCE_CONTEXT, AccountSnapshot

HEADER = ("client", "available", "held", "total", "locked")


def format_decimal(value: Decimal) -> str:
    """Format a balance (at most 4 decimal places) without trailing zeros or exponent."""
    with localcontext(BALANCE_CONTEXT):
        normalized = value.normalize()
    if normalized == 0:
        return "0"
    return f"{normalized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Render final account states as CSV. Nothing is written if any row fails to format."""
    rows = [
        (
            account.client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        )
        for account in accounts
    ]

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(rows)

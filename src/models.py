from dataclasses import dataclass
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, localcontext
from enum import Enum
from typing import Optional

ZERO = Decimal("0")

# Balances are exact: any operation that would round raises instead.
BALANCE_CONTEXT = Context(prec=28, traps=[InvalidOperation, DivisionByZero, Inexact])


class BalanceOverflowError(ArithmeticError):
    """A balance no longer fits the exact decimal precision. Fatal for the whole run."""


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeState(Enum):
    NONE = "none"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    ACCOUNT_LOCKED = "account_locked"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass(frozen=True)
class AccountSnapshot:
    """Read-only view of an account handed to the output side."""

    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def _adjust(self, available_delta: Decimal = ZERO, held_delta: Decimal = ZERO) -> None:
        """Apply both deltas exactly, or raise BalanceOverflowError and leave the account untouched."""
        try:
            with localcontext(BALANCE_CONTEXT):
                available = self.available + available_delta
                held = self.held + held_delta
                # total must be representable too
                available + held
        except Inexact as e:
            raise BalanceOverflowError(
                f"Account {self.client_id}: balance exceeds {BALANCE_CONTEXT.prec} significant digits"
            ) from e
        self.available = available
        self.held = held

    def credit(self, amount: Decimal) -> None:
        self._adjust(available_delta=amount)

    def debit(self, amount: Decimal) -> None:
        self._adjust(available_delta=amount.copy_negate())

    def hold(self, amount: Decimal) -> None:
        self._adjust(available_delta=amount.copy_negate(), held_delta=amount)

    def release_hold(self, amount: Decimal) -> None:
        self._adjust(available_delta=amount, held_delta=amount.copy_negate())

    def remove_held(self, amount: Decimal) -> None:
        self._adjust(held_delta=amount.copy_negate())

    def lock(self) -> None:
        self.locked = True

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Counters for the end-of-run summary."""

    def __init__(self):
        self.applied = 0
        self.rejected = 0
        self.locked = 0

    def record(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied += 1
        elif result == ProcessingResult.REJECTED:
            self.rejected += 1
        else:
            self.locked += 1

    @property
    def seen(self) -> int:
        return self.applied + self.rejected + self.locked

    def __repr__(self) -> str:
        return f"ProcessingStats(applied={self.applied}, rejected={self.rejected}, locked={self.locked})"

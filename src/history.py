from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from models import DisputeState


class DuplicateTransactionError(ValueError):
    """Raised when a transaction id is recorded twice."""


@dataclass
class HistoryEntry:
    transaction_id: int
    client_id: int
    amount: Decimal
    dispute_state: DisputeState = DisputeState.NONE


class DisputeHistory:
    """
    Past deposits that can still be referenced by dispute, resolve or chargeback.
    Entries are kept for the whole run so settled disputes cannot be reopened.
    """

    def __init__(self):
        self._entries: Dict[int, HistoryEntry] = {}

    def record(self, transaction_id: int, client_id: int, amount: Decimal) -> HistoryEntry:
        """Store a deposit for future dispute lookups."""
        if transaction_id in self._entries:
            raise DuplicateTransactionError(f"Transaction {transaction_id} already recorded")
        entry = HistoryEntry(transaction_id=transaction_id, client_id=client_id, amount=amount)
        self._entries[transaction_id] = entry
        return entry

    def lookup(self, transaction_id: int) -> Optional[HistoryEntry]:
        """Retrieve stored entry by ID, whatever its dispute state."""
        return self._entries.get(transaction_id)

    def mark(self, transaction_id: int, new_state: DisputeState) -> None:
        """
        Move an entry to a new dispute state.
        The caller has already checked that the transition is legal.
        """
        self._entries[transaction_id].dispute_state = new_state

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

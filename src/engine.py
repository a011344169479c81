import logging
from typing import Dict, Iterable

from ledger import AccountLedger
from models import AccountSnapshot, ProcessingStats, Transaction
from transaction_reader import read_transactions

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Feeds a transaction stream through a fresh AccountLedger.
    Transactions are applied strictly in input order on the calling thread.
    """

    def __init__(self):
        self._ledger = AccountLedger()
        self._stats = ProcessingStats()

    @property
    def ledger(self) -> AccountLedger:
        return self._ledger

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing transactions from {filepath}")
        return self.process(read_transactions(filepath))

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        """
        Apply every transaction, then return account snapshots keyed by client id.
        Errors raised by the input iterator abort processing and propagate.
        """
        for transaction in transactions:
            result = self._ledger.apply(transaction)
            self._stats.record(result)
            logger.debug(f"{transaction!r}: {result.value}")

        logger.info(
            f"Processed: {self._stats.seen}, "
            f"Applied: {self._stats.applied}, "
            f"Rejected: {self._stats.rejected}, "
            f"Locked account: {self._stats.locked}"
        )

        return {account.client_id: account for account in self._ledger.accounts()}

import logging
from typing import Dict, List, Optional

from history import DisputeHistory, HistoryEntry
from models import (
    AccountSnapshot,
    ClientAccount,
    DisputeState,
    ProcessingResult,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class AccountLedger:
    """
    Applies transactions to client accounts, one at a time, in arrival order.
    Owns every account and the dispute history; nothing else mutates them.
    Each handler checks all of its preconditions before touching any balance,
    so a rejected transaction leaves no trace.
    """

    def __init__(self, history: Optional[DisputeHistory] = None):
        self._accounts: Dict[int, ClientAccount] = {}
        self._history = history if history is not None else DisputeHistory()

    @property
    def history(self) -> DisputeHistory:
        return self._history

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def accounts(self) -> List[AccountSnapshot]:
        """Return snapshots of all accounts ordered by client id (for final output)."""
        return [self._accounts[client_id].snapshot() for client_id in sorted(self._accounts)]

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            APPLIED: balances and dispute state were updated
            REJECTED: a business rule declined the transaction, nothing changed
            ACCOUNT_LOCKED: the account is frozen after a chargeback, nothing changed
        """
        account = self.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.info(f"{transaction!r}: account {account.client_id} is locked, discarding")
            return ProcessingResult.ACCOUNT_LOCKED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)

        raise ValueError(f"Unhandled transaction type: {transaction.transaction_type}")

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount <= 0:
            logger.warning(f"Deposit tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.REJECTED

        # only deposit ids are remembered, a reused withdrawal id is not detected
        if transaction.transaction_id in self._history:
            logger.warning(f"Deposit tx {transaction.transaction_id}: transaction id already used, skipping")
            return ProcessingResult.REJECTED

        account.credit(transaction.amount)
        self._history.record(transaction.transaction_id, account.client_id, transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount <= 0:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.REJECTED

        if account.available < transaction.amount:
            logger.info(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {account.available}, requested {transaction.amount})"
            )
            return ProcessingResult.REJECTED

        account.debit(transaction.amount)
        return ProcessingResult.APPLIED

    def _find_entry(self, transaction: Transaction, expected: DisputeState) -> Optional[HistoryEntry]:
        """
        Look up the deposit a dispute, resolve or chargeback refers to.
        Returns None when it is unknown, owned by another client, or not in the expected state.
        """
        action = transaction.transaction_type.value.capitalize()
        entry = self._history.lookup(transaction.transaction_id)

        if entry is None:
            # Withdrawals are never recorded, so disputing one also ends up here.
            logger.info(f"{action} for tx {transaction.transaction_id}: no disputable deposit with this id")
            return None

        if entry.client_id != transaction.client_id:
            logger.warning(
                f"{action} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {entry.client_id}, got {transaction.client_id})"
            )
            return None

        if entry.dispute_state != expected:
            logger.info(
                f"{action} for tx {transaction.transaction_id}: transaction is "
                f"{entry.dispute_state.value}, expected {expected.value}"
            )
            return None

        return entry

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        entry = self._find_entry(transaction, DisputeState.NONE)
        if entry is None:
            return ProcessingResult.REJECTED

        # available may go negative when the deposit has already been partly withdrawn
        account.hold(entry.amount)
        self._history.mark(entry.transaction_id, DisputeState.DISPUTED)
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        entry = self._find_entry(transaction, DisputeState.DISPUTED)
        if entry is None:
            return ProcessingResult.REJECTED

        account.release_hold(entry.amount)
        self._history.mark(entry.transaction_id, DisputeState.RESOLVED)
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        entry = self._find_entry(transaction, DisputeState.DISPUTED)
        if entry is None:
            return ProcessingResult.REJECTED

        account.remove_held(entry.amount)
        account.lock()
        self._history.mark(entry.transaction_id, DisputeState.CHARGED_BACK)
        logger.info(f"Chargeback for tx {transaction.transaction_id}: account {account.client_id} locked")
        return ProcessingResult.APPLIED

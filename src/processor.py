import logging
from typing import Optional, Tuple

from models import (
    ClientAccount,
    DisputeState,
    LedgerInvariantError,
    ProcessingResult,
    Transaction,
    TransactionRecord,
    TransactionType,
)
from money import BalanceOverflowError
from state import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to state, one at a time, in input order.

    This is the only caller of the account balance primitives and of
    TransactionRecord.dispute_state transitions. Every check runs before the
    first mutation, so a rejected transaction leaves accounts and history
    exactly as they were.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            SUCCESS: Applied in full
            anything else: Rejected, nothing changed; the member names the reason
        """
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                raise LedgerInvariantError(f"unhandled transaction type {transaction.transaction_type}")

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        if self._state.has_transaction(transaction.transaction_id):
            logger.info(f"Deposit tx {transaction.transaction_id}: already processed, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        account = self._state.get_account(transaction.client_id)
        target = account if account is not None else ClientAccount(client_id=transaction.client_id)

        try:
            target.credit(transaction.amount)
        except BalanceOverflowError as e:
            logger.info(f"Deposit tx {transaction.transaction_id}: {e}")
            return ProcessingResult.OVERFLOW

        self._state.save_account(target)
        self._state.store_transaction(TransactionRecord.from_transaction(transaction))
        return ProcessingResult.SUCCESS

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        if self._state.has_transaction(transaction.transaction_id):
            logger.info(f"Withdrawal tx {transaction.transaction_id}: already processed, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        account = self._state.get_account(transaction.client_id)
        if account is None:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: client {transaction.client_id} has no account")
            return ProcessingResult.INSUFFICIENT_FUNDS

        if account.locked:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: account {account.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        if account.available < transaction.amount:
            logger.info(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {account.available}, requested {transaction.amount})"
            )
            return ProcessingResult.INSUFFICIENT_FUNDS

        try:
            account.debit(transaction.amount)
        except BalanceOverflowError as e:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: {e}")
            return ProcessingResult.OVERFLOW

        self._state.save_account(account)
        self._state.store_transaction(TransactionRecord.from_transaction(transaction))
        return ProcessingResult.SUCCESS

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_original(transaction)
        if original is None:
            return result

        if original.dispute_state not in (DisputeState.NORMAL, DisputeState.RESOLVED):
            logger.info(f"Dispute for tx {transaction.transaction_id}: cannot dispute from {original.dispute_state.value}")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account = self._account_for(original)
        try:
            account.hold(original.signed_amount)
        except BalanceOverflowError as e:
            logger.info(f"Dispute for tx {transaction.transaction_id}: {e}")
            return ProcessingResult.OVERFLOW

        original.dispute_state = DisputeState.DISPUTED
        self._state.save_account(account)
        self._state.store_transaction(original)
        return ProcessingResult.SUCCESS

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_original(transaction)
        if original is None:
            return result

        if original.dispute_state != DisputeState.DISPUTED:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account = self._account_for(original)
        try:
            account.release_hold(original.signed_amount)
        except BalanceOverflowError as e:
            logger.info(f"Resolve for tx {transaction.transaction_id}: {e}")
            return ProcessingResult.OVERFLOW

        original.dispute_state = DisputeState.RESOLVED
        self._state.save_account(account)
        self._state.store_transaction(original)
        return ProcessingResult.SUCCESS

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_original(transaction)
        if original is None:
            return result

        if original.dispute_state != DisputeState.DISPUTED:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.INVALID_DISPUTE_STATE

        account = self._account_for(original)
        try:
            account.remove_held(original.signed_amount)
        except BalanceOverflowError as e:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: {e}")
            return ProcessingResult.OVERFLOW

        account.locked = True
        original.dispute_state = DisputeState.CHARGED_BACK
        self._state.save_account(account)
        self._state.store_transaction(original)
        return ProcessingResult.SUCCESS

    def _find_original(self, transaction: Transaction) -> Tuple[Optional[TransactionRecord], ProcessingResult]:
        """Look up the record a dispute-chain transaction refers to."""
        action = transaction.transaction_type.value.capitalize()
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            logger.info(f"{action} for tx {transaction.transaction_id}: transaction not found")
            return None, ProcessingResult.UNKNOWN_TRANSACTION

        if original.client_id != transaction.client_id:
            logger.warning(
                f"{action} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {original.client_id}, got {transaction.client_id})"
            )
            return None, ProcessingResult.CLIENT_MISMATCH

        return original, ProcessingResult.SUCCESS

    def _account_for(self, record: TransactionRecord) -> ClientAccount:
        account = self._state.get_account(record.client_id)
        if account is None:
            # Records are only stored after their account exists.
            raise LedgerInvariantError(f"tx {record.transaction_id} references missing account {record.client_id}")
        return account

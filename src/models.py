from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional

from money import ZERO, checked_add, checked_sub, rescale


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
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    SUCCESS = "success"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_DISPUTE_STATE = "invalid_dispute_state"
    OVERFLOW = "overflow"

    @property
    def accepted(self) -> bool:
        return self is ProcessingResult.SUCCESS


class SnapshotOrder(Enum):
    CLIENT_ID = "client_id"
    INSERTION = "insertion"


class LedgerInvariantError(RuntimeError):
    """Internal ledger state is inconsistent. Never raised for any input stream."""


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.transaction_type.carries_amount:
            if self.amount is None:
                raise ValueError(f"{self.transaction_type.value} requires a positive amount")
            if not isinstance(self.amount, Decimal):
                raise TypeError(f"{self.transaction_type.value} amount must be a Decimal, got {self.amount!r}")
            if not self.amount.is_finite() or self.amount <= 0:
                raise ValueError(f"{self.transaction_type.value} requires a positive amount, got {self.amount}")
            # Range is checked when the amount is applied, so only the scale is fixed here.
            object.__setattr__(self, "amount", rescale(self.amount))
        elif self.amount is not None:
            raise ValueError(f"{self.transaction_type.value} must not carry an amount")

    @classmethod
    def deposit(cls, client_id: int, transaction_id: int, amount: Decimal) -> "Transaction":
        return cls(TransactionType.DEPOSIT, client_id, transaction_id, amount)

    @classmethod
    def withdrawal(cls, client_id: int, transaction_id: int, amount: Decimal) -> "Transaction":
        return cls(TransactionType.WITHDRAWAL, client_id, transaction_id, amount)

    @classmethod
    def dispute(cls, client_id: int, transaction_id: int) -> "Transaction":
        return cls(TransactionType.DISPUTE, client_id, transaction_id)

    @classmethod
    def resolve(cls, client_id: int, transaction_id: int) -> "Transaction":
        return cls(TransactionType.RESOLVE, client_id, transaction_id)

    @classmethod
    def chargeback(cls, client_id: int, transaction_id: int) -> "Transaction":
        return cls(TransactionType.CHARGEBACK, client_id, transaction_id)

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class TransactionRecord:
    """
    A recorded deposit or withdrawal, kept for dispute lookups.
    Only dispute_state changes after creation.
    """

    transaction_id: int
    client_id: int
    transaction_type: TransactionType
    amount: Decimal
    dispute_state: DisputeState = DisputeState.NORMAL

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionRecord":
        if not transaction.transaction_type.carries_amount:
            raise LedgerInvariantError(f"cannot record {transaction!r}")
        return cls(
            transaction_id=transaction.transaction_id,
            client_id=transaction.client_id,
            transaction_type=transaction.transaction_type,
            amount=transaction.amount,
        )

    @property
    def signed_amount(self) -> Decimal:
        """Positive for deposits, negative for withdrawals."""
        if self.transaction_type == TransactionType.DEPOSIT:
            return self.amount
        return self.amount.copy_negate()


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return checked_add(self.available, self.held)

    # Each primitive computes every new balance before assigning any, so a
    # BalanceOverflowError leaves the account untouched. The resulting total
    # must stay representable as well.

    def _commit(self, available: Decimal, held: Decimal) -> None:
        checked_add(available, held)
        self.available = available
        self.held = held

    def credit(self, amount: Decimal) -> None:
        self._commit(checked_add(self.available, amount), self.held)

    def debit(self, amount: Decimal) -> None:
        self._commit(checked_sub(self.available, amount), self.held)

    def hold(self, amount: Decimal) -> None:
        self._commit(checked_sub(self.available, amount), checked_add(self.held, amount))

    def release_hold(self, amount: Decimal) -> None:
        self._commit(checked_add(self.available, amount), checked_sub(self.held, amount))

    def remove_held(self, amount: Decimal) -> None:
        self._commit(self.available, checked_sub(self.held, amount))


class AccountSnapshot(NamedTuple):
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


class ProcessingStats:
    """Counters for tracking processing statistics."""

    def __init__(self):
        self.processed = 0
        self.failed = 0
        self.rejections: Counter = Counter()

    def record(self, result: ProcessingResult) -> None:
        if result.accepted:
            self.processed += 1
        else:
            self.failed += 1
            self.rejections[result] += 1

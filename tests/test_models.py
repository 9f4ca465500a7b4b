import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import (
    ClientAccount,
    DisputeState,
    LedgerInvariantError,
    ProcessingResult,
    ProcessingStats,
    Transaction,
    TransactionRecord,
    TransactionType,
)
from money import MAX_BALANCE, AmountPrecisionError, BalanceOverflowError


class TestTransaction:
    def test_create_deposit(self):
        transaction = Transaction(
            transaction_type=TransactionType.DEPOSIT,
            client_id=1,
            transaction_id=1,
            amount=Decimal("100.0"),
        )
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 1
        assert transaction.amount == Decimal("100.0")

    def test_create_dispute_no_amount(self):
        transaction = Transaction(
            transaction_type=TransactionType.DISPUTE,
            client_id=1,
            transaction_id=1,
        )
        assert transaction.amount is None

    def test_variant_constructors(self):
        assert Transaction.deposit(1, 2, Decimal("3")).transaction_type == TransactionType.DEPOSIT
        assert Transaction.withdrawal(1, 2, Decimal("3")).transaction_type == TransactionType.WITHDRAWAL
        assert Transaction.dispute(1, 2).transaction_type == TransactionType.DISPUTE
        assert Transaction.resolve(1, 2).transaction_type == TransactionType.RESOLVE
        assert Transaction.chargeback(1, 2).transaction_type == TransactionType.CHARGEBACK

    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-1")])
    def test_deposit_requires_positive_amount(self, amount):
        with pytest.raises(ValueError):
            Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=1, amount=amount)

    def test_amount_stored_with_four_places(self):
        transaction = Transaction.deposit(1, 1, Decimal("100"))
        assert str(transaction.amount) == "100.0000"

    def test_amount_with_five_places_rejected(self):
        with pytest.raises(AmountPrecisionError):
            Transaction.deposit(1, 1, Decimal("0.00001"))

    @pytest.mark.parametrize("amount", [10.0, 10, "10"])
    def test_amount_must_be_decimal(self, amount):
        with pytest.raises(TypeError):
            Transaction.withdrawal(1, 1, amount)

    @pytest.mark.parametrize("amount", [Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_amount_rejected(self, amount):
        with pytest.raises(ValueError):
            Transaction.deposit(1, 1, amount)

    def test_out_of_range_amount_left_for_processor(self):
        transaction = Transaction.deposit(1, 1, Decimal("7922816251426433759354395.0336"))
        assert str(transaction.amount) == "7922816251426433759354395.0336"

    def test_dispute_rejects_amount(self):
        with pytest.raises(ValueError):
            Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=1, amount=Decimal("1"))

    def test_is_immutable(self):
        transaction = Transaction.deposit(1, 1, Decimal("1"))
        with pytest.raises(AttributeError):
            transaction.amount = Decimal("2")


class TestTransactionRecord:
    def test_from_deposit(self):
        record = TransactionRecord.from_transaction(Transaction.deposit(7, 3, Decimal("12.5")))
        assert record.transaction_id == 3
        assert record.client_id == 7
        assert record.amount == Decimal("12.5")
        assert record.dispute_state == DisputeState.NORMAL
        assert record.signed_amount == Decimal("12.5")

    def test_withdrawal_signed_amount_is_negative(self):
        record = TransactionRecord.from_transaction(Transaction.withdrawal(7, 3, Decimal("12.5")))
        assert record.signed_amount == Decimal("-12.5")

    def test_signed_amount_is_exact_at_max_balance(self):
        record = TransactionRecord.from_transaction(Transaction.withdrawal(1, 1, MAX_BALANCE))
        assert record.signed_amount == MAX_BALANCE.copy_negate()
        assert str(record.signed_amount) == "-7922816251426433759354395.0335"

    def test_dispute_cannot_be_recorded(self):
        with pytest.raises(LedgerInvariantError):
            TransactionRecord.from_transaction(Transaction.dispute(1, 1))


class TestClientAccount:
    def test_default_values(self):
        account = ClientAccount(client_id=1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.locked is False

    def test_total_property(self):
        account = ClientAccount(
            client_id=1,
            available=Decimal("100"),
            held=Decimal("50"),
        )
        assert account.total == Decimal("150")

    def test_hold_with_negative_amount_gives_negative_hold(self):
        account = ClientAccount(client_id=1, available=Decimal("12"))
        account.hold(Decimal("-8"))
        assert account.available == Decimal("20")
        assert account.held == Decimal("-8")
        assert account.total == Decimal("12")

    def test_release_hold_inverts_hold(self):
        account = ClientAccount(client_id=1, available=Decimal("100"))
        account.hold(Decimal("40"))
        account.release_hold(Decimal("40"))
        assert account.available == Decimal("100")
        assert account.held == Decimal("0")

    def test_remove_held_leaves_available(self):
        account = ClientAccount(client_id=1, available=Decimal("60"), held=Decimal("40"))
        account.remove_held(Decimal("40"))
        assert account.available == Decimal("60")
        assert account.held == Decimal("0")
        assert account.total == Decimal("60")

    def test_credit_overflow_leaves_account_unchanged(self):
        account = ClientAccount(client_id=1, available=MAX_BALANCE)
        with pytest.raises(BalanceOverflowError):
            account.credit(Decimal("0.0001"))
        assert account.available == MAX_BALANCE

    def test_hold_overflow_leaves_both_fields_unchanged(self):
        # available - (-1) overflows, held + (-1) would not
        account = ClientAccount(client_id=1, available=MAX_BALANCE, held=Decimal("-5"))
        with pytest.raises(BalanceOverflowError):
            account.hold(Decimal("-1"))
        assert account.available == MAX_BALANCE
        assert account.held == Decimal("-5")

    def test_credit_rejected_when_total_would_overflow(self):
        account = ClientAccount(client_id=1, available=Decimal("0"), held=MAX_BALANCE)
        with pytest.raises(BalanceOverflowError):
            account.credit(Decimal("1"))
        assert account.available == Decimal("0")


class TestProcessingResult:
    def test_enum_values(self):
        assert ProcessingResult.SUCCESS.value == "success"
        assert ProcessingResult.DUPLICATE_TRANSACTION.value == "duplicate_transaction"
        assert ProcessingResult.OVERFLOW.value == "overflow"

    def test_only_success_is_accepted(self):
        assert ProcessingResult.SUCCESS.accepted
        for result in ProcessingResult:
            if result is not ProcessingResult.SUCCESS:
                assert not result.accepted


class TestProcessingStats:
    def test_record(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.SUCCESS)
        stats.record(ProcessingResult.SUCCESS)
        stats.record(ProcessingResult.INSUFFICIENT_FUNDS)
        stats.record(ProcessingResult.CLIENT_MISMATCH)
        stats.record(ProcessingResult.CLIENT_MISMATCH)

        assert stats.processed == 2
        assert stats.failed == 3
        assert stats.rejections[ProcessingResult.CLIENT_MISMATCH] == 2
        assert stats.rejections[ProcessingResult.INSUFFICIENT_FUNDS] == 1
        assert ProcessingResult.SUCCESS not in stats.rejections

import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import (
    ClientAccount,
    DisputeStatus,
    IgnoreReason,
    InvalidStateTransitionError,
    InvalidTransactionError,
    LedgerEntry,
    ProcessingResult,
    ProcessingStats,
    Transaction,
    TransactionType,
)


class TestTransaction:
    def test_create_deposit(self):
        transaction = Transaction(
            transaction_type=TransactionType.DEPOSIT,
            client_id=1,
            tx_id=1,
            amount=Decimal("100.0"),
        )
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.tx_id == 1
        assert transaction.amount == Decimal("100.0")

    def test_create_dispute_no_amount(self):
        transaction = Transaction(TransactionType.DISPUTE, client_id=1, tx_id=1)
        assert transaction.amount is None

    def test_is_immutable(self):
        transaction = Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1, amount=Decimal("1"))
        with pytest.raises(AttributeError):
            transaction.amount = Decimal("2")

    def test_deposit_requires_amount(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1)

    def test_withdrawal_requires_amount(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.WITHDRAWAL, client_id=1, tx_id=1)

    def test_dispute_rejects_amount(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DISPUTE, client_id=1, tx_id=1, amount=Decimal("1"))

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1, amount=Decimal("-1"))

    def test_non_finite_amount_rejected(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1, amount=Decimal("NaN"))

    def test_zero_amount_is_well_shaped(self):
        transaction = Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1, amount=Decimal("0"))
        assert transaction.amount == Decimal("0")

    def test_client_id_out_of_range(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DISPUTE, client_id=65536, tx_id=1)
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DISPUTE, client_id=-1, tx_id=1)

    def test_tx_id_out_of_range(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DISPUTE, client_id=1, tx_id=2**32)

    def test_non_decimal_amount_rejected(self):
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.DEPOSIT, client_id=1, tx_id=1, amount=5)
        with pytest.raises(InvalidTransactionError):
            Transaction(TransactionType.WITHDRAWAL, client_id=1, tx_id=1, amount="5")

    def test_invalid_type(self):
        with pytest.raises(InvalidTransactionError):
            Transaction("deposit", client_id=1, tx_id=1, amount=Decimal("1"))

    def test_invalid_transaction_error_is_value_error(self):
        assert issubclass(InvalidTransactionError, ValueError)


class TestDisputeStatus:
    @pytest.mark.parametrize("source, target", [
        (DisputeStatus.NORMAL, DisputeStatus.DISPUTED),
        (DisputeStatus.DISPUTED, DisputeStatus.RESOLVED),
        (DisputeStatus.DISPUTED, DisputeStatus.CHARGEBACKED),
    ])
    def test_allowed_transitions(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize("source, target", [
        (DisputeStatus.NORMAL, DisputeStatus.RESOLVED),
        (DisputeStatus.NORMAL, DisputeStatus.CHARGEBACKED),
        (DisputeStatus.DISPUTED, DisputeStatus.NORMAL),
        (DisputeStatus.DISPUTED, DisputeStatus.DISPUTED),
        (DisputeStatus.RESOLVED, DisputeStatus.DISPUTED),
        (DisputeStatus.RESOLVED, DisputeStatus.CHARGEBACKED),
        (DisputeStatus.CHARGEBACKED, DisputeStatus.DISPUTED),
        (DisputeStatus.CHARGEBACKED, DisputeStatus.RESOLVED),
    ])
    def test_disallowed_transitions(self, source, target):
        assert not source.can_transition_to(target)


class TestLedgerEntry:
    def test_default_status(self):
        entry = LedgerEntry(tx_id=1, client_id=1, amount=Decimal("10"))
        assert entry.status == DisputeStatus.NORMAL

    def test_deposit_and_withdrawal_sign(self):
        deposit = LedgerEntry(tx_id=1, client_id=1, amount=Decimal("10"))
        withdrawal = LedgerEntry(tx_id=2, client_id=1, amount=Decimal("-10"))
        assert deposit.is_deposit
        assert not withdrawal.is_deposit
        assert withdrawal.magnitude == Decimal("10")

    def test_transition(self):
        entry = LedgerEntry(tx_id=1, client_id=1, amount=Decimal("10"))
        entry.transition_to(DisputeStatus.DISPUTED)
        entry.transition_to(DisputeStatus.RESOLVED)
        assert entry.status == DisputeStatus.RESOLVED

    def test_illegal_transition_raises(self):
        entry = LedgerEntry(tx_id=1, client_id=1, amount=Decimal("10"), status=DisputeStatus.RESOLVED)
        with pytest.raises(InvalidStateTransitionError):
            entry.transition_to(DisputeStatus.DISPUTED)
        assert entry.status == DisputeStatus.RESOLVED


class TestClientAccount:
    def test_default_values(self):
        account = ClientAccount(client_id=1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.locked is False

    def test_total_property(self):
        account = ClientAccount(
            client_id=1,
            available=Decimal("100"),
            held=Decimal("50"),
        )
        assert account.total == Decimal("150")

    def test_hold_keeps_total(self):
        account = ClientAccount(client_id=1, available=Decimal("100"))
        account.hold(Decimal("40"))
        assert account.available == Decimal("60")
        assert account.held == Decimal("40")
        assert account.total == Decimal("100")

    def test_hold_claim_only_touches_held(self):
        account = ClientAccount(client_id=1, available=Decimal("60"))
        account.hold_claim(Decimal("40"))
        assert account.available == Decimal("60")
        assert account.held == Decimal("40")

    def test_lock(self):
        account = ClientAccount(client_id=1)
        account.lock()
        assert account.locked is True


class TestProcessingResult:
    def test_success(self):
        result = ProcessingResult.success()
        assert result.applied
        assert result.reason is None

    def test_ignored(self):
        result = ProcessingResult.ignored(IgnoreReason.ACCOUNT_LOCKED)
        assert not result.applied
        assert result.reason == IgnoreReason.ACCOUNT_LOCKED

    def test_equality(self):
        assert ProcessingResult.success() == ProcessingResult.success()
        assert ProcessingResult.ignored(IgnoreReason.INVALID_STATE) == ProcessingResult.ignored(IgnoreReason.INVALID_STATE)


class TestProcessingStats:
    def test_record(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.success())
        stats.record(ProcessingResult.ignored(IgnoreReason.INSUFFICIENT_FUNDS))
        stats.record(ProcessingResult.ignored(IgnoreReason.INSUFFICIENT_FUNDS))
        stats.record_unparseable()

        assert stats.applied == 1
        assert stats.ignored[IgnoreReason.INSUFFICIENT_FUNDS] == 2
        assert stats.total_ignored == 2
        assert stats.unparseable == 1

from typing import Optional, Tuple, Union

from models import (
    ClientAccount,
    DisputeStatus,
    IgnoreReason,
    LedgerEntry,
    ProcessingResult,
    Transaction,
    TransactionType,
)
from state import StateManager


class TransactionProcessor:
    """
    Applies transactions against state.
    Every rule violation is reported as an ignored ProcessingResult, never raised,
    and all guards run before any balance is touched.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            ProcessingResult.success() when state changed,
            ProcessingResult.ignored(reason) when the transaction was a no-op.
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

        raise ValueError(f"Unhandled transaction type {transaction.transaction_type}")

    def _check_new_funds(self, account: ClientAccount, transaction: Transaction) -> Optional[IgnoreReason]:
        if transaction.amount <= 0:
            return IgnoreReason.INVALID_AMOUNT
        if account.locked:
            return IgnoreReason.ACCOUNT_LOCKED
        if self._state.has_entry(transaction.tx_id):
            return IgnoreReason.DUPLICATE_TRANSACTION
        return None

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        # Accounts are created even when the deposit itself is rejected.
        account = self._state.get_or_create_account(transaction.client_id)

        reason = self._check_new_funds(account, transaction)
        if reason is not None:
            return ProcessingResult.ignored(reason)

        account.credit(transaction.amount)
        self._state.store_entry(LedgerEntry(transaction.tx_id, transaction.client_id, transaction.amount))
        return ProcessingResult.success()

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        account = self._state.get_or_create_account(transaction.client_id)

        reason = self._check_new_funds(account, transaction)
        if reason is not None:
            return ProcessingResult.ignored(reason)

        if account.available < transaction.amount:
            return ProcessingResult.ignored(IgnoreReason.INSUFFICIENT_FUNDS)

        account.debit(transaction.amount)
        self._state.store_entry(LedgerEntry(transaction.tx_id, transaction.client_id, -transaction.amount))
        return ProcessingResult.success()

    def _lookup_referenced(
        self, transaction: Transaction, target: DisputeStatus
    ) -> Union[Tuple[ClientAccount, LedgerEntry], IgnoreReason]:
        """
        Resolve the account and ledger entry a dispute/resolve/chargeback refers to.
        Accounts are only looked up here, never created.
        """
        account = self._state.get_account(transaction.client_id)
        if account is not None and account.locked:
            return IgnoreReason.ACCOUNT_LOCKED

        entry = self._state.get_entry(transaction.tx_id)
        if entry is None:
            return IgnoreReason.TRANSACTION_NOT_FOUND

        if entry.client_id != transaction.client_id:
            return IgnoreReason.CLIENT_MISMATCH

        if not entry.status.can_transition_to(target):
            return IgnoreReason.INVALID_STATE

        # An entry owned by this client implies its account exists.
        return account, entry

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        found = self._lookup_referenced(transaction, DisputeStatus.DISPUTED)
        if isinstance(found, IgnoreReason):
            return ProcessingResult.ignored(found)
        account, entry = found

        if entry.is_deposit:
            # Disputing a deposit must never drive available funds negative.
            if account.available < entry.amount:
                return ProcessingResult.ignored(IgnoreReason.INSUFFICIENT_AVAILABLE_FUNDS)
            account.hold(entry.amount)
        else:
            account.hold_claim(entry.magnitude)

        entry.transition_to(DisputeStatus.DISPUTED)
        return ProcessingResult.success()

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        found = self._lookup_referenced(transaction, DisputeStatus.RESOLVED)
        if isinstance(found, IgnoreReason):
            return ProcessingResult.ignored(found)
        account, entry = found

        if entry.is_deposit:
            account.release_hold(entry.amount)
        else:
            # The withdrawal stands, so the claim is simply dropped.
            account.remove_held(entry.magnitude)

        entry.transition_to(DisputeStatus.RESOLVED)
        return ProcessingResult.success()

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        found = self._lookup_referenced(transaction, DisputeStatus.CHARGEBACKED)
        if isinstance(found, IgnoreReason):
            return ProcessingResult.ignored(found)
        account, entry = found

        if entry.is_deposit:
            account.remove_held(entry.amount)
        else:
            # Reversing a withdrawal returns the funds to the client.
            account.release_hold(entry.magnitude)

        entry.transition_to(DisputeStatus.CHARGEBACKED)
        account.lock()
        return ProcessingResult.success()

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

AMOUNT_PRECISION = Decimal("0.0001")
MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1


class InvalidTransactionError(ValueError):
    """Raised when a transaction record is malformed."""


class InvalidStateTransitionError(Exception):
    """Raised when a ledger entry is moved along an illegal dispute transition."""


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeStatus(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGEBACKED = "chargebacked"

    def can_transition_to(self, new_status: "DisputeStatus") -> bool:
        return new_status in _DISPUTE_TRANSITIONS[self]


# Resolved and chargebacked entries are terminal: a settled dispute cannot be reopened.
_DISPUTE_TRANSITIONS = {
    DisputeStatus.NORMAL: frozenset({DisputeStatus.DISPUTED}),
    DisputeStatus.DISPUTED: frozenset({DisputeStatus.RESOLVED, DisputeStatus.CHARGEBACKED}),
    DisputeStatus.RESOLVED: frozenset(),
    DisputeStatus.CHARGEBACKED: frozenset(),
}


class IgnoreReason(Enum):
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_AVAILABLE_FUNDS = "insufficient_available_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_STATE = "invalid_state"


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of applying one transaction: applied, or ignored with a reason."""

    reason: Optional[IgnoreReason] = None

    @property
    def applied(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls) -> "ProcessingResult":
        return cls()

    @classmethod
    def ignored(cls, reason: IgnoreReason) -> "ProcessingResult":
        return cls(reason=reason)

    def __repr__(self) -> str:
        if self.applied:
            return "ProcessingResult(applied)"
        return f"ProcessingResult(ignored: {self.reason.value})"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    tx_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if not isinstance(self.transaction_type, TransactionType):
            raise InvalidTransactionError(f"unknown transaction type {self.transaction_type!r}")
        if not 0 <= self.client_id <= MAX_CLIENT_ID:
            raise InvalidTransactionError(f"client id {self.client_id} out of range")
        if not 0 <= self.tx_id <= MAX_TX_ID:
            raise InvalidTransactionError(f"tx id {self.tx_id} out of range")

        if self.transaction_type.carries_amount:
            if self.amount is None:
                raise InvalidTransactionError(f"{self.transaction_type.value} tx {self.tx_id} requires an amount")
            if not isinstance(self.amount, Decimal):
                raise InvalidTransactionError(f"{self.transaction_type.value} tx {self.tx_id}: amount must be a Decimal, got {type(self.amount).__name__}")
            if not self.amount.is_finite() or self.amount < 0:
                raise InvalidTransactionError(f"{self.transaction_type.value} tx {self.tx_id}: invalid amount {self.amount}")
        elif self.amount is not None:
            raise InvalidTransactionError(f"{self.transaction_type.value} tx {self.tx_id} must not carry an amount")

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.tx_id}, amount={self.amount})"


@dataclass
class LedgerEntry:
    """
    A previously applied deposit or withdrawal.
    Amount is signed: positive for deposits, negative for withdrawals.
    """

    tx_id: int
    client_id: int
    amount: Decimal
    status: DisputeStatus = DisputeStatus.NORMAL

    @property
    def is_deposit(self) -> bool:
        return self.amount > 0

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    def transition_to(self, new_status: DisputeStatus) -> None:
        if not self.status.can_transition_to(new_status):
            raise InvalidStateTransitionError(
                f"tx {self.tx_id}: cannot move from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def hold_claim(self, amount: Decimal) -> None:
        # Withdrawn funds already left available, only the claim is held.
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount

    def lock(self) -> None:
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for one engine run."""

    applied: int = 0
    ignored: Counter = field(default_factory=Counter)
    unparseable: int = 0

    def record(self, result: ProcessingResult) -> None:
        if result.applied:
            self.applied += 1
        else:
            self.ignored[result.reason] += 1

    def record_unparseable(self) -> None:
        self.unparseable += 1

    @property
    def total_ignored(self) -> int:
        return sum(self.ignored.values())

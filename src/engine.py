import logging
from typing import Dict, Iterable

from csv_io import read_transactions
from models import ClientAccount, ProcessingResult, ProcessingStats, Transaction
from processor import TransactionProcessor
from state import StateManager

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays transactions in arrival order against one in-memory state.
    Single-threaded: ordering of dispute/resolve/chargeback depends on it.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self.stats = ProcessingStats()

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """Apply one transaction. Rejected transactions are no-ops, never errors."""
        result = self._processor.process(transaction)
        self.stats.record(result)
        if not result.applied:
            logger.debug(f"Ignored {transaction}: {result.reason.value}")
        return result

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        """Apply every transaction in order and return final account states."""
        for transaction in transactions:
            self.apply(transaction)

        logger.info(
            f"Applied: {self.stats.applied}, "
            f"Ignored: {self.stats.total_ignored}, "
            f"Unparseable: {self.stats.unparseable}"
        )
        return self.accounts

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        transactions = read_transactions(filepath, on_error=lambda row, error: self.stats.record_unparseable())
        return self.process(transactions)

    @property
    def accounts(self) -> Dict[int, ClientAccount]:
        return self._state.get_all_accounts()

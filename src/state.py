from typing import Dict, Optional

from models import ClientAccount, LedgerEntry


class StateManager:
    """
    In-memory state for one engine run.
    Stores client accounts and the ledger of applied deposits/withdrawals for dispute lookups.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._ledger: Dict[int, LedgerEntry] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        """Look up an account without creating it."""
        return self._accounts.get(client_id)

    def store_entry(self, entry: LedgerEntry) -> None:
        """Store ledger entry for future dispute lookups."""
        self._ledger[entry.tx_id] = entry

    def get_entry(self, tx_id: int) -> Optional[LedgerEntry]:
        """Retrieve ledger entry by transaction ID."""
        return self._ledger.get(tx_id)

    def has_entry(self, tx_id: int) -> bool:
        return tx_id in self._ledger

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)

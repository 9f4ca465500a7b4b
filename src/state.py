from typing import Dict, Iterator, MutableMapping, Optional

from models import AccountSnapshot, ClientAccount, SnapshotOrder, TransactionRecord


class LedgerSnapshot:
    """
    Read-only view over all accounts.
    Each iteration walks the ledger afresh, so it reflects state at iteration time
    and can be repeated.
    """

    def __init__(self, accounts: MutableMapping[int, ClientAccount], order: SnapshotOrder):
        self._accounts = accounts
        self._order = order

    def __iter__(self) -> Iterator[AccountSnapshot]:
        if self._order == SnapshotOrder.CLIENT_ID:
            client_ids = sorted(self._accounts)
        else:
            client_ids = list(self._accounts)

        for client_id in client_ids:
            account = self._accounts[client_id]
            yield AccountSnapshot(
                client_id=account.client_id,
                available=account.available,
                held=account.held,
                total=account.total,
                locked=account.locked,
            )


class StateManager:
    """
    Stores client accounts and transaction history for dispute lookups.

    Both stores are plain mappings, defaulting to in-memory dicts. Anything
    implementing MutableMapping (e.g. a database-backed mapping) can be passed
    in instead. Mappings used for INSERTION snapshots must preserve insertion order.
    Single writer only: no locking is done here.
    """

    def __init__(
        self,
        accounts: Optional[MutableMapping[int, ClientAccount]] = None,
        transactions: Optional[MutableMapping[int, TransactionRecord]] = None,
        snapshot_order: SnapshotOrder = SnapshotOrder.CLIENT_ID,
    ):
        self._accounts = accounts if accounts is not None else {}
        self._transactions = transactions if transactions is not None else {}
        self._snapshot_order = snapshot_order

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        """Retrieve account by client ID, or None if the client has never been seen."""
        return self._accounts.get(client_id)

    def save_account(self, account: ClientAccount) -> None:
        """Insert or update an account."""
        self._accounts[account.client_id] = account

    def has_transaction(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def store_transaction(self, record: TransactionRecord) -> None:
        """Store transaction record for future dispute lookups."""
        self._transactions[record.transaction_id] = record

    def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        """Retrieve stored transaction record by ID."""
        return self._transactions.get(transaction_id)

    def account_count(self) -> int:
        return len(self._accounts)

    def transaction_count(self) -> int:
        return len(self._transactions)

    def snapshot(self, order: Optional[SnapshotOrder] = None) -> LedgerSnapshot:
        """Lazy view of all accounts, in the configured order unless overridden."""
        return LedgerSnapshot(self._accounts, order or self._snapshot_order)

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts keyed by client ID."""
        return dict(self._accounts)

import logging
from typing import Iterable

from models import ProcessingResult, ProcessingStats, SnapshotOrder, Transaction
from processor import TransactionProcessor
from state import LedgerSnapshot, StateManager
from transaction_reader import TransactionReader

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Wires the CSV reader, the transaction processor and the ledger snapshot together.
    Single pass, single threaded: transactions are applied strictly in input order
    and a rejected transaction is never retried.
    """

    def __init__(self, snapshot_order: SnapshotOrder = SnapshotOrder.CLIENT_ID):
        self._state = StateManager(snapshot_order=snapshot_order)
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> LedgerSnapshot:
        """Process CSV file and return a snapshot of the resulting accounts."""
        logger.info(f"Processing {filepath}")

        with open(filepath, "r", encoding="utf-8", newline="") as f:
            self.process(TransactionReader(f).valid_records())

        logger.info(
            f"Finished {filepath}: {self._stats.processed} applied, {self._stats.failed} rejected, "
            f"{self._state.account_count()} accounts"
        )
        return self.snapshot()

    def process(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.apply(transaction)

    def apply(self, transaction: Transaction) -> ProcessingResult:
        result = self._processor.process_transaction(transaction)
        self._stats.record(result)
        return result

    def snapshot(self) -> LedgerSnapshot:
        return self._state.snapshot()

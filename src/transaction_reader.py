import csv
import logging
import re
from decimal import Decimal
from typing import Dict, Iterator, Optional, TextIO

from models import Transaction, TransactionType
from money import AmountPrecisionError, BalanceOverflowError, to_fixed

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1

# ASCII digits only: no signs, underscores, exponents or non-Latin digits.
_ID_PATTERN = re.compile(r"[0-9]+")
_AMOUNT_PATTERN = re.compile(r"[0-9]+(\.[0-9]*)?|\.[0-9]+")


class InvalidRowError(ValueError):
    """A CSV row that cannot become a Transaction."""


class TransactionReader:
    """
    Reads transaction CSV (header: type, client, tx, amount) and yields
    well-formed Transactions. Invalid rows are logged and skipped.
    """

    def __init__(self, stream: TextIO):
        self._reader = csv.DictReader(stream)

    def valid_records(self) -> Iterator[Transaction]:
        for row in self._reader:
            try:
                yield parse_row(row)
            except InvalidRowError as e:
                logger.warning(f"Skipping row {self._reader.line_num}: {e}")


def parse_row(row: Dict[Optional[str], object]) -> Transaction:
    """Parse CSV row into Transaction, raising InvalidRowError if it is malformed."""
    if None in row:
        raise InvalidRowError(f"too many columns: {row[None]}")

    normalized = {k.strip(): (v.strip() if v is not None else "") for k, v in row.items()}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
    except KeyError:
        raise InvalidRowError("missing type column") from None
    except ValueError:
        raise InvalidRowError(f"unknown transaction type {normalized['type']!r}") from None

    client_id = _parse_id(normalized, "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized, "tx", MAX_TRANSACTION_ID)
    amount_str = normalized.get("amount", "")

    if not transaction_type.carries_amount:
        if amount_str:
            raise InvalidRowError(f"{transaction_type.value} must not carry an amount")
        return Transaction(transaction_type, client_id, transaction_id)

    if not amount_str:
        raise InvalidRowError(f"{transaction_type.value} is missing an amount")

    return Transaction(transaction_type, client_id, transaction_id, _parse_amount(amount_str))


def _parse_id(normalized: Dict[str, str], column: str, maximum: int) -> int:
    try:
        text = normalized[column]
    except KeyError:
        raise InvalidRowError(f"missing {column} column") from None

    if not _ID_PATTERN.fullmatch(text):
        raise InvalidRowError(f"{column} {text!r} is not an integer")
    value = int(text)

    if not 0 <= value <= maximum:
        raise InvalidRowError(f"{column} {value} out of range [0, {maximum}]")
    return value


def _parse_amount(amount_str: str) -> Decimal:
    if not _AMOUNT_PATTERN.fullmatch(amount_str):
        raise InvalidRowError(f"amount {amount_str!r} is not a number")

    amount = Decimal(amount_str)
    if amount <= 0:
        raise InvalidRowError(f"amount {amount_str!r} must be positive")

    try:
        return to_fixed(amount)
    except (AmountPrecisionError, BalanceOverflowError) as e:
        raise InvalidRowError(str(e)) from None

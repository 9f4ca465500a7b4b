import csv
from typing import Iterable, TextIO

from models import AccountSnapshot
from money import format_amount

HEADER = ["client", "available", "held", "total", "locked"]


def write_accounts(stream: TextIO, accounts: Iterable[AccountSnapshot]) -> int:
    """Write account snapshots as CSV. Returns the number of accounts written."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)

    count = 0
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            str(account.locked).lower(),
        ])
        count += 1
    return count

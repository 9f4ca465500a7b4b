import csv
import sys
import logging

from account_writer import write_accounts
from payments_engine import PaymentsEngine


def configure_logging():
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: python main.py <input.csv>", file=sys.stderr)
        return 1

    configure_logging()

    filepath = argv[0]
    engine = PaymentsEngine()
    try:
        snapshot = engine.process_file(filepath)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        print(f"Cannot read {filepath}: {e}", file=sys.stderr)
        return 1

    write_accounts(sys.stdout, snapshot)

    print(
        f"Processed: {engine.stats.processed}, "
        f"Failed: {engine.stats.failed}",
        file=sys.stderr
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

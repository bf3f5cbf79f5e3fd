# budgetbook/sweep.py
# Cron entry point:  python -m budgetbook.sweep [--today YYYY-MM-DD] [--catch-up]
import argparse
import logging
import sys

from budgetbook import config
from budgetbook.dates import parse_date
from budgetbook.recurring import RecurringEngine
from budgetbook.store import JsonFileStore


def _die(msg: str, code: int = 2):
    print(f"error: {msg}", file=sys.stderr)
    logging.error(msg)
    sys.exit(code)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Materialize due recurring transactions for every user.")
    ap.add_argument("--today", help="treat this YYYY-MM-DD as today (default: system date)")
    ap.add_argument("--catch-up", action="store_true", default=None,
                    help="create every missed period instead of one per template")
    ap.add_argument("--data-dir", help="store root (default: $DATA_DIR or ./data)")
    args = ap.parse_args(argv)

    settings = config.load_settings()
    logging.basicConfig(
        filename=config.logs_dir() / "sweep.log",
        level=getattr(logging, settings["LOG_LEVEL"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    today = None
    if args.today:
        today = parse_date(args.today)
        if today is None:
            _die(f"Invalid --today: {args.today}")

    catch_up = settings["RECURRING_CATCH_UP"] if args.catch_up is None else args.catch_up
    store = JsonFileStore(args.data_dir or settings["DATA_DIR"])
    engine = RecurringEngine(store, catch_up=catch_up)

    count = engine.process_recurring_transactions(today=today)
    print(f"Processed {count} recurring transactions")
    return 0


if __name__ == "__main__":
    sys.exit(main())

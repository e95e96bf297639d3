"""Repair usage counters that drifted from the real item counts.

Usage:
    python -m scripts.reconcile_counters set --user-id 42 --counter saved_recipes --value 7
    python -m scripts.reconcile_counters reset-month --user-id 42
"""
from __future__ import annotations

import argparse
import logging

from entitlements.config import Settings
from entitlements.db import SessionLocal, init_db
from entitlements.logger import setup_logging
from entitlements.services.usage import (
    ABSOLUTE_COUNTERS,
    reset_monthly_counters,
    set_absolute_counter,
)

logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    set_cmd = sub.add_parser("set", help="overwrite an absolute counter")
    set_cmd.add_argument("--user-id", type=int, required=True)
    set_cmd.add_argument("--counter", choices=sorted(ABSOLUTE_COUNTERS), required=True)
    set_cmd.add_argument("--value", type=int, required=True)

    reset_cmd = sub.add_parser("reset-month", help="zero the monthly counters now")
    reset_cmd.add_argument("--user-id", type=int, required=True)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    setup_logging()
    init_db(Settings())

    with SessionLocal() as session:
        if args.command == "set":
            try:
                record = set_absolute_counter(
                    session,
                    user_id=args.user_id,
                    counter=args.counter,
                    value=args.value,
                )
            except ValueError as exc:
                raise SystemExit(str(exc)) from exc
            column = ABSOLUTE_COUNTERS[args.counter]
            print(f"{column}={getattr(record, column)}")
        else:
            record = reset_monthly_counters(session, user_id=args.user_id)
            print(f"reset_month={record.reset_month}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

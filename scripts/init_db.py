"""
Local/dev schema bootstrap.

Creates every table from the ORM metadata (idempotent) and, optionally, seeds
the customer ID log so numbering continues from an existing paper/sheet
register instead of restarting at A-000a01.

Usage:
  python scripts/init_db.py
  python scripts/init_db.py --last-customer-id B-104c37
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv
from sqlalchemy.orm import Session, sessionmaker

from app.intake.db import make_engine
from app.intake.models import Base
from app.intake.modules.customer_ids.sequencer import next_customer_id, validate_customer_id
from app.intake.modules.customer_ids.service import (
    get_last_customer_id,
    is_customer_id_issued,
    record_submitted_customer_id,
)


def init_db(*, database_url: str, last_customer_id: str | None = None) -> None:
    engine = make_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
        print(f"Schema ready on {database_url.split('@')[-1]}", flush=True)
        if last_customer_id:
            with sessionmaker(bind=engine, class_=Session, future=True).begin() as s:
                _seed_customer_id_log(s, last_customer_id)
    finally:
        engine.dispose()


def _seed_customer_id_log(s: Session, last_customer_id: str) -> None:
    if is_customer_id_issued(s, last_customer_id):
        print(f"Customer ID log already contains {last_customer_id}; nothing to seed.", flush=True)
        return
    if not record_submitted_customer_id(s, last_customer_id, source="seed"):
        print(
            f"Customer ID log is already past {last_customer_id} (last: {get_last_customer_id(s)}); nothing to seed.",
            flush=True,
        )
        return
    print(f"Seeded customer ID log with {last_customer_id}; next ID will be {next_customer_id(last_customer_id)}", flush=True)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Create intake tables and optionally seed the customer ID log.")
    ap.add_argument("--database-url", default=None, help="Defaults to $DATABASE_URL or sqlite:///intake.db")
    ap.add_argument("--last-customer-id", default=None, help="Last ID already handed out, e.g. B-104c37")
    args = ap.parse_args(argv)

    db_url = (args.database_url or os.environ.get("DATABASE_URL") or "sqlite:///intake.db").strip()
    last = (args.last_customer_id or "").strip() or None
    if last and not validate_customer_id(last):
        print(f"ERROR: {last!r} is not a valid customer ID (expected e.g. A-000a01).", file=sys.stderr)
        return 2

    init_db(database_url=db_url, last_customer_id=last)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Tests for scripts/init_db.py (schema bootstrap and customer ID seeding)."""
import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.intake.db import make_engine
from app.intake.modules.customer_ids.models import CustomerIdLogEntry
from app.intake.modules.customer_ids.service import get_last_customer_id, peek_next_customer_id
from scripts.init_db import main


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return f"sqlite:///{tmp_path/'seed.db'}"


def _log(db_url):
    engine = make_engine(db_url)
    try:
        with Session(engine) as s:
            return (
                [e.customer_id for e in s.query(CustomerIdLogEntry).order_by(CustomerIdLogEntry.id)],
                get_last_customer_id(s),
                peek_next_customer_id(s),
            )
    finally:
        engine.dispose()


def test_creates_schema_without_seed(db_url):
    assert main(["--database-url", db_url]) == 0

    engine = make_engine(db_url)
    try:
        insp = inspect(engine)
        for table in ("site_visits", "customer_id_log", "audit_events", "site_attachments"):
            assert insp.has_table(table)
    finally:
        engine.dispose()
    assert _log(db_url) == ([], None, "A-000a01")


def test_seed_continues_numbering(db_url, capsys):
    assert main(["--database-url", db_url, "--last-customer-id", "B-104c37"]) == 0
    assert "next ID will be B-104c38" in capsys.readouterr().out
    assert _log(db_url) == (["B-104c37"], "B-104c37", "B-104c38")


def test_seed_is_idempotent(db_url, capsys):
    assert main(["--database-url", db_url, "--last-customer-id", "B-104c37"]) == 0
    assert main(["--database-url", db_url, "--last-customer-id", "B-104c37"]) == 0
    assert "already contains B-104c37" in capsys.readouterr().out
    assert _log(db_url)[0] == ["B-104c37"]


def test_earlier_seed_does_not_rewind_log(db_url, capsys):
    assert main(["--database-url", db_url, "--last-customer-id", "B-104c37"]) == 0
    assert main(["--database-url", db_url, "--last-customer-id", "A-000a09"]) == 0
    assert "already past A-000a09" in capsys.readouterr().out
    assert _log(db_url) == (["B-104c37"], "B-104c37", "B-104c38")


def test_malformed_seed_exits_2(db_url, tmp_path, capsys):
    assert main(["--database-url", db_url, "--last-customer-id", "b-104c37"]) == 2
    assert "not a valid customer ID" in capsys.readouterr().err
    assert not (tmp_path / "seed.db").exists()

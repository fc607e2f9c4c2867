"""Tests for the Google Sheets export."""
import io
import json
import urllib.error
from datetime import date, datetime

import pytest

from app.intake.modules.sheets_export import client as sheets_client
from app.intake.modules.sheets_export.client import SheetsApiClient, SheetsExportError, SheetsWebAppClient
from app.intake.modules.sheets_export.service import (
    SHEET_HEADERS,
    ApiExporter,
    WebAppExporter,
    build_sheet_record,
    build_sheet_row,
    export_site_visit,
    exporter_from_config,
)
from app.intake.modules.site_visits.models import SiteVisit


def _visit(**overrides) -> SiteVisit:
    fields = dict(
        id=1,
        customer_id="A-000a07",
        customer_name="Kamala Silva",
        date_received=date(2026, 3, 5),
        day_of_week="Thursday",
        phone_number="0712345678",
        has_whatsapp=False,
        whatsapp_number=None,
        district="Kandy",
        city="Peradeniya",
        address=None,
        latitude=7.2599,
        longitude=None,
        has_removals=True,
        removal_charge=1500.0,
        has_additional_labour=False,
        additional_labour_charge=None,
        service_type="Gutters",
        status="Pending",
        quotation_number="Q-118",
        created_at=datetime(2026, 3, 5, 9, 30, 0),
    )
    fields.update(overrides)
    return SiteVisit(**fields)


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(sheets_client.time, "sleep", lambda _s: None)


class TestBuildSheetRow:
    def test_row_matches_headers(self):
        row = build_sheet_row(_visit())
        assert len(row) == len(SHEET_HEADERS) == 20
        by_header = dict(zip(SHEET_HEADERS, row))
        assert by_header["Customer ID"] == "A-000a07"
        assert by_header["Date Received"] == "2026-03-05"
        assert by_header["Has WhatsApp"] == "No"
        assert by_header["WhatsApp Number"] == ""
        assert by_header["Latitude"] == "7.2599"
        assert by_header["Longitude"] == ""
        assert by_header["Has Removals"] == "Yes"
        assert by_header["Removal Charge"] == "1500"
        assert by_header["Additional Labour Charge"] == ""
        assert by_header["Created At"] == "2026-03-05T09:30:00Z"

    def test_record_uses_camel_case(self):
        rec = build_sheet_record(_visit())
        assert rec["customerId"] == "A-000a07"
        assert rec["hasWhatsApp"] is False
        assert rec["hasRemovals"] is True
        assert rec["dateReceived"] == "2026-03-05"


class TestExporterFromConfig:
    def test_off(self):
        assert exporter_from_config({"SHEETS_EXPORT": "off"}) is None
        assert exporter_from_config({}) is None

    def test_webapp(self):
        exp = exporter_from_config({"SHEETS_EXPORT": "webapp", "SHEETS_WEBAPP_URL": "https://script.example/exec"})
        assert isinstance(exp, WebAppExporter)
        assert exp.client.url == "https://script.example/exec"

    def test_api(self):
        exp = exporter_from_config({
            "SHEETS_EXPORT": "api",
            "SHEETS_API_KEY": "k",
            "SHEETS_SPREADSHEET_ID": "sheet-1",
        })
        assert isinstance(exp, ApiExporter)
        assert exp.client.range == "Sheet1!A:T"

    def test_request_path_defaults_are_short(self):
        exp = exporter_from_config({"SHEETS_EXPORT": "webapp", "SHEETS_WEBAPP_URL": "https://script.example/exec"})
        assert exp.client.timeout_seconds == 10
        assert exp.client.retries == 1

    def test_timeout_and_retries_from_config(self):
        exp = exporter_from_config({
            "SHEETS_EXPORT": "api",
            "SHEETS_API_KEY": "k",
            "SHEETS_SPREADSHEET_ID": "sheet-1",
            "SHEETS_TIMEOUT_SECONDS": 4,
            "SHEETS_RETRIES": 0,
        })
        assert exp.client.timeout_seconds == 4
        assert exp.client.retries == 0

    def test_missing_settings_fail_fast(self):
        with pytest.raises(ValueError):
            exporter_from_config({"SHEETS_EXPORT": "webapp"})
        with pytest.raises(ValueError):
            exporter_from_config({"SHEETS_EXPORT": "api", "SHEETS_API_KEY": "k"})
        with pytest.raises(ValueError):
            exporter_from_config({"SHEETS_EXPORT": "carrier-pigeon"})


def test_api_append_url():
    c = SheetsApiClient(api_key="abc", spreadsheet_id="sheet-1")
    url = c.append_url()
    assert url.startswith("https://sheets.googleapis.com/v4/spreadsheets/sheet-1/values/Sheet1%21A%3AT:append?")
    assert "valueInputOption=USER_ENTERED" in url
    assert "key=abc" in url


def test_webapp_posts_record(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["method"] = req.get_method()
        seen["body"] = json.loads(req.data.decode("utf-8"))
        return _FakeResponse(b'{"success": true}')

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    exp = WebAppExporter(SheetsWebAppClient(url="https://script.example/exec"))
    assert export_site_visit(exp, _visit()) is True
    assert seen["method"] == "POST"
    assert seen["body"]["customerId"] == "A-000a07"


def test_api_posts_row(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["body"] = json.loads(req.data.decode("utf-8"))
        return _FakeResponse(b'{"updates": {"updatedRows": 1}}')

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    exp = ApiExporter(SheetsApiClient(api_key="k", spreadsheet_id="s"))
    assert export_site_visit(exp, _visit()) is True
    assert seen["body"]["values"][0][0] == "A-000a07"


def test_rate_limit_retried(monkeypatch):
    calls = {"n": 0}

    def fake_urlopen(req, timeout):
        calls["n"] += 1
        if calls["n"] == 1:
            raise urllib.error.HTTPError(req.full_url, 429, "Too Many Requests", {}, io.BytesIO(b""))
        return _FakeResponse(b"{}")

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    SheetsWebAppClient(url="https://script.example/exec").append_record({"customerId": "A-000a01"})
    assert calls["n"] == 2


def test_http_error_raises(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 403, "Forbidden", {}, io.BytesIO(b"denied"))

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(SheetsExportError, match="HTTP 403"):
        SheetsApiClient(api_key="k", spreadsheet_id="s").append_rows([["x"]])


def test_webapp_rejection_raises(monkeypatch):
    monkeypatch.setattr(
        sheets_client.urllib.request,
        "urlopen",
        lambda req, timeout: _FakeResponse(b'{"success": false, "error": "sheet locked"}'),
    )
    with pytest.raises(SheetsExportError, match="sheet locked"):
        SheetsWebAppClient(url="https://script.example/exec").append_record({})


def test_export_failure_is_swallowed(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    exp = WebAppExporter(SheetsWebAppClient(url="https://script.example/exec", retries=1))
    assert export_site_visit(exp, _visit()) is False


def test_export_disabled():
    assert export_site_visit(None, _visit()) is False


def test_site_visit_post_exports(tmp_path, monkeypatch):
    from app.intake import create_app
    from app.intake.models import Base

    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SHEETS_EXPORT", "webapp")
    monkeypatch.setenv("SHEETS_WEBAPP_URL", "https://script.example/exec")

    sent = []

    def fake_urlopen(req, timeout):
        sent.append(json.loads(req.data.decode("utf-8")))
        return _FakeResponse(b'{"success": true}')

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    r = app.test_client().post(
        "/api/site-visits",
        json={
            "customerId": "A-000a01",
            "customerName": "Nimal Perera",
            "dateReceived": "2026-03-05",
            "phoneNumber": "0771234567",
            "district": "Galle",
            "city": "Hikkaduwa",
            "serviceType": "Roof",
            "status": "Pending",
        },
    )
    assert r.status_code == 200, r.json
    assert r.json["exported"] is True
    assert sent[0]["customerId"] == "A-000a01"
    assert sent[0]["dayOfWeek"] == "Thursday"


def test_no_backoff_after_last_attempt(monkeypatch):
    sleeps = []
    seen_timeouts = []

    def fake_urlopen(req, timeout):
        seen_timeouts.append(timeout)
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(sheets_client.urllib.request, "urlopen", fake_urlopen)
    monkeypatch.setattr(sheets_client.time, "sleep", sleeps.append)
    with pytest.raises(SheetsExportError):
        SheetsWebAppClient(url="https://script.example/exec").append_record({"customerId": "A-000a01"})
    assert seen_timeouts == [10, 10]
    assert sleeps == [1]

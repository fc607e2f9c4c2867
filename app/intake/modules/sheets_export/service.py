"""
Spreadsheet export of site visits.

The exporter is built once in ``create_app`` from config and kept on
``app.extensions["sheet_exporter"]``; request handlers pass it into
``export_site_visit``. It is ``None`` when SHEETS_EXPORT is off.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from app.intake.modules.sheets_export.client import SheetsApiClient, SheetsExportError, SheetsWebAppClient
from app.intake.modules.site_visits.models import SiteVisit

logger = logging.getLogger(__name__)

SHEET_HEADERS = (
    "Customer ID",
    "Customer Name",
    "Date Received",
    "Day of Week",
    "Phone Number",
    "Has WhatsApp",
    "WhatsApp Number",
    "District",
    "City",
    "Address",
    "Latitude",
    "Longitude",
    "Has Removals",
    "Removal Charge",
    "Has Additional Labour",
    "Additional Labour Charge",
    "Service Type",
    "Status",
    "Quotation Number",
    "Created At",
)


class SheetExporter(Protocol):
    def export(self, visit: SiteVisit) -> None: ...


def _yes_no(v: bool) -> str:
    return "Yes" if v else "No"


def _num(v: float | None) -> str:
    if v is None:
        return ""
    return str(int(v)) if float(v).is_integer() else str(v)


def _created_at(visit: SiteVisit) -> str:
    ts = visit.created_at or datetime.utcnow()
    return ts.strftime("%Y-%m-%dT%H:%M:%S") + "Z"


def build_sheet_record(visit: SiteVisit) -> dict[str, Any]:
    """JSON record in the shape the Apps Script web app expects (camelCase keys)."""
    return {
        "customerId": visit.customer_id,
        "customerName": visit.customer_name,
        "dateReceived": visit.date_received.isoformat(),
        "dayOfWeek": visit.day_of_week,
        "phoneNumber": visit.phone_number,
        "hasWhatsApp": bool(visit.has_whatsapp),
        "whatsappNumber": visit.whatsapp_number,
        "district": visit.district,
        "city": visit.city,
        "address": visit.address,
        "latitude": visit.latitude,
        "longitude": visit.longitude,
        "hasRemovals": bool(visit.has_removals),
        "removalCharge": visit.removal_charge,
        "hasAdditionalLabour": bool(visit.has_additional_labour),
        "additionalLabourCharge": visit.additional_labour_charge,
        "serviceType": visit.service_type,
        "status": visit.status,
        "quotationNumber": visit.quotation_number,
        "createdAt": _created_at(visit),
    }


def build_sheet_row(visit: SiteVisit) -> list[str]:
    """One sheet row, column order matching SHEET_HEADERS."""
    return [
        visit.customer_id,
        visit.customer_name or "",
        visit.date_received.isoformat(),
        visit.day_of_week or "",
        visit.phone_number or "",
        _yes_no(visit.has_whatsapp),
        visit.whatsapp_number or "",
        visit.district or "",
        visit.city or "",
        visit.address or "",
        _num(visit.latitude),
        _num(visit.longitude),
        _yes_no(visit.has_removals),
        _num(visit.removal_charge),
        _yes_no(visit.has_additional_labour),
        _num(visit.additional_labour_charge),
        visit.service_type or "",
        visit.status or "",
        visit.quotation_number or "",
        _created_at(visit),
    ]


class WebAppExporter:
    def __init__(self, client: SheetsWebAppClient):
        self.client = client

    def export(self, visit: SiteVisit) -> None:
        self.client.append_record(build_sheet_record(visit))


class ApiExporter:
    def __init__(self, client: SheetsApiClient):
        self.client = client

    def export(self, visit: SiteVisit) -> None:
        self.client.append_rows([build_sheet_row(visit)])


def exporter_from_config(config: dict) -> SheetExporter | None:
    mode = (config.get("SHEETS_EXPORT") or "off").strip().lower()
    timeout = int(config.get("SHEETS_TIMEOUT_SECONDS") or 10)
    retries = int(config.get("SHEETS_RETRIES", 1))
    if mode in ("", "off", "none", "0"):
        return None
    if mode == "webapp":
        url = (config.get("SHEETS_WEBAPP_URL") or "").strip()
        if not url:
            raise ValueError("SHEETS_WEBAPP_URL is required when SHEETS_EXPORT=webapp.")
        return WebAppExporter(SheetsWebAppClient(url=url, timeout_seconds=timeout, retries=retries))
    if mode == "api":
        api_key = (config.get("SHEETS_API_KEY") or "").strip()
        spreadsheet_id = (config.get("SHEETS_SPREADSHEET_ID") or "").strip()
        if not api_key or not spreadsheet_id:
            raise ValueError("SHEETS_API_KEY and SHEETS_SPREADSHEET_ID are required when SHEETS_EXPORT=api.")
        return ApiExporter(
            SheetsApiClient(
                api_key=api_key,
                spreadsheet_id=spreadsheet_id,
                range=(config.get("SHEETS_RANGE") or "Sheet1!A:T").strip(),
                timeout_seconds=timeout,
                retries=retries,
            )
        )
    raise ValueError(f"Unknown SHEETS_EXPORT mode: {mode!r} (expected off, webapp or api).")


def export_site_visit(exporter: SheetExporter | None, visit: SiteVisit) -> bool:
    """
    Best-effort export. Returns True when the row was sent.
    Export failures are logged, never raised: the visit is already saved.
    """
    if exporter is None:
        return False
    try:
        exporter.export(visit)
    except SheetsExportError as e:
        logger.error("Sheets export failed for customer %s: %s", visit.customer_id, e)
        return False
    logger.info("Site visit %s exported to Google Sheets", visit.customer_id)
    return True

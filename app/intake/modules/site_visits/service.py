"""
SITE VISIT INTAKE
=================

One submission of the intake form becomes:

- one ``site_visits`` row keyed by the customer ID
- at most one service-specific details row (ceiling / gutter / roof)
- zero or more ``site_attachments`` (photos, drawings, videos)
- one ``customer_id_log`` entry, so the next form pre-fills the following ID

The form posts camelCase keys (``customerId``, ``hasWhatsApp`` ...);
``normalize_payload`` maps them to the snake_case column names used here.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.intake.audit import record_event
from app.intake.constants import ATTACHMENT_KINDS, CEILING_PRICES, DISTRICTS, SERVICE_TYPES, VISIT_STATUSES
from app.intake.modules.customer_ids.sequencer import validate_customer_id
from app.intake.modules.customer_ids.service import (
    DuplicateCustomerIdError,
    is_customer_id_issued,
    record_submitted_customer_id,
)
from app.intake.modules.site_visits.models import (
    CeilingArea,
    CeilingDetails,
    GutterDetails,
    RoofDetails,
    SiteAttachment,
    SiteVisit,
)
from app.intake.modules.site_visits.utils import (
    attachment_kind,
    clean_str,
    day_of_week,
    parse_bool,
    parse_date_received,
    parse_float,
    parse_int,
)
from app.intake.storage import Storage, attachment_key

logger = logging.getLogger(__name__)

_KEY_OVERRIDES = {
    "hasWhatsApp": "has_whatsapp",
    "hasWhatsAppNumber": "has_whatsapp_number",
}

_FLOAT_FIELDS = ("latitude", "longitude", "removal_charge", "additional_labour_charge", "price_per_square_feet")
_INT_FIELDS = ("nozzels", "end_caps", "chain_packets")

_GUTTER_TEXT_FIELDS = (
    "gutters_valance_b",
    "b_flashing_valance_b",
    "gutters",
    "valance_b",
    "b_flashing",
    "d_pipes",
    "wall_f_size",
    "wall_f",
    "blind_wall_flashing_size",
    "blind_wall_flashing",
    "ridge_cover",
    "rat_guard",
    "custom_design_note",
)
_ROOF_FIELDS = ("roof_type", "structure_type", "finish_type", "material_type", "color", "sub_type")


def _snake(key: str) -> str:
    if key in _KEY_OVERRIDES:
        return _KEY_OVERRIDES[key]
    s = re.sub(r"([A-Z])([A-Z][a-z])", r"\1_\2", key)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    return s.lower()


def normalize_payload(raw: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase form keys to snake_case. Already-snake keys pass through."""
    out: dict[str, Any] = {}
    for k, v in (raw or {}).items():
        out[_snake(str(k))] = v
    areas = out.get("ceiling_areas")
    if isinstance(areas, list):
        out["ceiling_areas"] = [
            {_snake(str(k)): v for k, v in a.items()} if isinstance(a, dict) else a for a in areas
        ]
    return out


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


def ceiling_price_per_sqft(ceiling_type: str | None) -> float:
    return float(CEILING_PRICES.get((ceiling_type or "").strip(), 0))


def ceiling_totals(areas: Iterable[dict[str, Any]], price_per_sqft: float) -> tuple[float, float]:
    total_area = 0.0
    for a in areas:
        total_area += (parse_float(a.get("length")) or 0.0) * (parse_float(a.get("width")) or 0.0)
    return total_area, total_area * (price_per_sqft or 0.0)


def validate_site_visit_payload(payload: dict[str, Any]) -> list[ValidationError]:
    """Validate a normalized (snake_case) payload. Returns every problem found, not just the first."""
    errs: list[ValidationError] = []

    customer_id = (payload.get("customer_id") or "").strip() if isinstance(payload.get("customer_id"), str) else ""
    if not customer_id:
        errs.append(ValidationError("customer_id", "Customer ID is required."))
    elif not validate_customer_id(customer_id):
        errs.append(ValidationError("customer_id", "Invalid Customer ID format (expected e.g. A-000a01)."))

    for field, label in (
        ("customer_name", "Customer name"),
        ("phone_number", "Phone number"),
        ("district", "District"),
        ("city", "City"),
    ):
        if not clean_str(payload.get(field)):
            errs.append(ValidationError(field, f"{label} is required."))

    district = clean_str(payload.get("district"))
    if district and district not in DISTRICTS:
        errs.append(ValidationError("district", f"Unknown district: {district}."))

    try:
        if parse_date_received(payload.get("date_received")) is None:
            errs.append(ValidationError("date_received", "Date received is required."))
    except ValueError:
        errs.append(ValidationError("date_received", "Date received must be an ISO date."))

    service_type = clean_str(payload.get("service_type"))
    if service_type not in SERVICE_TYPES:
        errs.append(ValidationError("service_type", f"Service type must be one of: {', '.join(SERVICE_TYPES)}."))

    status = clean_str(payload.get("status")) or "Pending"
    if status not in VISIT_STATUSES:
        errs.append(ValidationError("status", f"Status must be one of: {', '.join(VISIT_STATUSES)}."))

    for field in _FLOAT_FIELDS:
        try:
            v = parse_float(payload.get(field))
        except ValueError:
            errs.append(ValidationError(field, "Must be a number."))
            continue
        if v is not None and field in ("removal_charge", "additional_labour_charge", "price_per_square_feet") and v < 0:
            errs.append(ValidationError(field, "Must not be negative."))
    for field in _INT_FIELDS:
        try:
            v = parse_int(payload.get(field))
        except ValueError:
            errs.append(ValidationError(field, "Must be a whole number."))
            continue
        if v is not None and v < 0:
            errs.append(ValidationError(field, "Must not be negative."))

    if service_type == "Ceiling":
        areas = payload.get("ceiling_areas") or []
        if not isinstance(areas, list):
            errs.append(ValidationError("ceiling_areas", "Ceiling areas must be a list."))
        else:
            for i, a in enumerate(areas):
                try:
                    length = parse_float(a.get("length")) if isinstance(a, dict) else None
                    width = parse_float(a.get("width")) if isinstance(a, dict) else None
                except ValueError:
                    length = width = None
                if length is None or width is None or length < 0 or width < 0:
                    errs.append(ValidationError(f"ceiling_areas[{i}]", "Length and width must be non-negative numbers."))

    return errs


def get_site_visit_by_id(s, site_visit_id: int) -> SiteVisit | None:
    return s.query(SiteVisit).filter(SiteVisit.id == site_visit_id).one_or_none()


def get_site_visit_by_customer_id(s, customer_id: str) -> SiteVisit | None:
    return s.query(SiteVisit).filter(SiteVisit.customer_id == customer_id).one_or_none()


def get_attachment(s, site_visit_id: int, attachment_id: int) -> SiteAttachment | None:
    att = s.get(SiteAttachment, attachment_id)
    if att is None or att.site_visit_id != site_visit_id:
        return None
    return att


def list_site_visits(s, *, limit: int | None = None) -> list[SiteVisit]:
    q = s.query(SiteVisit).order_by(SiteVisit.created_at.desc(), SiteVisit.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def _attach_details(visit: SiteVisit, payload: dict[str, Any]) -> None:
    if visit.service_type == "Ceiling" and clean_str(payload.get("ceiling_type")):
        ceiling_type = clean_str(payload.get("ceiling_type"))
        price = parse_float(payload.get("price_per_square_feet"))
        if price is None:
            price = ceiling_price_per_sqft(ceiling_type)
        areas = payload.get("ceiling_areas") or []
        total_area, total_price = ceiling_totals(areas, price)
        details = CeilingDetails(
            ceiling_type=ceiling_type,
            has_macfoil=parse_bool(payload.get("has_macfoil")),
            price_per_square_feet=price,
            total_area=total_area,
            total_price=total_price,
        )
        for a in areas:
            length = parse_float(a.get("length")) or 0.0
            width = parse_float(a.get("width")) or 0.0
            details.areas.append(CeilingArea(length=length, width=width, area=length * width))
        visit.ceiling_details = details

    elif visit.service_type == "Gutters":
        kwargs: dict[str, Any] = {f: clean_str(payload.get(f)) for f in _GUTTER_TEXT_FIELDS}
        for f in _INT_FIELDS:
            kwargs[f] = parse_int(payload.get(f))
        visit.gutter_details = GutterDetails(**kwargs)

    elif visit.service_type == "Roof":
        visit.roof_details = RoofDetails(**{f: clean_str(payload.get(f)) for f in _ROOF_FIELDS})


def _store_attachments(
    visit: SiteVisit,
    files: Iterable[tuple[str | None, Any]],
    storage: Storage | None,
) -> None:
    stored: list[str] = []
    try:
        for kind, f in files:
            if f is None or not getattr(f, "filename", None):
                continue
            if storage is None:
                logger.warning("No storage configured; dropping upload %s for %s", f.filename, visit.customer_id)
                continue
            kind = kind if kind in ATTACHMENT_KINDS else attachment_kind(f.mimetype, f.filename)
            key, safe_name = attachment_key(visit.customer_id, kind, f.filename)
            data = f.read()
            storage.put_bytes(key, data, content_type=f.mimetype or None)
            stored.append(key)
            visit.attachments.append(
                SiteAttachment(
                    kind=kind,
                    filename=safe_name,
                    storage_key=key,
                    content_type=f.mimetype or None,
                    size_bytes=len(data),
                )
            )
    except Exception:
        # all uploads of a visit are kept or none are
        for key in stored:
            try:
                storage.delete(key)
            except Exception:
                logger.exception("Could not remove orphaned upload %s", key)
        raise


def create_site_visit(
    s,
    payload: dict[str, Any],
    *,
    files: Iterable[tuple[str | None, Any]] = (),
    storage: Storage | None = None,
) -> SiteVisit:
    """
    Persist a validated, normalized payload. Call ``validate_site_visit_payload`` first.

    Raises DuplicateCustomerIdError when a visit with the same customer ID exists.
    Caller commits.
    """
    customer_id = payload["customer_id"].strip()
    if get_site_visit_by_customer_id(s, customer_id) is not None:
        raise DuplicateCustomerIdError(customer_id)

    received = parse_date_received(payload.get("date_received"))
    now = datetime.utcnow()
    visit = SiteVisit(
        customer_id=customer_id,
        customer_name=clean_str(payload.get("customer_name")),
        date_received=received,
        day_of_week=day_of_week(received),
        phone_number=clean_str(payload.get("phone_number")),
        has_whatsapp=parse_bool(payload.get("has_whatsapp")),
        has_whatsapp_number=parse_bool(payload.get("has_whatsapp_number")),
        whatsapp_number=clean_str(payload.get("whatsapp_number")),
        district=clean_str(payload.get("district")),
        city=clean_str(payload.get("city")),
        address=clean_str(payload.get("address")),
        latitude=parse_float(payload.get("latitude")),
        longitude=parse_float(payload.get("longitude")),
        has_removals=parse_bool(payload.get("has_removals")),
        removal_charge=parse_float(payload.get("removal_charge")),
        has_additional_labour=parse_bool(payload.get("has_additional_labour")),
        additional_labour_charge=parse_float(payload.get("additional_labour_charge")),
        service_type=clean_str(payload.get("service_type")),
        status=clean_str(payload.get("status")) or "Pending",
        quotation_number=clean_str(payload.get("quotation_number")),
        quotation_attachment=clean_str(payload.get("quotation_attachment")),
        created_at=now,
        updated_at=now,
    )
    _attach_details(visit, payload)

    try:
        with s.begin_nested():
            s.add(visit)
            s.flush()
    except IntegrityError as e:
        # lost the race to a concurrent submission with the same ID
        raise DuplicateCustomerIdError(customer_id) from e

    if not is_customer_id_issued(s, customer_id):
        record_submitted_customer_id(s, customer_id, source="site_visit")

    _store_attachments(visit, files, storage)

    record_event(
        s,
        action="site_visit.create",
        entity_type="SiteVisit",
        entity_id=str(visit.id),
        metadata={
            "customer_id": customer_id,
            "service_type": visit.service_type,
            "attachments": len(visit.attachments),
        },
    )
    logger.info("Site visit %s created for customer %s (%s)", visit.id, customer_id, visit.service_type)
    return visit


def serialize_site_visit(visit: SiteVisit) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": visit.id,
        "customerId": visit.customer_id,
        "customerName": visit.customer_name,
        "dateReceived": visit.date_received.isoformat() if visit.date_received else None,
        "dayOfWeek": visit.day_of_week,
        "phoneNumber": visit.phone_number,
        "hasWhatsApp": visit.has_whatsapp,
        "hasWhatsAppNumber": visit.has_whatsapp_number,
        "whatsappNumber": visit.whatsapp_number,
        "district": visit.district,
        "city": visit.city,
        "address": visit.address,
        "latitude": visit.latitude,
        "longitude": visit.longitude,
        "hasRemovals": visit.has_removals,
        "removalCharge": visit.removal_charge,
        "hasAdditionalLabour": visit.has_additional_labour,
        "additionalLabourCharge": visit.additional_labour_charge,
        "serviceType": visit.service_type,
        "status": visit.status,
        "quotationNumber": visit.quotation_number,
        "quotationAttachment": visit.quotation_attachment,
        "createdAt": visit.created_at.isoformat() if visit.created_at else None,
        "ceilingDetails": None,
        "gutterDetails": None,
        "roofDetails": None,
        "attachments": [
            {
                "id": a.id,
                "kind": a.kind,
                "filename": a.filename,
                "contentType": a.content_type,
                "sizeBytes": a.size_bytes,
            }
            for a in visit.attachments
        ],
    }
    c = visit.ceiling_details
    if c is not None:
        out["ceilingDetails"] = {
            "ceilingType": c.ceiling_type,
            "hasMacfoil": c.has_macfoil,
            "pricePerSquareFeet": c.price_per_square_feet,
            "totalArea": c.total_area,
            "totalPrice": c.total_price,
            "areas": [{"length": a.length, "width": a.width, "area": a.area} for a in c.areas],
        }
    gd = visit.gutter_details
    if gd is not None:
        out["gutterDetails"] = {
            "guttersValanceB": gd.gutters_valance_b,
            "bFlashingValanceB": gd.b_flashing_valance_b,
            "gutters": gd.gutters,
            "valanceB": gd.valance_b,
            "bFlashing": gd.b_flashing,
            "dPipes": gd.d_pipes,
            "nozzels": gd.nozzels,
            "endCaps": gd.end_caps,
            "chainPackets": gd.chain_packets,
            "wallFSize": gd.wall_f_size,
            "wallF": gd.wall_f,
            "blindWallFlashingSize": gd.blind_wall_flashing_size,
            "blindWallFlashing": gd.blind_wall_flashing,
            "ridgeCover": gd.ridge_cover,
            "ratGuard": gd.rat_guard,
            "customDesignNote": gd.custom_design_note,
        }
    r = visit.roof_details
    if r is not None:
        out["roofDetails"] = {
            "roofType": r.roof_type,
            "structureType": r.structure_type,
            "finishType": r.finish_type,
            "materialType": r.material_type,
            "color": r.color,
            "subType": r.sub_type,
        }
    return out

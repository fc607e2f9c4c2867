from __future__ import annotations

import json

from flask import Blueprint, current_app, jsonify, request, send_file

from app.intake.db import db_session
from app.intake.modules.customer_ids.sequencer import validate_customer_id
from app.intake.modules.customer_ids.service import (
    DuplicateCustomerIdError,
    get_last_customer_id,
    peek_next_customer_id,
)
from app.intake.modules.sheets_export.service import export_site_visit
from app.intake.modules.site_visits.service import (
    create_site_visit,
    get_attachment,
    get_site_visit_by_id,
    list_site_visits,
    normalize_payload,
    serialize_site_visit,
    validate_site_visit_payload,
)
from app.intake.storage import storage_from_config

bp = Blueprint("site_visits", __name__)


def _read_submission() -> tuple[dict | None, list[tuple[str | None, object]]]:
    """
    The form posts multipart: a ``data`` field holding JSON plus files under
    ``images`` / ``drawings`` / ``videos`` (or a flat ``files`` list).
    Plain JSON bodies are accepted too.
    """
    if request.is_json:
        return request.get_json(silent=True), []

    raw = request.form.get("data")
    if raw:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None, []
    else:
        data = request.form.to_dict()

    files: list[tuple[str | None, object]] = []
    for field, kind in (("images", "image"), ("drawings", "drawing"), ("videos", "video"), ("files", None)):
        for f in request.files.getlist(field):
            files.append((kind, f))
    return data, files


@bp.get("/site-visits")
def site_visits_list():
    s = db_session()
    limit = request.args.get("limit", type=int)
    visits = list_site_visits(s, limit=limit)
    return jsonify([serialize_site_visit(v) for v in visits])


@bp.get("/site-visits/<int:site_visit_id>")
def site_visits_detail(site_visit_id: int):
    s = db_session()
    visit = get_site_visit_by_id(s, site_visit_id)
    if not visit:
        return jsonify({"error": "Site visit not found"}), 404
    return jsonify(serialize_site_visit(visit))


@bp.get("/site-visits/<int:site_visit_id>/attachments/<int:attachment_id>")
def site_visits_attachment(site_visit_id: int, attachment_id: int):
    s = db_session()
    att = get_attachment(s, site_visit_id, attachment_id)
    if not att:
        return jsonify({"error": "Attachment not found"}), 404
    storage = storage_from_config(current_app.config)
    if not storage.exists(att.storage_key):
        current_app.logger.error("Attachment %s missing from storage (key=%s)", att.id, att.storage_key)
        return jsonify({"error": "Attachment file is missing"}), 404
    return send_file(
        storage.open(att.storage_key),
        mimetype=att.content_type or "application/octet-stream",
        as_attachment=True,
        download_name=att.filename,
    )


@bp.post("/site-visits")
def site_visits_create():
    s = db_session()
    data, files = _read_submission()
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object (or multipart with a 'data' JSON field)."}), 400

    payload = normalize_payload(data)
    errs = validate_site_visit_payload(payload)
    if errs:
        return jsonify({
            "error": "Validation failed",
            "errors": [{"field": e.field, "message": e.message} for e in errs],
        }), 400

    storage = storage_from_config(current_app.config) if files else None
    try:
        visit = create_site_visit(s, payload, files=files, storage=storage)
        s.commit()
    except DuplicateCustomerIdError as e:
        s.rollback()
        current_app.logger.warning("Rejected duplicate customer ID %s", e.customer_id)
        return jsonify({
            "error": f"Customer ID {e.customer_id} is already in use",
            "nextCustomerId": peek_next_customer_id(s),
        }), 409

    exported = export_site_visit(current_app.extensions.get("sheet_exporter"), visit)

    return jsonify({
        "success": True,
        "message": "Site visit created successfully",
        "siteVisitId": visit.id,
        "customerId": visit.customer_id,
        "nextCustomerId": peek_next_customer_id(s),
        "exported": exported,
    })


@bp.get("/customer-ids/next")
def customer_ids_next():
    s = db_session()
    return jsonify({
        "customerId": peek_next_customer_id(s),
        "lastCustomerId": get_last_customer_id(s),
    })


@bp.route("/customer-ids/validate", methods=["GET", "POST"])
def customer_ids_validate():
    if request.method == "POST":
        payload = request.get_json(silent=True) or {}
        value = payload.get("customerId", payload.get("customer_id")) or request.form.get("customerId")
    else:
        value = request.args.get("customerId") or request.args.get("customer_id")
    return jsonify({"customerId": value, "valid": validate_customer_id(value)})

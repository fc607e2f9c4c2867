from flask import Blueprint, current_app

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return {
        "name": "Site Visit Intake",
        "endpoints": ["/api/site-visits", "/api/customer-ids/next", "/api/customer-ids/validate"],
        "sheets_export": current_app.extensions.get("sheet_exporter") is not None,
    }


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200

from __future__ import annotations

import mimetypes
from datetime import date, datetime


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on", "y")


def parse_float(value) -> float | None:
    """Parse an optional number from JSON or form input. Blank -> None; garbage raises ValueError."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(",", "")
    if not s:
        return None
    return float(s)


def parse_int(value) -> int | None:
    f = parse_float(value)
    if f is None:
        return None
    if f != int(f):
        raise ValueError(f"Expected a whole number, got {value!r}")
    return int(f)


def parse_date_received(value) -> date | None:
    """
    Accept ``YYYY-MM-DD`` or a full ISO timestamp (the browser sends
    ``Date.toISOString()``, e.g. ``2026-03-05T00:00:00.000Z``).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s).date()


def day_of_week(d: date) -> str:
    return d.strftime("%A")


def clean_str(value) -> str | None:
    s = ("" if value is None else str(value)).strip()
    return s or None


def attachment_kind(content_type: str | None, filename: str | None) -> str:
    """Classify an upload as image / video / drawing. PDFs and CAD files count as drawings."""
    ct = (content_type or "").lower()
    if not ct or ct == "application/octet-stream":
        ct = (mimetypes.guess_type(filename or "")[0] or "").lower()
    if ct.startswith("image/"):
        return "image"
    if ct.startswith("video/"):
        return "video"
    return "drawing"

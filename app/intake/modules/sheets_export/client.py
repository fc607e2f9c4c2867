from __future__ import annotations

import json
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any


class SheetsExportError(RuntimeError):
    pass


class SheetsRateLimited(SheetsExportError):
    pass


def _post_json(url: str, body: dict[str, Any], *, timeout_seconds: int, retries: int, label: str) -> dict[str, Any]:
    data = json.dumps(body).encode("utf-8")
    last_err: Exception | None = None
    for attempt in range(retries + 1):
        try:
            req = urllib.request.Request(url, data=data, method="POST")
            req.add_header("Content-Type", "application/json")
            req.add_header("Accept", "application/json")
            with urllib.request.urlopen(req, timeout=timeout_seconds) as resp:
                raw = resp.read()
                if not raw:
                    return {}
                try:
                    j = json.loads(raw.decode("utf-8"))
                except ValueError as e:
                    raise SheetsExportError(f"Invalid JSON from {label}") from e
                return j if isinstance(j, dict) else {"result": j}
        except urllib.error.HTTPError as e:
            if e.code == 429:
                last_err = SheetsRateLimited("Rate limited (429)")
                if attempt < retries:
                    time.sleep(min(2 * (attempt + 1), 10))
                continue
            try:
                err_body = e.read().decode("utf-8", errors="ignore")
            except OSError:
                err_body = ""
            raise SheetsExportError(f"HTTP {e.code} from {label}: {err_body[:300]}") from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            last_err = e
            if attempt < retries:
                time.sleep(min(1 * (attempt + 1), 5))
            continue
    raise SheetsExportError(f"{label} request failed after retries: {last_err}")


@dataclass(frozen=True)
class SheetsWebAppClient:
    """
    Posts one record to a Google Apps Script web app bound to the sheet.
    The script appends the row (and writes the header row on first use).
    """

    url: str
    timeout_seconds: int = 10
    retries: int = 1

    def append_record(self, record: dict[str, Any]) -> dict[str, Any]:
        result = _post_json(
            self.url, record, timeout_seconds=self.timeout_seconds, retries=self.retries, label="Sheets web app"
        )
        if result.get("success") is False:
            raise SheetsExportError(f"Sheets web app rejected record: {result.get('error') or result}")
        return result


@dataclass(frozen=True)
class SheetsApiClient:
    """Appends rows through the Sheets v4 ``values:append`` endpoint using an API key."""

    api_key: str
    spreadsheet_id: str
    range: str = "Sheet1!A:T"
    base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    timeout_seconds: int = 10
    retries: int = 1

    def append_url(self) -> str:
        path = (
            f"/{urllib.parse.quote(self.spreadsheet_id)}"
            f"/values/{urllib.parse.quote(self.range)}:append"
        )
        qs = urllib.parse.urlencode({"valueInputOption": "USER_ENTERED", "key": self.api_key})
        return self.base_url.rstrip("/") + path + "?" + qs

    def append_rows(self, rows: list[list[str]]) -> dict[str, Any]:
        return _post_json(
            self.append_url(),
            {"values": rows},
            timeout_seconds=self.timeout_seconds,
            retries=self.retries,
            label="Sheets API",
        )

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    sheets_export: str
    sheets_webapp_url: str
    sheets_api_key: str
    sheets_spreadsheet_id: str
    sheets_range: str
    sheets_timeout_seconds: int
    sheets_retries: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///intake.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        sheets_export=_getenv("SHEETS_EXPORT", "off").lower(),
        sheets_webapp_url=_getenv("SHEETS_WEBAPP_URL", ""),
        sheets_api_key=_getenv("SHEETS_API_KEY", ""),
        sheets_spreadsheet_id=_getenv("SHEETS_SPREADSHEET_ID", ""),
        sheets_range=_getenv("SHEETS_RANGE", "Sheet1!A:T"),
        sheets_timeout_seconds=_getenv_int("SHEETS_TIMEOUT_SECONDS", 10),
        sheets_retries=_getenv_int("SHEETS_RETRIES", 1),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # spreadsheet export: off | webapp | api
        "SHEETS_EXPORT": s.sheets_export,
        "SHEETS_WEBAPP_URL": s.sheets_webapp_url,
        "SHEETS_API_KEY": s.sheets_api_key,
        "SHEETS_SPREADSHEET_ID": s.sheets_spreadsheet_id,
        "SHEETS_RANGE": s.sheets_range,
        # export runs inside the POST request: keep timeout x (retries + 1) short
        "SHEETS_TIMEOUT_SECONDS": s.sheets_timeout_seconds,
        "SHEETS_RETRIES": s.sheets_retries,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        # site photos + videos (100MB per submission)
        "MAX_CONTENT_LENGTH": 100 * 1024 * 1024,
    }

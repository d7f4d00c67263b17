import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    mp_access_token: str
    mp_timeout_seconds: int
    app_url: str
    admin_password: str

    campaign_price: float
    campaign_currency: str
    statement_descriptor: str
    max_frame_bytes: int

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).") from e


def _getenv_float(name: str, default: float) -> float:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number (got {raw!r}).") from e


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///framecamp.db"),
        mp_access_token=_getenv("MP_ACCESS_TOKEN", ""),
        mp_timeout_seconds=_getenv_int("MP_TIMEOUT_SECONDS", 5),
        app_url=_getenv("APP_URL", ""),
        admin_password=os.environ.get("ADMIN_PASSWORD") or "",
        campaign_price=_getenv_float("CAMPAIGN_PRICE", 29.99),
        campaign_currency=_getenv("CAMPAIGN_CURRENCY", "BRL"),
        statement_descriptor=_getenv("STATEMENT_DESCRIPTOR", "CAMPANHA_DIGITAL"),
        max_frame_bytes=_getenv_int("MAX_FRAME_BYTES", 2 * 1024 * 1024),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "MP_ACCESS_TOKEN": s.mp_access_token,
        "MP_TIMEOUT_SECONDS": s.mp_timeout_seconds,
        "APP_URL": s.app_url,
        "ADMIN_PASSWORD": s.admin_password,
        "CAMPAIGN_PRICE": s.campaign_price,
        "CAMPAIGN_CURRENCY": s.campaign_currency,
        "STATEMENT_DESCRIPTOR": s.statement_descriptor,
        "MAX_FRAME_BYTES": s.max_frame_bytes,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # frames arrive base64-encoded inside JSON bodies (50MB)
        "MAX_CONTENT_LENGTH": 50 * 1024 * 1024,
    }

import pytest

from app.framecamp import create_app
from app.framecamp.config import load_config, load_settings


_KEYS = (
    "SECRET_KEY", "ENV", "DATABASE_URL", "MP_ACCESS_TOKEN", "MP_TIMEOUT_SECONDS", "APP_URL",
    "ADMIN_PASSWORD", "CAMPAIGN_PRICE", "CAMPAIGN_CURRENCY", "STATEMENT_DESCRIPTOR", "MAX_FRAME_BYTES",
    "STORAGE_BACKEND",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for k in _KEYS:
        monkeypatch.delenv(k, raising=False)


def test_defaults():
    s = load_settings()
    assert s.env == "development"
    assert s.database_url == "sqlite:///framecamp.db"
    assert s.campaign_price == 29.99
    assert s.campaign_currency == "BRL"
    assert s.statement_descriptor == "CAMPANHA_DIGITAL"
    assert s.mp_timeout_seconds == 5
    assert s.max_frame_bytes == 2 * 1024 * 1024
    assert s.admin_password == ""


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CAMPAIGN_PRICE", "49.90")
    monkeypatch.setenv("MP_TIMEOUT_SECONDS", "12")
    monkeypatch.setenv("APP_URL", " https://frames.example.com ")
    cfg = load_config()
    assert cfg["CAMPAIGN_PRICE"] == 49.90
    assert cfg["MP_TIMEOUT_SECONDS"] == 12
    assert cfg["APP_URL"] == "https://frames.example.com"


def test_invalid_number_is_a_config_error(monkeypatch):
    monkeypatch.setenv("MP_TIMEOUT_SECONDS", "soon")
    with pytest.raises(RuntimeError, match="MP_TIMEOUT_SECONDS"):
        load_settings()


def test_production_requires_postgres(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "strong-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///prod.db")
    with pytest.raises(RuntimeError, match="Postgres"):
        create_app()


def test_production_requires_secret_key(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app()

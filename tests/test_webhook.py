"""Tests for the payment webhook path of the campaign lifecycle."""
from datetime import datetime

import pytest

from app.framecamp import create_app
from app.framecamp.db import session_scope
from app.framecamp.models import AuditEvent, Base
from app.framecamp.modules.campaigns.models import Campaign
from app.framecamp.modules.campaigns.service import approve_campaign
from app.framecamp.modules.payments.mercadopago_client import PaymentProviderError


class FakePaymentClient:
    def __init__(self, payments=None):
        self.payments = payments or {}
        self.lookups = []

    def create_preference(self, body):
        raise AssertionError("not expected")

    def get_payment(self, payment_id):
        self.lookups.append(payment_id)
        p = self.payments.get(payment_id)
        if isinstance(p, Exception):
            raise p
        if p is None:
            raise PaymentProviderError("HTTP 404 from Mercado Pago: not found")
        return p


def _seed_campaign(app, campaign_id, status="pending"):
    with session_scope(app) as s:
        now = datetime.utcnow()
        s.add(
            Campaign(
                id=campaign_id,
                name=f"Campaign {campaign_id}",
                frame_storage_key=f"campaigns/{campaign_id}/frame.png",
                status=status,
                created_at=now,
                updated_at=now,
            )
        )


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    app.extensions["mercadopago_client"] = FakePaymentClient(
        {
            "111": {"id": 111, "status": "approved", "external_reference": "camp-1"},
            "222": {"id": 222, "status": "pending", "external_reference": "camp-1"},
            "333": {"id": 333, "status": "approved", "external_reference": None},
            "444": {"id": 444, "status": "approved", "external_reference": "camp-missing"},
            "555": {"id": 555, "status": "approved", "external_reference": "camp-2"},
            "666": PaymentProviderError("HTTP 500 from Mercado Pago: boom"),
        }
    )
    _seed_campaign(app, "camp-1")
    _seed_campaign(app, "camp-2", status="deleted")
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _status(app, campaign_id):
    with session_scope(app) as s:
        return s.get(Campaign, campaign_id).status


def test_approved_payment_approves_campaign(client, app):
    r = client.post("/api/webhook", json={"action": "payment.created", "type": "payment", "data": {"id": "111"}})
    assert r.status_code == 200
    assert _status(app, "camp-1") == "approved"
    with session_scope(app) as s:
        c = s.get(Campaign, "camp-1")
        assert c.payment_id == "111"
        assert c.approved_via == "webhook"


def test_numeric_payment_id_is_accepted(client, app):
    client.post("/api/webhook", json={"type": "payment", "data": {"id": 111}})
    assert app.extensions["mercadopago_client"].lookups == ["111"]
    assert _status(app, "camp-1") == "approved"


def test_pending_payment_does_not_approve(client, app):
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "222"}})
    assert r.status_code == 200
    assert _status(app, "camp-1") == "pending"


def test_payment_without_reference_is_ignored(client, app):
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "333"}})
    assert r.status_code == 200
    assert _status(app, "camp-1") == "pending"


def test_unknown_campaign_reference_still_200(client, app):
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "444"}})
    assert r.status_code == 200


def test_non_payment_notifications_skip_provider(client, app):
    r = client.post("/api/webhook", json={"type": "merchant_order", "data": {"id": "111"}})
    assert r.status_code == 200
    assert app.extensions["mercadopago_client"].lookups == []

    r = client.post("/api/webhook", json={"type": "payment", "data": {}})
    assert r.status_code == 200
    assert app.extensions["mercadopago_client"].lookups == []


def test_provider_error_is_logged_and_acknowledged(client, app):
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "666"}})
    assert r.status_code == 200
    assert _status(app, "camp-1") == "pending"


def test_missing_token_is_acknowledged(client, app):
    app.extensions.pop("mercadopago_client")
    app.config["MP_ACCESS_TOKEN"] = ""
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "111"}})
    assert r.status_code == 200
    assert _status(app, "camp-1") == "pending"


def test_query_string_notification(client, app):
    r = client.post("/api/webhook?type=payment&data.id=111")
    assert r.status_code == 200
    assert _status(app, "camp-1") == "approved"


def test_deleted_campaign_stays_deleted(client, app):
    r = client.post("/api/webhook", json={"type": "payment", "data": {"id": "555"}})
    assert r.status_code == 200
    assert _status(app, "camp-2") == "deleted"


def test_webhook_is_idempotent_with_redirect(client, app):
    with session_scope(app) as s:
        approve_campaign(s, s.get(Campaign, "camp-1"), via="redirect")
    client.post("/api/webhook", json={"type": "payment", "data": {"id": "111"}})
    client.post("/api/webhook", json={"type": "payment", "data": {"id": "111"}})
    assert _status(app, "camp-1") == "approved"
    with session_scope(app) as s:
        approvals = s.query(AuditEvent).filter(AuditEvent.action == "campaign.approve").count()
        assert approvals == 1
        assert s.query(AuditEvent).filter(AuditEvent.action == "payment.webhook").count() == 2

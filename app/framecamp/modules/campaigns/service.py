from __future__ import annotations

import hmac
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import update

from app.framecamp.audit import record_event
from app.framecamp.constants import (
    ALLOWED_TRANSITIONS,
    STATUS_APPROVED,
    STATUS_DELETED,
    STATUS_PENDING,
)
from app.framecamp.modules.campaigns.models import Campaign
from app.framecamp.modules.compositor.render import decode_data_url, normalize_frame
from app.framecamp.modules.payments.mercadopago_client import PaymentProviderError
from app.framecamp.modules.payments.service import build_preference_body

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.framecamp.modules.payments.mercadopago_client import MercadoPagoClient
    from app.framecamp.storage import Storage

logger = logging.getLogger(__name__)


class CampaignError(Exception):
    pass


class CampaignValidationError(CampaignError, ValueError):
    pass


class CampaignNotFound(CampaignError, LookupError):
    pass


class InvalidAdminPassword(CampaignError, PermissionError):
    pass


def build_frame_storage_key(campaign_id: str) -> str:
    return f"campaigns/{campaign_id}/frame.png"


def new_campaign_id(s: "Session", *, stamp: int | None = None) -> str:
    """`camp-<epoch millis>`; bumped forward on the rare same-millisecond collision."""
    if stamp is None:
        stamp = int(time.time() * 1000)
    while s.get(Campaign, f"camp-{stamp}") is not None:
        stamp += 1
    return f"camp-{stamp}"


def resolve_base_url(*, app_url: str | None, origin: str | None, host: str | None) -> str:
    """APP_URL, else the request Origin, else the Host header (http only for localhost)."""
    if app_url and app_url.strip():
        return app_url.strip().rstrip("/")
    if origin and origin.strip():
        return origin.strip().rstrip("/")
    host = (host or "").strip()
    protocol = "http" if "localhost" in host else "https"
    return f"{protocol}://{host}"


def validate_campaign_payload(payload: dict) -> list[str]:
    """Validate campaign creation payload. Returns list of errors."""
    errors = []
    name = payload.get("name")
    frame_image = payload.get("frame_image")
    if not isinstance(name, str) or not name.strip() or not isinstance(frame_image, str) or not frame_image.strip():
        errors.append("Name and frame_image are required")
    return errors


def create_campaign(
    s: "Session",
    payload: dict,
    *,
    base_url: str,
    config: dict,
    client: "MercadoPagoClient",
    storage: "Storage",
) -> tuple[Campaign, str]:
    """
    Store the frame, insert a pending campaign and open a checkout preference.
    Returns (campaign, init_point). Caller commits; nothing is committed when the provider call fails.
    """
    errors = validate_campaign_payload(payload)
    if errors:
        raise CampaignValidationError("; ".join(errors))

    name = payload["name"].strip()
    frame_png = normalize_frame(
        decode_data_url(payload["frame_image"]),
        max_bytes=int(config.get("MAX_FRAME_BYTES") or 2 * 1024 * 1024),
    )

    campaign_id = new_campaign_id(s)
    storage_key = build_frame_storage_key(campaign_id)

    now = datetime.utcnow()
    campaign = Campaign(
        id=campaign_id,
        name=name,
        frame_storage_key=storage_key,
        status=STATUS_PENDING,
        created_at=now,
        updated_at=now,
    )
    s.add(campaign)
    s.flush()

    body = build_preference_body(
        campaign_id=campaign_id,
        campaign_name=name,
        base_url=base_url,
        unit_price=float(config.get("CAMPAIGN_PRICE") or 29.99),
        currency_id=config.get("CAMPAIGN_CURRENCY") or "BRL",
        statement_descriptor=config.get("STATEMENT_DESCRIPTOR") or "CAMPANHA_DIGITAL",
    )
    preference = client.create_preference(body)
    init_point = preference.get("init_point")
    if not init_point:
        raise PaymentProviderError("Mercado Pago preference has no init_point.")

    storage.put_bytes(storage_key, frame_png, content_type="image/png")

    record_event(
        s,
        action="campaign.create",
        entity_type="Campaign",
        entity_id=campaign_id,
        metadata={"name": name, "preference_id": preference.get("id")},
    )
    logger.info("Campaign created id=%s name=%s (pending payment)", campaign_id, name)
    return campaign, init_point


def list_approved_campaigns(s: "Session") -> list[Campaign]:
    return (
        s.query(Campaign)
        .filter(Campaign.status == STATUS_APPROVED)
        .order_by(Campaign.created_at.desc(), Campaign.id.desc())
        .all()
    )


def get_visible_campaign(s: "Session", campaign_id: str) -> Campaign:
    campaign = s.get(Campaign, campaign_id)
    if campaign is None or not campaign.is_visible:
        raise CampaignNotFound("Campaign not found")
    return campaign


def _transition(s: "Session", campaign: Campaign, new_status: str, **values: Any) -> bool:
    """
    Apply a lifecycle transition as a single UPDATE guarded on the allowed source states,
    so a row another session already moved (e.g. deleted) is left untouched.
    Returns False for no-ops and lost races; raises on forbidden moves.
    """
    if campaign.status == new_status:
        return False
    if (campaign.status, new_status) not in ALLOWED_TRANSITIONS:
        raise CampaignError(f"Cannot move campaign {campaign.id} from {campaign.status} to {new_status}")

    sources = sorted(old for old, new in ALLOWED_TRANSITIONS if new == new_status)
    values.setdefault("updated_at", datetime.utcnow())
    s.flush()
    result = s.execute(
        update(Campaign)
        .where(Campaign.id == campaign.id, Campaign.status.in_(sources))
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    s.refresh(campaign)
    if result.rowcount != 1:
        logger.warning(
            "Campaign %s changed concurrently; %s not applied (now %s)", campaign.id, new_status, campaign.status
        )
        return False
    return True


def approve_campaign(s: "Session", campaign: Campaign, *, via: str, payment_id: str | None = None) -> bool:
    """
    pending -> approved. Idempotent; deleted campaigns stay deleted.
    Returns True when the status actually changed.
    """
    if campaign.status == STATUS_DELETED:
        logger.warning("Ignoring approval of deleted campaign id=%s via=%s", campaign.id, via)
        return False
    now = datetime.utcnow()
    values: dict[str, Any] = {"updated_at": now, "approved_at": now, "approved_via": via}
    if payment_id:
        values["payment_id"] = payment_id
    if not _transition(s, campaign, STATUS_APPROVED, **values):
        return False

    record_event(
        s,
        action="campaign.approve",
        entity_type="Campaign",
        entity_id=campaign.id,
        metadata={"via": via, "payment_id": payment_id},
    )
    logger.info("Campaign approved id=%s via=%s payment_id=%s", campaign.id, via, payment_id)
    return True


def get_campaign(s: "Session", campaign_id: str, *, force_approve: bool = False) -> Campaign:
    """
    Fetch a visible campaign. `force_approve` is the optimistic path taken when the
    buyer lands on the success redirect before the webhook arrives.
    """
    campaign = get_visible_campaign(s, campaign_id)
    if force_approve:
        approve_campaign(s, campaign, via="redirect")
    return campaign


def check_admin_password(password: Any, admin_password: str) -> bool:
    if not admin_password or not isinstance(password, str) or not password:
        return False
    return hmac.compare_digest(password.encode("utf-8"), admin_password.encode("utf-8"))


def delete_campaign(s: "Session", campaign_id: str, *, password: Any, admin_password: str) -> bool:
    """
    Soft-delete. Unknown or already deleted ids are accepted silently.
    Returns True when a campaign was deleted by this call.
    """
    if not check_admin_password(password, admin_password):
        record_event(
            s,
            action="campaign.delete_denied",
            entity_type="Campaign",
            entity_id=campaign_id,
            reason="Incorrect password",
        )
        raise InvalidAdminPassword("Incorrect password")

    campaign = s.get(Campaign, campaign_id)
    if campaign is None or campaign.status == STATUS_DELETED:
        return False
    now = datetime.utcnow()
    if not _transition(s, campaign, STATUS_DELETED, updated_at=now, deleted_at=now):
        return False

    record_event(
        s,
        action="campaign.delete",
        entity_type="Campaign",
        entity_id=campaign.id,
        metadata={"name": campaign.name},
    )
    logger.info("Campaign deleted id=%s", campaign.id)
    return True


def handle_payment_notification(s: "Session", client: "MercadoPagoClient", payment_id: str) -> Campaign | None:
    """
    Look the payment up at the provider and approve the campaign it references.
    Provider errors propagate; the webhook endpoint decides how to answer.
    """
    payment = client.get_payment(payment_id)
    status = payment.get("status")
    reference = payment.get("external_reference")

    record_event(
        s,
        action="payment.webhook",
        entity_type="Payment",
        entity_id=str(payment_id),
        metadata={"status": status, "external_reference": reference},
    )

    if status != "approved" or not reference:
        logger.info("Payment %s not actionable (status=%s reference=%s)", payment_id, status, reference)
        return None

    campaign = s.get(Campaign, str(reference))
    if campaign is None:
        logger.warning("Payment %s references unknown campaign %s", payment_id, reference)
        return None
    approve_campaign(s, campaign, via="webhook", payment_id=str(payment_id))
    return campaign


def campaign_summary(campaign: Campaign) -> dict[str, Any]:
    return {"id": campaign.id, "name": campaign.name}


def campaign_detail(campaign: Campaign, *, frame_image: str | None) -> dict[str, Any]:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "frame_image": frame_image,
        "status": campaign.status,
        "created_at": campaign.created_at.isoformat(sep=" ", timespec="seconds") if campaign.created_at else None,
    }

from __future__ import annotations

from flask import Blueprint, Response, current_app, g, jsonify, request

from app.framecamp.db import db_session
from app.framecamp.modules.campaigns.service import (
    CampaignNotFound,
    CampaignValidationError,
    InvalidAdminPassword,
    campaign_detail,
    campaign_summary,
    create_campaign,
    delete_campaign,
    get_campaign,
    get_visible_campaign,
    list_approved_campaigns,
    resolve_base_url,
)
from app.framecamp.modules.compositor.render import ImageInputError, to_data_url
from app.framecamp.modules.payments.mercadopago_client import PaymentError
from app.framecamp.modules.payments.service import payment_client
from app.framecamp.storage import StorageError, storage_from_config

bp = Blueprint("campaigns", __name__)


def request_base_url() -> str:
    return resolve_base_url(
        app_url=current_app.config.get("APP_URL"),
        origin=request.headers.get("Origin"),
        host=request.host,
    )


def _json_object() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def read_campaign_frame(campaign) -> bytes | None:
    storage = storage_from_config(current_app.config)
    try:
        return storage.read_bytes(campaign.frame_storage_key)
    except StorageError as e:
        current_app.logger.error(
            "Frame missing for campaign=%s (request_id=%s): %s", campaign.id, getattr(g, "request_id", None), e
        )
        return None


# ---------- Create ----------
@bp.post("/campaigns")
def campaigns_create():
    s = db_session()
    payload = _json_object()
    storage = storage_from_config(current_app.config)
    try:
        client = payment_client(current_app)
        campaign, init_point = create_campaign(
            s,
            payload,
            base_url=request_base_url(),
            config=current_app.config,
            client=client,
            storage=storage,
        )
    except (CampaignValidationError, ImageInputError) as e:
        s.rollback()
        return jsonify({"error": str(e)}), 400
    except PaymentError as e:
        s.rollback()
        current_app.logger.error("Payment preference failed (request_id=%s): %s", getattr(g, "request_id", None), e)
        return jsonify({"error": str(e)}), 500

    try:
        s.commit()
    except Exception:
        s.rollback()
        storage.delete(campaign.frame_storage_key)
        raise
    return jsonify({"id": campaign.id, "init_point": init_point})


# ---------- List ----------
@bp.get("/campaigns")
def campaigns_list():
    s = db_session()
    return jsonify([campaign_summary(c) for c in list_approved_campaigns(s)])


# ---------- Detail ----------
@bp.get("/campaigns/<campaign_id>")
def campaign_get(campaign_id: str):
    s = db_session()
    force_approve = (request.args.get("force_approve") or "").strip() == "true"
    try:
        campaign = get_campaign(s, campaign_id, force_approve=force_approve)
    except CampaignNotFound as e:
        return jsonify({"error": str(e)}), 404
    s.commit()

    frame = read_campaign_frame(campaign)
    return jsonify(campaign_detail(campaign, frame_image=to_data_url(frame) if frame is not None else None))


@bp.get("/campaigns/<campaign_id>/frame.png")
def campaign_frame(campaign_id: str):
    s = db_session()
    try:
        campaign = get_visible_campaign(s, campaign_id)
    except CampaignNotFound as e:
        return jsonify({"error": str(e)}), 404
    frame = read_campaign_frame(campaign)
    if frame is None:
        return jsonify({"error": "Frame not found"}), 404
    return Response(frame, mimetype="image/png")


# ---------- Delete ----------
@bp.delete("/campaigns/<campaign_id>")
def campaign_delete(campaign_id: str):
    s = db_session()
    payload = _json_object()
    try:
        delete_campaign(
            s,
            campaign_id,
            password=payload.get("password"),
            admin_password=current_app.config.get("ADMIN_PASSWORD") or "",
        )
    except InvalidAdminPassword as e:
        s.commit()  # keep the denied attempt in the audit trail
        return jsonify({"error": str(e)}), 401
    s.commit()
    return jsonify({"success": True})

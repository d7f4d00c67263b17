from __future__ import annotations

from flask import Blueprint, current_app, g, request

from app.framecamp.db import db_session
from app.framecamp.modules.campaigns.service import handle_payment_notification
from app.framecamp.modules.payments.service import extract_payment_notification, payment_client

bp = Blueprint("payments", __name__)


@bp.post("/webhook")
def webhook():
    """
    Provider notification. Always answers 200 so the provider does not keep
    redelivering; failures are logged and the redirect path remains as fallback.
    """
    payload = request.get_json(silent=True)
    payment_id = extract_payment_notification(payload if isinstance(payload, dict) else None, request.args.to_dict())
    if payment_id is None:
        return "", 200

    s = db_session()
    try:
        client = payment_client(current_app)
        handle_payment_notification(s, client, payment_id)
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception(
            "Webhook Error (payment_id=%s request_id=%s)", payment_id, getattr(g, "request_id", None)
        )
    return "", 200

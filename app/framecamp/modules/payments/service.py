from __future__ import annotations

from typing import Any

from flask import Flask

from app.framecamp.constants import CHECKOUT_ITEM_ID
from app.framecamp.modules.payments.mercadopago_client import MercadoPagoClient, PaymentConfigError

_EXTENSION_KEY = "mercadopago_client"


def payment_client(app: Flask) -> MercadoPagoClient:
    """
    Lazily build the provider client; a missing token only fails the requests that need it.
    Tests (or alternative providers) may pre-seed app.extensions["mercadopago_client"].
    """
    client = app.extensions.get(_EXTENSION_KEY)
    if client is not None:
        return client
    token = (app.config.get("MP_ACCESS_TOKEN") or "").strip()
    if not token:
        raise PaymentConfigError("Mercado Pago access token (MP_ACCESS_TOKEN) is not configured.")
    client = MercadoPagoClient(
        access_token=token,
        timeout_seconds=int(app.config.get("MP_TIMEOUT_SECONDS") or 5),
    )
    app.extensions[_EXTENSION_KEY] = client
    return client


def build_preference_body(
    *,
    campaign_id: str,
    campaign_name: str,
    base_url: str,
    unit_price: float,
    currency_id: str,
    statement_descriptor: str,
) -> dict[str, Any]:
    base = base_url.rstrip("/")
    return {
        "items": [
            {
                "id": CHECKOUT_ITEM_ID,
                "title": f"Criação de Campanha: {campaign_name}",
                "quantity": 1,
                "unit_price": unit_price,
                "currency_id": currency_id,
            }
        ],
        "back_urls": {
            "success": f"{base}/?payment_status=approved&campaign_id={campaign_id}",
            "failure": f"{base}/?payment_status=failed",
            "pending": f"{base}/?payment_status=pending",
        },
        "auto_return": "approved",
        "notification_url": f"{base}/api/webhook",
        "statement_descriptor": statement_descriptor,
        "external_reference": campaign_id,
    }


def extract_payment_notification(payload: dict[str, Any] | None, args: dict[str, Any] | None = None) -> str | None:
    """
    Return the payment id announced by a webhook, or None when the notification is
    about something else (merchant_order, plan, ...).

    The JSON body wins; the query string (`?type=payment&data.id=...`) is a fallback.
    """
    payload = payload or {}
    args = args or {}

    kind = payload.get("type") or args.get("type")
    if kind != "payment":
        return None

    data = payload.get("data")
    payment_id = data.get("id") if isinstance(data, dict) else None
    if not payment_id:
        payment_id = args.get("data.id")
    if payment_id is None or str(payment_id).strip() == "":
        return None
    return str(payment_id).strip()

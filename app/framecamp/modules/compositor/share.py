from __future__ import annotations

import re
from typing import Any

from app.framecamp.constants import DEFAULT_DOWNLOAD_NAME

_WHITESPACE_RE = re.compile(r"\s+")


def download_filename(campaign_name: str | None) -> str:
    name = campaign_name or DEFAULT_DOWNLOAD_NAME
    return f"{_WHITESPACE_RE.sub('-', name).lower()}.png"


def campaign_link(base_url: str, campaign_id: str) -> str:
    return f"{base_url.rstrip('/')}/?c={campaign_id}"


def share_payload(base_url: str, *, campaign_id: str, campaign_name: str) -> dict[str, Any]:
    """Payload for the Web Share API (or a clipboard fallback: `text + " " + url`)."""
    return {
        "title": campaign_name,
        "text": f"Participe da campanha: {campaign_name}! Crie sua foto personalizada aqui:",
        "url": campaign_link(base_url, campaign_id),
    }

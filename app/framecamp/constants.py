"""
Central constants for the FrameCamp application.
"""
from __future__ import annotations

# Drawing surface (portrait 4:5); frames are stretched to exactly this size.
CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1350

# Zoom slider bounds
MIN_SCALE = 0.1
MAX_SCALE = 5.0

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_DELETED = "deleted"
CAMPAIGN_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_DELETED)

# Allowed lifecycle transitions (deleted is terminal)
ALLOWED_TRANSITIONS = frozenset(
    {
        (STATUS_PENDING, STATUS_APPROVED),
        (STATUS_PENDING, STATUS_DELETED),
        (STATUS_APPROVED, STATUS_DELETED),
    }
)

CHECKOUT_ITEM_ID = "criacao-campanha"
DEFAULT_DOWNLOAD_NAME = "campanha"
SHARED_PHOTO_FILENAME = "minha-foto-campanha.jpg"

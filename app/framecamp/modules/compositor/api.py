from __future__ import annotations

import io
import math

from flask import Blueprint, current_app, jsonify, request, send_file

from app.framecamp.constants import SHARED_PHOTO_FILENAME
from app.framecamp.db import db_session
from app.framecamp.modules.campaigns.api import read_campaign_frame, request_base_url
from app.framecamp.modules.campaigns.service import CampaignNotFound, get_visible_campaign
from app.framecamp.modules.compositor.editor import ImageState, initial_state, zoom
from app.framecamp.modules.compositor.render import (
    ImageInputError,
    compose,
    export_jpeg,
    export_png,
    load_frame,
    load_photo,
)
from app.framecamp.modules.compositor.share import download_filename, share_payload

bp = Blueprint("compositor", __name__)


def _form_float(name: str) -> float | None:
    raw = (request.form.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number.") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a number.")
    return value


@bp.post("/campaigns/<campaign_id>/compose")
def campaign_compose(campaign_id: str):
    s = db_session()
    try:
        campaign = get_visible_campaign(s, campaign_id)
    except CampaignNotFound as e:
        return jsonify({"error": str(e)}), 404

    fmt = (request.form.get("format") or "png").strip().lower()
    if fmt not in ("png", "jpeg", "jpg"):
        return jsonify({"error": "format must be png or jpeg."}), 400

    try:
        x = _form_float("x")
        y = _form_float("y")
        scale = _form_float("scale")

        photo = None
        f = request.files.get("photo")
        if f is not None and f.filename:
            photo = load_photo(f.read())

        frame_bytes = read_campaign_frame(campaign)
        if frame_bytes is None:
            return jsonify({"error": "Frame not found"}), 404
        frame = load_frame(frame_bytes)
    except (ValueError, ImageInputError) as e:
        return jsonify({"error": str(e)}), 400

    if photo is not None and scale is None:
        state = initial_state(photo.width, photo.height)
    else:
        state = ImageState(scale=1.0)
    if scale is not None:
        state = zoom(state, scale)
    state = ImageState(x=x if x is not None else state.x, y=y if y is not None else state.y, scale=state.scale)

    image = compose(photo, frame, state)
    if fmt == "png":
        data, mimetype, name = export_png(image), "image/png", download_filename(campaign.name)
    else:
        data, mimetype, name = export_jpeg(image, quality=95), "image/jpeg", SHARED_PHOTO_FILENAME

    current_app.logger.info("Composed %s for campaign=%s (photo=%s)", fmt, campaign.id, photo is not None)
    return send_file(io.BytesIO(data), mimetype=mimetype, as_attachment=True, download_name=name)


@bp.get("/campaigns/<campaign_id>/share")
def campaign_share(campaign_id: str):
    s = db_session()
    try:
        campaign = get_visible_campaign(s, campaign_id)
    except CampaignNotFound as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(share_payload(request_base_url(), campaign_id=campaign.id, campaign_name=campaign.name))

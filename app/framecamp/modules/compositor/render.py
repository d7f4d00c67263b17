from __future__ import annotations

import base64
import binascii
import io
import logging

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from app.framecamp.constants import CANVAS_HEIGHT, CANVAS_WIDTH
from app.framecamp.modules.compositor.editor import ImageState, draw_box

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Aguardando Moldura..."


class ImageInputError(ValueError):
    pass


class FrameImageError(ImageInputError):
    pass


class PhotoImageError(ImageInputError):
    pass


def decode_data_url(value: str) -> bytes:
    """Accept `data:<mime>;base64,<payload>` or a bare base64 payload."""
    raw = (value or "").strip()
    if raw.startswith("data:"):
        header, sep, payload = raw.partition(",")
        if not sep or ";base64" not in header:
            raise FrameImageError("Frame image must be a base64 data URL.")
        raw = payload
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FrameImageError("Frame image is not valid base64.") from e


def to_data_url(data: bytes, content_type: str = "image/png") -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def _open_image(data: bytes, error_cls: type[ImageInputError], label: str) -> Image.Image:
    if not data:
        raise error_cls(f"{label} is empty.")
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise error_cls(f"{label} could not be decoded.") from e
    im = ImageOps.exif_transpose(im)
    return im.convert("RGBA")


def load_photo(data: bytes) -> Image.Image:
    """Decode a user photo (EXIF orientation applied) as RGBA."""
    return _open_image(data, PhotoImageError, "Photo")


def load_frame(data: bytes) -> Image.Image:
    return _open_image(data, FrameImageError, "Frame image")


def normalize_frame(data: bytes, *, max_bytes: int) -> bytes:
    """
    Validate an uploaded frame and stretch it to the canvas size.
    Returns PNG bytes so transparency survives.
    """
    if len(data) > max_bytes:
        raise FrameImageError(
            f"Frame image is too large (maximum {max_bytes // (1024 * 1024) or 1}MB). Please use a lighter image."
        )
    frame = load_frame(data)
    if frame.size != (CANVAS_WIDTH, CANVAS_HEIGHT):
        logger.info("Resizing frame from %sx%s to %sx%s", frame.width, frame.height, CANVAS_WIDTH, CANVAS_HEIGHT)
        frame = frame.resize((CANVAS_WIDTH, CANVAS_HEIGHT), Image.Resampling.LANCZOS)
    return export_png(frame)


def _photo_layer(photo: Image.Image, state: ImageState) -> Image.Image | None:
    """Render only the visible part of the scaled photo onto a transparent canvas-sized layer."""
    if state.scale <= 0:
        return None
    left, top, _, _ = draw_box(photo.width, photo.height, state)

    # visible source region, in photo pixels
    u0 = max(0.0, -left / state.scale)
    v0 = max(0.0, -top / state.scale)
    u1 = min(float(photo.width), (CANVAS_WIDTH - left) / state.scale)
    v1 = min(float(photo.height), (CANVAS_HEIGHT - top) / state.scale)
    if u1 <= u0 or v1 <= v0:
        return None

    dest_x = left + u0 * state.scale
    dest_y = top + v0 * state.scale
    out_w = max(1, round((u1 - u0) * state.scale))
    out_h = max(1, round((v1 - v0) * state.scale))

    visible = photo.resize((out_w, out_h), Image.Resampling.LANCZOS, box=(u0, v0, u1, v1))
    layer = Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), (0, 0, 0, 0))
    layer.paste(visible, (round(dest_x), round(dest_y)))
    return layer


def _placeholder_layer() -> Image.Image:
    layer = Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    draw.rectangle((0, 0, CANVAS_WIDTH - 1, CANVAS_HEIGHT - 1), outline=(204, 204, 204, 255), width=20)

    wash = Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), (0, 0, 0, 26))
    layer = Image.alpha_composite(layer, wash)

    draw = ImageDraw.Draw(layer)
    try:
        font = ImageFont.truetype("DejaVuSans.ttf", 60)
    except OSError:
        font = ImageFont.load_default(size=60)
    # centred horizontally, alphabetic baseline on the middle row
    draw.text(
        (CANVAS_WIDTH // 2, CANVAS_HEIGHT // 2), PLACEHOLDER_TEXT, font=font, fill=(102, 102, 102, 255), anchor="ms"
    )
    return layer


def compose(photo: Image.Image | None, frame: Image.Image | None, state: ImageState) -> Image.Image:
    """Photo underneath, frame (or a placeholder when no frame is loaded) on top."""
    canvas = Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), (0, 0, 0, 0))

    if photo is not None:
        layer = _photo_layer(photo, state)
        if layer is not None:
            canvas = Image.alpha_composite(canvas, layer)

    if frame is not None:
        top = frame.convert("RGBA")
        if top.size != (CANVAS_WIDTH, CANVAS_HEIGHT):
            top = top.resize((CANVAS_WIDTH, CANVAS_HEIGHT), Image.Resampling.LANCZOS)
        canvas = Image.alpha_composite(canvas, top)
    else:
        canvas = Image.alpha_composite(canvas, _placeholder_layer())

    return canvas


def export_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def export_jpeg(image: Image.Image, *, quality: int = 95) -> bytes:
    """JPEG has no alpha; transparent areas are flattened onto white."""
    rgba = image.convert("RGBA")
    flat = Image.new("RGB", rgba.size, (255, 255, 255))
    flat.paste(rgba, mask=rgba.getchannel("A"))
    buf = io.BytesIO()
    flat.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()

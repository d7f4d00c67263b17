"""Tests for the image compositor (editor state, rendering, sharing)."""
import io

import pytest
from PIL import Image

from app.framecamp.modules.compositor.editor import (
    CanvasRect,
    DragSession,
    ImageState,
    draw_box,
    event_position,
    initial_state,
    zoom,
)
from app.framecamp.modules.compositor.render import (
    FrameImageError,
    PhotoImageError,
    compose,
    decode_data_url,
    export_jpeg,
    export_png,
    load_photo,
    normalize_frame,
    to_data_url,
)
from app.framecamp.modules.compositor.share import download_filename, share_payload


def _png(size, color):
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _is_red(px):
    r, g, b, a = px
    return r >= 250 and g <= 5 and b <= 5 and a == 255


def _corner_frame():
    """Transparent frame with an opaque blue 10x10 square in the top-left corner."""
    frame = Image.new("RGBA", (1080, 1350), (0, 0, 0, 0))
    frame.paste(Image.new("RGBA", (10, 10), (0, 0, 255, 255)), (0, 0))
    return frame


# ---------- editor ----------
def test_initial_state_covers_canvas():
    st = initial_state(100, 100)
    assert st == ImageState(x=0.0, y=0.0, scale=13.5)

    st = initial_state(2160, 1350)  # wide photo: height limits
    assert st.scale == pytest.approx(1.0)

    st = initial_state(540, 2700)  # tall photo: width limits
    assert st.scale == pytest.approx(2.0)


def test_initial_state_rejects_empty_photo():
    with pytest.raises(ValueError):
        initial_state(0, 10)


def test_zoom_clamps_to_slider_range():
    st = ImageState(x=5, y=6, scale=1)
    assert zoom(st, 2.5) == ImageState(x=5, y=6, scale=2.5)
    assert zoom(st, 0.01).scale == 0.1
    assert zoom(st, 50).scale == 5.0


def test_event_position_maps_displayed_canvas_to_canvas_pixels():
    rect = CanvasRect(left=100, top=50, width=540, height=675)  # displayed at half size
    assert event_position(100, 50, rect) == (0.0, 0.0)
    assert event_position(370, 387.5, rect) == (540.0, 675.0)


def test_drag_session_pans_by_delta():
    drag = DragSession()
    st = ImageState(scale=2)

    # not dragging yet
    assert drag.move((10, 10), st, has_photo=True) == st

    drag.start((100, 100))
    st = drag.move((130, 90), st, has_photo=True)
    assert (st.x, st.y) == (30, -10)
    st = drag.move((140, 100), st, has_photo=True)
    assert (st.x, st.y) == (40, 0)
    assert st.scale == 2

    drag.end()
    assert drag.move((500, 500), st, has_photo=True) == st


def test_drag_without_photo_is_ignored():
    drag = DragSession()
    drag.start((0, 0))
    st = ImageState()
    assert drag.move((50, 50), st, has_photo=False) == st


def test_draw_box_centres_photo():
    assert draw_box(100, 100, ImageState(scale=2)) == (440.0, 575.0, 200.0, 200.0)
    assert draw_box(100, 100, ImageState(x=10, y=-5, scale=1)) == (500.0, 620.0, 100.0, 100.0)


# ---------- render ----------
def test_compose_photo_under_frame():
    photo = Image.new("RGBA", (100, 100), (255, 0, 0, 255))
    out = compose(photo, _corner_frame(), initial_state(100, 100))
    assert out.size == (1080, 1350)
    assert _is_red(out.getpixel((540, 675)))
    assert out.getpixel((5, 5)) == (0, 0, 255, 255)
    assert _is_red(out.getpixel((1079, 1349)))


def test_compose_respects_pan():
    photo = Image.new("RGBA", (100, 100), (255, 0, 0, 255))
    st = ImageState(x=1000, y=0, scale=13.5)  # photo spans x 865..2215
    out = compose(photo, _corner_frame(), st)
    assert out.getpixel((100, 675))[3] == 0
    assert _is_red(out.getpixel((1000, 675)))


def test_compose_photo_fully_off_canvas():
    photo = Image.new("RGBA", (10, 10), (255, 0, 0, 255))
    out = compose(photo, _corner_frame(), ImageState(x=5000, y=0, scale=1))
    assert out.getpixel((540, 675))[3] == 0


def test_compose_without_photo_shows_only_frame():
    out = compose(None, _corner_frame(), ImageState())
    assert out.getpixel((5, 5)) == (0, 0, 255, 255)
    assert out.getpixel((540, 675))[3] == 0


def test_compose_without_frame_draws_placeholder():
    out = compose(None, None, ImageState())
    border = out.getpixel((5, 5))
    assert border[3] == 255
    assert border[0] > 150
    # translucent wash away from the text and border
    assert out.getpixel((540, 100)) == (0, 0, 0, 26)


def test_placeholder_text_sits_on_middle_baseline():
    out = compose(None, None, ImageState())
    rows = [
        y
        for y in range(500, 850)
        if any(out.getpixel((x, y))[0] > 60 and out.getpixel((x, y))[3] > 200 for x in range(100, 980, 2))
    ]
    assert rows
    assert min(rows) < 660
    # descenders ("g") dip just below the baseline, nothing further
    assert 675 <= max(rows) <= 695


def test_normalize_frame_stretches_to_canvas():
    data = normalize_frame(_png((200, 250), (0, 0, 0, 0)), max_bytes=2 * 1024 * 1024)
    with Image.open(io.BytesIO(data)) as im:
        assert im.format == "PNG"
        assert im.size == (1080, 1350)
        assert im.mode == "RGBA"
        assert im.getpixel((10, 10))[3] == 0


def test_normalize_frame_rejects_large_files():
    with pytest.raises(FrameImageError, match="too large"):
        normalize_frame(_png((20, 20), (1, 2, 3, 255)), max_bytes=10)


def test_load_photo_rejects_garbage():
    with pytest.raises(PhotoImageError):
        load_photo(b"definitely not an image")
    with pytest.raises(PhotoImageError):
        load_photo(b"")


def test_export_jpeg_flattens_on_white():
    out = compose(None, Image.new("RGBA", (1080, 1350), (0, 0, 0, 0)), ImageState())
    with Image.open(io.BytesIO(export_jpeg(out))) as im:
        assert im.format == "JPEG"
        r, g, b = im.getpixel((540, 675))
        assert min(r, g, b) > 245


def test_export_png_roundtrips_size():
    out = compose(None, _corner_frame(), ImageState())
    with Image.open(io.BytesIO(export_png(out))) as im:
        assert im.size == (1080, 1350)


def test_data_url_helpers():
    raw = _png((2, 2), (0, 0, 0, 255))
    url = to_data_url(raw)
    assert url.startswith("data:image/png;base64,")
    assert decode_data_url(url) == raw
    assert decode_data_url(url.split(",", 1)[1]) == raw
    with pytest.raises(FrameImageError):
        decode_data_url("data:image/png;base64,***")
    with pytest.raises(FrameImageError):
        decode_data_url("data:image/png,plain")


# ---------- share ----------
def test_download_filename():
    assert download_filename("Campanha do  Deputado Fulano") == "campanha-do-deputado-fulano.png"
    assert download_filename(None) == "campanha.png"
    assert download_filename("") == "campanha.png"


def test_share_payload():
    p = share_payload("https://frames.example.com/", campaign_id="camp-1", campaign_name="Festa")
    assert p == {
        "title": "Festa",
        "text": "Participe da campanha: Festa! Crie sua foto personalizada aqui:",
        "url": "https://frames.example.com/?c=camp-1",
    }

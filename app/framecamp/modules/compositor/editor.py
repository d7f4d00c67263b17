from __future__ import annotations

from dataclasses import dataclass, replace

from app.framecamp.constants import CANVAS_HEIGHT, CANVAS_WIDTH, MAX_SCALE, MIN_SCALE


@dataclass(frozen=True)
class ImageState:
    """Photo offset from the canvas centre (canvas pixels) and its scale factor."""

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0


@dataclass(frozen=True)
class CanvasRect:
    """On-screen bounding box of the drawing surface, in client pixels."""

    left: float
    top: float
    width: float
    height: float


def initial_state(photo_width: int, photo_height: int) -> ImageState:
    """Cover fit: the photo fills the whole canvas, centred."""
    if photo_width <= 0 or photo_height <= 0:
        raise ValueError("Photo dimensions must be positive.")
    scale = max(CANVAS_WIDTH / photo_width, CANVAS_HEIGHT / photo_height)
    return ImageState(x=0.0, y=0.0, scale=scale)


def clamp_scale(scale: float) -> float:
    return min(MAX_SCALE, max(MIN_SCALE, scale))


def zoom(state: ImageState, scale: float) -> ImageState:
    return replace(state, scale=clamp_scale(scale))


def event_position(client_x: float, client_y: float, rect: CanvasRect) -> tuple[float, float]:
    """Map client (CSS) coordinates to canvas coordinates; the canvas may be displayed scaled."""
    if rect.width <= 0 or rect.height <= 0:
        return (0.0, 0.0)
    scale_x = CANVAS_WIDTH / rect.width
    scale_y = CANVAS_HEIGHT / rect.height
    return ((client_x - rect.left) * scale_x, (client_y - rect.top) * scale_y)


def draw_box(photo_width: int, photo_height: int, state: ImageState) -> tuple[float, float, float, float]:
    """Return (left, top, width, height) of the photo on the canvas for a given state."""
    draw_w = photo_width * state.scale
    draw_h = photo_height * state.scale
    cx = CANVAS_WIDTH / 2 + state.x
    cy = CANVAS_HEIGHT / 2 + state.y
    return (cx - draw_w / 2, cy - draw_h / 2, draw_w, draw_h)


class DragSession:
    """Pointer drag that pans the photo by the distance moved since the previous event."""

    def __init__(self) -> None:
        self.dragging = False
        self.last_pos: tuple[float, float] = (0.0, 0.0)

    def start(self, pos: tuple[float, float]) -> None:
        self.dragging = True
        self.last_pos = pos

    def move(self, pos: tuple[float, float], state: ImageState, *, has_photo: bool) -> ImageState:
        if not self.dragging or not has_photo:
            return state
        dx = pos[0] - self.last_pos[0]
        dy = pos[1] - self.last_pos[1]
        self.last_pos = pos
        return replace(state, x=state.x + dx, y=state.y + dy)

    def end(self) -> None:
        self.dragging = False

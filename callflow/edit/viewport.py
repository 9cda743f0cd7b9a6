"""
Viewport Controller - zoom level, pan offset and the screen/world transform.

Every pointer-derived position goes through screen_to_world(), and the view
layer draws nodes with world_to_screen(). Using this one pair everywhere
keeps node positions stable across zoom levels.
"""

import logging
from typing import Optional, Tuple

from callflow.edit.constants import (
    ADD_NODE_ANCHOR,
    ZOOM_BUTTON_STEP,
    ZOOM_DEFAULT,
    ZOOM_MAX,
    ZOOM_MIN,
    ZOOM_PRECISION,
    ZOOM_WHEEL_STEP,
)
from callflow.models import Position

logger = logging.getLogger(__name__)


def clamp_zoom(value: float) -> float:
    return max(ZOOM_MIN, min(ZOOM_MAX, round(value, ZOOM_PRECISION)))


class ViewportController:
    """Owns zoom and pan for one canvas."""

    def __init__(self, canvas_origin: Position = Position(0, 0),
                 add_node_anchor: Tuple[float, float] = ADD_NODE_ANCHOR):
        self.zoom: float = ZOOM_DEFAULT
        self.pan: Position = Position(0, 0)
        self.canvas_origin = canvas_origin
        self.add_node_anchor = Position(*add_node_anchor)

    def set_canvas_origin(self, origin: Position) -> None:
        """Screen offset of the canvas element (its bounding rect's top-left)."""
        self.canvas_origin = origin

    # --- Zoom ---

    def _step_zoom(self, step: float) -> float:
        self.zoom = clamp_zoom(self.zoom + step)
        return self.zoom

    def zoom_in(self) -> float:
        return self._step_zoom(ZOOM_BUTTON_STEP)

    def zoom_out(self) -> float:
        return self._step_zoom(-ZOOM_BUTTON_STEP)

    def wheel(self, delta_y: float, modifier: bool) -> Optional[float]:
        """
        Apply a wheel event. Zooms only while a modifier key is held.

        Scrolling up (negative delta) zooms in. Returns the new zoom, or None
        if the event was not consumed and should scroll the page instead.
        """
        if not modifier or delta_y == 0:
            return None
        step = ZOOM_WHEEL_STEP if delta_y < 0 else -ZOOM_WHEEL_STEP
        return self._step_zoom(step)

    # --- Pan ---

    def set_pan(self, pan: Position) -> None:
        self.pan = pan

    def reset_view(self) -> None:
        self.zoom = ZOOM_DEFAULT
        self.pan = Position(0, 0)
        logger.debug("Viewport reset")

    # --- Transforms ---

    def screen_to_world(self, screen: Position) -> Position:
        return Position(
            (screen.x - self.canvas_origin.x - self.pan.x) / self.zoom,
            (screen.y - self.canvas_origin.y - self.pan.y) / self.zoom,
        )

    def world_to_screen(self, world: Position) -> Position:
        return Position(
            world.x * self.zoom + self.pan.x + self.canvas_origin.x,
            world.y * self.zoom + self.pan.y + self.canvas_origin.y,
        )

    def add_node_position(self) -> Position:
        """World position for a node added without a pointer (palette button)."""
        anchor = self.canvas_origin + self.add_node_anchor
        return self.screen_to_world(anchor).clamped()

    def snapshot(self) -> dict:
        return {'zoom': self.zoom, 'pan': self.pan.as_dict()}

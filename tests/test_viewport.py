"""
Tests for ViewportController: zoom clamping, reset and the screen/world
transform pair.
"""

import pytest

from callflow.edit.constants import ZOOM_DEFAULT, ZOOM_MAX, ZOOM_MIN
from callflow.edit.viewport import ViewportController, clamp_zoom
from callflow.models import Position


@pytest.fixture
def viewport():
    return ViewportController()


class TestZoom:
    def test_clamp(self):
        assert clamp_zoom(0.1) == ZOOM_MIN
        assert clamp_zoom(5) == ZOOM_MAX
        assert clamp_zoom(1.234) == 1.23

    def test_buttons_step_and_stop_at_limits(self, viewport):
        assert viewport.zoom_in() == 1.2
        for _ in range(10):
            viewport.zoom_in()
        assert viewport.zoom == ZOOM_MAX

        for _ in range(20):
            viewport.zoom_out()
        assert viewport.zoom == ZOOM_MIN

    def test_repeated_steps_do_not_drift(self, viewport):
        for _ in range(3):
            viewport.zoom_in()
        for _ in range(3):
            viewport.zoom_out()
        assert viewport.zoom == ZOOM_DEFAULT

    def test_wheel_requires_modifier(self, viewport):
        assert viewport.wheel(-100, modifier=False) is None
        assert viewport.zoom == ZOOM_DEFAULT

    def test_wheel_up_zooms_in(self, viewport):
        assert viewport.wheel(-100, modifier=True) == 1.1
        assert viewport.wheel(100, modifier=True) == 1.0

    def test_wheel_zero_delta_not_consumed(self, viewport):
        assert viewport.wheel(0, modifier=True) is None


class TestReset:
    def test_reset_restores_defaults(self, viewport):
        viewport.zoom_in()
        viewport.set_pan(Position(40, -30))
        viewport.reset_view()
        assert viewport.snapshot() == {'zoom': 1.0, 'pan': {'x': 0, 'y': 0}}

    def test_reset_is_idempotent(self, viewport):
        viewport.set_pan(Position(10, 10))
        viewport.reset_view()
        first = viewport.snapshot()
        viewport.reset_view()
        assert viewport.snapshot() == first


class TestTransforms:
    def test_identity_at_default(self, viewport):
        assert viewport.screen_to_world(Position(120, 80)) == Position(120, 80)

    def test_zoom_pan_and_origin(self):
        viewport = ViewportController(canvas_origin=Position(10, 20))
        viewport.zoom = 2.0
        viewport.set_pan(Position(30, 40))
        world = viewport.screen_to_world(Position(250, 260))
        assert world == Position(105, 100)
        assert viewport.world_to_screen(world) == Position(250, 260)

    def test_add_node_position_uses_anchor(self, viewport):
        assert viewport.add_node_position() == Position(300, 200)

    def test_add_node_position_follows_view(self):
        viewport = ViewportController(add_node_anchor=(300, 200))
        viewport.zoom = 0.5
        viewport.set_pan(Position(100, 0))
        assert viewport.add_node_position() == Position(400, 400)

    def test_add_node_position_never_negative(self):
        viewport = ViewportController(add_node_anchor=(10, 10))
        viewport.set_pan(Position(500, 500))
        assert viewport.add_node_position() == Position(0, 0)

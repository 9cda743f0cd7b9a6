"""
Tests for the NiceGUI canvas handlers: hit-testing and event routing.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from callflow.config import EditorSettings
from callflow.edit.controller import IDLE, Connecting, EditingLabel, NodeSelected
from callflow.edit.handlers import (
    NiceGuiNotifier,
    find_target,
    normalize_pointer_payload,
    setup_edit_handlers,
)
from callflow.editor import FlowEditor
from callflow.models import Position


@pytest.fixture
def editor():
    editor = FlowEditor.new(settings=EditorSettings())
    # start sits at (100, 100); this one at (300, 100)
    editor.store.add_node('end', Position(300, 100))
    return editor


@pytest.fixture
def refresh():
    return MagicMock()


@pytest.fixture
def handlers(editor, refresh):
    return setup_edit_handlers(editor, refresh)


def pointer(x, y, **extra):
    return SimpleNamespace(args={'offsetX': x, 'offsetY': y, 'button': 0, **extra})


class TestNormalize:
    def test_dom_event_args(self):
        payload = normalize_pointer_payload(pointer(5, 6, ctrlKey=True, deltaY=-3))
        assert payload == {'x': 5, 'y': 6, 'button': 0, 'modifier': True, 'delta_y': -3}

    def test_coordinate_pair(self):
        assert normalize_pointer_payload([1, 2])['x'] == 1

    def test_unusable_payload(self):
        assert normalize_pointer_payload('click') is None


class TestFindTarget:
    def test_node_body_and_label(self, editor):
        assert find_target(editor, Position(150, 140)) == ('node', 'start')
        assert find_target(editor, Position(150, 110)) == ('label', 'start')

    def test_connection_handle(self, editor):
        assert find_target(editor, Position(220, 130)) == ('handle', 'start')

    def test_delete_button_only_on_regular_nodes(self, editor):
        assert find_target(editor, Position(420, 100)) == ('delete', 'node-1')
        assert find_target(editor, Position(220, 100)) != ('delete', 'start')

    def test_edges(self, editor):
        conn = editor.store.add_connection('start', 'node-1')
        assert find_target(editor, Position(260, 130)) == ('edge', conn.id)
        assert find_target(editor, Position(260, 105)) == ('edge_label', conn.id)

    def test_canvas(self, editor):
        assert find_target(editor, Position(700, 700)) == ('canvas', None)

    def test_respects_zoom(self, editor):
        editor.viewport.zoom = 2.0
        assert find_target(editor, Position(300, 280)) == ('node', 'start')


class TestRouting:
    def test_drag_node(self, editor, handlers, refresh):
        handlers['handle_mouse_down'](pointer(150, 140))
        handlers['handle_mouse_move'](pointer(170, 150))
        handlers['handle_mouse_up']()

        assert editor.store.start_node.position == Position(120, 110)
        assert refresh.call_count == 2

    def test_press_on_canvas_pans(self, editor, handlers):
        handlers['handle_mouse_down'](pointer(700, 700))
        assert editor.interaction.is_panning
        handlers['handle_mouse_move'](pointer(720, 690))
        handlers['handle_mouse_leave']()
        assert editor.viewport.pan == Position(20, -10)
        assert not editor.interaction.is_panning

    def test_move_without_gesture_does_not_refresh(self, handlers, refresh):
        handlers['handle_mouse_move'](pointer(10, 10))
        refresh.assert_not_called()

    def test_connect_via_handle(self, editor, handlers):
        handlers['handle_click'](pointer(220, 130))
        assert editor.interaction.state == Connecting('start')

        handlers['handle_click'](pointer(350, 120))

        [conn] = editor.store.connections
        assert (conn.source, conn.target, conn.label) == ('start', 'node-1', 'Default')

    def test_label_band_while_connecting_connects(self, editor, handlers):
        handlers['handle_click'](pointer(220, 130))
        handlers['handle_click'](pointer(350, 110))
        assert len(editor.store.connections) == 1

    @pytest.fixture
    def connecting(self, editor, handlers):
        """Edge start -> node-1, then a connect gesture started from node-2."""
        conn = editor.store.add_connection('start', 'node-1')
        editor.store.add_node('play', Position(100, 300))
        handlers['handle_click'](pointer(220, 330))
        assert editor.interaction.state == Connecting('node-2')
        return conn

    def test_edge_click_while_connecting_only_cancels(self, editor, handlers, connecting):
        handlers['handle_click'](pointer(260, 130))

        assert editor.interaction.state == IDLE
        assert editor.store.connections == [connecting]

    def test_edge_label_click_while_connecting_only_cancels(self, editor, handlers, connecting):
        handlers['handle_click'](pointer(260, 105))

        assert editor.interaction.state == IDLE
        assert connecting.label == 'Default'

    def test_delete_marker_click_while_connecting_only_cancels(self, editor, handlers, connecting):
        handlers['handle_click'](pointer(420, 100))

        assert editor.interaction.state == IDLE
        assert 'node-1' in editor.store
        assert editor.store.connections == [connecting]

    def test_blur_on_unlabelled_edge_keeps_it_unlabelled(self, editor, handlers):
        conn = editor.store.add_connection('start', 'node-1', label=None)
        handlers['handle_click'](pointer(260, 105))
        assert isinstance(editor.interaction.state, EditingLabel)

        handlers['handle_label_blur']()

        assert conn.label is None

    def test_click_label_opens_editor(self, editor, handlers):
        handlers['handle_click'](pointer(150, 110))
        assert isinstance(editor.interaction.state, EditingLabel)

        handlers['handle_label_input']('Welcome')
        handlers['handle_keyboard'](SimpleNamespace(
            action=SimpleNamespace(keydown=True), key=SimpleNamespace(name='Enter'),
        ))

        assert editor.store.start_node.label == 'Welcome'

    def test_label_blur_commits(self, editor, handlers):
        handlers['handle_click'](pointer(350, 110))
        handlers['handle_label_input']('Bye')
        handlers['handle_label_blur']()
        assert editor.store.get_node('node-1').label == 'Bye'

    def test_click_body_selects(self, editor, handlers):
        handlers['handle_click'](pointer(350, 140))
        assert editor.interaction.state == NodeSelected('node-1')

    def test_delete_button(self, editor, handlers):
        handlers['handle_click'](pointer(420, 100))
        assert 'node-1' not in editor.store

    def test_click_edge_deletes_it(self, editor, handlers):
        editor.store.add_connection('start', 'node-1')
        handlers['handle_click'](pointer(260, 130))
        assert editor.store.connections == []

    def test_double_click_opens_config(self, editor, refresh):
        opened = []
        handlers = setup_edit_handlers(editor, refresh, open_config_dialog=opened.append)
        handlers['handle_double_click'](pointer(350, 140))
        handlers['handle_double_click'](pointer(150, 140))
        assert opened == ['node-1']

    def test_wheel_needs_modifier(self, editor, handlers, refresh):
        handlers['handle_wheel'](pointer(0, 0, deltaY=-100))
        assert editor.viewport.zoom == 1.0
        handlers['handle_wheel'](pointer(0, 0, deltaY=-100, ctrlKey=True))
        assert editor.viewport.zoom == 1.1
        refresh.assert_called_once()

    def test_keyup_ignored(self, editor, handlers, refresh):
        handlers['handle_keyboard'](SimpleNamespace(
            action=SimpleNamespace(keydown=False), key='Enter',
        ))
        refresh.assert_not_called()


def test_nicegui_notifier_maps_variant():
    with patch('callflow.edit.handlers.ui') as mock_ui:
        NiceGuiNotifier().notify("Cannot delete", "Start node cannot be deleted", "destructive")
        mock_ui.notify.assert_called_once_with(
            "Cannot delete: Start node cannot be deleted", type='negative', position='bottom',
        )

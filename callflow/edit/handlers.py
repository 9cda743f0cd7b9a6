"""
Edit Handlers - NiceGUI event handlers for the flow canvas.

DOM pointer events from the canvas element are normalized here, hit-tested
against the node geometry the visualizer draws, and forwarded to the
InteractionStateMachine. Hit-testing decides which single handler gets a
pointer-down: a press on a node never also reaches the canvas pan handler.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from nicegui import ui

from callflow.edit.controller import LABEL_CONNECTION, LABEL_NODE
from callflow.graph_viz import EDGE_LABEL_OFFSET, NODE_HEIGHT, NODE_WIDTH
from callflow.models import Position

if TYPE_CHECKING:
    from callflow.editor import FlowEditor

logger = logging.getLogger(__name__)

# DOM event keys requested from the browser
POINTER_EVENT_KEYS = ['offsetX', 'offsetY', 'button', 'ctrlKey', 'metaKey', 'deltaY']

# Hit radii in world units
HANDLE_RADIUS = 8
DELETE_RADIUS = 10
EDGE_HIT_RADIUS = 6
EDGE_LABEL_HALF_WIDTH = 30
EDGE_LABEL_HALF_HEIGHT = 10

# Upper part of a node box is its label; a click there edits the label
LABEL_BAND = NODE_HEIGHT / 2

NOTIFY_TYPES = {'destructive': 'negative', 'success': 'positive', 'default': 'info'}


class NiceGuiNotifier:
    """Notifier that shows toasts via ui.notify."""

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        message = f"{title}: {description}" if description else title
        ui.notify(message, type=NOTIFY_TYPES.get(variant, 'info'), position='bottom')


def normalize_pointer_payload(raw: Any) -> Optional[Dict[str, Any]]:
    """Extract offsets, button and modifiers from a NiceGUI event payload."""
    if hasattr(raw, 'args'):
        raw = raw.args

    if isinstance(raw, (list, tuple)) and len(raw) >= 2:
        return {'x': raw[0], 'y': raw[1], 'button': 0, 'modifier': False, 'delta_y': 0}
    if isinstance(raw, dict):
        return {
            'x': raw.get('offsetX', raw.get('x', 0)) or 0,
            'y': raw.get('offsetY', raw.get('y', 0)) or 0,
            'button': raw.get('button', 0) or 0,
            'modifier': bool(raw.get('ctrlKey') or raw.get('metaKey')),
            'delta_y': raw.get('deltaY', 0) or 0,
        }
    return None


def _near(point: Position, center: Position, radius: float) -> bool:
    return (point.x - center.x) ** 2 + (point.y - center.y) ** 2 <= radius ** 2


def find_target(editor: "FlowEditor", screen: Position) -> Tuple[str, Optional[str]]:
    """
    Classify what is under a screen point.

    Returns (kind, id) with kind one of: 'handle', 'delete', 'label', 'node',
    'edge_label', 'edge', 'canvas'. Later nodes are drawn on top, so they
    are tested first.
    """
    world = editor.viewport.screen_to_world(screen)
    store = editor.store

    for node in reversed(store.nodes):
        x, y = node.position.x, node.position.y
        if _near(world, Position(x + NODE_WIDTH, y + NODE_HEIGHT / 2), HANDLE_RADIUS):
            return 'handle', node.id
        if not node.is_start and _near(world, Position(x + NODE_WIDTH, y), DELETE_RADIUS):
            return 'delete', node.id
        if x <= world.x <= x + NODE_WIDTH and y <= world.y <= y + NODE_HEIGHT:
            if world.y <= y + LABEL_BAND:
                return 'label', node.id
            return 'node', node.id

    for conn in store.connections:
        source = store.get_node(conn.source).position
        target = store.get_node(conn.target).position
        mid = Position(
            (source.x + NODE_WIDTH + target.x) / 2,
            (source.y + target.y + NODE_HEIGHT) / 2,
        )
        if (abs(world.x - mid.x) <= EDGE_LABEL_HALF_WIDTH
                and abs(world.y - (mid.y - EDGE_LABEL_OFFSET)) <= EDGE_LABEL_HALF_HEIGHT):
            return 'edge_label', conn.id
        if _near(world, mid, EDGE_HIT_RADIUS):
            return 'edge', conn.id

    return 'canvas', None


def setup_edit_handlers(
    editor: "FlowEditor",
    refresh_chart_ui: Callable[[], None],
    open_config_dialog: Optional[Callable[[str], None]] = None,
) -> Dict[str, Callable]:
    """
    Set up all canvas event handlers.

    Args:
        editor: FlowEditor session driving the canvas
        refresh_chart_ui: Function to redraw the chart from the current state
        open_config_dialog: Called with a node id when its config dialog should open

    Returns:
        Dict with handler functions for binding to UI events
    """
    machine = editor.interaction
    if open_config_dialog:
        machine.set_on_config_request(open_config_dialog)

    def _screen(event) -> Optional[Tuple[Position, Dict[str, Any]]]:
        payload = normalize_pointer_payload(event)
        if payload is None:
            return None
        return Position(payload['x'], payload['y']), payload

    def handle_mouse_down(event):
        """Route a press to exactly one of: node drag, canvas pan."""
        parsed = _screen(event)
        if parsed is None:
            return
        screen, payload = parsed
        kind, target_id = find_target(editor, screen)
        logger.debug(f"Pointer down on {kind} {target_id or ''}")
        if kind in ('node', 'label'):
            machine.pointer_down_node(target_id, screen, payload['button'])
        elif kind == 'canvas':
            machine.pointer_down_canvas(screen, payload['button'])

    def handle_mouse_move(event):
        if not (machine.is_dragging or machine.is_panning):
            return
        parsed = _screen(event)
        if parsed is None:
            return
        machine.pointer_move(parsed[0])
        refresh_chart_ui()

    def handle_mouse_up(event=None):
        if machine.is_dragging or machine.is_panning:
            machine.pointer_up()
            refresh_chart_ui()

    def handle_mouse_leave(event=None):
        if machine.is_dragging or machine.is_panning:
            machine.pointer_leave()
            refresh_chart_ui()

    def handle_click(event):
        parsed = _screen(event)
        if parsed is None:
            return
        kind, target_id = find_target(editor, parsed[0])
        if machine.connection_source_id is not None and kind not in ('handle', 'node', 'label'):
            # Anything but a node cancels the connect gesture and nothing else.
            machine.click_canvas()
        elif kind == 'handle':
            machine.activate_connection_handle(target_id)
        elif kind == 'delete':
            machine.delete_node(target_id)
        elif kind == 'label' and machine.connection_source_id is None:
            machine.begin_label_edit(LABEL_NODE, target_id)
        elif kind in ('node', 'label'):
            machine.click_node(target_id)
        elif kind == 'edge_label':
            machine.begin_label_edit(LABEL_CONNECTION, target_id)
        elif kind == 'edge':
            machine.delete_connection(target_id)
        else:
            machine.click_canvas()
        refresh_chart_ui()

    def handle_double_click(event):
        parsed = _screen(event)
        if parsed is None:
            return
        kind, target_id = find_target(editor, parsed[0])
        if kind in ('node', 'label'):
            machine.double_click_node(target_id)

    def handle_wheel(event):
        payload = normalize_pointer_payload(event)
        if payload is None:
            return
        if machine.wheel(payload['delta_y'], payload['modifier']) is not None:
            refresh_chart_ui()

    def handle_keyboard(e):
        """Enter commits and Escape cancels an inline label edit."""
        if not e.action.keydown:
            return
        key = getattr(e.key, 'name', e.key)
        if machine.key_down(str(key)):
            refresh_chart_ui()

    def handle_label_input(value: str):
        machine.set_label_buffer(value or '')

    def handle_label_blur(event=None):
        if machine.editing_target:
            machine.label_blur()
            refresh_chart_ui()

    return {
        'handle_mouse_down': handle_mouse_down,
        'handle_mouse_move': handle_mouse_move,
        'handle_mouse_up': handle_mouse_up,
        'handle_mouse_leave': handle_mouse_leave,
        'handle_click': handle_click,
        'handle_double_click': handle_double_click,
        'handle_wheel': handle_wheel,
        'handle_keyboard': handle_keyboard,
        'handle_label_input': handle_label_input,
        'handle_label_blur': handle_label_blur,
    }

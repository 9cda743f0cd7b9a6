"""
Interaction State Machine - single source of truth for canvas editing state.

Pointer and keyboard events from the view layer arrive here, get classified
into gestures, and are turned into GraphStore / ViewportController calls.

Exactly one state is active at a time:
  Idle, NodeSelected, Connecting   - resting states
  Dragging, PanningCanvas          - pointer gestures (remember where to resume)
  EditingLabel                     - inline label editor (remembers where to resume)

States are frozen snapshots; a transition replaces the whole state, so two
gestures can never be active at once.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

from callflow.collaborators import LoggingNotifier, Notifier
from callflow.edit.constants import KEY_CANCEL, KEY_COMMIT, PRIMARY_BUTTON
from callflow.edit.viewport import ViewportController
from callflow.exceptions import NodeNotFoundError, StructuralRejection
from callflow.graph_store import DEFAULT_CONNECTION_LABEL, GraphStore
from callflow.models import Connection, Node, Position

logger = logging.getLogger(__name__)

LABEL_NODE = 'node'
LABEL_CONNECTION = 'connection'


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class NodeSelected:
    node_id: str


@dataclass(frozen=True)
class Connecting:
    source_id: str


RestingState = Union[Idle, NodeSelected, Connecting]


@dataclass(frozen=True)
class Dragging:
    node_id: str
    grab_offset: Position
    resume: RestingState = Idle()


@dataclass(frozen=True)
class PanningCanvas:
    start_screen: Position
    start_pan: Position
    resume: RestingState = Idle()


@dataclass(frozen=True)
class EditingLabel:
    target_kind: str
    target_id: str
    buffer: str = ''
    resume: RestingState = Idle()
    # the connection had no label when the edit began
    label_absent: bool = False


EditState = Union[Idle, NodeSelected, Connecting, Dragging, PanningCanvas, EditingLabel]

IDLE = Idle()


class InteractionStateMachine:
    """Turns canvas gestures into graph and viewport mutations."""

    def __init__(self, store: GraphStore, viewport: ViewportController,
                 notifier: Optional[Notifier] = None):
        self.store = store
        self.viewport = viewport
        self.notifier = notifier or LoggingNotifier()
        self._state: EditState = IDLE
        self._on_state_change: Optional[Callable[[EditState], None]] = None
        self._on_config_request: Optional[Callable[[str], None]] = None
        store.subscribe(self._on_graph_event)

    def detach(self) -> None:
        """Stop following the store (the session is being discarded)."""
        self.store.unsubscribe(self._on_graph_event)

    @property
    def state(self) -> EditState:
        return self._state

    def set_on_state_change(self, callback: Callable[[EditState], None]):
        self._on_state_change = callback

    def set_on_config_request(self, callback: Callable[[str], None]):
        """Called with a node id when the operator asks to open its config dialog."""
        self._on_config_request = callback

    def _transition(self, new_state: EditState) -> EditState:
        if new_state == self._state:
            return self._state
        logger.debug(f"{type(self._state).__name__} -> {type(new_state).__name__}")
        self._state = new_state
        if self._on_state_change:
            self._on_state_change(self._state)
        return self._state

    # --- Queries for the view layer ---

    def _resting(self) -> RestingState:
        if isinstance(self._state, (Dragging, PanningCanvas, EditingLabel)):
            return self._state.resume
        return self._state

    @property
    def selected_node_id(self) -> Optional[str]:
        resting = self._resting()
        return resting.node_id if isinstance(resting, NodeSelected) else None

    @property
    def selected_node(self) -> Optional[Node]:
        node_id = self.selected_node_id
        return self.store.get_node(node_id) if node_id else None

    @property
    def connection_source_id(self) -> Optional[str]:
        resting = self._resting()
        return resting.source_id if isinstance(resting, Connecting) else None

    @property
    def editing_target(self) -> Optional[tuple]:
        if isinstance(self._state, EditingLabel):
            return (self._state.target_kind, self._state.target_id)
        return None

    @property
    def is_dragging(self) -> bool:
        return isinstance(self._state, Dragging)

    @property
    def is_panning(self) -> bool:
        return isinstance(self._state, PanningCanvas)

    # --- Pointer gestures ---

    def _finish_gesture(self) -> EditState:
        if isinstance(self._state, (Dragging, PanningCanvas)):
            return self._transition(self._state.resume)
        return self._state

    def pointer_down_node(self, node_id: str, screen: Position, button: int = PRIMARY_BUTTON) -> EditState:
        """Start dragging a node. The view layer must not also forward this to the canvas."""
        if button != PRIMARY_BUTTON or node_id not in self.store:
            return self._state
        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        if isinstance(self._state, (Dragging, PanningCanvas)):
            return self._state

        node = self.store.get_node(node_id)
        grab_offset = self.viewport.screen_to_world(screen) - node.position
        return self._transition(Dragging(node_id, grab_offset, self._resting()))

    def pointer_down_canvas(self, screen: Position, button: int = PRIMARY_BUTTON) -> EditState:
        """Start panning from a pointer-down on empty canvas background."""
        if button != PRIMARY_BUTTON:
            return self._state
        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        if isinstance(self._state, (Dragging, PanningCanvas)):
            return self._state
        return self._transition(PanningCanvas(screen, self.viewport.pan, self._resting()))

    def pointer_move(self, screen: Position) -> EditState:
        state = self._state
        if isinstance(state, Dragging):
            world = self.viewport.screen_to_world(screen)
            self.store.move_node(state.node_id, world - state.grab_offset)
        elif isinstance(state, PanningCanvas):
            self.viewport.set_pan(state.start_pan + (screen - state.start_screen))
        return self._state

    def pointer_up(self) -> EditState:
        return self._finish_gesture()

    def pointer_leave(self) -> EditState:
        return self._finish_gesture()

    # --- Clicks ---

    def click_node(self, node_id: str) -> Optional[Connection]:
        """
        Handle a click on a node.

        While connecting, the click is consumed as the connection target.
        Returns the created connection, if any.
        """
        if node_id not in self.store:
            return None
        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        self._finish_gesture()

        state = self._state
        if isinstance(state, Connecting):
            if state.source_id == node_id:
                self._transition(IDLE)
                return None
            conn = self.store.add_connection(state.source_id, node_id, DEFAULT_CONNECTION_LABEL)
            self._transition(IDLE)
            return conn

        self._transition(NodeSelected(node_id))
        return None

    def click_canvas(self) -> EditState:
        self._finish_gesture()
        if isinstance(self._state, Connecting):
            return self._transition(IDLE)
        return self._state

    def double_click_node(self, node_id: str) -> bool:
        """Request the config dialog for a node. The start node has no config."""
        if node_id not in self.store or self.store.get_node(node_id).is_start:
            return False
        if self._on_config_request:
            self._on_config_request(node_id)
        return True

    def activate_connection_handle(self, node_id: str) -> EditState:
        if node_id not in self.store:
            return self._state
        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        self._finish_gesture()
        return self._transition(Connecting(node_id))

    # --- Inline label editing ---

    def begin_label_edit(self, target_kind: str, target_id: str) -> EditState:
        """Open the inline editor on a node or connection label."""
        if target_kind == LABEL_NODE:
            if target_id not in self.store:
                return self._state
        elif target_kind == LABEL_CONNECTION:
            if not self.store.has_connection(target_id):
                return self._state
        else:
            raise ValueError(f"Unknown label target kind: {target_kind}")

        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        self._finish_gesture()

        label_absent = False
        if target_kind == LABEL_NODE:
            current = self.store.get_node(target_id).label
        else:
            current = self.store.get_connection(target_id).label
            label_absent = current is None
            current = current or ''
        return self._transition(
            EditingLabel(target_kind, target_id, current, self._resting(), label_absent)
        )

    def set_label_buffer(self, text: str) -> EditState:
        if isinstance(self._state, EditingLabel):
            return self._transition(replace(self._state, buffer=text))
        return self._state

    def commit_label_edit(self) -> bool:
        """
        Write the edit buffer back and leave the editor.

        Node labels are trimmed and a blank value leaves the label unchanged;
        connection labels are stored verbatim, including ''. A connection
        that had no label keeps none if the buffer is still empty. Returns
        True if the label was written.
        """
        state = self._state
        if not isinstance(state, EditingLabel):
            return False

        written = False
        if state.target_kind == LABEL_NODE:
            try:
                self.store.update_node_label(state.target_id, state.buffer)
                written = True
            except StructuralRejection:
                logger.debug(f"Blank label for node {state.target_id} ignored")
            except NodeNotFoundError:
                logger.debug(f"Node {state.target_id} vanished during label edit")
        elif state.label_absent and state.buffer == '':
            logger.debug(f"Connection {state.target_id} left without a label")
        elif self.store.has_connection(state.target_id):
            self.store.update_connection_label(state.target_id, state.buffer)
            written = True

        self._transition(state.resume)
        return written

    def cancel_label_edit(self) -> EditState:
        if isinstance(self._state, EditingLabel):
            return self._transition(self._state.resume)
        return self._state

    def label_blur(self) -> bool:
        return self.commit_label_edit()

    def key_down(self, key: str) -> bool:
        """Returns True if the key was consumed by the label editor."""
        if not isinstance(self._state, EditingLabel):
            return False
        if key == KEY_COMMIT:
            self.commit_label_edit()
            return True
        if key == KEY_CANCEL:
            self.cancel_label_edit()
            return True
        return False

    # --- Structural actions ---

    def add_node_from_palette(self, type_name: str) -> Node:
        """Add a node at the fixed on-screen anchor and select it."""
        if isinstance(self._state, EditingLabel):
            self.commit_label_edit()
        self._finish_gesture()
        node = self.store.add_node(type_name, self.viewport.add_node_position())
        self._transition(NodeSelected(node.id))
        return node

    def delete_node(self, node_id: str) -> bool:
        try:
            self.store.remove_node(node_id)
        except StructuralRejection as e:
            logger.info(f"Rejected removal of node {node_id}: {e}")
            self.notifier.notify("Cannot delete", "Start node cannot be deleted", "destructive")
            return False
        return True

    def delete_connection(self, connection_id: str) -> bool:
        return self.store.remove_connection(connection_id)

    # --- Viewport ---

    def zoom_in(self) -> float:
        return self.viewport.zoom_in()

    def zoom_out(self) -> float:
        return self.viewport.zoom_out()

    def wheel(self, delta_y: float, modifier: bool) -> Optional[float]:
        return self.viewport.wheel(delta_y, modifier)

    def reset_view(self) -> None:
        self.viewport.reset_view()

    # --- Graph events ---

    def _references(self, state: Any, kind: str, object_id: str) -> bool:
        if kind == LABEL_NODE:
            if isinstance(state, NodeSelected) and state.node_id == object_id:
                return True
            if isinstance(state, Connecting) and state.source_id == object_id:
                return True
            if isinstance(state, Dragging) and state.node_id == object_id:
                return True
        if isinstance(state, EditingLabel) and state.target_kind == kind and state.target_id == object_id:
            return True
        resume = getattr(state, 'resume', None)
        return resume is not None and self._references(resume, kind, object_id)

    def _on_graph_event(self, event: str, object_id: str) -> None:
        if event == 'node_removed' and self._references(self._state, LABEL_NODE, object_id):
            self._transition(IDLE)
        elif event == 'connection_removed' and self._references(self._state, LABEL_CONNECTION, object_id):
            self._transition(IDLE)

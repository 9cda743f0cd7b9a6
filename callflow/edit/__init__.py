"""
Canvas editing system for call flows.

This package turns pointer, wheel and keyboard input into graph edits:
- InteractionStateMachine: Gesture classification and editing state
- ViewportController: Zoom, pan and the screen/world transform
- setup_edit_handlers: NiceGUI event handlers for app.py integration

Usage:
    from callflow.edit import InteractionStateMachine, ViewportController
    from callflow.edit.handlers import setup_edit_handlers
"""

from callflow.edit.constants import (
    ZOOM_MIN,
    ZOOM_MAX,
    ZOOM_DEFAULT,
    ZOOM_BUTTON_STEP,
    ZOOM_WHEEL_STEP,
    ADD_NODE_ANCHOR,
)
from callflow.edit.controller import (
    Connecting,
    Dragging,
    EditingLabel,
    EditState,
    Idle,
    InteractionStateMachine,
    NodeSelected,
    PanningCanvas,
)
from callflow.edit.viewport import ViewportController, clamp_zoom

__all__ = [
    'InteractionStateMachine',
    'EditState',
    'Idle',
    'NodeSelected',
    'Connecting',
    'Dragging',
    'PanningCanvas',
    'EditingLabel',
    'ViewportController',
    'clamp_zoom',
    'ZOOM_MIN',
    'ZOOM_MAX',
    'ZOOM_DEFAULT',
    'ZOOM_BUTTON_STEP',
    'ZOOM_WHEEL_STEP',
    'ADD_NODE_ANCHOR',
]

"""
Shared constants for the canvas editing system.

The view layer renders with the same values (zoom range, anchor), so keep
them in sync with any client-side code.
"""

# Zoom range and step sizes
ZOOM_MIN = 0.5
ZOOM_MAX = 2.0
ZOOM_DEFAULT = 1.0
ZOOM_BUTTON_STEP = 0.2
ZOOM_WHEEL_STEP = 0.1

# Zoom values are rounded to this many decimals to avoid float drift
ZOOM_PRECISION = 2

# Screen offset (from the canvas origin) where palette-added nodes appear
ADD_NODE_ANCHOR = (300, 200)

# Only the primary mouse button starts drags and pans
PRIMARY_BUTTON = 0

# Keys that end an inline label edit
KEY_COMMIT = 'Enter'
KEY_CANCEL = 'Escape'

# Rendered text for a connection whose label is an explicit empty string
EMPTY_LABEL_PLACEHOLDER = '+'

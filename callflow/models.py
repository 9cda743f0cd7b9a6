"""
Core data types for call flow graphs.

A Node is a tagged variant: `type` selects which config schema `config`
follows (see node_types.py). Positions live in world coordinates, which are
independent of the viewport's zoom and pan.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

START_TYPE = 'start'

NODE_TYPES = (
    'start', 'condition', 'action', 'menu', 'gather', 'play',
    'hours', 'router', 'splitter', 'pixel', 'javascript', 'end',
)


@dataclass(frozen=True)
class Position:
    """A point in world (or screen) space."""
    x: float = 0
    y: float = 0

    def clamped(self) -> 'Position':
        """Return this position with both axes clamped to >= 0."""
        return Position(max(0, self.x), max(0, self.y))

    def __add__(self, other: 'Position') -> 'Position':
        return Position(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Position') -> 'Position':
        return Position(self.x - other.x, self.y - other.y)

    def as_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y}


@dataclass
class Node:
    id: str
    type: str
    position: Position
    label: str
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_start(self) -> bool:
        return self.type == START_TYPE


@dataclass
class Connection:
    """
    A directed edge between two nodes.

    `label` of None means "no label"; an empty string is an explicit label
    and the view layer renders it as "+".
    """
    id: str
    source: str
    target: str
    label: Optional[str] = None
    condition: Optional[str] = None

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

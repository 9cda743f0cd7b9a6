"""
Graph visualizer that produces an ECharts-compatible configuration for
rendering a call flow on the editor canvas.

This implementation uses NetworkX to walk the graph, but the output is a plain
dict representing an ECharts option which can be used with NiceGUI's ui.echart.

Nodes are placed at viewport.world_to_screen(position), the inverse of the
transform used for pointer input, so what the operator drags is exactly what
gets drawn.
"""

from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from callflow.edit.constants import EMPTY_LABEL_PLACEHOLDER
from callflow.edit.viewport import ViewportController
from callflow.graph_store import GraphStore
from callflow.models import START_TYPE, Position
from callflow.node_types import NodeTypeRegistry, get_node_type_registry

NODE_COLORS = {
    'start': '#dcfce7',
    'condition': '#fef9c3',
    'action': '#dbeafe',
    'menu': '#f3e8ff',
    'gather': '#dcfce7',
    'play': '#ffedd5',
    'hours': '#e0e7ff',
    'router': '#fce7f3',
    'splitter': '#ccfbf1',
    'pixel': '#cffafe',
    'javascript': '#f3f4f6',
    'end': '#fee2e2',
}
DEFAULT_NODE_COLOR = '#ffffff'

SELECTED_BORDER = '#3b82f6'
SOURCE_BORDER = '#22c55e'
DEFAULT_BORDER = '#d1d5db'
EDGE_COLOR = '#3b82f6'
DELETE_COLOR = '#ef4444'

NODE_WIDTH = 120
NODE_HEIGHT = 60
DETACHED_OPACITY = 0.6

# Edge labels sit this far above the connection midpoint (world units)
EDGE_LABEL_OFFSET = 25

# Chart area in screen pixels; the hidden axes map one unit to one pixel
CANVAS_WIDTH = 1600
CANVAS_HEIGHT = 900

HANDLE_SYMBOL_SIZE = 12
DELETE_SYMBOL_SIZE = 14


def connection_label_text(label: Optional[str]) -> Optional[str]:
    """What to draw on an edge: None hides it, '' shows the '+' placeholder."""
    if label is None:
        return None
    return label if label else EMPTY_LABEL_PLACEHOLDER


class GraphVisualizer:
    """
    Build an ECharts option dict for a GraphStore.

    The chart is pinned to pixel space: a hidden cartesian grid whose axes
    span the canvas, with the y axis inverted so it grows downwards like
    screen coordinates. The returned dict has a 'graph' series for nodes and
    connections plus a silent 'scatter' series for the connection handles
    and delete markers:
      {
        "series": [
          {"type": "graph", "coordinateSystem": "cartesian2d",
           "roam": False,          # pan/zoom are owned by ViewportController
           "data": [...], "links": [...]},
          {"type": "scatter", "data": [...]},
        ]
      }
    """

    def __init__(self, registry: Optional[NodeTypeRegistry] = None):
        self.registry = registry or get_node_type_registry()

    def generate_echarts(
        self,
        store: GraphStore,
        viewport: ViewportController,
        selected_id: Optional[str] = None,
        connection_source_id: Optional[str] = None,
        canvas_size: Tuple[int, int] = (CANVAS_WIDTH, CANVAS_HEIGHT),
    ) -> Dict[str, Any]:
        graph = store.to_networkx()
        zoom = viewport.zoom
        # Chart coordinates are relative to the canvas element.
        origin = viewport.canvas_origin
        reachable = set(self.reachable_from_start(store))

        def to_chart(world: Position) -> List[float]:
            screen = viewport.world_to_screen(world) - origin
            return [screen.x, screen.y]

        data: List[Dict[str, Any]] = []
        markers: List[Dict[str, Any]] = []
        for node_id, attrs in graph.nodes(data=True):
            x, y = attrs['x'], attrs['y']
            border = DEFAULT_BORDER
            if node_id == connection_source_id:
                border = SOURCE_BORDER
            elif node_id == selected_id:
                border = SELECTED_BORDER
            data.append({
                'id': node_id,
                'name': node_id,
                'value': to_chart(Position(x + NODE_WIDTH / 2, y + NODE_HEIGHT / 2)),
                'nodeType': attrs['type'],
                'symbol': 'roundRect',
                'symbolSize': [NODE_WIDTH * zoom, NODE_HEIGHT * zoom],
                'label': {
                    'show': True,
                    'formatter': f"{attrs['label']}\n{self.registry.get_display_name(attrs['type'])}",
                },
                'itemStyle': {
                    'color': NODE_COLORS.get(attrs['type'], DEFAULT_NODE_COLOR),
                    'borderColor': border,
                    'borderWidth': 2,
                    'opacity': 1.0 if node_id in reachable else DETACHED_OPACITY,
                },
            })

            markers.append({
                'name': f"{node_id}:handle",
                'value': to_chart(Position(x + NODE_WIDTH, y + NODE_HEIGHT / 2)),
                'symbol': 'circle',
                'itemStyle': {'color': SOURCE_BORDER if node_id == connection_source_id else EDGE_COLOR},
            })
            if attrs['type'] != START_TYPE:
                markers.append({
                    'name': f"{node_id}:delete",
                    'value': to_chart(Position(x + NODE_WIDTH, y)),
                    'symbol': 'path://M2,2 L12,12 M12,2 L2,12',
                    'symbolSize': DELETE_SYMBOL_SIZE * zoom,
                    'itemStyle': {'color': DELETE_COLOR, 'borderColor': DELETE_COLOR, 'borderWidth': 2},
                })

        links: List[Dict[str, Any]] = []
        for source, target, conn_id, attrs in graph.edges(keys=True, data=True):
            text = connection_label_text(attrs.get('label'))
            links.append({
                'id': conn_id,
                'source': source,
                'target': target,
                'label': {
                    'show': text is not None,
                    'formatter': text or '',
                    'offset': [0, -EDGE_LABEL_OFFSET * zoom],
                },
                'lineStyle': {'color': EDGE_COLOR, 'width': 3},
            })

        width, height = canvas_size
        return {
            'animation': False,
            'grid': {'left': 0, 'top': 0, 'right': 0, 'bottom': 0},
            'xAxis': {'type': 'value', 'min': 0, 'max': width, 'show': False},
            'yAxis': {'type': 'value', 'min': 0, 'max': height, 'inverse': True, 'show': False},
            'series': [
                {
                    'type': 'graph',
                    'layout': 'none',
                    'coordinateSystem': 'cartesian2d',
                    'roam': False,
                    'edgeSymbol': ['none', 'arrow'],
                    'data': data,
                    'links': links,
                },
                {
                    'type': 'scatter',
                    'silent': True,
                    'symbolSize': HANDLE_SYMBOL_SIZE * zoom,
                    'data': markers,
                },
            ],
        }

    @staticmethod
    def reachable_from_start(store: GraphStore) -> List[str]:
        """Node ids reachable from the start node (used to dim detached nodes)."""
        start = store.start_node
        if start is None:
            return []
        graph = store.to_networkx()
        return [start.id] + sorted(nx.descendants(graph, start.id))

"""
Graph store for call flows.

Owns the node and connection collections and is the only place they are
mutated. Every operation either completes synchronously or raises before
touching state, so a failed call leaves the graph exactly as it was.

Invariants kept here:
  - exactly one start node, never removed
  - node ids and connection ids are unique
  - no connection references a missing node (node removal cascades)
  - positions are clamped to >= 0
"""

import itertools
import logging
import uuid
from typing import Any, Callable, Dict, Iterator, List, Optional

import networkx as nx

from callflow.exceptions import (
    ConnectionNotFoundError,
    NodeNotFoundError,
    StructuralRejection,
)
from callflow.models import START_TYPE, Connection, Node, Position
from callflow.node_types import NodeTypeRegistry, get_node_type_registry

logger = logging.getLogger(__name__)

START_NODE_ID = 'start'
DEFAULT_START_POSITION = Position(100, 100)
DEFAULT_CONNECTION_LABEL = 'Default'

IdGenerator = Callable[[str], str]

# Listener signature: (event, object_id). Events: node_added, node_removed,
# node_changed, connection_added, connection_removed, connection_changed.
GraphListener = Callable[[str, str], None]


def counter_ids(start: int = 1) -> IdGenerator:
    """Deterministic ids: node-1, node-2, conn-1, ... (one counter per prefix)."""
    counters: Dict[str, Iterator[int]] = {}

    def generate(prefix: str) -> str:
        if prefix not in counters:
            counters[prefix] = itertools.count(start)
        return f"{prefix}-{next(counters[prefix])}"

    return generate


def uuid_ids(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class GraphStore:
    """
    Mutable call flow graph.

    Nodes and connections keep insertion order, which is also the order they
    are serialized in.
    """

    def __init__(
        self,
        registry: Optional[NodeTypeRegistry] = None,
        id_generator: Optional[IdGenerator] = None,
        start_position: Position = DEFAULT_START_POSITION,
        with_start: bool = True,
    ):
        self.registry = registry or get_node_type_registry()
        self._generate_id = id_generator or counter_ids()
        self._nodes: Dict[str, Node] = {}
        self._connections: Dict[str, Connection] = {}
        self._listeners: List[GraphListener] = []

        if with_start:
            self._nodes[START_NODE_ID] = Node(
                id=START_NODE_ID,
                type=START_TYPE,
                position=start_position.clamped(),
                label=self.registry.default_label(START_TYPE),
                config={},
            )

    # --- Listeners ---

    def subscribe(self, listener: GraphListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: GraphListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, object_id: str) -> None:
        for listener in list(self._listeners):
            listener(event, object_id)

    # --- Queries ---

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections.values())

    @property
    def start_node(self) -> Optional[Node]:
        for node in self._nodes.values():
            if node.is_start:
                return node
        return None

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def has_connection(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get_node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(f"Node '{node_id}' not found") from None

    def get_connection(self, connection_id: str) -> Connection:
        try:
            return self._connections[connection_id]
        except KeyError:
            raise ConnectionNotFoundError(f"Connection '{connection_id}' not found") from None

    def connections_for(self, node_id: str) -> List[Connection]:
        """All connections that start or end at node_id."""
        return [c for c in self._connections.values() if c.touches(node_id)]

    def outgoing(self, node_id: str) -> List[Connection]:
        return [c for c in self._connections.values() if c.source == node_id]

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Snapshot of the graph as a networkx MultiDiGraph.

        Edge keys are connection ids, so parallel connections between the
        same pair of nodes are kept apart.
        """
        graph = nx.MultiDiGraph()
        for node in self._nodes.values():
            graph.add_node(
                node.id, type=node.type, label=node.label,
                x=node.position.x, y=node.position.y,
            )
        for conn in self._connections.values():
            graph.add_edge(conn.source, conn.target, key=conn.id,
                           label=conn.label, condition=conn.condition)
        return graph

    def check_integrity(self) -> List[str]:
        """Structural problems in the current graph. Empty list means healthy."""
        problems = []

        start_count = sum(1 for n in self._nodes.values() if n.is_start)
        if start_count != 1:
            problems.append(f"Expected exactly one start node, found {start_count}")

        for conn in self._connections.values():
            for end in (conn.source, conn.target):
                if end not in self._nodes:
                    problems.append(f"Connection '{conn.id}' references missing node '{end}'")

        for node in self._nodes.values():
            if node.position.x < 0 or node.position.y < 0:
                problems.append(f"Node '{node.id}' has a negative position")

        return problems

    # --- Id allocation ---

    def _allocate_id(self, prefix: str, taken: Dict[str, Any]) -> str:
        # Hydrated graphs may already use ids the generator would produce.
        while True:
            candidate = self._generate_id(prefix)
            if candidate not in taken:
                return candidate

    # --- Node mutations ---

    def add_node(self, type_name: str, position: Position) -> Node:
        """Create a node of the given type with its default config (empty for unknown types)."""
        if type_name == START_TYPE:
            raise StructuralRejection("A flow has exactly one start node")
        if not self.registry.is_known_type(type_name):
            logger.warning(f"Adding node of unknown type '{type_name}' with an empty config")

        node = Node(
            id=self._allocate_id('node', self._nodes),
            type=type_name,
            position=position.clamped(),
            label=self.registry.default_label(type_name),
            config=self.registry.default_config(type_name),
        )
        self._nodes[node.id] = node
        logger.info(f"Added {type_name} node {node.id} at ({node.position.x}, {node.position.y})")
        self._emit('node_added', node.id)
        return node

    def restore_node(self, node: Node) -> Node:
        """
        Insert an existing node verbatim (used when hydrating a document).

        Unlike add_node, the config is taken as-is and no default is generated.
        """
        if node.id in self._nodes:
            raise StructuralRejection(f"Duplicate node id '{node.id}'")
        if node.is_start and self.start_node is not None:
            raise StructuralRejection("A flow has exactly one start node")
        node.position = node.position.clamped()
        self._nodes[node.id] = node
        self._emit('node_added', node.id)
        return node

    def remove_node(self, node_id: str) -> List[str]:
        """
        Remove a node and every connection attached to it.

        Returns the ids of the connections removed by the cascade.
        """
        node = self.get_node(node_id)
        if node.is_start:
            raise StructuralRejection("Start node cannot be deleted")

        cascaded = [c.id for c in self._connections.values() if c.touches(node_id)]
        for conn_id in cascaded:
            del self._connections[conn_id]
        del self._nodes[node_id]

        if cascaded:
            logger.info(f"Removed node {node_id} and {len(cascaded)} attached connection(s)")
        else:
            logger.info(f"Removed node {node_id}")

        for conn_id in cascaded:
            self._emit('connection_removed', conn_id)
        self._emit('node_removed', node_id)
        return cascaded

    def update_node_label(self, node_id: str, label: str) -> Node:
        node = self.get_node(node_id)
        trimmed = (label or '').strip()
        if not trimmed:
            raise StructuralRejection("Node label cannot be empty")
        node.label = trimmed
        self._emit('node_changed', node_id)
        return node

    def update_node_config(self, node_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge partial into the node's config. Returns the merged config."""
        node = self.get_node(node_id)
        allowed = self.registry.config_fields(node.type)

        updates = dict(partial)
        if allowed is not None:
            rejected = sorted(k for k in updates if k not in allowed)
            if rejected:
                logger.warning(
                    f"Ignoring config keys {rejected} not in the '{node.type}' schema (node {node_id})"
                )
            updates = {k: v for k, v in updates.items() if k in allowed}

        node.config.update(updates)
        self._emit('node_changed', node_id)
        return node.config

    def move_node(self, node_id: str, position: Position) -> Node:
        node = self.get_node(node_id)
        node.position = position.clamped()
        self._emit('node_changed', node_id)
        return node

    # --- Connection mutations ---

    def add_connection(
        self,
        source_id: str,
        target_id: str,
        label: Optional[str] = DEFAULT_CONNECTION_LABEL,
        condition: Optional[str] = None,
    ) -> Connection:
        self.get_node(source_id)
        self.get_node(target_id)

        conn = Connection(
            id=self._allocate_id('conn', self._connections),
            source=source_id,
            target=target_id,
            label=label,
            condition=condition,
        )
        self._connections[conn.id] = conn
        logger.info(f"Connected {source_id} -> {target_id} ({conn.id})")
        self._emit('connection_added', conn.id)
        return conn

    def restore_connection(self, conn: Connection) -> Connection:
        if conn.id in self._connections:
            raise StructuralRejection(f"Duplicate connection id '{conn.id}'")
        self.get_node(conn.source)
        self.get_node(conn.target)
        self._connections[conn.id] = conn
        self._emit('connection_added', conn.id)
        return conn

    def update_connection_label(self, connection_id: str, label: Optional[str]) -> Connection:
        """Set a connection label verbatim. '' is a real label; None removes it."""
        conn = self.get_connection(connection_id)
        conn.label = label
        self._emit('connection_changed', connection_id)
        return conn

    def update_connection_condition(self, connection_id: str, condition: Optional[str]) -> Connection:
        conn = self.get_connection(connection_id)
        conn.condition = condition
        self._emit('connection_changed', connection_id)
        return conn

    def remove_connection(self, connection_id: str) -> bool:
        """Remove a connection. Returns False if it did not exist."""
        if connection_id not in self._connections:
            return False
        del self._connections[connection_id]
        self._emit('connection_removed', connection_id)
        return True

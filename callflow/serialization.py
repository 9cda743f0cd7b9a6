"""
Conversion between a GraphStore and the persisted flow-definition document.

Document format (what the call-routing engine consumes):
{
  "name": "Sales Flow",
  "description": "",
  "campaignId": 12,            # or null
  "status": "draft",
  "isActive": false,
  "flowDefinition": {
    "nodes": [
      {"id": "start", "type": "start", "position": {"x": 100, "y": 100},
       "data": {"label": "Call Start", "config": {}}}
    ],
    "connections": [
      {"id": "conn-1", "source": "start", "target": "node-1", "label": "Default"}
    ]
  }
}

A connection's `label` and `condition` keys are only written when set, so an
absent label stays absent and an explicit "" survives the round trip.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Optional, Union

from callflow.exceptions import DocumentError, StructuralRejection, ValidationFailure
from callflow.graph_store import GraphStore, IdGenerator, START_NODE_ID, DEFAULT_START_POSITION
from callflow.models import START_TYPE, Connection, Node, Position
from callflow.node_types import NodeTypeRegistry, get_node_type_registry

logger = logging.getLogger(__name__)

FLOW_STATUS_DRAFT = 'draft'


def node_to_dict(node: Node) -> Dict[str, Any]:
    return {
        'id': node.id,
        'type': node.type,
        'position': node.position.as_dict(),
        'data': {
            'label': node.label,
            'config': copy.deepcopy(node.config),
        },
    }


def connection_to_dict(conn: Connection) -> Dict[str, Any]:
    out = {'id': conn.id, 'source': conn.source, 'target': conn.target}
    if conn.label is not None:
        out['label'] = conn.label
    if conn.condition is not None:
        out['condition'] = conn.condition
    return out


def to_document(store: GraphStore) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize the graph into {nodes, connections}."""
    return {
        'nodes': [node_to_dict(n) for n in store.nodes],
        'connections': [connection_to_dict(c) for c in store.connections],
    }


def _parse_position(raw: Dict[str, Any]) -> Position:
    # Older documents (and the bundled templates) keep x/y on the node itself.
    pos = raw.get('position')
    if isinstance(pos, dict):
        return Position(pos.get('x', 0), pos.get('y', 0))
    return Position(raw.get('x', 0), raw.get('y', 0))


def node_from_dict(raw: Dict[str, Any]) -> Node:
    if not isinstance(raw, dict):
        raise DocumentError(f"Node entry must be an object, got {type(raw).__name__}")
    node_id = raw.get('id')
    node_type = raw.get('type')
    if not node_id or not node_type:
        raise DocumentError(f"Node entry is missing 'id' or 'type': {raw!r}")

    data = raw.get('data') or {}
    config = data.get('config')
    return Node(
        id=str(node_id),
        type=node_type,
        position=_parse_position(raw),
        label=data.get('label', ''),
        config=copy.deepcopy(config) if isinstance(config, dict) else {},
    )


def connection_from_dict(raw: Dict[str, Any]) -> Connection:
    if not isinstance(raw, dict):
        raise DocumentError(f"Connection entry must be an object, got {type(raw).__name__}")
    for key in ('id', 'source', 'target'):
        if not raw.get(key):
            raise DocumentError(f"Connection entry is missing '{key}': {raw!r}")
    return Connection(
        id=str(raw['id']),
        source=str(raw['source']),
        target=str(raw['target']),
        label=raw.get('label'),
        condition=raw.get('condition'),
    )


def parse_flow_definition(definition: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    """Accept a flow definition stored either as JSON text or as an object."""
    if definition is None:
        return {}
    if isinstance(definition, str):
        try:
            definition = json.loads(definition)
        except json.JSONDecodeError as e:
            raise DocumentError(f"Invalid flow definition JSON: {e}") from e
    if not isinstance(definition, dict):
        raise DocumentError("Flow definition must be an object")
    return definition


def from_document(
    doc: Union[str, Dict[str, Any], None],
    registry: Optional[NodeTypeRegistry] = None,
    id_generator: Optional[IdGenerator] = None,
) -> GraphStore:
    """
    Hydrate a GraphStore from {nodes, connections}.

    Configs are taken verbatim; defaults are never regenerated. A document
    without a start node gets the default one, and connections pointing at
    missing nodes are dropped.
    """
    definition = parse_flow_definition(doc)
    registry = registry or get_node_type_registry()
    store = GraphStore(registry=registry, id_generator=id_generator, with_start=False)

    for raw in definition.get('nodes') or []:
        node = node_from_dict(raw)
        if not registry.is_known_type(node.type):
            logger.warning(f"Node {node.id} has unknown type '{node.type}', keeping config as-is")
        try:
            store.restore_node(node)
        except StructuralRejection as e:
            raise DocumentError(str(e)) from e

    if store.start_node is None:
        if START_NODE_ID in store:
            raise DocumentError(f"Node id '{START_NODE_ID}' is reserved for the start node")
        logger.warning("Flow definition has no start node, adding the default one")
        store.restore_node(Node(
            id=START_NODE_ID,
            type=START_TYPE,
            position=DEFAULT_START_POSITION,
            label=registry.default_label(START_TYPE),
            config={},
        ))

    for raw in definition.get('connections') or []:
        conn = connection_from_dict(raw)
        if conn.source not in store or conn.target not in store:
            logger.warning(f"Dropping connection {conn.id}: endpoint missing ({conn.source} -> {conn.target})")
            continue
        try:
            store.restore_connection(conn)
        except StructuralRejection as e:
            raise DocumentError(str(e)) from e

    return store


def build_flow_document(
    name: str,
    description: str,
    campaign_id: Optional[int],
    store: GraphStore,
) -> Dict[str, Any]:
    """
    Build the document handed to the save collaborator.

    Raises:
        ValidationFailure: if the flow name is empty
    """
    if not name or not name.strip():
        raise ValidationFailure("Flow name is required")

    return {
        'name': name,
        'description': description or '',
        'campaignId': campaign_id,
        'status': FLOW_STATUS_DRAFT,
        'isActive': False,
        'flowDefinition': to_document(store),
    }

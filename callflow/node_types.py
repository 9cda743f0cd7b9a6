"""
Node Type Registry for call flows.

Static catalogue of the node variants an operator can place on the canvas.
Each variant has:
  - a palette entry (display name + icon)
  - a default config factory whose literal values the routing engine relies on
  - the set of config keys its schema allows, and the vocabulary of its
    enumerated fields

The start node is not part of the palette: it exists exactly once per graph
and carries an empty config.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from callflow.models import START_TYPE

logger = logging.getLogger(__name__)

START_LABEL = 'Call Start'

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

DEFAULT_JAVASCRIPT = (
    '// Custom JavaScript logic\n'
    '// Available variables: caller, campaign, context\n'
    '\n'
    'return {\n'
    '  route: "default",\n'
    '  data: {}\n'
    '};'
)


def _condition_config() -> Dict[str, Any]:
    return {
        'conditionType': 'time',
        'operator': 'between',
        'value': {'start': '09:00', 'end': '17:00'},
    }


def _action_config() -> Dict[str, Any]:
    return {
        'actionType': 'route',
        'destination': 'buyer',
        'buyerId': None,
    }


def _menu_config() -> Dict[str, Any]:
    return {
        'menuType': 'ivr',
        'welcomeMessage': 'Please press 1 for sales, 2 for support',
        'options': [
            {'key': '1', 'label': 'Sales', 'action': 'route'},
            {'key': '2', 'label': 'Support', 'action': 'route'},
        ],
        'timeout': 10,
        'retries': 3,
    }


def _gather_config() -> Dict[str, Any]:
    return {
        'gatherType': 'digits',
        'prompt': 'Please enter your phone number',
        'numDigits': 10,
        'timeout': 5,
        'finishOnKey': '#',
    }


def _play_config() -> Dict[str, Any]:
    return {
        'audioType': 'tts',
        'message': 'Please hold while we connect you',
        'audioUrl': '',
        'voice': 'alice',
        'language': 'en-US',
    }


def _hours_config() -> Dict[str, Any]:
    business_hours = {}
    for day in WEEKDAYS:
        if day in ('saturday', 'sunday'):
            business_hours[day] = {'open': '10:00', 'close': '16:00', 'enabled': False}
        else:
            business_hours[day] = {'open': '09:00', 'close': '17:00', 'enabled': True}
    return {
        'timezone': 'America/New_York',
        'businessHours': business_hours,
        'holidayHandling': 'closed',
    }


def _router_config() -> Dict[str, Any]:
    return {
        'routingType': 'priority',
        'rtbEnabled': False,
        'capacityLimits': True,
        'failoverEnabled': True,
        'targets': [],
    }


def _splitter_config() -> Dict[str, Any]:
    return {
        'splitType': 'percentage',
        'targets': [
            {'name': 'Route A', 'percentage': 50, 'destination': ''},
            {'name': 'Route B', 'percentage': 50, 'destination': ''},
        ],
    }


def _pixel_config() -> Dict[str, Any]:
    return {
        'pixelType': 'postback',
        'url': 'https://example.com/postback',
        'method': 'POST',
        'parameters': [
            {'name': 'caller_id', 'value': '{caller_number}'},
            {'name': 'campaign_id', 'value': '{campaign_id}'},
        ],
    }


def _javascript_config() -> Dict[str, Any]:
    return {
        'code': DEFAULT_JAVASCRIPT,
        'timeout': 5000,
    }


def _end_config() -> Dict[str, Any]:
    return {
        'endType': 'hangup',
        'message': 'Thank you for calling',
    }


@dataclass(frozen=True)
class NodeTypeSpec:
    """Palette entry and config schema for one node variant."""
    type: str
    display_name: str
    icon: str
    factory: Callable[[], Dict[str, Any]]
    choices: Dict[str, tuple] = field(default_factory=dict)

    @property
    def fields(self) -> FrozenSet[str]:
        return frozenset(self.factory().keys())


# Palette order matches the sidebar.
NODE_TYPE_SPECS = (
    NodeTypeSpec('condition', 'Condition', '🔀', _condition_config,
                 {'conditionType': ('time', 'caller', 'capacity')}),
    NodeTypeSpec('action', 'Action', '⚡', _action_config,
                 {'actionType': ('route', 'play', 'collect', 'rtb')}),
    NodeTypeSpec('menu', 'IVR Menu', '📞', _menu_config),
    NodeTypeSpec('gather', 'Gather Input', '🎤', _gather_config,
                 {'gatherType': ('digits', 'speech', 'both')}),
    NodeTypeSpec('play', 'Play Audio', '🔊', _play_config,
                 {'audioType': ('tts', 'url')}),
    NodeTypeSpec('hours', 'Business Hours', '🕐', _hours_config),
    NodeTypeSpec('router', 'Advanced Router', '🚀', _router_config,
                 {'routingType': ('priority', 'round-robin', 'capacity', 'rtb')}),
    NodeTypeSpec('splitter', 'Traffic Splitter', '🔀', _splitter_config,
                 {'splitType': ('percentage', 'weight')}),
    NodeTypeSpec('pixel', 'Tracking Pixel', '📊', _pixel_config,
                 {'pixelType': ('postback', 'pixel'), 'method': ('GET', 'POST', 'PUT')}),
    NodeTypeSpec('javascript', 'Custom Logic', '⚙️', _javascript_config),
    NodeTypeSpec('end', 'End', '🏁', _end_config,
                 {'endType': ('hangup', 'message')}),
)


class NodeTypeRegistry:
    """
    Lookup of node variants by type tag.

    default_config() returns a fresh dict on every call so callers may
    mutate it freely.
    """

    def __init__(self, specs=NODE_TYPE_SPECS):
        self._specs: Dict[str, NodeTypeSpec] = {}
        for spec in specs:
            if spec.type in self._specs:
                logger.warning(f"Overwriting existing node type: {spec.type}")
            self._specs[spec.type] = spec

    def list_types(self) -> List[str]:
        """Return the palette node types in display order."""
        return list(self._specs.keys())

    def get_spec(self, type_name: str) -> Optional[NodeTypeSpec]:
        return self._specs.get(type_name)

    def is_known_type(self, type_name: str) -> bool:
        return type_name == START_TYPE or type_name in self._specs

    def get_display_name(self, type_name: str) -> str:
        """Palette label for a type ('menu' -> 'IVR Menu')."""
        if type_name == START_TYPE:
            return 'Start'
        spec = self._specs.get(type_name)
        if spec:
            return spec.display_name
        return type_name.replace('_', ' ').title()

    def default_label(self, type_name: str) -> str:
        if type_name == START_TYPE:
            return START_LABEL
        return f"New {type_name}"

    def default_config(self, type_name: str) -> Dict[str, Any]:
        """Default config for a node type; unknown types (and start) get {}."""
        spec = self._specs.get(type_name)
        if spec is None:
            return {}
        return spec.factory()

    def config_fields(self, type_name: str) -> Optional[FrozenSet[str]]:
        """
        Keys allowed in a node's config.

        Returns an empty set for start and None for types the registry does
        not know (hydrated documents may carry them; their configs are opaque).
        """
        if type_name == START_TYPE:
            return frozenset()
        spec = self._specs.get(type_name)
        if spec is None:
            return None
        return spec.fields

    def validate_config(self, type_name: str, config: Dict[str, Any], partial: bool = False) -> List[str]:
        """
        Check a config against its type's schema. Returns list of error messages.

        With partial=True the config is an update to merge, so absent keys
        are not reported.
        """
        errors = []

        if not isinstance(config, dict):
            return [f"Type '{type_name}': config must be an object"]

        allowed = self.config_fields(type_name)
        if allowed is None:
            return [f"Unknown node type '{type_name}'"]

        if not partial:
            for key in sorted(allowed - set(config)):
                errors.append(f"Type '{type_name}': missing field '{key}'")

        for key in sorted(set(config) - allowed):
            errors.append(f"Type '{type_name}': unknown field '{key}'")

        spec = self._specs.get(type_name)
        if spec:
            for key, vocabulary in spec.choices.items():
                if key in config and config[key] not in vocabulary:
                    errors.append(
                        f"Field '{key}': invalid value '{config[key]}' "
                        f"(must be: {', '.join(vocabulary)})"
                    )

        return errors


# Global instance for convenience
_registry: Optional[NodeTypeRegistry] = None


def get_node_type_registry() -> NodeTypeRegistry:
    """Get the global NodeTypeRegistry instance."""
    global _registry
    if _registry is None:
        _registry = NodeTypeRegistry()
    return _registry


def default_config(type_name: str) -> Dict[str, Any]:
    """Shortcut for get_node_type_registry().default_config(type_name)."""
    return get_node_type_registry().default_config(type_name)

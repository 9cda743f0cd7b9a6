"""
Configuration management for the call flow editor.

Settings are read from config.json next to the project root, and
environment variables (a .env file is loaded by app.py) take priority:

  CALLFLOW_ADD_NODE_ANCHOR   "x,y" screen offset for palette-added nodes
  CALLFLOW_ID_STRATEGY       "counter" or "uuid"
  CALLFLOW_TEMPLATES_PATH    alternative templates.yaml
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from callflow.edit.constants import ADD_NODE_ANCHOR
from callflow.paths import get_config_path

logger = logging.getLogger(__name__)

ID_STRATEGIES = ('counter', 'uuid')


@dataclass
class EditorSettings:
    add_node_anchor: Tuple[float, float] = ADD_NODE_ANCHOR
    start_position: Tuple[float, float] = (100, 100)
    id_strategy: str = 'counter'
    templates_path: Optional[Path] = None


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning(f"Ignoring {config_path}: top level is not an object")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _parse_point(value) -> Optional[Tuple[float, float]]:
    """Accept "x,y" strings or two-element lists."""
    try:
        if isinstance(value, str):
            parts = [p.strip() for p in value.split(',')]
        else:
            parts = list(value)
        if len(parts) != 2:
            return None
        return (float(parts[0]), float(parts[1]))
    except (TypeError, ValueError):
        return None


def get_editor_settings(config_path: Optional[Path] = None) -> EditorSettings:
    """
    Resolve editor settings.

    Priority:
    1. Environment variables
    2. config.json ("editor" section)
    3. Built-in defaults
    """
    settings = EditorSettings()
    section = load_config(config_path).get('editor', {})
    if not isinstance(section, dict):
        section = {}

    anchor = _parse_point(os.environ.get('CALLFLOW_ADD_NODE_ANCHOR') or section.get('add_node_anchor', ''))
    if anchor:
        settings.add_node_anchor = anchor

    start = _parse_point(section.get('start_position', ''))
    if start:
        settings.start_position = start

    strategy = os.environ.get('CALLFLOW_ID_STRATEGY') or section.get('id_strategy')
    if strategy:
        if strategy in ID_STRATEGIES:
            settings.id_strategy = strategy
        else:
            logger.warning(f"Unknown id strategy '{strategy}', using '{settings.id_strategy}'")

    templates = os.environ.get('CALLFLOW_TEMPLATES_PATH') or section.get('templates_path')
    if templates:
        settings.templates_path = Path(templates)

    return settings


def set_editor_setting(key: str, value, config_path: Optional[Path] = None) -> None:
    """Persist a single editor setting to config.json."""
    config = load_config(config_path)
    section = config.get('editor')
    if not isinstance(section, dict):
        section = {}
    section[key] = value
    config['editor'] = section
    save_config(config, config_path)

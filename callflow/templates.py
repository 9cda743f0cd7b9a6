"""
Flow Template Library.

Loads pre-built call flows from templates.yaml. Each template has:
  - id, name, description
  - category: routing | rtb | capacity | qualification | failover
  - complexity: Basic | Intermediate | Advanced
  - flowDefinition: {nodes, connections} in the saved document shape
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from callflow.config import get_editor_settings
from callflow.paths import get_templates_path
from callflow.serialization import FLOW_STATUS_DRAFT

logger = logging.getLogger(__name__)

ALL_CATEGORIES = 'all'

CATEGORY_LABELS = {
    'all': 'All Categories',
    'routing': 'Routing',
    'rtb': 'RTB',
    'capacity': 'Capacity',
    'qualification': 'Qualification',
    'failover': 'Failover',
}

REQUIRED_KEYS = ('id', 'name', 'flowDefinition')


class TemplateLibrary:
    """Read-only catalogue of flow templates, loaded lazily and cached."""

    def __init__(self, templates_path: Optional[Path] = None):
        self.templates_path = Path(templates_path) if templates_path else get_templates_path()
        self._cache: Optional[List[Dict[str, Any]]] = None

    def _load(self) -> List[Dict[str, Any]]:
        if self._cache is not None:
            return self._cache

        templates = []
        try:
            with open(self.templates_path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Template file not found: {self.templates_path}")
            raw = {}
        except yaml.YAMLError as e:
            logger.warning(f"Invalid YAML in {self.templates_path}: {e}")
            raw = {}

        for entry in raw.get('templates', []) if isinstance(raw, dict) else []:
            missing = [k for k in REQUIRED_KEYS if k not in entry]
            if missing:
                logger.warning(f"Skipping template {entry.get('id', '?')}: missing {', '.join(missing)}")
                continue
            entry.setdefault('description', '')
            entry.setdefault('category', 'routing')
            entry.setdefault('complexity', 'Basic')
            templates.append(entry)

        self._cache = templates
        return templates

    def reload(self) -> None:
        self._cache = None

    def list_templates(self, search: str = '', category: str = ALL_CATEGORIES) -> List[Dict[str, Any]]:
        """Templates whose name or description contains `search`, optionally in one category."""
        needle = (search or '').strip().lower()
        results = []
        for template in self._load():
            matches_search = (
                needle in template['name'].lower()
                or needle in template['description'].lower()
            )
            matches_category = category == ALL_CATEGORIES or template['category'] == category
            if matches_search and matches_category:
                results.append(copy.deepcopy(template))
        return results

    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        for template in self._load():
            if template['id'] == template_id:
                return copy.deepcopy(template)
        return None

    def categories(self) -> List[Dict[str, str]]:
        """Category filter options, 'all' first."""
        return [{'value': k, 'label': v} for k, v in CATEGORY_LABELS.items()]

    @staticmethod
    def to_flow_data(template: Dict[str, Any]) -> Dict[str, Any]:
        """Turn a template into flow data the editor can load."""
        return {
            'name': template['name'],
            'description': template.get('description', ''),
            'status': FLOW_STATUS_DRAFT,
            'isTemplate': False,
            'flowDefinition': copy.deepcopy(template['flowDefinition']),
        }


# Global instance for convenience
_library: Optional[TemplateLibrary] = None


def get_template_library() -> TemplateLibrary:
    """Get the global TemplateLibrary instance."""
    global _library
    if _library is None:
        _library = TemplateLibrary(get_editor_settings().templates_path)
    return _library

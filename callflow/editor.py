"""
Flow Editor session.

Bundles everything one editing session needs: flow metadata (name,
description, campaign), the graph, the viewport and the interaction state
machine, plus the external collaborators. The view layer holds one
FlowEditor and calls into it; nothing here is global.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from callflow.collaborators import (
    BuyerProvider,
    CampaignProvider,
    FlowSaver,
    LoggingNotifier,
    Notifier,
)
from callflow.config import EditorSettings, get_editor_settings
from callflow.edit.controller import InteractionStateMachine
from callflow.edit.viewport import ViewportController
from callflow.exceptions import ValidationFailure
from callflow.graph_store import GraphStore, counter_ids, uuid_ids
from callflow.models import Position
from callflow.serialization import build_flow_document, from_document

logger = logging.getLogger(__name__)

NO_CAMPAIGN = 'none'


def _id_generator(settings: EditorSettings):
    return uuid_ids if settings.id_strategy == 'uuid' else counter_ids()


def parse_campaign_id(value: Any) -> Optional[int]:
    """Normalize a campaign selector value ('none', '', '12', 12) to an int or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text or text == NO_CAMPAIGN:
        return None
    try:
        return int(text)
    except ValueError:
        logger.warning(f"Ignoring non-numeric campaign id '{value}'")
        return None


class FlowEditor:
    """One call flow editing session."""

    def __init__(
        self,
        store: GraphStore,
        name: str = '',
        description: str = '',
        campaign_id: Optional[int] = None,
        saver: Optional[FlowSaver] = None,
        notifier: Optional[Notifier] = None,
        buyers: Optional[BuyerProvider] = None,
        campaigns: Optional[CampaignProvider] = None,
        settings: Optional[EditorSettings] = None,
    ):
        self.settings = settings or get_editor_settings()
        self.name = name
        self.description = description
        self.campaign_id = campaign_id
        self.store = store
        self.saver = saver
        self.notifier = notifier or LoggingNotifier()
        self.buyers = buyers
        self.campaigns = campaigns
        self.viewport = ViewportController(add_node_anchor=self.settings.add_node_anchor)
        self.interaction = InteractionStateMachine(store, self.viewport, self.notifier)

    @classmethod
    def new(cls, settings: Optional[EditorSettings] = None, **kwargs) -> 'FlowEditor':
        """Start an empty flow containing only the start node."""
        settings = settings or get_editor_settings()
        store = GraphStore(
            id_generator=_id_generator(settings),
            start_position=Position(*settings.start_position),
        )
        return cls(store, settings=settings, **kwargs)

    @classmethod
    def load(cls, flow: Optional[Dict[str, Any]], settings: Optional[EditorSettings] = None,
             **kwargs) -> 'FlowEditor':
        """
        Open an existing flow (or template flow data).

        Accepts {name, description, campaignId, flowDefinition}; missing
        keys fall back to an empty flow.
        """
        if not flow:
            return cls.new(settings=settings, **kwargs)
        settings = settings or get_editor_settings()
        store = from_document(flow.get('flowDefinition'), id_generator=_id_generator(settings))
        editor = cls(
            store,
            name=flow.get('name') or '',
            description=flow.get('description') or '',
            campaign_id=parse_campaign_id(flow.get('campaignId')),
            settings=settings,
            **kwargs,
        )
        logger.info(f"Loaded flow '{editor.name}' with {len(store)} nodes")
        return editor

    # --- Flow settings ---

    def set_campaign(self, value: Any) -> None:
        self.campaign_id = parse_campaign_id(value)

    def campaign_options(self) -> List[Tuple[str, str]]:
        """(value, label) pairs for the campaign selector, 'No Campaign' first."""
        options = [(NO_CAMPAIGN, 'No Campaign')]
        if self.campaigns:
            for campaign in self.campaigns.list_campaigns():
                options.append((str(campaign.get('id')), campaign.get('name', '')))
        return options

    def buyer_options(self) -> List[Dict[str, Any]]:
        """Buyers for the action node's buyer selector."""
        if not self.buyers:
            return []
        return self.buyers.list_buyers()

    def close(self) -> None:
        """Detach the interaction machine from the store before discarding the session."""
        self.interaction.detach()

    # --- Node config ---

    def configure_node(self, node_id: str, values: Dict[str, Any]) -> List[str]:
        """
        Apply a config update from the node's config dialog.

        The update is checked against the node type's schema first; if it has
        errors they are reported through the notifier and nothing changes.
        Returns the error messages (empty on success).
        """
        node = self.store.get_node(node_id)
        errors = self.store.registry.validate_config(node.type, values, partial=True)
        if errors and self.store.registry.config_fields(node.type) is not None:
            logger.info(f"Rejected config update for node {node_id}: {errors}")
            self.notifier.notify("Invalid configuration", "; ".join(errors), "destructive")
            return errors
        if values:
            self.store.update_node_config(node_id, values)
        return []

    # --- Save ---

    def build_document(self) -> Dict[str, Any]:
        """Raises ValidationFailure if the flow cannot be saved."""
        return build_flow_document(self.name, self.description, self.campaign_id, self.store)

    def save(self) -> Optional[Dict[str, Any]]:
        """
        Validate, build and hand the document to the saver.

        Returns the document, or None if validation failed or the saver
        raised. Failures are reported through the notifier and not retried.
        """
        # A pending inline edit belongs in the saved document.
        self.interaction.commit_label_edit()

        try:
            document = self.build_document()
        except ValidationFailure as e:
            logger.info(f"Save aborted: {e}")
            self.notifier.notify("Validation Error", str(e), "destructive")
            return None

        if self.saver is None:
            return document

        try:
            self.saver.save(document)
        except Exception as e:
            logger.warning(f"Saving flow '{self.name}' failed: {e}")
            self.notifier.notify("Save failed", str(e), "destructive")
            return None

        logger.info(f"Saved flow '{self.name}' ({len(self.store)} nodes, "
                    f"{len(self.store.connections)} connections)")
        return document

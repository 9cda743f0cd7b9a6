"""
Interfaces for the editor's external collaborators.

The editor core never talks to the network itself. Buyer and campaign lists
come from lookup providers, saved documents go to a FlowSaver, and anything
the operator needs to see goes through a Notifier. The in-memory versions
here are used by tests and by the standalone app.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Shows a short message to the operator (a toast in the UI)."""

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        """
        Args:
            title: Short heading, e.g. "Cannot delete"
            description: One-line detail
            variant: 'default', 'success' or 'destructive'
        """
        ...


@runtime_checkable
class BuyerProvider(Protocol):
    def list_buyers(self) -> List[Dict[str, Any]]:
        """Return buyers as dicts with id, name and phoneNumber or email."""
        ...


@runtime_checkable
class CampaignProvider(Protocol):
    def list_campaigns(self) -> List[Dict[str, Any]]:
        """Return campaigns as dicts with at least id and name."""
        ...


@runtime_checkable
class FlowSaver(Protocol):
    def save(self, document: Dict[str, Any]) -> Any:
        """Persist a flow document. Raising signals a failed save."""
        ...


class LoggingNotifier:
    """Notifier that writes to the log. Used when no UI is attached."""

    def __init__(self):
        self.messages: List[Dict[str, str]] = []

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.messages.append({'title': title, 'description': description, 'variant': variant})
        if variant == 'destructive':
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")


class StaticBuyerProvider:
    def __init__(self, buyers: Optional[List[Dict[str, Any]]] = None):
        self._buyers = list(buyers or [])

    def list_buyers(self) -> List[Dict[str, Any]]:
        return list(self._buyers)


class StaticCampaignProvider:
    def __init__(self, campaigns: Optional[List[Dict[str, Any]]] = None):
        self._campaigns = list(campaigns or [])

    def list_campaigns(self) -> List[Dict[str, Any]]:
        return list(self._campaigns)


class CallbackFlowSaver:
    """Adapts a plain callable (e.g. an onSave handler) to the FlowSaver interface."""

    def __init__(self, callback: Callable[[Dict[str, Any]], Any]):
        self._callback = callback

    def save(self, document: Dict[str, Any]) -> Any:
        return self._callback(document)


class MemoryFlowSaver:
    """Keeps every saved document in memory."""

    def __init__(self):
        self.saved: List[Dict[str, Any]] = []

    def save(self, document: Dict[str, Any]) -> Any:
        self.saved.append(document)
        return document

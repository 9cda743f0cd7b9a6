"""
Domain errors for the call flow editor.

StructuralRejection and ValidationFailure are recoverable: the operation that
raised them left the graph untouched, so callers report and carry on.
"""


class FlowEditorError(Exception):
    """Base class for all call flow editor errors."""
    pass


class StructuralRejection(FlowEditorError):
    """Raised when a mutation would break a graph invariant (e.g. deleting the start node)."""
    pass


class ValidationFailure(FlowEditorError):
    """Raised when a flow cannot be saved (e.g. missing flow name)."""
    pass


class NodeNotFoundError(FlowEditorError, KeyError):
    """Raised when a node id is not present in the graph."""
    pass


class ConnectionNotFoundError(FlowEditorError, KeyError):
    """Raised when a connection id is not present in the graph."""
    pass


class DocumentError(FlowEditorError, ValueError):
    """Raised when a flow-definition document cannot be hydrated."""
    pass

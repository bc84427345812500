"""Custom exceptions for external collaborators."""

from typing import Optional


class CollaboratorUnavailable(Exception):
    """A collaborator errored or could not be reached.

    Parent class for every collaborator failure. Search catches it around
    proximity retrieval to degrade to a full scan; trust recomputation lets
    it propagate so the previous trust record stays authoritative.
    """

    def __init__(self, message: str, collaborator: Optional[str] = None) -> None:
        """Initialize error.

        Args:
            message: Human-readable error message
            collaborator: Name of the collaborator that failed
        """
        super().__init__(message)
        self.collaborator = collaborator


class CollaboratorTimeoutError(CollaboratorUnavailable):
    """A collaborator call did not complete within its time bound."""

    def __init__(self, message: str, collaborator: str, timeout_seconds: float) -> None:
        """Initialize timeout error.

        Args:
            message: Human-readable error message
            collaborator: Name of the collaborator that timed out
            timeout_seconds: The bound that was exceeded
        """
        super().__init__(message, collaborator=collaborator)
        self.timeout_seconds = timeout_seconds

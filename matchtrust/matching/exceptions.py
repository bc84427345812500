"""Exceptions raised by recommendation search."""


class InvalidQuery(ValueError):
    """A search request is malformed (bad coordinates, limit, or parameters)."""

    def __init__(self, message: str, field: str = None):
        """Initialize error.

        Args:
            message: Human-readable error message
            field: Name of the offending request field, if known
        """
        super().__init__(message)
        self.field = field

"""Structured logging helpers shared by every matchtrust component."""

import logging
from typing import Optional, Union

from .context import log_context


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps a default ``component`` onto every record.

    Fields passed in a call's ``extra`` win over the adapter defaults.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Return a logger, optionally bound to a component name.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier added to every record, e.g. "matching"

    Example:
        >>> logger = get_logger(__name__, component="trust")
        >>> logger.info("Trust recomputed", extra={"event": "trust.recomputed"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger


__all__ = ["ComponentLoggerAdapter", "get_logger", "log_context"]

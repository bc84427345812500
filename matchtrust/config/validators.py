"""Soft configuration checks that warn instead of failing."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    search = config_dict.get("search") or {}
    if isinstance(search, dict):
        if search.get("overfetch_factor") == 1:
            warning_messages.append(
                "overfetch_factor of 1 may return fewer results than requested once "
                "booked and low-rated providers are filtered out"
            )
        radius = search.get("default_max_distance_km")
        if isinstance(radius, (int, float)) and radius > 100:
            warning_messages.append(
                f"Large default_max_distance_km ({radius}) makes location scores nearly flat"
            )

    trust = config_dict.get("trust") or {}
    if isinstance(trust, dict):
        interval = trust.get("refresh_interval")
        if isinstance(interval, str):
            try:
                if parse_duration(interval) < 1800:
                    warning_messages.append(
                        f"Short refresh_interval ({interval}) recomputes every provider frequently"
                    )
            except DurationParseError:
                pass  # reported by model validation

    sentiment = config_dict.get("sentiment") or {}
    if isinstance(sentiment, dict):
        for key in ("positive_terms", "negative_terms"):
            terms = sentiment.get(key)
            if isinstance(terms, list):
                normalized = [t.strip().lower() for t in terms if isinstance(t, str)]
                duplicates = sorted({t for t in normalized if normalized.count(t) > 1})
                if duplicates:
                    warning_messages.append(
                        f"Duplicate terms in {key} will be deduplicated: {', '.join(duplicates)}"
                    )
                multiword = sorted(t for t in normalized if " " in t)
                if multiword:
                    warning_messages.append(
                        f"Multi-word entries in {key} never match single tokens: {', '.join(multiword)}"
                    )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message as a UserWarning."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)

"""Batch trust refresh across all providers."""

from .models import ProviderRefreshFailure, RefreshRunResult
from .runner import TrustRefreshPipeline

__all__ = [
    "ProviderRefreshFailure",
    "RefreshRunResult",
    "TrustRefreshPipeline",
]

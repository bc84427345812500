"""Trust score computation and persistence."""

from .engine import TrustScoreEngine, aggregate_score, compute_factors, status_for
from .exceptions import ProviderNotFound, TrustEngineError, TrustPersistenceError
from .locks import KeyedLocks

__all__ = [
    "KeyedLocks",
    "ProviderNotFound",
    "TrustEngineError",
    "TrustPersistenceError",
    "TrustScoreEngine",
    "aggregate_score",
    "compute_factors",
    "status_for",
]

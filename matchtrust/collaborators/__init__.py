"""Collaborator interfaces consumed by the matching and trust engines."""

from .base import (
    CandidateFilters,
    CandidateSource,
    EngagementStateSource,
    ProviderDirectory,
    ResponsivenessSource,
    ReviewStore,
    TrustRecordSink,
    VerificationStateSource,
)
from .bounded import BoundedCaller
from .exceptions import CollaboratorTimeoutError, CollaboratorUnavailable

__all__ = [
    "BoundedCaller",
    "CandidateFilters",
    "CandidateSource",
    "CollaboratorTimeoutError",
    "CollaboratorUnavailable",
    "EngagementStateSource",
    "ProviderDirectory",
    "ResponsivenessSource",
    "ReviewStore",
    "TrustRecordSink",
    "VerificationStateSource",
]

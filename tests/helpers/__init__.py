"""Test helper utilities for matchtrust tests."""

from .in_memory import (
    FailingCandidateSource,
    InMemoryCandidateSource,
    InMemoryDirectory,
    InMemoryEngagementState,
    InMemoryResponsiveness,
    InMemoryReviewStore,
    InMemoryTrustSink,
    InMemoryVerificationState,
    make_provider,
)

__all__ = [
    "FailingCandidateSource",
    "InMemoryCandidateSource",
    "InMemoryDirectory",
    "InMemoryEngagementState",
    "InMemoryResponsiveness",
    "InMemoryReviewStore",
    "InMemoryTrustSink",
    "InMemoryVerificationState",
    "make_provider",
]

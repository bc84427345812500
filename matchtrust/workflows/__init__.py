"""Business workflows that trigger trust recomputation."""

from .exceptions import (
    DuplicateReview,
    EngagementNotFound,
    InvalidVerificationStatus,
    ReviewNotAllowed,
    WorkflowError,
)
from .models import ReviewOutcome, VerificationOutcome
from .reviews import ReviewService
from .verification import VerificationService

__all__ = [
    "DuplicateReview",
    "EngagementNotFound",
    "InvalidVerificationStatus",
    "ReviewNotAllowed",
    "ReviewOutcome",
    "ReviewService",
    "VerificationOutcome",
    "VerificationService",
    "WorkflowError",
]

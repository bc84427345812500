"""Exceptions raised by review and verification workflows."""


class WorkflowError(Exception):
    """Base class for workflow errors."""


class EngagementNotFound(WorkflowError):
    def __init__(self, engagement_id: str):
        super().__init__(f"Engagement not found: {engagement_id}")
        self.engagement_id = engagement_id


class ReviewNotAllowed(WorkflowError):
    """The engagement cannot be reviewed (wrong provider or not completed)."""


class DuplicateReview(WorkflowError):
    def __init__(self, engagement_id: str):
        super().__init__(f"Engagement {engagement_id} has already been reviewed")
        self.engagement_id = engagement_id


class InvalidVerificationStatus(WorkflowError):
    def __init__(self, status: str):
        super().__init__(f"Invalid verification status: {status!r}. Expected 'verified' or 'rejected'")
        self.status = status

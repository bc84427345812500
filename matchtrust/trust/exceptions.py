"""Exceptions raised by trust score computation."""

from matchtrust.domain.models import TrustRecord


class TrustEngineError(Exception):
    """Base class for trust engine errors."""


class ProviderNotFound(TrustEngineError):
    """The provider identifier is unknown."""

    def __init__(self, provider_id: str):
        super().__init__(f"Provider not found: {provider_id}")
        self.provider_id = provider_id


class TrustPersistenceError(TrustEngineError):
    """A trust record was computed but could not be stored.

    The previously stored record stays authoritative until the next
    successful recompute.

    Attributes:
        provider_id: Provider the record belongs to
        record: The computed record that was not persisted
    """

    def __init__(self, provider_id: str, record: TrustRecord, message: str = ""):
        super().__init__(message or f"Failed to persist trust record for provider {provider_id}")
        self.provider_id = provider_id
        self.record = record

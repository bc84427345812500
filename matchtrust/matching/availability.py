"""Search eligibility of providers."""

from typing import AbstractSet, Iterable, List

from matchtrust.domain.models import Provider


class AvailabilityFilter:
    """Keeps only providers that are bookable right now.

    A provider is bookable when it is active, administratively verified, and
    has no open (pending or accepted) engagement. The open-engagement set is
    passed in on every call and never cached, since booking state changes
    far more often than profiles do.
    """

    def filter(
        self, candidates: Iterable[Provider], open_engagement_ids: AbstractSet[str]
    ) -> List[Provider]:
        """Return the bookable subset of ``candidates``, preserving order."""
        return [p for p in candidates if self.is_available(p, open_engagement_ids)]

    @staticmethod
    def is_available(provider: Provider, open_engagement_ids: AbstractSet[str]) -> bool:
        return (
            provider.is_active
            and provider.is_verified
            and provider.provider_id not in open_engagement_ids
        )

"""Administrator verification workflow."""

from typing import Union

from matchtrust.domain.models import VerificationStatus
from matchtrust.logging import get_logger, log_context
from matchtrust.persistence.database import get_session
from matchtrust.persistence.exceptions import RecordNotFoundError
from matchtrust.persistence.repositories import ProviderRepository
from matchtrust.trust.engine import TrustScoreEngine
from matchtrust.trust.exceptions import ProviderNotFound

from .exceptions import InvalidVerificationStatus
from .models import VerificationOutcome
from .trust_refresh import recompute_after

logger = get_logger(__name__, component="workflows")

DECISIONS = (VerificationStatus.VERIFIED, VerificationStatus.REJECTED)


class VerificationService:
    """Applies verify/reject decisions and refreshes trust.

    Verifying marks both identity documents verified and re-activates the
    provider. Rejecting only changes the status, which removes the provider
    from search results and forces its trust status to ``Needs Review``.
    """

    def __init__(self, trust_engine: TrustScoreEngine):
        self.trust_engine = trust_engine

    def set_status(
        self, provider_id: str, status: Union[VerificationStatus, str]
    ) -> VerificationOutcome:
        """Record a verification decision.

        Returns:
            VerificationOutcome with the provider re-read after the recompute

        Raises:
            InvalidVerificationStatus: If status is not verified or rejected
            ProviderNotFound: If the provider is unknown
        """
        try:
            decision = VerificationStatus(status)
        except ValueError as e:
            raise InvalidVerificationStatus(str(status)) from e
        if decision not in DECISIONS:
            raise InvalidVerificationStatus(decision.value)

        with log_context(provider_id=provider_id):
            try:
                with get_session() as session:
                    repository = ProviderRepository(session)
                    if decision == VerificationStatus.VERIFIED:
                        repository.set_verification(
                            provider_id, decision, documents_verified=True, is_active=True
                        )
                    else:
                        repository.set_verification(provider_id, decision)
            except RecordNotFoundError as e:
                raise ProviderNotFound(provider_id) from e

            logger.info(
                f"Provider {provider_id} {decision.value}",
                extra={"event": "verification.updated", "verification_status": decision.value},
            )

            record, error = recompute_after(self.trust_engine, provider_id, trigger="verification")

            with get_session() as session:
                provider = ProviderRepository(session).get(provider_id)

            return VerificationOutcome(provider=provider, trust_record=record, trust_error=error)

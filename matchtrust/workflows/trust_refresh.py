"""Trust recompute after a committed business action."""

from typing import Optional, Tuple

from matchtrust.collaborators.exceptions import CollaboratorUnavailable
from matchtrust.domain.models import TrustRecord
from matchtrust.logging import get_logger
from matchtrust.trust.engine import TrustScoreEngine
from matchtrust.trust.exceptions import TrustEngineError

logger = get_logger(__name__, component="workflows")


def recompute_after(
    engine: TrustScoreEngine, provider_id: str, trigger: str
) -> Tuple[Optional[TrustRecord], Optional[str]]:
    """Recompute trust for ``provider_id`` without undoing the triggering action.

    A failure leaves the stored trust record stale until the next trigger.
    It is logged as a recoverable inconsistency and returned to the caller.

    Returns:
        Tuple of (record, error message); exactly one of them is None
    """
    try:
        return engine.recompute(provider_id), None
    except (TrustEngineError, CollaboratorUnavailable) as e:
        logger.warning(
            f"Trust score for {provider_id} is stale after {trigger}: {e}",
            extra={
                "event": "trust.stale",
                "provider_id": provider_id,
                "trigger": trigger,
                "error_type": type(e).__name__,
            },
        )
        return None, str(e)

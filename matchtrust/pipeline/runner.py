"""Batch trust refresh orchestration."""

import concurrent.futures
import contextvars
import threading
from collections import Counter
from typing import List, Optional, Tuple
from uuid import uuid4

from matchtrust.collaborators.base import ProviderDirectory
from matchtrust.collaborators.exceptions import CollaboratorUnavailable
from matchtrust.domain.models import TrustRecord
from matchtrust.logging import get_logger, log_context
from matchtrust.trust.engine import TrustScoreEngine
from matchtrust.trust.exceptions import TrustEngineError, TrustPersistenceError
from matchtrust.utils.timestamps import utc_now

from .models import ProviderRefreshFailure, RefreshRunResult

logger = get_logger(__name__, component="pipeline")


class TrustRefreshPipeline:
    """
    Recomputes the trust record of every provider.

    Recomputes run on a bounded thread pool; the engine serializes work on
    the same provider, so a refresh can overlap with review or verification
    triggers safely. Only one refresh runs at a time per pipeline instance.
    """

    def __init__(
        self,
        trust_engine: TrustScoreEngine,
        directory: ProviderDirectory,
        max_workers: int = 4,
    ):
        """
        Initialize the refresh pipeline.

        Args:
            trust_engine: Engine performing each recompute
            directory: Source of the provider identifiers to refresh
            max_workers: Parallel recomputes
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got: {max_workers}")
        self.trust_engine = trust_engine
        self.directory = directory
        self.max_workers = max_workers
        self._lock = threading.Lock()

    def run_once(self) -> RefreshRunResult:
        """
        Refresh all providers once.

        Provider-level failures are captured in the result and never abort
        the run. If the provider list itself cannot be read, the run ends
        early with ``error_message`` set.

        Returns:
            RefreshRunResult with aggregate counts and per-provider failures
        """
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Trust refresh skipped: previous run still in progress",
                    extra={"event": "trust.refresh.run.skipped", "reason": "lock_held"},
                )
            return RefreshRunResult(
                run_started_at=run_started_at, run_finished_at=utc_now(), skipped=True
            )

        try:
            with log_context(run_id=run_id):
                logger.info(
                    "Trust refresh started",
                    extra={"event": "trust.refresh.run.started", "max_workers": self.max_workers},
                )

                try:
                    provider_ids = self.directory.list_provider_ids()
                except CollaboratorUnavailable as e:
                    logger.error(
                        f"Trust refresh aborted, provider list unavailable: {e}",
                        extra={"event": "trust.refresh.run.failed", "error": str(e)},
                    )
                    return RefreshRunResult(
                        run_started_at=run_started_at,
                        run_finished_at=utc_now(),
                        error_message=str(e),
                    )

                outcomes = self._recompute_all(provider_ids)

                status_counts: Counter = Counter()
                failures: List[ProviderRefreshFailure] = []
                for provider_id, record, failure in outcomes:
                    if failure is not None:
                        failures.append(failure)
                    else:
                        status_counts[record.status.value] += 1

                result = RefreshRunResult(
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    provider_count=len(provider_ids),
                    recomputed_count=sum(status_counts.values()),
                    status_counts=dict(status_counts),
                    failures=sorted(failures, key=lambda f: f.provider_id),
                )

                logger.info(
                    "Trust refresh completed",
                    extra={
                        "event": "trust.refresh.run.completed",
                        "duration_ms": int(result.total_duration_seconds * 1000),
                        "provider_count": result.provider_count,
                        "recomputed": result.recomputed_count,
                        "failed": result.failed_count,
                        "stale": result.stale_count,
                        "had_errors": result.had_errors,
                    },
                )
                return result
        finally:
            self._lock.release()

    def _recompute_all(
        self, provider_ids: List[str]
    ) -> List[Tuple[str, Optional[TrustRecord], Optional[ProviderRefreshFailure]]]:
        if not provider_ids:
            return []

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(provider_ids)),
            thread_name_prefix="trust-refresh",
        ) as executor:
            # Each task runs in a copy of the caller's context to keep run_id in logs
            futures = [
                executor.submit(contextvars.copy_context().run, self._recompute_one, provider_id)
                for provider_id in provider_ids
            ]
            return [future.result() for future in futures]

    def _recompute_one(
        self, provider_id: str
    ) -> Tuple[str, Optional[TrustRecord], Optional[ProviderRefreshFailure]]:
        try:
            return provider_id, self.trust_engine.recompute(provider_id), None
        except TrustPersistenceError as e:
            failure = ProviderRefreshFailure(
                provider_id=provider_id,
                error_type=type(e).__name__,
                error_message=str(e),
                computed=True,
            )
        except (TrustEngineError, CollaboratorUnavailable) as e:
            failure = ProviderRefreshFailure(
                provider_id=provider_id, error_type=type(e).__name__, error_message=str(e)
            )
        except Exception as e:
            logger.error(
                f"Unexpected error refreshing trust of {provider_id}: {e}",
                extra={"event": "trust.refresh.provider.error", "provider_id": provider_id},
                exc_info=True,
            )
            failure = ProviderRefreshFailure(
                provider_id=provider_id, error_type=type(e).__name__, error_message=str(e)
            )

        logger.warning(
            f"Trust refresh failed for {provider_id}: {failure.error_message}",
            extra={
                "event": "trust.refresh.provider.failed",
                "provider_id": provider_id,
                "error_type": failure.error_type,
            },
        )
        return provider_id, None, failure

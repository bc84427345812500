"""Data models for trust refresh run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class ProviderRefreshFailure:
    """
    One provider whose trust record could not be refreshed.

    Attributes:
        provider_id: Provider identifier
        error_type: Exception class name
        error_message: Exception message
        computed: True when the record was computed but not persisted
    """

    provider_id: str
    error_type: str
    error_message: str
    computed: bool = False


@dataclass
class RefreshRunResult:
    """
    Aggregate results of one batch trust refresh.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        total_duration_seconds: Total time for the entire run
        provider_count: Providers the run attempted
        recomputed_count: Providers whose record was computed and stored
        status_counts: Recomputed providers per trust status label
        failures: Providers that could not be refreshed
        skipped: Whether the run was skipped (previous run still in progress)
        error_message: Set when the run could not start (e.g. provider list unavailable)
    """

    run_started_at: datetime
    run_finished_at: datetime
    total_duration_seconds: float = 0.0
    provider_count: int = 0
    recomputed_count: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    failures: List[ProviderRefreshFailure] = field(default_factory=list)
    skipped: bool = False
    error_message: Optional[str] = None

    def __post_init__(self):
        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def stale_count(self) -> int:
        """Records computed but not persisted."""
        return sum(1 for f in self.failures if f.computed)

    @property
    def had_errors(self) -> bool:
        return bool(self.failures) or self.error_message is not None

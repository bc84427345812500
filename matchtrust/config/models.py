"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from matchtrust.sentiment.lexicon import NEGATIVE_TERMS, POSITIVE_TERMS

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _checked_duration(value: str, label: str, min_seconds: int, max_seconds: int) -> str:
    try:
        validate_duration_range(
            parse_duration(value), min_seconds=min_seconds, max_seconds=max_seconds, label=label
        )
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return value


class SearchConfig(BaseModel):
    """Recommendation search settings."""

    default_max_distance_km: float = Field(
        10.0, gt=0.0, le=500.0, description="Search radius used when the request sets none"
    )
    default_limit: int = Field(20, ge=1, description="Result count used when the request sets none")
    max_limit: int = Field(100, ge=1, le=1000, description="Upper bound on requested limits")
    overfetch_factor: int = Field(
        2, ge=1, le=10, description="Candidates fetched per requested result"
    )
    retrieval_timeout: str = Field(
        "5s", description="Time bound on candidate and engagement-state retrieval"
    )
    price_decay_step: float = Field(
        1000.0, gt=0.0, description="Currency units outside the price range per decay step"
    )
    price_decay_points: float = Field(
        5.0, ge=0.0, le=15.0, description="Price-fit points lost per decay step"
    )

    @field_validator("retrieval_timeout")
    @classmethod
    def validate_retrieval_timeout(cls, v: str) -> str:
        return _checked_duration(v, "Retrieval timeout", min_seconds=1, max_seconds=300)

    @model_validator(mode="after")
    def validate_limits(self):
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) cannot exceed max_limit ({self.max_limit})"
            )
        return self

    @property
    def retrieval_timeout_seconds(self) -> int:
        return parse_duration(self.retrieval_timeout)


class TrustConfig(BaseModel):
    """Trust score maintenance settings."""

    refresh_interval: str = Field("6h", description="Interval between batch trust refreshes")
    response_window: str = Field(
        "24h", description="Window within which an engagement must be accepted to count as responsive"
    )
    max_workers: int = Field(4, ge=1, le=32, description="Parallel recomputes during a refresh")

    @field_validator("refresh_interval")
    @classmethod
    def validate_refresh_interval(cls, v: str) -> str:
        return _checked_duration(v, "Refresh interval", min_seconds=300, max_seconds=86400)

    @field_validator("response_window")
    @classmethod
    def validate_response_window(cls, v: str) -> str:
        return _checked_duration(v, "Response window", min_seconds=60, max_seconds=30 * 86400)

    @property
    def refresh_interval_seconds(self) -> int:
        return parse_duration(self.refresh_interval)

    @property
    def response_window_seconds(self) -> int:
        return parse_duration(self.response_window)


class SentimentConfig(BaseModel):
    """Optional replacement keyword lists for the review sentiment classifier."""

    positive_terms: Optional[List[str]] = Field(
        None, description="Replaces the built-in positive lexicon when set"
    )
    negative_terms: Optional[List[str]] = Field(
        None, description="Replaces the built-in negative lexicon when set"
    )

    @field_validator("positive_terms", "negative_terms")
    @classmethod
    def normalize_terms(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Lower-case, strip, drop empties and duplicates (order preserved)."""
        if v is None:
            return None
        normalized: List[str] = []
        for term in v:
            stripped = term.strip().lower()
            if stripped and stripped not in normalized:
                normalized.append(stripped)
        if not normalized:
            raise ValueError("Term list cannot be empty; omit it to use the built-in lexicon")
        return normalized

    @model_validator(mode="after")
    def validate_no_conflicts(self):
        """Check each list against the other side's effective lexicon.

        A side left unset keeps the built-in terms, so an override on one side
        must not reuse a built-in term of the other.
        """
        positive = set(self.positive_terms) if self.positive_terms else POSITIVE_TERMS
        negative = set(self.negative_terms) if self.negative_terms else NEGATIVE_TERMS
        conflicts = positive & negative
        if conflicts:
            raise ValueError(
                f"Terms cannot be both positive and negative: {', '.join(sorted(conflicts))}"
            )
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the matching and trust engine.

    Every section is optional; an empty file yields the defaults.
    """

    search: SearchConfig = Field(default_factory=SearchConfig)
    trust: TrustConfig = Field(default_factory=TrustConfig)
    sentiment: SentimentConfig = Field(default_factory=SentimentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}

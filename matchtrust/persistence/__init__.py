"""Persistence layer: database lifecycle, ORM schema, and repositories."""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DataIntegrityError,
    DatabaseConnectionError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    EngagementRepository,
    ProviderRepository,
    ReviewRepository,
    TrustRecordRepository,
)
from .schema import Base, EngagementModel, ProviderModel, ReviewModel, TrustRecordModel

__all__ = [
    # Database management
    "init_database",
    "get_session",
    "get_engine",
    "close_database",
    # Repositories
    "ProviderRepository",
    "ReviewRepository",
    "EngagementRepository",
    "TrustRecordRepository",
    # ORM models
    "Base",
    "ProviderModel",
    "ReviewModel",
    "EngagementModel",
    "TrustRecordModel",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]

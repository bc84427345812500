"""Command line entry point for the matching and trust engine."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import signal
import sys
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Tuple

from matchtrust.collaborators.exceptions import CollaboratorUnavailable
from matchtrust.collaborators.sql import (
    SqlCandidateSource,
    SqlEngagementStateSource,
    SqlProviderDirectory,
    SqlResponsivenessSource,
    SqlReviewStore,
    SqlTrustRecordSink,
    SqlVerificationStateSource,
)
from matchtrust.config.environment import EnvironmentConfig
from matchtrust.config.exceptions import ConfigurationError
from matchtrust.config.loader import load_config
from matchtrust.config.models import AppConfig
from matchtrust.logging import get_logger
from matchtrust.logging.config import configure_logging
from matchtrust.matching.engine import RecommendationEngine
from matchtrust.matching.exceptions import InvalidQuery
from matchtrust.matching.query import preference_from_query
from matchtrust.persistence.database import close_database, init_database
from matchtrust.pipeline import TrustRefreshPipeline
from matchtrust.scheduler import SchedulerService
from matchtrust.sentiment.classifier import SentimentClassifier
from matchtrust.trust.engine import TrustScoreEngine
from matchtrust.trust.exceptions import TrustEngineError
from matchtrust.workflows import ReviewService, VerificationService

logger = get_logger(__name__, component="cli")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Services:
    """Engines and workflows wired to the SQL collaborators."""

    recommendation: RecommendationEngine
    trust: TrustScoreEngine
    reviews: ReviewService
    verification: VerificationService
    refresh: TrustRefreshPipeline


def build_services(app_config: AppConfig) -> Services:
    """Wire engines and workflows to the SQL collaborators.

    The database must already be initialized.
    """
    classifier = SentimentClassifier(
        positive_terms=app_config.sentiment.positive_terms,
        negative_terms=app_config.sentiment.negative_terms,
    )
    directory = SqlProviderDirectory()
    trust_engine = TrustScoreEngine(
        directory=directory,
        verification=SqlVerificationStateSource(),
        reviews=SqlReviewStore(),
        responsiveness=SqlResponsivenessSource(
            window=timedelta(seconds=app_config.trust.response_window_seconds)
        ),
        sink=SqlTrustRecordSink(),
    )
    return Services(
        recommendation=RecommendationEngine(
            candidates=SqlCandidateSource(),
            engagements=SqlEngagementStateSource(),
            settings=app_config.search,
        ),
        trust=trust_engine,
        reviews=ReviewService(classifier, trust_engine),
        verification=VerificationService(trust_engine),
        refresh=TrustRefreshPipeline(
            trust_engine, directory, max_workers=app_config.trust.max_workers
        ),
    )


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI flag > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"
    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="matchtrust",
        description="Location-aware provider matching and trust scoring",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Log level (overrides config and environment)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Rank providers for a location and print JSON")
    search.add_argument("--lat", required=True, help="Requester latitude")
    search.add_argument("--lng", required=True, help="Requester longitude")
    search.add_argument("--max-distance", help="Search radius in km")
    search.add_argument("--skills", help="Comma-separated skills, e.g. cleaning,cooking")
    search.add_argument("--min-experience", help="Minimum years of experience")
    search.add_argument("--min-price", help="Lower bound of the price range")
    search.add_argument("--max-price", help="Upper bound of the price range")
    search.add_argument("--min-rating", help="Minimum rating average")
    search.add_argument(
        "--sort-by", help="recommendation (default), rating, price, or distance"
    )
    search.add_argument("--limit", type=int, default=None, help="Maximum number of results")

    recompute = commands.add_parser("recompute", help="Recompute one provider's trust record")
    recompute.add_argument("provider_id")

    commands.add_parser("refresh", help="Recompute every provider's trust record once")
    commands.add_parser("serve", help="Run the periodic trust refresh until interrupted")
    return parser


def _search_params(args: argparse.Namespace) -> dict:
    mapping = {
        "lat": args.lat,
        "lng": args.lng,
        "maxDistance": args.max_distance,
        "skills": args.skills,
        "minExperience": args.min_experience,
        "minPrice": args.min_price,
        "maxPrice": args.max_price,
        "minRating": args.min_rating,
        "sortBy": args.sort_by,
    }
    return {key: value for key, value in mapping.items() if value is not None}


def run_search(services: Services, app_config: AppConfig, args: argparse.Namespace) -> int:
    preferences = preference_from_query(
        _search_params(args), default_max_distance_km=app_config.search.default_max_distance_km
    )
    results = services.recommendation.search(preferences, args.limit)
    print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
    return 0


def run_recompute(services: Services, args: argparse.Namespace) -> int:
    record = services.trust.recompute(args.provider_id)
    print(record.model_dump_json(indent=2))
    return 0


def run_refresh(services: Services) -> int:
    result = services.refresh.run_once()
    logger.info(
        f"Trust refresh finished: {result.recomputed_count} recomputed, "
        f"{result.failed_count} failed",
        extra={
            "event": "service.refresh.completed",
            "duration_seconds": result.total_duration_seconds,
            "had_errors": result.had_errors,
        },
    )
    return 1 if result.had_errors else 0


def run_serve(services: Services, app_config: AppConfig) -> int:
    shutdown_event = threading.Event()
    scheduler_service = SchedulerService(
        refresh_callable=services.refresh.run_once,
        interval_seconds=app_config.trust.refresh_interval_seconds,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )
    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
        scheduler_service.shutdown(wait=False)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, configure the service, and run one command.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1

    # Logs go to stderr so that search and recompute output stays parseable
    configure_logging(
        level=env_config.log_level,
        format_type=app_config.logging.format,
        environment=env_config.environment,
        stream=sys.stderr,
    )
    logger.info(
        "matchtrust starting",
        extra={
            "event": "service.starting",
            "command": args.command,
            "config_path": str(args.config) if args.config else None,
            "log_level": env_config.log_level,
        },
    )

    try:
        init_database(env_config.database_url)
        services = build_services(app_config)

        if args.command == "search":
            return run_search(services, app_config, args)
        if args.command == "recompute":
            return run_recompute(services, args)
        if args.command == "refresh":
            return run_refresh(services)
        return run_serve(services, app_config)

    except InvalidQuery as e:
        print(f"Invalid query: {e}", file=sys.stderr)
        return 2
    except (TrustEngineError, CollaboratorUnavailable) as e:
        logger.error(
            f"{args.command} failed: {e}",
            extra={"event": "service.command.failed", "error_type": type(e).__name__},
        )
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1
    finally:
        close_database()
        logger.info(
            "matchtrust stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )


if __name__ == "__main__":
    sys.exit(main())

"""Tests for the command line entry point."""

import json
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from matchtrust import main as cli
from matchtrust.config.models import AppConfig
from matchtrust.domain.models import Engagement, EngagementStatus, VerificationStatus
from matchtrust.persistence import (
    EngagementRepository,
    ProviderRepository,
    close_database,
    get_session,
    init_database,
)

from tests.helpers import make_provider


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    """SQLite file seeded with three providers, exported as DATABASE_URL."""
    url = f"sqlite:///{tmp_path / 'matchtrust.db'}"
    init_database(url)
    with get_session() as session:
        providers = ProviderRepository(session)
        providers.add(make_provider("near", latitude=28.6140, longitude=77.2100, rating=4.0))
        providers.add(make_provider("mid", latitude=28.6339, longitude=77.2090, rating=4.9))
        providers.add(make_provider("booked", latitude=28.6150, longitude=77.2095))
        providers.add(make_provider("pending", verification_status=VerificationStatus.PENDING))
        EngagementRepository(session).add(Engagement(
            engagement_id="e-1",
            provider_id="booked",
            status=EngagementStatus.ACCEPTED,
            created_at=datetime.now(timezone.utc) - timedelta(hours=1),
        ))
    close_database()

    monkeypatch.chdir(tmp_path)
    for name in ("LOG_LEVEL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", url)
    return url


class TestParser:
    """Tests for argument parsing."""

    def test_search_requires_coordinates(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["search", "--lat", "28.6"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_search_params_only_include_given_flags(self):
        args = cli.build_parser().parse_args(
            ["search", "--lat", "28.6", "--lng", "77.2", "--skills", "cooking", "--sort-by", "salary"]
        )

        assert cli._search_params(args) == {
            "lat": "28.6", "lng": "77.2", "skills": "cooking", "sortBy": "salary",
        }


class TestLoadRuntimeConfig:
    """Tests for log level resolution."""

    def test_cli_flag_wins(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        _, env_config = cli.load_runtime_config(None, "DEBUG")

        assert env_config.log_level == "DEBUG"

    def test_environment_beats_config_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("logging:\n  level: WARNING\n")
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        _, env_config = cli.load_runtime_config(None, None)

        assert env_config.log_level == "ERROR"

    def test_config_file_used_last(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("logging:\n  level: WARNING\n")
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        _, env_config = cli.load_runtime_config(None, None)

        assert env_config.log_level == "WARNING"


class TestMain:
    """End-to-end runs of main()."""

    def test_search_prints_ranked_json(self, database_url, capsys):
        exit_code = cli.main(["search", "--lat", "28.6139", "--lng", "77.2090", "--sort-by", "rating"])

        assert exit_code == 0
        results = json.loads(capsys.readouterr().out)
        assert [r["provider_id"] for r in results] == ["mid", "near"]
        assert all(r["distance_km"] <= 10 for r in results)

    def test_search_without_location_prints_empty_list(self, database_url, capsys):
        exit_code = cli.main(["search", "--lat", "0", "--lng", "0"])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_invalid_query_exit_code(self, database_url, capsys):
        exit_code = cli.main(["search", "--lat", "28.6", "--lng", "77.2", "--skills", "plumbing"])

        assert exit_code == 2
        assert "Invalid query" in capsys.readouterr().err

    def test_invalid_limit_exit_code(self, database_url):
        assert cli.main(["search", "--lat", "28.6", "--lng", "77.2", "--limit", "0"]) == 2

    def test_recompute_prints_record(self, database_url, capsys):
        exit_code = cli.main(["recompute", "near"])

        assert exit_code == 0
        record = json.loads(capsys.readouterr().out)
        assert 0 <= record["score"] <= 100
        assert record["factors"]["document_verification"] == 1.0

    def test_recompute_unknown_provider(self, database_url, capsys):
        assert cli.main(["recompute", "ghost"]) == 1
        assert "Provider not found: ghost" in capsys.readouterr().err

    def test_refresh(self, database_url):
        assert cli.main(["refresh"]) == 0

    def test_configuration_error(self, database_url, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("bogus: 1\n")

        assert cli.main(["--config", str(bad), "search", "--lat", "1", "--lng", "1"]) == 1
        assert "Configuration Error" in capsys.readouterr().err

    def test_unexpected_error_is_fatal(self, database_url, capsys):
        with patch.object(cli, "build_services", side_effect=RuntimeError("wiring broke")):
            assert cli.main(["refresh"]) == 1

        assert "Fatal error: wiring broke" in capsys.readouterr().err

    def test_database_closed_after_run(self, database_url):
        with patch.object(cli, "close_database") as close:
            cli.main(["refresh"])

        close.assert_called_once()
        close_database()


class TestBuildServices:
    """Tests for service wiring."""

    def test_custom_lexicon_reaches_review_service(self):
        config = AppConfig.model_validate({"sentiment": {"positive_terms": ["badhiya"]}})

        services = cli.build_services(config)

        assert services.reviews.classifier.positive_terms == frozenset({"badhiya"})
        assert services.recommendation.settings is config.search
        assert services.refresh.max_workers == config.trust.max_workers

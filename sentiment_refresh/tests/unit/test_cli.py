import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from sentiment_refresh import cli
from sentiment_refresh.core.errors import ConfigError
from sentiment_refresh.models.dtos import RefreshOutcome, RefreshRunDTO

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(mocker):
    mocker.patch.object(cli, "setup_logging")


@pytest.fixture
def mock_pipeline(mocker):
    pipeline = MagicMock()
    pipeline.run = AsyncMock()
    mocker.patch.object(cli, "build_pipeline", return_value=pipeline)
    return pipeline


@pytest.fixture
def mock_repository(mocker):
    repository = MagicMock()
    repository.get_run = AsyncMock()
    repository.seed_communities = AsyncMock()
    mocker.patch.object(cli, "build_repository", return_value=repository)
    return repository


def test_run_prints_outcome(mock_pipeline):
    mock_pipeline.run.return_value = RefreshOutcome(run_id=uuid.uuid4(), status="completed", timeframe="24h")

    result = runner.invoke(cli.app, ["run", "--timeframe", "24h", "--keyword", "codex"])

    assert result.exit_code == 0
    assert '"status": "completed"' in result.stdout
    mock_pipeline.run.assert_awaited_once_with(timeframe="24h", keyword="codex", trigger_source="cli")


def test_run_exits_non_zero_on_failure(mock_pipeline):
    mock_pipeline.run.return_value = RefreshOutcome(run_id=uuid.uuid4(), status="failed", timeframe="7d", error="x")

    result = runner.invoke(cli.app, ["run"])

    assert result.exit_code == 1


def test_run_config_error(mock_pipeline):
    mock_pipeline.run.side_effect = ConfigError("Missing REDDIT_CLIENT_ID in environment")

    result = runner.invoke(cli.app, ["run"])

    assert result.exit_code == 2


def test_status_prints_run(mock_repository):
    run_id = uuid.uuid4()
    mock_repository.get_run.return_value = RefreshRunDTO(
        id=run_id, status="completed", timeframe="7d", trigger_source="cli",
        triggered_at=datetime.now(timezone.utc),
    )

    result = runner.invoke(cli.app, ["status", str(run_id)])

    assert result.exit_code == 0
    assert str(run_id) in result.stdout
    mock_repository.get_run.assert_awaited_once_with(run_id)


def test_status_unknown_run(mock_repository):
    mock_repository.get_run.return_value = None
    result = runner.invoke(cli.app, ["status", str(uuid.uuid4())])
    assert result.exit_code == 1


def test_status_rejects_malformed_id(mock_repository):
    result = runner.invoke(cli.app, ["status", "not-a-uuid"])
    assert result.exit_code == 2
    mock_repository.get_run.assert_not_awaited()


def test_seed_uses_given_subreddits(mock_repository):
    mock_repository.seed_communities.return_value = 2

    result = runner.invoke(cli.app, ["seed", "-s", "openai", "-s", "codex"])

    assert result.exit_code == 0
    assert "Seeded 2" in result.stdout
    mock_repository.seed_communities.assert_awaited_once_with(["openai", "codex"])


def test_serve_starts_uvicorn_with_settings(mocker):
    run = mocker.patch.object(cli.uvicorn, "run")

    result = runner.invoke(cli.app, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    run.assert_called_once()
    assert run.call_args.args[0] == "sentiment_refresh.api.main:app"
    assert run.call_args.kwargs["port"] == 9000

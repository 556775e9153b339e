"""
Unit tests for the FastAPI application and command line entry point.
"""

import json
import os

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch

from review_apps.config import Settings
from review_apps.main import main, run_action
from review_apps.models.outcome import LifecyclePhase, RunOutcome, RunStatus
from review_apps.server import app

REQUIRED = {
    'INPUT_GITHUB_TOKEN': 'gh-token',
    'INPUT_HEROKU_API_TOKEN': 'heroku-token',
    'INPUT_HEROKU_PIPELINE_ID': 'pipe-1',
}


@pytest.fixture
def client():
    """Create a test client for the FastAPI application."""
    return TestClient(app)


@pytest.fixture
def event_file(tmp_path):
    path = tmp_path / "event.json"
    path.write_text(json.dumps({
        "action": "opened",
        "pull_request": {
            "number": 42,
            "head": {
                "ref": "feature/login",
                "sha": "abc123",
                "repo": {"id": 1001, "fork": False, "html_url": "https://github.com/acme/shop"},
            },
        },
    }))
    return path


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "version" in data
    assert data["docs"] == "/docs"


@pytest.mark.asyncio
async def test_run_action_reconciles_runner_event(event_file, tmp_path):
    """Test that the runner's event is classified and reconciled."""
    output = tmp_path / "output"
    with patch.dict(os.environ, {
        **REQUIRED,
        'GITHUB_EVENT_NAME': 'pull_request',
        'GITHUB_EVENT_PATH': str(event_file),
        'GITHUB_REPOSITORY': 'acme/shop',
        'GITHUB_OUTPUT': str(output),
    }, clear=True):
        settings = Settings()

    outcome = RunOutcome(status=RunStatus.FAILED, phase=LifecyclePhase.CREATING)
    with patch("review_apps.main.run_reconciliation", new_callable=AsyncMock,
               return_value=outcome) as mock_run:
        exit_code = await run_action(settings)

    assert exit_code == 1
    event = mock_run.call_args.args[0]
    assert event.pr_number == 42
    assert (event.owner, event.repo_name) == ("acme", "shop")
    assert mock_run.call_args.kwargs["output_path"] == str(output)


def test_main_reports_invalid_configuration():
    """Test that missing inputs exit non-zero."""
    with patch.dict(os.environ, {}, clear=True), \
            patch("review_apps.main.get_settings", side_effect=lambda: Settings()), \
            patch("review_apps.main.setup_logging"):
        assert main(["run"]) == 1


def test_main_returns_run_exit_code():
    with patch.dict(os.environ, REQUIRED, clear=True):
        settings = Settings()

    with patch("review_apps.main.get_settings", return_value=settings), \
            patch("review_apps.main.setup_logging"), \
            patch("review_apps.main.run_action", new_callable=AsyncMock, return_value=0) as mock_run:
        assert main([]) == 0

    mock_run.assert_awaited_once_with(settings)


def test_main_unsupported_event_fails():
    """Test that a run triggered by another event exits non-zero."""
    with patch.dict(os.environ, {**REQUIRED, 'GITHUB_EVENT_NAME': 'push'}, clear=True):
        settings = Settings()

    with patch("review_apps.main.get_settings", return_value=settings), \
            patch("review_apps.main.setup_logging"):
        assert main(["run"]) == 1


def test_main_serve_starts_server():
    with patch.dict(os.environ, REQUIRED, clear=True):
        settings = Settings()

    with patch("review_apps.main.get_settings", return_value=settings), \
            patch("review_apps.main.setup_logging"), \
            patch("review_apps.main.serve") as mock_serve:
        assert main(["serve", "--port", "9000"]) == 0

    mock_serve.assert_called_once_with("0.0.0.0", 9000)

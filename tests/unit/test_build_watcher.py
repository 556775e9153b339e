"""
Unit tests for the build status watcher.
"""

import logging

import pytest

from review_apps.exceptions import BuildFailedError, UnexpectedAppStatusError
from review_apps.services.build_watcher import BuildStatusWatcher
from review_apps.services.review_app_locator import ReviewAppLocator
from review_apps.utils.metrics import RunMetrics


@pytest.fixture
def watcher(fake_heroku, poller):
    return BuildStatusWatcher(fake_heroku, ReviewAppLocator(fake_heroku), poller)


def set_builds(fake_heroku, app_id, *builds):
    fake_heroku.builds[app_id] = [
        {"id": f"b-{version}", "version": version, "status": status}
        for version, status in builds
    ]


class TestCheckBuild:
    """Single polling attempts."""

    @pytest.mark.asyncio
    async def test_missing_review_app_is_fatal(self, watcher):
        with pytest.raises(UnexpectedAppStatusError):
            await watcher.check_build("pipe-1", 42, "abc123")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "creating", "deleting"])
    async def test_provisioning_is_not_finished(self, watcher, fake_heroku, status):
        fake_heroku.add_review_app("rv-1", 42, status, app_id="app-1")

        assert await watcher.check_build("pipe-1", 42, "abc123") is None
        assert not any(c[0] == "list_builds" for c in fake_heroku.calls)

    @pytest.mark.asyncio
    async def test_errored_without_application_is_fatal(self, watcher, fake_heroku):
        fake_heroku.add_review_app("rv-1", 42, "errored")

        with pytest.raises(UnexpectedAppStatusError, match='"errored"'):
            await watcher.check_build("pipe-1", 42, "abc123")

    @pytest.mark.asyncio
    async def test_only_matching_version_counts(self, watcher, fake_heroku):
        fake_heroku.add_review_app("rv-1", 42, "created", app_id="app-1")
        set_builds(fake_heroku, "app-1", ("old-sha", "succeeded"), ("abc123", "pending"))

        assert await watcher.check_build("pipe-1", 42, "abc123") is None
        assert await watcher.check_build("pipe-1", 42, "old-sha") == "app-1"

    @pytest.mark.asyncio
    async def test_no_matching_build_is_not_finished(self, watcher, fake_heroku):
        fake_heroku.add_review_app("rv-1", 42, "created", app_id="app-1")
        set_builds(fake_heroku, "app-1", ("old-sha", "succeeded"))

        assert await watcher.check_build("pipe-1", 42, "abc123") is None

    @pytest.mark.asyncio
    async def test_failed_build_without_detail(self, watcher, fake_heroku):
        fake_heroku.add_review_app("rv-1", 42, "created", app_id="app-1")
        set_builds(fake_heroku, "app-1", ("abc123", "failed"))

        with pytest.raises(BuildFailedError) as exc_info:
            await watcher.check_build("pipe-1", 42, "abc123")

        assert str(exc_info.value) == 'Unexpected build status: "failed": no error provided'

    @pytest.mark.asyncio
    async def test_different_review_app_is_logged_and_followed(self, watcher, fake_heroku, caplog):
        fake_heroku.add_review_app("rv-2", 42, "created", app_id="app-2")
        set_builds(fake_heroku, "app-2", ("abc123", "succeeded"))

        with caplog.at_level(logging.WARNING, logger="review_apps.services.build_watcher"):
            app_id = await watcher.check_build("pipe-1", 42, "abc123", review_app_id="rv-1")

        assert app_id == "app-2"
        assert "Review app for PR #42 is now rv-2, expected rv-1" in caplog.messages

    @pytest.mark.asyncio
    async def test_expected_review_app_logs_no_warning(self, watcher, fake_heroku, caplog):
        fake_heroku.add_review_app("rv-1", 42, "created", app_id="app-1")
        set_builds(fake_heroku, "app-1", ("abc123", "succeeded"))

        with caplog.at_level(logging.WARNING, logger="review_apps.services.build_watcher"):
            await watcher.check_build("pipe-1", 42, "abc123", review_app_id="rv-1")

        assert caplog.messages == []


class TestWaitForBuild:
    """Full waits across polling attempts."""

    @pytest.mark.asyncio
    async def test_resolves_application_once_build_succeeds(
        self, fake_heroku, poller, sleeps, timeline
    ):
        fake_heroku.add_review_app("rv-1", 42, "pending", timeline=timeline("app-1", "abc123"))
        metrics = RunMetrics(42, "pipe-1")
        watcher = BuildStatusWatcher(fake_heroku, ReviewAppLocator(fake_heroku), poller, metrics)

        application = await watcher.wait_for_build("pipe-1", 42, "abc123")

        assert application.id == "app-1"
        assert application.web_url == "https://app-1.example"
        assert ("get_app", "app-1") in fake_heroku.calls
        assert len(sleeps) == 3
        assert metrics.get_metrics_summary()["poll_iterations"]["build_wait"] == 4

    @pytest.mark.asyncio
    async def test_vanished_app_during_wait_is_fatal(self, watcher, fake_heroku):
        fake_heroku.add_review_app("rv-1", 42, "pending", timeline=[{}, {"remove": True}])

        with pytest.raises(UnexpectedAppStatusError):
            await watcher.wait_for_build("pipe-1", 42, "abc123")

"""
Shared fixtures: an in-memory platform and source control fake.

The fake platform advances every review app one step along its scripted
timeline each time the pipeline's review apps are listed, which is how the
real platform's asynchronous provisioning looks to a poller.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest

from review_apps.models.pr_event import PullRequestEvent
from review_apps.models.review_app import (
    AppReference,
    Build,
    ResolvedApplication,
    ReviewApp,
    ReviewAppCreateRequest,
    SourceBlob,
)
from review_apps.services.heroku_client import CreateResponse, HerokuNotFoundError
from review_apps.utils.polling import Poller

PIPELINE_ID = "pipe-1"


class FakeReviewApp:
    def __init__(self, review_app_id: str, pr_number: int, status: str,
                 app_id: Optional[str] = None, timeline: Optional[List[Dict[str, Any]]] = None):
        self.id = review_app_id
        self.pr_number = pr_number
        self.status = status
        self.app_id = app_id
        self.error_status: Optional[str] = None
        self.timeline = list(timeline or [])

    def snapshot(self) -> ReviewApp:
        return ReviewApp(
            id=self.id,
            pr_number=self.pr_number,
            status=self.status,
            app=AppReference(id=self.app_id) if self.app_id else None,
            error_status=self.error_status,
        )


class FakeHeroku:
    """In-memory stand-in for ``HerokuClient``."""

    def __init__(self):
        self.review_apps: Dict[str, FakeReviewApp] = {}
        self.builds: Dict[str, List[Dict[str, str]]] = {}
        self.calls: List[tuple] = []
        self.create_timelines: List[List[Dict[str, Any]]] = []
        self.max_live_per_pr = 0
        self.status_log: List[tuple] = []
        self._ids = itertools.count(1)

    # -- test helpers --

    def add_review_app(self, review_app_id: str, pr_number: int, status: str,
                       app_id: Optional[str] = None, timeline=None) -> FakeReviewApp:
        review_app = FakeReviewApp(review_app_id, pr_number, status, app_id, timeline)
        self.review_apps[review_app_id] = review_app
        self._track()
        return review_app

    def live_apps(self, pr_number: int) -> List[FakeReviewApp]:
        return [
            r for r in self.review_apps.values()
            if r.pr_number == pr_number and r.status not in ("deleting", "deleted")
        ]

    def mutation_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("create", "delete_review_app", "delete_app")]

    def _track(self) -> None:
        for pr_number in {r.pr_number for r in self.review_apps.values()}:
            self.max_live_per_pr = max(self.max_live_per_pr, len(self.live_apps(pr_number)))

    def _apply(self, review_app: FakeReviewApp, step: Dict[str, Any]) -> None:
        if step.get("remove"):
            del self.review_apps[review_app.id]
            return
        for key in ("status", "app_id", "error_status"):
            if key in step:
                setattr(review_app, key, step[key])
        if "builds" in step:
            self.builds[review_app.app_id] = [
                {"id": f"build-{version}", "version": version, "status": status}
                for version, status in step["builds"]
            ]

    def _advance(self) -> None:
        for review_app in list(self.review_apps.values()):
            if review_app.timeline:
                self._apply(review_app, review_app.timeline.pop(0))
        self._track()

    # -- HerokuClient interface --

    async def list_review_apps(self, pipeline_id: str) -> List[ReviewApp]:
        await asyncio.sleep(0)
        self.calls.append(("list_review_apps", pipeline_id))
        self._advance()
        snapshots = [r.snapshot() for r in self.review_apps.values()]
        self.status_log.append(tuple((s.id, s.status.value) for s in snapshots))
        return snapshots

    async def get_app(self, app_id: str) -> ResolvedApplication:
        await asyncio.sleep(0)
        self.calls.append(("get_app", app_id))
        return ResolvedApplication(id=app_id, name=f"name-{app_id}", web_url=f"https://{app_id}.example")

    async def list_builds(self, app_id: str) -> List[Build]:
        await asyncio.sleep(0)
        self.calls.append(("list_builds", app_id))
        return [
            Build(id=b["id"], status=b["status"], source_blob=SourceBlob(version=b["version"]))
            for b in self.builds.get(app_id, [])
        ]

    async def create_review_app(self, request: ReviewAppCreateRequest) -> CreateResponse:
        await asyncio.sleep(0)
        self.calls.append(("create", request.pr_number, request))
        if any(r.pr_number == request.pr_number for r in self.review_apps.values()):
            return CreateResponse(review_app=None, conflict=True)
        timeline = self.create_timelines.pop(0) if self.create_timelines else []
        review_app = self.add_review_app(
            f"rv-{next(self._ids)}", request.pr_number, "pending", timeline=timeline
        )
        return CreateResponse(review_app=review_app.snapshot(), conflict=False)

    async def delete_review_app(self, review_app_id: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("delete_review_app", review_app_id))
        if review_app_id not in self.review_apps:
            raise HerokuNotFoundError("not found", 404, "not_found")
        review_app = self.review_apps[review_app_id]
        review_app.status = "deleting"
        review_app.timeline = [{"remove": True}]

    async def delete_app(self, app_id: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("delete_app", app_id))
        for review_app in self.review_apps.values():
            if review_app.app_id == app_id:
                review_app.status = "deleting"
                review_app.timeline = [{"status": "deleting"}, {"remove": True}]
                return
        raise HerokuNotFoundError("not found", 404, "not_found")


class FakeGitHub:
    """In-memory stand-in for ``GitHubClient``."""

    def __init__(self):
        self.calls: List[tuple] = []

    async def get_tarball_url(self, owner: str, repo: str, ref: str) -> str:
        await asyncio.sleep(0)
        self.calls.append((owner, repo, ref))
        return f"https://codeload.example/{owner}/{repo}/tar.gz/{ref}"


def build_timeline(app_id: str, version: str, final_status: str = "succeeded") -> List[Dict[str, Any]]:
    """Typical provisioning: pending, creating, created with a pending build, then settled."""
    return [
        {"status": "pending"},
        {"status": "creating"},
        {"status": "created", "app_id": app_id, "builds": [(version, "pending")]},
        {"builds": [(version, final_status)]},
    ]


def make_event(**overrides) -> PullRequestEvent:
    fields = dict(
        action="opened",
        branch="feature/login",
        commit_sha="abc123",
        pr_number=42,
        repo_id=1001,
        is_fork=False,
        base_is_fork=False,
        repo_url="https://github.com/acme/shop",
        owner="acme",
        repo_name="shop",
        pipeline_id=PIPELINE_ID,
    )
    fields.update(overrides)
    return PullRequestEvent(**fields)


@pytest.fixture
def fake_heroku():
    return FakeHeroku()


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def sleeps():
    """Intervals the poller slept for."""
    return []


@pytest.fixture
def poller(sleeps):
    """Poller that yields to the event loop instead of sleeping."""
    async def fake_sleep(interval: float) -> None:
        sleeps.append(interval)
        await asyncio.sleep(0)

    return Poller(interval=5.0, max_attempts=200, sleep=fake_sleep)


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def timeline():
    return build_timeline

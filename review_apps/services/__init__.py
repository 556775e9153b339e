"""Business logic services package."""

from review_apps.services.build_watcher import BuildStatusWatcher
from review_apps.services.event_classifier import classify_event, load_event
from review_apps.services.github_client import GitHubAPIError, GitHubClient
from review_apps.services.heroku_client import (
    CreateResponse,
    HerokuAPIError,
    HerokuAuthenticationError,
    HerokuClient,
    HerokuNotFoundError,
)
from review_apps.services.lifecycle_controller import (
    InvalidTransition,
    LifecycleController,
)
from review_apps.services.result_reporter import ResultReporter
from review_apps.services.review_app_locator import ReviewAppLocator

__all__ = [
    'BuildStatusWatcher',
    'classify_event',
    'load_event',
    'GitHubAPIError',
    'GitHubClient',
    'CreateResponse',
    'HerokuAPIError',
    'HerokuAuthenticationError',
    'HerokuClient',
    'HerokuNotFoundError',
    'InvalidTransition',
    'LifecycleController',
    'ResultReporter',
    'ReviewAppLocator',
]

"""
Utility modules for the review app lifecycle manager.
"""

from review_apps.utils.logging import (
    get_logger,
    setup_logging,
    log_group,
    log_pr_event,
    log_phase_transition,
    log_api_call,
    log_error_with_context,
)
from review_apps.utils.metrics import (
    RunMetrics,
    track_api_call,
)
from review_apps.utils.polling import Poller

__all__ = [
    "get_logger",
    "setup_logging",
    "log_group",
    "log_pr_event",
    "log_phase_transition",
    "log_api_call",
    "log_error_with_context",
    "RunMetrics",
    "track_api_call",
    "Poller",
]

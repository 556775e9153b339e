"""
Metrics collection for a reconciliation run.

This module tracks:
- Run and per-phase execution time
- API call counts and latency per service
- Poll iterations of the destroy-wait and build-wait loops
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from review_apps.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class RunMetrics:
    """
    Collects metrics during one run for one pull request.

    Tracks:
    - Run start/end time
    - Duration of each lifecycle phase
    - API call counts and latency
    - Poll iteration counts
    """

    def __init__(self, pr_number: int, pipeline_id: str):
        self.pr_number = pr_number
        self.pipeline_id = pipeline_id

        # Timing metrics
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.duration_ms: Optional[int] = None
        self.phase_durations: Dict[str, int] = {}

        # API metrics
        self.api_calls: Dict[str, int] = {}
        self.api_latencies: Dict[str, list[float]] = {}

        # Polling metrics
        self.poll_iterations: Dict[str, int] = {}

        # Status
        self.status: str = "running"
        self.error_message: Optional[str] = None

    def start(self) -> None:
        """Mark run start."""
        self.start_time = datetime.now(timezone.utc)
        self.status = "running"

    def complete(self, status: str = "succeeded", error_message: Optional[str] = None) -> None:
        """
        Mark run completion and log the summary.

        Args:
            status: Final status ('succeeded', 'skipped', 'failed')
            error_message: Error message if failed
        """
        self.end_time = datetime.now(timezone.utc)
        self.status = status
        self.error_message = error_message

        if self.start_time:
            duration = (self.end_time - self.start_time).total_seconds()
            self.duration_ms = int(duration * 1000)

        logger.info(
            f"Run {status} for PR #{self.pr_number} in {self.duration_ms}ms",
            extra={"pr_number": self.pr_number, "metrics": self.get_metrics_summary()}
        )

    def record_phase(self, phase: str, duration_ms: int) -> None:
        self.phase_durations[phase] = self.phase_durations.get(phase, 0) + duration_ms

    def record_api_call(self, service: str, duration_ms: float) -> None:
        """
        Record API call and latency.

        Args:
            service: Service name ('heroku', 'github')
            duration_ms: Call duration in milliseconds
        """
        self.api_calls[service] = self.api_calls.get(service, 0) + 1
        self.api_latencies.setdefault(service, []).append(duration_ms)

    def record_poll(self, loop: str) -> None:
        self.poll_iterations[loop] = self.poll_iterations.get(loop, 0) + 1

    def get_metrics_summary(self) -> Dict[str, Any]:
        """
        Get summary of collected metrics.

        Returns:
            Dictionary of metrics
        """
        summary = {
            "pr_number": self.pr_number,
            "pipeline_id": self.pipeline_id,
            "status": self.status,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "phase_durations": self.phase_durations,
            "api_calls": self.api_calls,
            "poll_iterations": self.poll_iterations,
        }

        if self.api_latencies:
            latency_stats = {}
            for service, latencies in self.api_latencies.items():
                if latencies:
                    latency_stats[service] = {
                        "count": len(latencies),
                        "min_ms": round(min(latencies), 2),
                        "max_ms": round(max(latencies), 2),
                        "avg_ms": round(sum(latencies) / len(latencies), 2),
                    }
            summary["api_latencies"] = latency_stats

        if self.error_message:
            summary["error_message"] = self.error_message

        return summary


@asynccontextmanager
async def track_api_call(
    metrics: Optional[RunMetrics],
    service: str,
    method: str,
    endpoint: str,
    logger_adapter,
):
    """
    Context manager to track API call timing.

    Usage:
        async with track_api_call(metrics, "heroku", "GET", "/apps/1", logger) as call:
            response = await session.get(url)
            call["status_code"] = response.status
    """
    start_time = time.time()
    call: Dict[str, Any] = {"status_code": None}
    error = None

    try:
        yield call
    except Exception as e:
        error = e
        raise
    finally:
        duration_ms = (time.time() - start_time) * 1000

        if metrics:
            metrics.record_api_call(service, duration_ms)

        log_api_call(
            logger_adapter,
            service=service,
            endpoint=endpoint,
            method=method,
            status_code=call["status_code"],
            duration_ms=duration_ms,
            error=str(error) if error else None
        )

"""
Command line entry point.

``review-apps run`` (the default) reconciles the review app for the event
that triggered the current workflow run. ``review-apps serve`` starts the
webhook server instead.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from pydantic import ValidationError

from review_apps.config import Settings, get_settings
from review_apps.runner import run_reconciliation
from review_apps.services.event_classifier import load_event
from review_apps.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run_action(settings: Settings) -> int:
    """
    Reconcile the review app for the runner's event.

    Returns:
        Process exit code
    """
    event = load_event(
        settings.github_event_name,
        settings.github_event_path,
        settings.heroku_pipeline_id,
        settings.github_repository,
    )
    outcome = await run_reconciliation(event, settings, output_path=settings.github_output)
    return outcome.exit_code


def serve(host: str, port: int) -> None:
    import uvicorn
    uvicorn.run("review_apps.server:app", host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="review-apps",
        description="Create, update and delete review apps for pull requests.",
    )
    parser.add_argument("command", nargs="?", choices=["run", "serve"], default="run")
    parser.add_argument("--host", default="0.0.0.0", help="serve: bind address")
    parser.add_argument("--port", type=int, default=8000, help="serve: bind port")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings.log_level, settings.log_format)

    if args.command == "serve":
        serve(args.host, args.port)
        return 0

    try:
        return asyncio.run(run_action(settings))
    except Exception as e:
        logger.error(str(e) or type(e).__name__)
        logger.debug("Run aborted", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

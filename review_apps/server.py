"""
FastAPI application for server mode.
"""

from fastapi import FastAPI

from review_apps import __version__
from review_apps.api import webhooks

app = FastAPI(
    title="Review App Lifecycle Manager",
    description="Creates and tears down review apps for pull requests",
    version=__version__
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Review App Lifecycle Manager API",
        "version": __version__,
        "docs": "/docs"
    }


app.include_router(webhooks.router)

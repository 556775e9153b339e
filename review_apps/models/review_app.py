"""Review app and build data models mirrored from the platform API."""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewAppStatus(str, Enum):
    """Lifecycle status of a review app."""

    PENDING = "pending"
    CREATING = "creating"
    CREATED = "created"
    DELETING = "deleting"
    DELETED = "deleted"
    ERRORED = "errored"


# Statuses in which the underlying application is not usable yet
PROVISIONING_STATUSES = {
    ReviewAppStatus.PENDING,
    ReviewAppStatus.CREATING,
    ReviewAppStatus.DELETING,
}


class AppReference(BaseModel):
    """Reference to the application backing a review app."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None


class ReviewApp(BaseModel):
    """Snapshot of a review app as listed for a pipeline."""

    model_config = ConfigDict(extra="ignore")

    id: str
    pr_number: Optional[int] = None
    status: ReviewAppStatus
    app: Optional[AppReference] = None
    branch: Optional[str] = None
    error_status: Optional[str] = None
    message: Optional[str] = None

    @property
    def application_id(self) -> Optional[str]:
        return self.app.id if self.app else None

    @property
    def is_provisioning(self) -> bool:
        return self.status in PROVISIONING_STATUSES


class BuildStatus(str, Enum):
    """Status of a platform build."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SourceBlob(BaseModel):
    """Source archive a build or review app was created from."""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = None
    version: Optional[str] = None


class Build(BaseModel):
    """Snapshot of a build of an application."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    source_blob: SourceBlob = Field(default_factory=SourceBlob)

    @property
    def version(self) -> Optional[str]:
        return self.source_blob.version


class ResolvedApplication(BaseModel):
    """Application details published once the review app is up to date."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    web_url: Optional[str] = None


class ReviewAppCreateRequest(BaseModel):
    """Body of the create review app request."""

    branch: str
    pipeline: str
    source_blob: SourceBlob
    fork_repo_id: Optional[int] = None
    pr_number: int
    environment: Dict[str, str] = {}

    def to_payload(self) -> Dict:
        """Serialize for the API, omitting ``fork_repo_id`` when unset."""
        payload = self.model_dump()
        if payload["fork_repo_id"] is None:
            del payload["fork_repo_id"]
        return payload

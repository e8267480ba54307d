"""Response models for project and session endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from src.studio.services.auth.models import RequestIdentity, SessionPayload
from src.studio.services.database.models import (
    Asset,
    GenerationJob,
    Project,
    ProjectDetail,
    ProjectListItem,
    ProjectVersion,
)


class ProjectSummaryResponse(BaseModel):
    """Project row in the caller's project list."""

    model_config = ConfigDict(populate_by_name=True)

    project: Project
    latest_version: ProjectVersion | None = Field(default=None, alias="latestVersion")
    asset_counts: dict[str, int] = Field(default_factory=dict, alias="assetCounts")

    @classmethod
    def from_item(cls, item: ProjectListItem) -> "ProjectSummaryResponse":
        return cls(
            project=item.project, latest_version=item.latest_version, asset_counts=item.asset_counts
        )


class ProjectListResponse(BaseModel):
    projects: list[ProjectSummaryResponse]


class ProjectDetailResponse(BaseModel):
    """A project with its full history."""

    model_config = ConfigDict(populate_by_name=True)

    project: Project
    latest_version: ProjectVersion | None = Field(default=None, alias="latestVersion")
    versions: list[ProjectVersion] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    generation_jobs: list[GenerationJob] = Field(default_factory=list, alias="generationJobs")

    @classmethod
    def from_detail(cls, detail: ProjectDetail) -> "ProjectDetailResponse":
        return cls(
            project=detail.project,
            latest_version=detail.latest_version,
            versions=detail.versions,
            assets=detail.assets,
            generation_jobs=detail.generation_jobs,
        )


class SessionResponse(BaseModel):
    """Identity forwarded by the access gate plus the parsed session cookie."""

    identity: RequestIdentity
    session: SessionPayload | None = None

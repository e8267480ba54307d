"""Abstract repository for users, projects, versions, assets and jobs."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from uuid import uuid4

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from src.studio.services.database.exceptions import VersionConflictError
from src.studio.services.database.models import (
    Asset,
    AssetType,
    GeneratedWith,
    GenerationJob,
    JobPayload,
    JobStatus,
    Project,
    ProjectDetail,
    ProjectListItem,
    ProjectStatus,
    ProjectVersion,
    ScriptSection,
    SeoMetadata,
    User,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a new record ID."""
    return str(uuid4())


class BaseRepository(ABC):
    """
    Persistence operations used by the generation and project handlers.

    Implementations: SupabaseRepository (production) and InMemoryRepository
    (development and tests). Methods are synchronous; the project views fan
    independent reads out to worker threads.
    """

    @abstractmethod
    def ensure_user(
        self, access_sub: str, email: str | None = None, name: str | None = None
    ) -> User:
        """
        Fetch or create the user for an access subject.

        Existing rows get email/name updated only with new non-empty values.
        """
        pass

    @abstractmethod
    def get_project_by_id(self, project_id: str) -> Project | None:
        """Fetch a project by ID."""
        pass

    @abstractmethod
    def create_project(
        self,
        user_id: str,
        title: str | None = None,
        topic: str | None = None,
        target_length: int | None = None,
    ) -> Project:
        """Create a project in draft status."""
        pass

    @abstractmethod
    def update_project_metadata(
        self,
        project_id: str,
        title: str | None = None,
        topic: str | None = None,
        status: ProjectStatus | None = None,
    ) -> None:
        """Update display metadata; None leaves a field unchanged."""
        pass

    @abstractmethod
    def _latest_version_number(self, project_id: str) -> int:
        """Highest version number for a project, 0 when none exist."""
        pass

    @abstractmethod
    def _insert_version_row(self, version: ProjectVersion) -> ProjectVersion:
        """
        Insert a version row.

        Raises:
            VersionConflictError: If (project_id, version) already exists
        """
        pass

    @abstractmethod
    def insert_generation_job(
        self, project_id: str, payload: JobPayload, status: JobStatus = JobStatus.RUNNING
    ) -> GenerationJob:
        """Record a new generation job."""
        pass

    @abstractmethod
    def update_generation_job_status(
        self, job_id: str, status: JobStatus, error: str | None = None
    ) -> None:
        """Move a job to a new status, replacing its error message."""
        pass

    @abstractmethod
    def insert_asset(
        self,
        project_id: str,
        asset_type: AssetType,
        storage_key: str,
        label: str | None = None,
        mime_type: str | None = None,
        size_bytes: int | None = None,
    ) -> Asset:
        """Append an asset row."""
        pass

    @abstractmethod
    def list_project_versions(self, project_id: str) -> list[ProjectVersion]:
        """Versions for a project, newest first."""
        pass

    @abstractmethod
    def get_latest_project_version(self, project_id: str) -> ProjectVersion | None:
        """Highest-numbered version for a project."""
        pass

    @abstractmethod
    def list_assets_for_project(self, project_id: str) -> list[Asset]:
        """Assets for a project, newest first."""
        pass

    @abstractmethod
    def list_generation_jobs_for_project(self, project_id: str) -> list[GenerationJob]:
        """Jobs for a project, newest first."""
        pass

    @abstractmethod
    def list_projects_for_user(self, user_id: str) -> list[Project]:
        """Projects owned by a user, most recently updated first."""
        pass

    @abstractmethod
    def count_assets_by_type(self, project_id: str) -> dict[str, int]:
        """Asset counts keyed by asset type."""
        pass

    @retry(
        retry=retry_if_exception_type(VersionConflictError),
        stop=stop_after_attempt(3),
        wait=wait_random(min=0, max=0.05),
        reraise=True,
    )
    def insert_project_version(
        self,
        project_id: str,
        sections: list[ScriptSection],
        outline: list[str],
        seo: SeoMetadata,
        generated_with: GeneratedWith | None = None,
    ) -> ProjectVersion:
        """
        Insert the next version of a project's script.

        The version number is read as max(existing) + 1. Two concurrent
        writers can pick the same number; the unique (project_id, version)
        constraint rejects the loser, which re-reads and retries up to three
        times before the VersionConflictError propagates.

        Returns:
            The inserted ProjectVersion
        """
        next_version = self._latest_version_number(project_id) + 1
        version = ProjectVersion(
            id=new_id(),
            project_id=project_id,
            version=next_version,
            sections=sections,
            outline=outline,
            seo=seo,
            generated_with=generated_with,
            created_at=utcnow(),
        )
        try:
            return self._insert_version_row(version)
        except VersionConflictError:
            logger.warning(
                f"Version {next_version} already exists for project {project_id}, retrying",
                extra={"project_id": project_id, "version": next_version},
            )
            raise

    async def get_project_detail(self, project_id: str) -> ProjectDetail | None:
        """
        Load a project with its versions, assets and jobs.

        The three listings are independent and are fetched concurrently.

        Returns:
            ProjectDetail, or None if the project does not exist
        """
        project = await asyncio.to_thread(self.get_project_by_id, project_id)
        if project is None:
            return None

        versions, assets, jobs = await asyncio.gather(
            asyncio.to_thread(self.list_project_versions, project_id),
            asyncio.to_thread(self.list_assets_for_project, project_id),
            asyncio.to_thread(self.list_generation_jobs_for_project, project_id),
        )

        return ProjectDetail(
            project=project,
            latest_version=versions[0] if versions else None,
            versions=versions,
            assets=assets,
            generation_jobs=jobs,
        )

    async def list_project_summaries(self, user_id: str) -> list[ProjectListItem]:
        """Projects for a user with their latest version and asset counts."""
        projects = await asyncio.to_thread(self.list_projects_for_user, user_id)
        items: list[ProjectListItem] = []
        for project in projects:
            latest, counts = await asyncio.gather(
                asyncio.to_thread(self.get_latest_project_version, project.id),
                asyncio.to_thread(self.count_assets_by_type, project.id),
            )
            items.append(ProjectListItem(project=project, latest_version=latest, asset_counts=counts))
        return items

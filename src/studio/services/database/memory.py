"""In-memory repository for development and tests."""

import logging
import threading

from src.studio.services.database.base import BaseRepository, new_id, utcnow
from src.studio.services.database.exceptions import VersionConflictError
from src.studio.services.database.models import (
    Asset,
    AssetType,
    GenerationJob,
    JobPayload,
    JobStatus,
    JobType,
    Project,
    ProjectStatus,
    ProjectVersion,
    User,
)

logger = logging.getLogger(__name__)


class InMemoryRepository(BaseRepository):
    """
    Process-local store mirroring the relational schema.

    Rows live in dictionaries guarded by a single re-entrant lock. The
    (project_id, version) uniqueness rule is enforced like the database
    index so the retry path behaves the same.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.projects: dict[str, Project] = {}
        self.versions: dict[str, ProjectVersion] = {}
        self.assets: dict[str, Asset] = {}
        self.jobs: dict[str, GenerationJob] = {}
        self._lock = threading.RLock()

    def ensure_user(
        self, access_sub: str, email: str | None = None, name: str | None = None
    ) -> User:
        with self._lock:
            existing = next((u for u in self.users.values() if u.access_sub == access_sub), None)
            if existing is not None:
                updates = {k: v for k, v in (("email", email), ("name", name)) if v}
                if updates:
                    existing = existing.model_copy(update=updates)
                    self.users[existing.id] = existing
                return existing

            user = User(
                id=new_id(), access_sub=access_sub, email=email, name=name, created_at=utcnow()
            )
            self.users[user.id] = user
            logger.info(f"Created user for subject {access_sub}", extra={"user_id": user.id})
            return user

    def get_project_by_id(self, project_id: str) -> Project | None:
        with self._lock:
            return self.projects.get(project_id)

    def create_project(
        self,
        user_id: str,
        title: str | None = None,
        topic: str | None = None,
        target_length: int | None = None,
    ) -> Project:
        now = utcnow()
        project = Project(
            id=new_id(),
            user_id=user_id,
            title=title,
            topic=topic,
            target_length=target_length,
            status=ProjectStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.projects[project.id] = project
        return project

    def update_project_metadata(
        self,
        project_id: str,
        title: str | None = None,
        topic: str | None = None,
        status: ProjectStatus | None = None,
    ) -> None:
        with self._lock:
            project = self.projects.get(project_id)
            if project is None:
                return
            updates = {
                k: v for k, v in (("title", title), ("topic", topic), ("status", status)) if v is not None
            }
            updates["updated_at"] = utcnow()
            self.projects[project_id] = project.model_copy(update=updates)

    def _latest_version_number(self, project_id: str) -> int:
        with self._lock:
            numbers = [v.version for v in self.versions.values() if v.project_id == project_id]
            return max(numbers, default=0)

    def _insert_version_row(self, version: ProjectVersion) -> ProjectVersion:
        with self._lock:
            for existing in self.versions.values():
                if existing.project_id == version.project_id and existing.version == version.version:
                    raise VersionConflictError(
                        f"Version {version.version} already exists for project {version.project_id}"
                    )
            self.versions[version.id] = version
            return version

    def insert_generation_job(
        self, project_id: str, payload: JobPayload, status: JobStatus = JobStatus.RUNNING
    ) -> GenerationJob:
        now = utcnow()
        job = GenerationJob(
            id=new_id(),
            project_id=project_id,
            job_type=JobType(payload.job_type),
            status=status,
            payload=payload,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.jobs[job.id] = job
        return job

    def update_generation_job_status(
        self, job_id: str, status: JobStatus, error: str | None = None
    ) -> None:
        with self._lock:
            job = self.jobs.get(job_id)
            if job is None:
                return
            self.jobs[job_id] = job.model_copy(
                update={"status": status, "error": error, "updated_at": utcnow()}
            )

    def insert_asset(
        self,
        project_id: str,
        asset_type: AssetType,
        storage_key: str,
        label: str | None = None,
        mime_type: str | None = None,
        size_bytes: int | None = None,
    ) -> Asset:
        asset = Asset(
            id=new_id(),
            project_id=project_id,
            type=asset_type,
            label=label,
            storage_key=storage_key,
            mime_type=mime_type,
            size_bytes=size_bytes,
            created_at=utcnow(),
        )
        with self._lock:
            self.assets[asset.id] = asset
        return asset

    def list_project_versions(self, project_id: str) -> list[ProjectVersion]:
        with self._lock:
            rows = [v for v in self.versions.values() if v.project_id == project_id]
        return sorted(rows, key=lambda v: v.version, reverse=True)

    def get_latest_project_version(self, project_id: str) -> ProjectVersion | None:
        versions = self.list_project_versions(project_id)
        return versions[0] if versions else None

    def list_assets_for_project(self, project_id: str) -> list[Asset]:
        with self._lock:
            rows = [a for a in reversed(list(self.assets.values())) if a.project_id == project_id]
        return sorted(rows, key=lambda a: a.created_at, reverse=True)

    def list_generation_jobs_for_project(self, project_id: str) -> list[GenerationJob]:
        with self._lock:
            rows = [j for j in reversed(list(self.jobs.values())) if j.project_id == project_id]
        return sorted(rows, key=lambda j: j.created_at, reverse=True)

    def list_projects_for_user(self, user_id: str) -> list[Project]:
        with self._lock:
            rows = [p for p in reversed(list(self.projects.values())) if p.user_id == user_id]
        return sorted(rows, key=lambda p: p.updated_at, reverse=True)

    def count_assets_by_type(self, project_id: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for asset in self.list_assets_for_project(project_id):
            counts[asset.type.value] = counts.get(asset.type.value, 0) + 1
        return counts

"""Supabase (PostgreSQL) repository implementation."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from src.studio.exceptions import PersistenceError
from src.studio.services.database.base import BaseRepository, new_id, utcnow
from src.studio.services.database.exceptions import VersionConflictError
from src.studio.services.database.models import (
    Asset,
    AssetType,
    GenerationJob,
    JobPayload,
    JobStatus,
    Project,
    ProjectStatus,
    ProjectVersion,
    User,
)
from src.studio.services.database.utils import get_query_builder

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except APIError as e:
        logger.error(
            f"Supabase {operation} failed: {e}",
            extra={"error_type": "persistence_failed", "operation": operation, "code": e.code},
        )
        raise PersistenceError(f"{operation} failed: {e.message}") from e


def _job_from_row(row: dict[str, Any]) -> GenerationJob:
    payload = row.get("payload") or {}
    if isinstance(payload, dict) and "job_type" not in payload:
        payload = {**payload, "job_type": row["job_type"]}
    return GenerationJob.model_validate({**row, "payload": payload})


class SupabaseRepository(BaseRepository):
    """
    Repository backed by the Supabase tables created in
    ``supabase/migrations``.

    JSON columns (sections, outline, seo, generated_with, payload) are
    serialized here and nowhere else.
    """

    def __init__(self, client: Client) -> None:
        self.db = get_query_builder(client)

    def ensure_user(
        self, access_sub: str, email: str | None = None, name: str | None = None
    ) -> User:
        with _translate_errors("ensure_user"):
            existing = self.db.get_by_field("users", "access_sub", access_sub)
            if existing is not None:
                updates = {k: v for k, v in (("email", email), ("name", name)) if v}
                if updates:
                    existing = self.db.update_record("users", existing["id"], updates) or {
                        **existing,
                        **updates,
                    }
                return User.model_validate(existing)

            try:
                inserted = self.db.insert_record(
                    "users",
                    {"id": new_id(), "access_sub": access_sub, "email": email, "name": name},
                )
            except APIError as e:
                # Another request created the same subject first
                if e.code != UNIQUE_VIOLATION:
                    raise
                inserted = self.db.get_by_field("users", "access_sub", access_sub)

            if inserted is None:
                raise PersistenceError("Failed to insert user")
            return User.model_validate(inserted)

    def get_project_by_id(self, project_id: str) -> Project | None:
        with _translate_errors("get_project_by_id"):
            row = self.db.get_by_id("projects", project_id)
        return Project.model_validate(row) if row else None

    def create_project(
        self,
        user_id: str,
        title: str | None = None,
        topic: str | None = None,
        target_length: int | None = None,
    ) -> Project:
        with _translate_errors("create_project"):
            row = self.db.insert_record(
                "projects",
                {
                    "id": new_id(),
                    "user_id": user_id,
                    "title": title,
                    "topic": topic,
                    "target_length": target_length,
                    "status": ProjectStatus.DRAFT.value,
                },
            )
        if row is None:
            raise PersistenceError("Failed to create project")
        return Project.model_validate(row)

    def update_project_metadata(
        self,
        project_id: str,
        title: str | None = None,
        topic: str | None = None,
        status: ProjectStatus | None = None,
    ) -> None:
        data: dict[str, Any] = {"updated_at": utcnow().isoformat()}
        if title is not None:
            data["title"] = title
        if topic is not None:
            data["topic"] = topic
        if status is not None:
            data["status"] = status.value
        with _translate_errors("update_project_metadata"):
            self.db.update_record("projects", project_id, data)

    def _latest_version_number(self, project_id: str) -> int:
        with _translate_errors("latest_version_number"):
            rows = self.db.list_records(
                "project_versions",
                columns="version",
                filters={"project_id": project_id},
                order_by="version",
                limit=1,
            )
        return rows[0]["version"] if rows else 0

    def _insert_version_row(self, version: ProjectVersion) -> ProjectVersion:
        record = version.model_dump(mode="json", by_alias=True, exclude={"created_at"})
        try:
            row = self.db.insert_record("project_versions", record)
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise VersionConflictError(
                    f"Version {version.version} already exists for project {version.project_id}"
                ) from e
            raise PersistenceError(f"insert_project_version failed: {e.message}") from e
        if row is None:
            raise PersistenceError("Failed to insert project version")
        return ProjectVersion.model_validate(row)

    def insert_generation_job(
        self, project_id: str, payload: JobPayload, status: JobStatus = JobStatus.RUNNING
    ) -> GenerationJob:
        with _translate_errors("insert_generation_job"):
            row = self.db.insert_record(
                "generation_jobs",
                {
                    "id": new_id(),
                    "project_id": project_id,
                    "job_type": payload.job_type,
                    "status": status.value,
                    "payload": payload.model_dump(mode="json", by_alias=True),
                },
            )
        if row is None:
            raise PersistenceError("Failed to insert generation job")
        return _job_from_row(row)

    def update_generation_job_status(
        self, job_id: str, status: JobStatus, error: str | None = None
    ) -> None:
        with _translate_errors("update_generation_job_status"):
            self.db.update_record(
                "generation_jobs",
                job_id,
                {"status": status.value, "error": error, "updated_at": utcnow().isoformat()},
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
        with _translate_errors("insert_asset"):
            row = self.db.insert_record(
                "assets",
                {
                    "id": new_id(),
                    "project_id": project_id,
                    "type": asset_type.value,
                    "label": label,
                    "storage_key": storage_key,
                    "mime_type": mime_type,
                    "size_bytes": size_bytes,
                },
            )
        if row is None:
            raise PersistenceError("Failed to insert asset")
        return Asset.model_validate(row)

    def list_project_versions(self, project_id: str) -> list[ProjectVersion]:
        with _translate_errors("list_project_versions"):
            rows = self.db.list_records(
                "project_versions", filters={"project_id": project_id}, order_by="version"
            )
        return [ProjectVersion.model_validate(row) for row in rows]

    def get_latest_project_version(self, project_id: str) -> ProjectVersion | None:
        with _translate_errors("get_latest_project_version"):
            rows = self.db.list_records(
                "project_versions", filters={"project_id": project_id}, order_by="version", limit=1
            )
        return ProjectVersion.model_validate(rows[0]) if rows else None

    def list_assets_for_project(self, project_id: str) -> list[Asset]:
        with _translate_errors("list_assets_for_project"):
            rows = self.db.list_records(
                "assets", filters={"project_id": project_id}, order_by="created_at"
            )
        return [Asset.model_validate(row) for row in rows]

    def list_generation_jobs_for_project(self, project_id: str) -> list[GenerationJob]:
        with _translate_errors("list_generation_jobs_for_project"):
            rows = self.db.list_records(
                "generation_jobs", filters={"project_id": project_id}, order_by="created_at"
            )
        return [_job_from_row(row) for row in rows]

    def list_projects_for_user(self, user_id: str) -> list[Project]:
        with _translate_errors("list_projects_for_user"):
            rows = self.db.list_records(
                "projects", filters={"user_id": user_id}, order_by="updated_at"
            )
        return [Project.model_validate(row) for row in rows]

    def count_assets_by_type(self, project_id: str) -> dict[str, int]:
        with _translate_errors("count_assets_by_type"):
            rows = self.db.list_records("assets", columns="type", filters={"project_id": project_id})
        counts: dict[str, int] = {}
        for row in rows:
            counts[row["type"]] = counts.get(row["type"], 0) + 1
        return counts

"""API handlers for project read views and the current session."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.studio.features.projects.schemas import (
    ProjectDetailResponse,
    ProjectListResponse,
    ProjectSummaryResponse,
    SessionResponse,
)
from src.studio.services.auth.dependencies import get_current_session, get_request_identity
from src.studio.services.auth.models import RequestIdentity, SessionPayload
from src.studio.services.database.base import BaseRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def get_repository(request: Request) -> BaseRepository:
    """FastAPI dependency returning the shared repository."""
    return request.app.state.container.repository


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    identity: RequestIdentity = Depends(get_request_identity),
    repository: BaseRepository = Depends(get_repository),
) -> ProjectListResponse:
    """
    List the caller's projects, most recently updated first.

    Each entry carries the latest script version and asset counts by type.

    Raises:
        HTTPException: 401 without an authenticated subject
        HTTPException: 500 if the query fails
    """
    try:
        user = await asyncio.to_thread(
            repository.ensure_user, identity.sub, identity.email, identity.name
        )
        items = await repository.list_project_summaries(user.id)
        return ProjectListResponse(projects=[ProjectSummaryResponse.from_item(i) for i in items])
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list projects: {e}", extra={"error_type": "project_list_failed"})
        raise HTTPException(status_code=500, detail="Unable to fetch projects") from e


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    repository: BaseRepository = Depends(get_repository),
) -> ProjectDetailResponse:
    """
    Get a project with all versions, assets and generation jobs.

    Raises:
        HTTPException: 403 if the project belongs to another user
        HTTPException: 404 if the project does not exist
        HTTPException: 500 if the query fails
    """
    try:
        user = await asyncio.to_thread(
            repository.ensure_user, identity.sub, identity.email, identity.name
        )
        detail = await repository.get_project_detail(project_id)

        if detail is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")

        if detail.project.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Project does not belong to user"
            )

        return ProjectDetailResponse.from_detail(detail)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to fetch project {project_id}: {e}",
            extra={"error_type": "project_detail_failed", "project_id": project_id},
        )
        raise HTTPException(status_code=500, detail="Unable to fetch project") from e


@router.get("/session", response_model=SessionResponse)
async def get_session(
    identity: RequestIdentity = Depends(get_request_identity),
    session: SessionPayload | None = Depends(get_current_session),
) -> SessionResponse:
    """Return the forwarded identity and the parsed session cookie, if any."""
    return SessionResponse(identity=identity, session=session)

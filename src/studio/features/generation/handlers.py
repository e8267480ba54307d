"""API handlers for generation endpoints."""

import logging
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from src.studio.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.studio.features.generation.schemas import (
    ImageGenerationRequest,
    ImageGenerationResponse,
    ScriptGenerationRequest,
    ScriptGenerationResponse,
    TtsGenerationRequest,
    TtsGenerationResponse,
)
from src.studio.features.generation.service import GenerationService
from src.studio.services.auth.dependencies import get_request_identity
from src.studio.services.auth.models import RequestIdentity

logger = logging.getLogger(__name__)

router = APIRouter()

RequestModelT = TypeVar("RequestModelT", bound=BaseModel)


def get_generation_service(request: Request) -> GenerationService:
    """FastAPI dependency returning the shared GenerationService."""
    return request.app.state.container.generation_service


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    if first["type"] in ("missing", "string_too_short"):
        return f"'{field}' is required"
    if first["type"] == "too_short":
        return f"'{field}' must be a non-empty array"
    return f"Invalid '{field}': {first['msg']}"


async def parse_body(request: Request, model: type[RequestModelT]) -> RequestModelT:
    """
    Parse and validate a JSON body.

    Validation failures are reported as 400 with a short message rather
    than FastAPI's 422 error list.

    Raises:
        BadRequestError: For malformed JSON or missing/invalid fields
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise BadRequestError("Invalid JSON body") from e

    if not isinstance(body, dict):
        raise BadRequestError("Invalid JSON body")

    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise BadRequestError(_validation_message(e)) from e


CLIENT_ERROR_STATUS = {
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


def _client_http_error(error: BadRequestError | ForbiddenError | NotFoundError) -> HTTPException:
    return HTTPException(status_code=CLIENT_ERROR_STATUS[type(error)], detail=str(error))


@router.post("/generate/script", response_model=ScriptGenerationResponse)
async def generate_script(
    request: Request,
    identity: RequestIdentity = Depends(get_request_identity),
    service: GenerationService = Depends(get_generation_service),
) -> ScriptGenerationResponse:
    """
    Generate a video script plan with Gemini.

    Creates a draft project when no projectId is given. Identical requests
    are served from cache unless ``regenerate`` is true.

    Returns:
        {projectId, cached, result}

    Raises:
        HTTPException: 400 for an invalid body
        HTTPException: 401 without an authenticated subject
        HTTPException: 403 if the project belongs to another user
        HTTPException: 404 if the project does not exist
        HTTPException: 500 if generation fails
    """
    try:
        body = await parse_body(request, ScriptGenerationRequest)
        return await service.generate_script(identity, body)
    except HTTPException:
        raise
    except (BadRequestError, ForbiddenError, NotFoundError) as e:
        raise _client_http_error(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to generate script") from e


@router.post("/generate/image", response_model=ImageGenerationResponse)
async def generate_image(
    request: Request,
    identity: RequestIdentity = Depends(get_request_identity),
    service: GenerationService = Depends(get_generation_service),
) -> ImageGenerationResponse:
    """
    Generate an image with DeepAI and store it as a project asset.

    Returns:
        {projectId, assetId, key}
    """
    try:
        body = await parse_body(request, ImageGenerationRequest)
        return await service.generate_image(identity, body)
    except HTTPException:
        raise
    except (BadRequestError, ForbiddenError, NotFoundError) as e:
        raise _client_http_error(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to generate image") from e


@router.post(
    "/generate/tts", response_model=TtsGenerationResponse, response_model_exclude_none=True
)
async def generate_tts(
    request: Request,
    identity: RequestIdentity = Depends(get_request_identity),
    service: GenerationService = Depends(get_generation_service),
) -> TtsGenerationResponse:
    """
    Synthesize narration for each section with Google TTS.

    Returns:
        {projectId, assets: [{assetId, key, heading}]}
    """
    try:
        body = await parse_body(request, TtsGenerationRequest)
        return await service.generate_speech(identity, body)
    except HTTPException:
        raise
    except (BadRequestError, ForbiddenError, NotFoundError) as e:
        raise _client_http_error(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to generate audio") from e

"""Request and response models for generation endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.studio.services.database.models import TtsSectionPayload
from src.studio.services.providers.base import ScriptResult


class ScriptGenerationRequest(BaseModel):
    """Body of POST /generate/script."""

    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1)
    persona: str | None = None
    length_minutes: float | None = Field(default=None, alias="lengthMinutes", gt=0)
    language: str | None = None
    project_id: str | None = Field(default=None, alias="projectId")
    regenerate: bool = False


class ImageGenerationRequest(BaseModel):
    """Body of POST /generate/image."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)
    prompt: str = Field(min_length=1)
    style: str | None = None
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")
    label: str | None = None


class TtsGenerationRequest(BaseModel):
    """Body of POST /generate/tts."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)
    sections: list[TtsSectionPayload] = Field(min_length=1)
    voice: dict[str, Any] | None = None
    audio_config: dict[str, Any] | None = Field(default=None, alias="audioConfig")


class ScriptGenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    cached: bool
    result: ScriptResult


class ImageGenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    asset_id: str = Field(alias="assetId")
    key: str


class AudioAssetResponse(BaseModel):
    """One synthesized section."""

    model_config = ConfigDict(populate_by_name=True)

    asset_id: str = Field(alias="assetId")
    key: str
    heading: str | None = None


class TtsGenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    assets: list[AudioAssetResponse]

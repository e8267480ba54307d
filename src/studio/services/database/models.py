"""Pydantic models for database entities."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"
    ARCHIVED = "archived"


class JobType(str, Enum):
    """Kind of provider invocation a generation job records."""

    SCRIPT = "script"
    TTS = "tts"
    IMAGE = "image"


class JobStatus(str, Enum):
    """Generation job lifecycle status."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AssetType(str, Enum):
    """Stored media asset categories."""

    AUDIO = "audio"
    IMAGE = "image"
    EXPORT = "export"


class User(BaseModel):
    """User mirrored from an Access identity."""

    id: str
    access_sub: str
    email: str | None = None
    name: str | None = None
    created_at: datetime


class Project(BaseModel):
    """Video project owned by exactly one user."""

    id: str
    user_id: str
    title: str | None = None
    topic: str | None = None
    target_length: int | None = None
    status: ProjectStatus = ProjectStatus.DRAFT
    created_at: datetime
    updated_at: datetime


class ScriptSection(BaseModel):
    """One chapter of a generated script."""

    model_config = ConfigDict(populate_by_name=True)

    heading: str
    narration: str
    broll_ideas: list[str] | None = Field(default=None, alias="brollIdeas")
    duration_seconds: float | None = Field(default=None, alias="durationSeconds")


class SeoMetadata(BaseModel):
    """Search metadata for the published video."""

    title: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)


class GeneratedWith(BaseModel):
    """Provenance of a script version."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    provider: str | None = None
    model: str | None = None
    thumbnail_ideas: list[str] | None = Field(default=None, alias="thumbnailIdeas")
    persona: str | None = None
    length_minutes: float | None = Field(default=None, alias="lengthMinutes")
    language: str | None = None


class ProjectVersion(BaseModel):
    """Immutable snapshot of a generated script."""

    id: str
    project_id: str
    version: int = Field(ge=1)
    sections: list[ScriptSection] = Field(default_factory=list)
    outline: list[str] = Field(default_factory=list)
    seo: SeoMetadata = Field(default_factory=SeoMetadata)
    generated_with: GeneratedWith | None = None
    created_at: datetime


class Asset(BaseModel):
    """Stored media artifact produced by a provider."""

    id: str
    project_id: str
    type: AssetType
    label: str | None = None
    storage_key: str
    mime_type: str | None = None
    size_bytes: int | None = None
    created_at: datetime


class ScriptJobPayload(BaseModel):
    """Request recorded for a script generation job."""

    model_config = ConfigDict(populate_by_name=True)

    job_type: Literal["script"] = "script"
    topic: str
    persona: str | None = None
    length_minutes: float | None = Field(default=None, alias="lengthMinutes")
    language: str | None = None
    regenerate: bool = False


class TtsSectionPayload(BaseModel):
    """One section submitted for speech synthesis."""

    id: str | None = None
    heading: str | None = None
    text: str | None = None


class TtsJobPayload(BaseModel):
    """Request recorded for a speech synthesis job."""

    model_config = ConfigDict(populate_by_name=True)

    job_type: Literal["tts"] = "tts"
    sections: list[TtsSectionPayload]
    voice: dict[str, Any] | None = None
    audio_config: dict[str, Any] | None = Field(default=None, alias="audioConfig")


class ImageJobPayload(BaseModel):
    """Request recorded for an image generation job."""

    model_config = ConfigDict(populate_by_name=True)

    job_type: Literal["image"] = "image"
    prompt: str
    style: str | None = None
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")
    label: str | None = None


JobPayload = Annotated[
    ScriptJobPayload | TtsJobPayload | ImageJobPayload, Field(discriminator="job_type")
]


class GenerationJob(BaseModel):
    """Durable record of one provider invocation."""

    id: str
    project_id: str
    job_type: JobType
    status: JobStatus
    payload: JobPayload
    error: str | None = None
    created_at: datetime
    updated_at: datetime


class ProjectListItem(BaseModel):
    """Project with its latest version and asset counts."""

    project: Project
    latest_version: ProjectVersion | None = None
    asset_counts: dict[str, int] = Field(default_factory=dict)


class ProjectDetail(BaseModel):
    """Project with its full version, asset and job history."""

    project: Project
    latest_version: ProjectVersion | None = None
    versions: list[ProjectVersion] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    generation_jobs: list[GenerationJob] = Field(default_factory=list)

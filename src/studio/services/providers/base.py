"""Provider interfaces and result models for script, speech and image generation."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.studio.exceptions import UpstreamError
from src.studio.services.database.models import ScriptSection, SeoMetadata


IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/svg+xml": "svg",
}


class ProviderError(UpstreamError):
    """Raised when a generation provider call fails or returns unusable output."""

    pass


class ScriptParams(BaseModel):
    """Inputs for script generation."""

    topic: str
    persona: str | None = None
    length_minutes: float | None = None
    language: str | None = None


class ScriptResult(BaseModel):
    """Validated script plan returned by a script provider."""

    model_config = ConfigDict(populate_by_name=True)

    outline: list[str]
    sections: list[ScriptSection]
    seo: SeoMetadata
    thumbnail_ideas: list[str] = Field(alias="thumbnailIdeas")


class SpeechResult(BaseModel):
    """Synthesized audio bytes."""

    audio: bytes
    mime_type: str
    extension: str


class ImageResult(BaseModel):
    """Generated image bytes."""

    content: bytes
    mime_type: str

    @property
    def extension(self) -> str:
        """
        File extension for the storage key.

        Known image types map to their usual extension; otherwise the MIME
        subtype is used without any structured-syntax suffix
        (image/svg+xml -> svg).
        """
        mime_type = self.mime_type.split(";")[0].strip().lower()
        if mime_type in IMAGE_EXTENSIONS:
            return IMAGE_EXTENSIONS[mime_type]
        subtype = mime_type.split("/")[-1].split("+")[0]
        return subtype or "png"


class ScriptProvider(ABC):
    """Produces a structured video script."""

    name: str
    model: str

    @abstractmethod
    async def generate_script(self, params: ScriptParams) -> ScriptResult:
        """
        Generate a script plan.

        Raises:
            ProviderError: If the call fails or the output is incomplete
        """
        pass


class SpeechProvider(ABC):
    """Turns narration text into audio."""

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: dict[str, Any] | None = None,
        audio_config: dict[str, Any] | None = None,
    ) -> SpeechResult:
        """
        Synthesize one block of text.

        Raises:
            ProviderError: If the call fails or returns no audio
        """
        pass

    async def close(self) -> None:
        return None


class ImageProvider(ABC):
    """Renders an image from a text prompt."""

    @abstractmethod
    async def generate_image(
        self, prompt: str, style: str | None = None, aspect_ratio: str | None = None
    ) -> ImageResult:
        """
        Generate one image.

        Raises:
            ProviderError: If the call fails or returns no image
        """
        pass

    async def close(self) -> None:
        return None

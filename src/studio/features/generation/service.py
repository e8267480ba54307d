"""Generation orchestration: ownership checks, caching, provider calls and job tracking."""

import asyncio
import logging
from uuid import uuid4

from pydantic import ValidationError

from src.studio.config import Settings
from src.studio.exceptions import ForbiddenError, NotFoundError
from src.studio.features.generation.schemas import (
    AudioAssetResponse,
    ImageGenerationRequest,
    ImageGenerationResponse,
    ScriptGenerationRequest,
    ScriptGenerationResponse,
    TtsGenerationRequest,
    TtsGenerationResponse,
)
from src.studio.services.analytics import PostHogService
from src.studio.services.auth.models import RequestIdentity
from src.studio.services.cache import BaseCache, SingleFlight, script_cache_key
from src.studio.services.database.base import BaseRepository
from src.studio.services.database.models import (
    AssetType,
    GeneratedWith,
    GenerationJob,
    ImageJobPayload,
    JobStatus,
    Project,
    ProjectStatus,
    ScriptJobPayload,
    TtsJobPayload,
    User,
)
from src.studio.services.providers.base import (
    ImageProvider,
    ScriptParams,
    ScriptProvider,
    ScriptResult,
    SpeechProvider,
)
from src.studio.storage.media import BaseMediaStorage

logger = logging.getLogger(__name__)

IMAGE_LABEL_LENGTH = 64
DEFAULT_AUDIO_LABEL = "Audio Segment"


class GenerationService:
    """
    Runs script, image and speech generation for an authenticated caller.

    Every provider call is recorded as a GenerationJob that starts
    ``running`` and ends ``succeeded`` or ``failed`` within the same request.
    Ownership is checked before any job is created. Failures are recorded on
    the job, logged and re-raised for the handler to map.
    """

    def __init__(
        self,
        settings: Settings,
        repository: BaseRepository,
        media_storage: BaseMediaStorage,
        cache: BaseCache,
        script_provider: ScriptProvider,
        speech_provider: SpeechProvider,
        image_provider: ImageProvider,
        analytics: PostHogService,
        single_flight: SingleFlight | None = None,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self.media_storage = media_storage
        self.cache = cache
        self.script_provider = script_provider
        self.speech_provider = speech_provider
        self.image_provider = image_provider
        self.analytics = analytics
        self.single_flight = single_flight

    async def _ensure_user(self, identity: RequestIdentity) -> User:
        return await asyncio.to_thread(
            self.repository.ensure_user, identity.sub, identity.email, identity.name
        )

    async def _get_owned_project(self, user: User, project_id: str) -> Project:
        project = await asyncio.to_thread(self.repository.get_project_by_id, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.user_id != user.id:
            logger.warning(
                f"User {user.id} attempted to use project {project_id} owned by another user",
                extra={"user_id": user.id, "project_id": project_id},
            )
            raise ForbiddenError("Project does not belong to user")
        return project

    async def _fail_job(self, job: GenerationJob, cause: Exception, identity: RequestIdentity) -> None:
        message = str(cause) or "Unknown error"
        logger.error(
            f"Failed to generate {job.job_type.value}: {message}",
            extra={
                "error_type": "generation_failed",
                "job_id": job.id,
                "job_type": job.job_type.value,
                "project_id": job.project_id,
            },
            exc_info=cause,
        )
        try:
            await asyncio.to_thread(
                self.repository.update_generation_job_status, job.id, JobStatus.FAILED, message
            )
        except Exception as e:
            logger.error(
                f"Failed to mark job {job.id} as failed: {e}",
                extra={"error_type": "job_status_update_failed", "job_id": job.id},
            )
        self.analytics.capture(
            identity.sub,
            "generation_failed",
            {"job_type": job.job_type.value, "project_id": job.project_id},
        )

    async def _mark_succeeded(self, job: GenerationJob) -> None:
        await asyncio.to_thread(
            self.repository.update_generation_job_status, job.id, JobStatus.SUCCEEDED
        )

    async def _read_cached_script(self, cache_key: str) -> ScriptResult | None:
        cached = await self.cache.get_json(cache_key)
        if not cached:
            return None
        try:
            return ScriptResult.model_validate(cached)
        except ValidationError:
            logger.warning(f"Ignoring malformed cached script {cache_key}")
            return None

    async def generate_script(
        self, identity: RequestIdentity, request: ScriptGenerationRequest
    ) -> ScriptGenerationResponse:
        """
        Generate (or reuse) a script for a project.

        Without a projectId a new draft project is created for the caller.
        Unless ``regenerate`` is set, a cached result for the same topic,
        persona, length and language is returned without calling the
        provider or recording a job.

        Raises:
            NotFoundError: If projectId does not exist
            ForbiddenError: If the project belongs to another user
            Exception: Whatever failed during generation, after the job is
                marked failed
        """
        user = await self._ensure_user(identity)

        if request.project_id:
            project = await self._get_owned_project(user, request.project_id)
        else:
            target_length = (
                round(request.length_minutes) if request.length_minutes is not None else None
            )
            project = await asyncio.to_thread(
                self.repository.create_project,
                user.id,
                request.topic,
                request.topic,
                target_length,
            )
            logger.info(
                f"Created project {project.id} for user {user.id}",
                extra={"project_id": project.id, "user_id": user.id},
            )

        cache_key = script_cache_key(
            request.topic, request.persona, request.length_minutes, request.language
        )

        if not request.regenerate:
            cached = await self._read_cached_script(cache_key)
            if cached is not None:
                logger.info(f"Script cache hit for project {project.id}", extra={"cache_key": cache_key})
                self.analytics.capture(
                    identity.sub, "script_generated", {"project_id": project.id, "cached": True}
                )
                return ScriptGenerationResponse(project_id=project.id, cached=True, result=cached)

            if self.single_flight is not None:
                result, shared = await self.single_flight.do(
                    cache_key,
                    lambda: self._run_script_job(identity, project, request, cache_key),
                )
                return ScriptGenerationResponse(project_id=project.id, cached=shared, result=result)

        result = await self._run_script_job(identity, project, request, cache_key)
        return ScriptGenerationResponse(project_id=project.id, cached=False, result=result)

    async def _run_script_job(
        self,
        identity: RequestIdentity,
        project: Project,
        request: ScriptGenerationRequest,
        cache_key: str,
    ) -> ScriptResult:
        payload = ScriptJobPayload(
            topic=request.topic,
            persona=request.persona,
            length_minutes=request.length_minutes,
            language=request.language,
            regenerate=request.regenerate,
        )
        job = await asyncio.to_thread(self.repository.insert_generation_job, project.id, payload)

        try:
            result = await self.script_provider.generate_script(
                ScriptParams(
                    topic=request.topic,
                    persona=request.persona,
                    length_minutes=request.length_minutes,
                    language=request.language,
                )
            )

            generated_with = GeneratedWith(
                provider=self.script_provider.name,
                model=self.script_provider.model,
                thumbnail_ideas=result.thumbnail_ideas,
                persona=request.persona,
                length_minutes=request.length_minutes,
                language=request.language,
            )
            version = await asyncio.to_thread(
                self.repository.insert_project_version,
                project.id,
                result.sections,
                result.outline,
                result.seo,
                generated_with,
            )
            await asyncio.to_thread(
                self.repository.update_project_metadata,
                project.id,
                result.seo.title or None,
                request.topic,
                ProjectStatus.READY,
            )
            await self.cache.set_json(
                cache_key,
                result.model_dump(mode="json", by_alias=True),
                self.settings.script_cache_ttl_seconds,
            )
            await self._mark_succeeded(job)
        except Exception as e:
            await self._fail_job(job, e, identity)
            raise

        logger.info(
            f"Generated script version {version.version} for project {project.id}",
            extra={"project_id": project.id, "job_id": job.id, "version": version.version},
        )
        self.analytics.capture(
            identity.sub,
            "script_generated",
            {"project_id": project.id, "cached": False, "version": version.version},
        )
        return result

    async def generate_image(
        self, identity: RequestIdentity, request: ImageGenerationRequest
    ) -> ImageGenerationResponse:
        """Generate one image, store it and record it as an asset."""
        user = await self._ensure_user(identity)
        project = await self._get_owned_project(user, request.project_id)

        payload = ImageJobPayload(
            prompt=request.prompt,
            style=request.style,
            aspect_ratio=request.aspect_ratio,
            label=request.label,
        )
        job = await asyncio.to_thread(self.repository.insert_generation_job, project.id, payload)

        try:
            image = await self.image_provider.generate_image(
                request.prompt, request.style, request.aspect_ratio
            )
            key = f"images/{project.id}/{uuid4()}.{image.extension}"
            await asyncio.to_thread(self.media_storage.put, key, image.content, image.mime_type)
            asset = await asyncio.to_thread(
                self.repository.insert_asset,
                project.id,
                AssetType.IMAGE,
                key,
                request.label or request.prompt[:IMAGE_LABEL_LENGTH],
                image.mime_type,
                len(image.content),
            )
            await self._mark_succeeded(job)
        except Exception as e:
            await self._fail_job(job, e, identity)
            raise

        self.analytics.capture(
            identity.sub, "image_generated", {"project_id": project.id, "asset_id": asset.id}
        )
        return ImageGenerationResponse(project_id=project.id, asset_id=asset.id, key=key)

    async def generate_speech(
        self, identity: RequestIdentity, request: TtsGenerationRequest
    ) -> TtsGenerationResponse:
        """
        Synthesize each section in order, one audio asset per section.

        The first failing section stops the run; assets stored for earlier
        sections are kept and the job is marked failed.
        """
        user = await self._ensure_user(identity)
        project = await self._get_owned_project(user, request.project_id)

        payload = TtsJobPayload(
            sections=request.sections, voice=request.voice, audio_config=request.audio_config
        )
        job = await asyncio.to_thread(self.repository.insert_generation_job, project.id, payload)

        results: list[AudioAssetResponse] = []
        try:
            for section in request.sections:
                if not section.text:
                    raise ValueError("Section text is required")

                speech = await self.speech_provider.synthesize(
                    section.text, request.voice, request.audio_config
                )
                key = f"audio/{project.id}/{uuid4()}.{speech.extension}"
                await asyncio.to_thread(self.media_storage.put, key, speech.audio, speech.mime_type)
                asset = await asyncio.to_thread(
                    self.repository.insert_asset,
                    project.id,
                    AssetType.AUDIO,
                    key,
                    section.heading or section.id or DEFAULT_AUDIO_LABEL,
                    speech.mime_type,
                    len(speech.audio),
                )
                results.append(AudioAssetResponse(asset_id=asset.id, key=key, heading=section.heading))

            await self._mark_succeeded(job)
        except Exception as e:
            await self._fail_job(job, e, identity)
            raise

        self.analytics.capture(
            identity.sub, "audio_generated", {"project_id": project.id, "sections": len(results)}
        )
        return TtsGenerationResponse(project_id=project.id, assets=results)

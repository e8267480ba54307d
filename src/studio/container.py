"""Application object graph, built once at start-up and stored on app.state."""

import logging
from dataclasses import dataclass

from src.studio.config import Settings
from src.studio.features.generation.service import GenerationService
from src.studio.services.analytics import PostHogService
from src.studio.services.auth.access import AccessVerifier
from src.studio.services.auth.access_config import resolve_access_config
from src.studio.services.auth.jwks import JWKSCache
from src.studio.services.auth.session import SessionCodec, should_bypass_session
from src.studio.services.cache import BaseCache, SingleFlight, get_cache
from src.studio.services.database import BaseRepository, get_repository
from src.studio.services.providers import (
    DeepAIImageProvider,
    GeminiScriptProvider,
    GoogleTTSProvider,
)
from src.studio.storage import BaseMediaStorage, get_media_storage

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Long-lived collaborators shared by the middleware and handlers."""

    settings: Settings
    jwks_cache: JWKSCache
    access_verifier: AccessVerifier
    session_codec: SessionCodec | None
    repository: BaseRepository
    media_storage: BaseMediaStorage
    cache: BaseCache
    analytics: PostHogService
    generation_service: GenerationService

    async def close(self) -> None:
        """Release HTTP clients and connections."""
        await self.jwks_cache.close()
        await self.cache.close()
        await self.generation_service.speech_provider.close()
        await self.generation_service.image_provider.close()
        self.analytics.shutdown()


def build_container(settings: Settings) -> AppContainer:
    """
    Wire every collaborator from settings.

    Raises:
        ConfigurationError: If Access or session configuration is invalid
    """
    access_config = resolve_access_config(settings)
    jwks_cache = JWKSCache(access_config.certs_url, cache_ttl=settings.jwks_cache_ttl_seconds)
    access_verifier = AccessVerifier(access_config, jwks_cache, leeway=settings.jwt_leeway_seconds)

    session_codec = None if should_bypass_session(settings) else SessionCodec(settings.session_secret)

    repository = get_repository(settings)
    media_storage = get_media_storage(settings)
    cache = get_cache(settings)
    analytics = PostHogService(settings)

    generation_service = GenerationService(
        settings=settings,
        repository=repository,
        media_storage=media_storage,
        cache=cache,
        script_provider=GeminiScriptProvider(settings.google_gemini_api_key, settings.gemini_model),
        speech_provider=GoogleTTSProvider(
            settings.google_tts_api_key, timeout=settings.provider_timeout_seconds
        ),
        image_provider=DeepAIImageProvider(
            settings.deepai_api_key, timeout=settings.provider_timeout_seconds
        ),
        analytics=analytics,
        single_flight=SingleFlight() if settings.script_single_flight else None,
    )

    logger.info(
        f"Built application container: storage={settings.storage_backend}, "
        f"cache={settings.cache_backend}, environment={settings.environment}"
    )

    return AppContainer(
        settings=settings,
        jwks_cache=jwks_cache,
        access_verifier=access_verifier,
        session_codec=session_codec,
        repository=repository,
        media_storage=media_storage,
        cache=cache,
        analytics=analytics,
        generation_service=generation_service,
    )

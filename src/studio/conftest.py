"""Pytest configuration and shared fixtures."""

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.studio.config import Settings
from src.studio.container import AppContainer
from src.studio.features.generation.service import GenerationService
from src.studio.main import create_app
from src.studio.services.analytics import PostHogService
from src.studio.services.auth.jwks import JWKSCache
from src.studio.services.auth.models import (
    AccessError,
    AccessIdentity,
    AccessSuccess,
    AccessUnauthorized,
    AccessVerificationResult,
)
from src.studio.services.auth.session import SessionCodec
from src.studio.services.cache import MemoryCache, SingleFlight
from src.studio.services.database.memory import InMemoryRepository
from src.studio.services.providers.base import (
    ImageProvider,
    ImageResult,
    ScriptParams,
    ScriptProvider,
    ScriptResult,
    SpeechProvider,
    SpeechResult,
)
from src.studio.storage.media import InMemoryMediaStorage

LOGIN_URL = "https://team.cloudflareaccess.com/cdn-cgi/access/login"

SCRIPT_RESULT: dict[str, Any] = {
    "outline": ["Hook", "Payoff"],
    "sections": [
        {
            "heading": "Hook",
            "narration": "Ever wondered why the sky is blue?",
            "brollIdeas": ["sunrise timelapse"],
            "durationSeconds": 20,
        },
        {"heading": "Payoff", "narration": "Rayleigh scattering explains it."},
    ],
    "seo": {"title": "Why Is The Sky Blue?", "description": "Light, explained.", "tags": ["sky"]},
    "thumbnailIdeas": ["Blue gradient with a question mark"],
}


class StubAccessVerifier:
    """Verifier that accepts a fixed set of opaque tokens."""

    def __init__(self) -> None:
        self.identities: dict[str, AccessIdentity] = {}

    def allow(self, token: str, sub: str, email: str | None = None, name: str | None = None) -> None:
        self.identities[token] = AccessIdentity(sub=sub, email=email, name=name, token=token)

    async def verify(self, token: str | None) -> AccessVerificationResult:
        if not token:
            return AccessUnauthorized()
        identity = self.identities.get(token)
        if identity is None:
            return AccessError(error=ValueError("signature verification failed"))
        return AccessSuccess(identity=identity)

    def login_url(self) -> str:
        return LOGIN_URL


class FakeScriptProvider(ScriptProvider):
    name = "gemini"
    model = "gemini-test"

    def __init__(self) -> None:
        self.calls: list[ScriptParams] = []
        self.error: Exception | None = None

    async def generate_script(self, params: ScriptParams) -> ScriptResult:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return ScriptResult.model_validate(SCRIPT_RESULT)


class FakeSpeechProvider(SpeechProvider):
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def synthesize(self, text, voice=None, audio_config=None) -> SpeechResult:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return SpeechResult(audio=f"audio:{text}".encode(), mime_type="audio/mpeg", extension="mp3")


class FakeImageProvider(ImageProvider):
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def generate_image(self, prompt, style=None, aspect_ratio=None) -> ImageResult:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return ImageResult(content=b"\x89PNG fake", mime_type="image/png")


@pytest.fixture
def settings() -> Settings:
    """Test settings independent of the process environment file."""
    return Settings(
        _env_file=None,
        environment="test",
        cf_access_aud="test-aud",
        cf_access_team_domain="team.cloudflareaccess.com",
        session_secret="test-session-secret-0123456789abcdef",
        dev_auth_bypass_token="dev-bypass-secret",
        script_single_flight=True,
    )


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def media_storage() -> InMemoryMediaStorage:
    return InMemoryMediaStorage()


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def script_provider() -> FakeScriptProvider:
    return FakeScriptProvider()


@pytest.fixture
def speech_provider() -> FakeSpeechProvider:
    return FakeSpeechProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def analytics(settings: Settings) -> PostHogService:
    """Analytics with no API key configured (events are dropped)."""
    return PostHogService(settings)


@pytest.fixture
def generation_service(
    settings,
    repository,
    media_storage,
    cache,
    script_provider,
    speech_provider,
    image_provider,
    analytics,
) -> GenerationService:
    return GenerationService(
        settings=settings,
        repository=repository,
        media_storage=media_storage,
        cache=cache,
        script_provider=script_provider,
        speech_provider=speech_provider,
        image_provider=image_provider,
        analytics=analytics,
        single_flight=SingleFlight(),
    )


@pytest.fixture
def access_verifier() -> StubAccessVerifier:
    verifier = StubAccessVerifier()
    verifier.allow("token-alice", sub="alice-sub", email="alice@example.com", name="Alice")
    verifier.allow("token-bob", sub="bob-sub", email="bob@example.com", name="Bob")
    return verifier


@pytest.fixture
def container(
    settings, access_verifier, repository, media_storage, cache, analytics, generation_service
) -> AppContainer:
    return AppContainer(
        settings=settings,
        jwks_cache=JWKSCache("https://team.cloudflareaccess.com/cdn-cgi/access/certs"),
        access_verifier=access_verifier,
        session_codec=SessionCodec(settings.session_secret),
        repository=repository,
        media_storage=media_storage,
        cache=cache,
        analytics=analytics,
        generation_service=generation_service,
    )


@pytest.fixture
def app(container: AppContainer) -> FastAPI:
    return create_app(container=container)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """
    Provide FastAPI test client for API testing.

    Redirects are not followed so the access gate's 307 can be asserted.

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/api/health")
        >>>     assert response.status_code == 200
    """
    return TestClient(app, follow_redirects=False)


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return {"cf-access-jwt-assertion": "token-alice"}


@pytest.fixture
def bob_headers() -> dict[str, str]:
    return {"cf-access-jwt-assertion": "token-bob"}


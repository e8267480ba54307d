"""HTTP tests for the generation endpoints."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from src.studio.exceptions import BadRequestError
from src.studio.features.generation.handlers import parse_body
from src.studio.features.generation.schemas import ScriptGenerationRequest
from src.studio.services.database.models import JobStatus
from src.studio.services.providers.base import ProviderError


def _create_project(client, headers) -> str:
    response = client.post("/api/generate/script", json={"topic": "Seed"}, headers=headers)
    assert response.status_code == 200
    return response.json()["projectId"]


class TestGenerateScriptEndpoint:
    """Tests for POST /api/generate/script."""

    def test_unauthenticated_request_is_redirected(self, client):
        response = client.post("/api/generate/script", json={"topic": "Volcanoes"})

        assert response.status_code == 307
        assert response.headers["location"].startswith(
            "https://team.cloudflareaccess.com/cdn-cgi/access/login?redirect_url="
        )

    def test_generates_script(self, client, alice_headers, repository):
        response = client.post(
            "/api/generate/script",
            json={"topic": "Why is the sky blue?", "lengthMinutes": 5},
            headers=alice_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["cached"] is False
        assert data["result"]["seo"]["title"] == "Why Is The Sky Blue?"
        assert data["result"]["thumbnailIdeas"] == ["Blue gradient with a question mark"]
        assert data["result"]["sections"][0]["brollIdeas"] == ["sunrise timelapse"]
        assert repository.get_project_by_id(data["projectId"]).target_length == 5

    def test_second_identical_request_is_cached(self, client, alice_headers, script_provider):
        body = {"topic": "Volcanoes", "persona": "kids"}
        client.post("/api/generate/script", json=body, headers=alice_headers)

        response = client.post("/api/generate/script", json=body, headers=alice_headers)

        assert response.status_code == 200
        assert response.json()["cached"] is True
        assert len(script_provider.calls) == 1

    def test_invalid_json_returns_400(self, client, alice_headers):
        response = client.post(
            "/api/generate/script",
            content=b"{not json",
            headers={**alice_headers, "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid JSON body"}

    def test_missing_topic_returns_400(self, client, alice_headers):
        response = client.post("/api/generate/script", json={"persona": "kids"}, headers=alice_headers)

        assert response.status_code == 400
        assert response.json() == {"detail": "'topic' is required"}

    def test_empty_topic_returns_400(self, client, alice_headers):
        response = client.post("/api/generate/script", json={"topic": ""}, headers=alice_headers)

        assert response.status_code == 400
        assert response.json() == {"detail": "'topic' is required"}

    def test_unknown_project_returns_404(self, client, alice_headers):
        response = client.post(
            "/api/generate/script",
            json={"topic": "Volcanoes", "projectId": "does-not-exist"},
            headers=alice_headers,
        )

        assert response.status_code == 404
        assert response.json() == {"detail": "Project not found"}

    def test_other_users_project_returns_403(self, client, alice_headers, bob_headers, repository):
        project_id = _create_project(client, bob_headers)
        jobs_before = len(repository.jobs)

        response = client.post(
            "/api/generate/script",
            json={"topic": "Volcanoes", "projectId": project_id},
            headers=alice_headers,
        )

        assert response.status_code == 403
        assert response.json() == {"detail": "Project does not belong to user"}
        assert len(repository.jobs) == jobs_before
        assert len(repository.list_project_versions(project_id)) == 1

    def test_provider_failure_returns_generic_500(
        self, client, alice_headers, script_provider, repository
    ):
        script_provider.error = ProviderError("Gemini request failed: 429 quota exhausted")

        response = client.post("/api/generate/script", json={"topic": "Volcanoes"}, headers=alice_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate script"}
        job = next(iter(repository.jobs.values()))
        assert job.status == JobStatus.FAILED
        assert job.error == "Gemini request failed: 429 quota exhausted"


class TestGenerateImageEndpoint:
    """Tests for POST /api/generate/image."""

    def test_generates_image(self, client, alice_headers, media_storage):
        project_id = _create_project(client, alice_headers)

        response = client.post(
            "/api/generate/image",
            json={"projectId": project_id, "prompt": "A lighthouse", "aspectRatio": "16:9"},
            headers=alice_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["projectId"] == project_id
        assert data["assetId"]
        assert data["key"] in media_storage.objects

    def test_missing_project_id_returns_400(self, client, alice_headers):
        response = client.post("/api/generate/image", json={"prompt": "fox"}, headers=alice_headers)

        assert response.status_code == 400
        assert response.json() == {"detail": "'projectId' is required"}

    def test_other_users_project_returns_403(self, client, alice_headers, bob_headers, image_provider):
        project_id = _create_project(client, bob_headers)

        response = client.post(
            "/api/generate/image",
            json={"projectId": project_id, "prompt": "fox"},
            headers=alice_headers,
        )

        assert response.status_code == 403
        assert image_provider.calls == []

    def test_provider_failure_returns_generic_500(self, client, alice_headers, image_provider):
        project_id = _create_project(client, alice_headers)
        image_provider.error = ProviderError("DeepAI request failed: 401 bad key")

        response = client.post(
            "/api/generate/image",
            json={"projectId": project_id, "prompt": "fox"},
            headers=alice_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate image"}


class TestGenerateTtsEndpoint:
    """Tests for POST /api/generate/tts."""

    def test_generates_audio_per_section(self, client, alice_headers):
        project_id = _create_project(client, alice_headers)

        response = client.post(
            "/api/generate/tts",
            json={
                "projectId": project_id,
                "sections": [{"heading": "Intro", "text": "Hello"}, {"text": "World"}],
            },
            headers=alice_headers,
        )

        assert response.status_code == 200
        assets = response.json()["assets"]
        assert len(assets) == 2
        assert assets[0]["heading"] == "Intro"
        assert "heading" not in assets[1]

    def test_empty_sections_returns_400(self, client, alice_headers):
        project_id = _create_project(client, alice_headers)

        response = client.post(
            "/api/generate/tts",
            json={"projectId": project_id, "sections": []},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "'sections' must be a non-empty array"}

    def test_empty_section_text_fails_job_and_returns_500(self, client, alice_headers, repository):
        project_id = _create_project(client, alice_headers)

        response = client.post(
            "/api/generate/tts",
            json={
                "projectId": project_id,
                "sections": [
                    {"heading": "One", "text": "First"},
                    {"heading": "Two", "text": ""},
                    {"heading": "Three", "text": "Third"},
                ],
            },
            headers=alice_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate audio"}
        assert len(repository.list_assets_for_project(project_id)) == 1
        tts_job = next(
            j for j in repository.list_generation_jobs_for_project(project_id) if j.job_type == "tts"
        )
        assert tts_job.status == JobStatus.FAILED


@pytest.mark.asyncio
class TestParseBody:
    """Tests for parse_body."""

    async def test_malformed_json_raises_bad_request(self):
        request = Mock()
        request.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "{", 0))

        with pytest.raises(BadRequestError, match="Invalid JSON body"):
            await parse_body(request, ScriptGenerationRequest)

    async def test_non_object_body_raises_bad_request(self):
        request = Mock()
        request.json = AsyncMock(return_value=["topic"])

        with pytest.raises(BadRequestError, match="Invalid JSON body"):
            await parse_body(request, ScriptGenerationRequest)

    async def test_missing_field_raises_bad_request(self):
        request = Mock()
        request.json = AsyncMock(return_value={"persona": "kids"})

        with pytest.raises(BadRequestError, match="'topic' is required"):
            await parse_body(request, ScriptGenerationRequest)

    async def test_valid_body_is_parsed_by_alias(self):
        request = Mock()
        request.json = AsyncMock(return_value={"topic": "Volcanoes", "lengthMinutes": 4})

        body = await parse_body(request, ScriptGenerationRequest)

        assert body.topic == "Volcanoes"
        assert body.length_minutes == 4

"""Gemini (Google) script provider using the google-genai SDK."""

import json
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.studio.services.providers.base import (
    ProviderError,
    ScriptParams,
    ScriptProvider,
    ScriptResult,
)

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-lite-preview-02-05"
DEFAULT_PERSONA = "engaging, informative, and energetic"
DEFAULT_LENGTH_MINUTES = 8
DEFAULT_LANGUAGE = "English"

REQUIRED_KEYS = ("outline", "sections", "seo", "thumbnailIdeas")

SCRIPT_PROMPT_TEMPLATE = """You write and plan YouTube videos. Plan a complete video about "{topic}".

Constraints:
- Audience persona: {persona}.
- Target runtime: {length} minutes.
- Language: {language}.
- Split the video into 6-10 sections in viewing order. For each section give
  "heading" (a 3-6 word chapter card), "narration" (2-4 spoken sentences),
  optional "brollIdeas" (supporting visual suggestions) and
  "durationSeconds" (estimated runtime).
- "outline" lists every section heading in order.
- "seo" has "title" (70 characters or fewer), "description" (150 words or
  fewer) and "tags" (12-18 search tags).
- "thumbnailIdeas" holds 3-5 distinct thumbnail concepts.

Return only minified JSON of this shape:
{{"outline": [string], "sections": [{{"heading": string, "narration": string, "brollIdeas"?: [string], "durationSeconds"?: number}}], "seo": {{"title": string, "description": string, "tags": [string]}}, "thumbnailIdeas": [string]}}"""


def build_script_prompt(params: ScriptParams) -> str:
    """Render the script prompt, filling defaults for omitted fields."""
    length = params.length_minutes if params.length_minutes is not None else DEFAULT_LENGTH_MINUTES
    return SCRIPT_PROMPT_TEMPLATE.format(
        topic=params.topic,
        persona=params.persona or DEFAULT_PERSONA,
        length=f"{length:g}",
        language=params.language or DEFAULT_LANGUAGE,
    )


def parse_script_response(text: str | None) -> ScriptResult:
    """
    Parse and validate the model's JSON output.

    Raises:
        ProviderError: If the text is missing, not JSON, or lacks a required key
    """
    if not text:
        raise ProviderError("Gemini response missing text part")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Failed to parse Gemini JSON: {e}") from e

    if not isinstance(data, dict) or any(not data.get(key) for key in REQUIRED_KEYS):
        raise ProviderError("Failed to parse Gemini JSON: Gemini response incomplete")

    try:
        return ScriptResult.model_validate(data)
    except ValidationError as e:
        raise ProviderError(f"Gemini response failed validation: {e}") from e


class GeminiScriptProvider(ScriptProvider):
    """
    Script provider backed by Gemini JSON mode.

    Generation settings: temperature 0.65, top-k 40, top-p 0.8 and at most
    2048 output tokens. The SDK client is created on first use so a missing
    key fails the call rather than start-up.
    """

    name = "gemini"

    def __init__(self, api_key: str, model: str = DEFAULT_GEMINI_MODEL) -> None:
        self.api_key = api_key
        self.model = model or DEFAULT_GEMINI_MODEL
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise ProviderError("Missing required environment variable: GOOGLE_GEMINI_API_KEY")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Initialized Gemini client: model={self.model}")
        return self._client

    async def generate_script(self, params: ScriptParams) -> ScriptResult:
        client = self._get_client()
        prompt = build_script_prompt(params)
        logger.debug(f"Generating script for topic: {params.topic[:100]}")

        try:
            response = await self._generate_content(client, prompt)
        except genai_errors.APIError as e:
            raise ProviderError(f"Gemini request failed: {e.code} {e.message}") from e
        except httpx.TransportError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        return parse_script_response(response.text)

    @retry(
        retry=retry_if_exception_type((genai_errors.ServerError, httpx.TransportError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _generate_content(
        self, client: genai.Client, prompt: str
    ) -> types.GenerateContentResponse:
        """
        Call generate_content, retrying server errors and transport failures.

        Client errors (4xx) are not retried.
        """
        return await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=0.65,
                top_k=40,
                top_p=0.8,
                max_output_tokens=2048,
                response_mime_type="application/json",
            ),
        )

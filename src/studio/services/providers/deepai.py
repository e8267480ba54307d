"""DeepAI text-to-image provider (REST)."""

import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.studio.services.providers.base import ImageProvider, ImageResult, ProviderError

logger = logging.getLogger(__name__)

TEXT2IMG_ENDPOINT = "https://api.deepai.org/api/text2img"
DEFAULT_IMAGE_MIME = "image/png"


class DeepAIImageProvider(ImageProvider):
    """
    Image provider for DeepAI text2img.

    Two requests per image: the generation call returns an ``output_url``,
    which is then downloaded. The MIME type comes from the download's
    Content-Type header.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def generate_image(
        self, prompt: str, style: str | None = None, aspect_ratio: str | None = None
    ) -> ImageResult:
        if not self.api_key:
            raise ProviderError("Missing required environment variable: DEEPAI_API_KEY")

        form = {"text": prompt}
        if style:
            form["style"] = style
        if aspect_ratio:
            form["grid_size"] = aspect_ratio

        try:
            response = await self._send(
                "POST", TEXT2IMG_ENDPOINT, headers={"api-key": self.api_key}, data=form
            )
        except httpx.TransportError as e:
            raise ProviderError(f"DeepAI request failed: {e}") from e

        if response.is_error:
            raise ProviderError(f"DeepAI request failed: {response.status_code} {response.text}")

        output_url = response.json().get("output_url")
        if not output_url:
            raise ProviderError("DeepAI response missing output_url")

        try:
            asset = await self._send("GET", output_url)
        except httpx.TransportError as e:
            raise ProviderError(f"Failed to fetch DeepAI image asset: {e}") from e

        if asset.is_error:
            raise ProviderError(f"Failed to fetch DeepAI image asset: {asset.status_code}")

        mime_type = asset.headers.get("content-type") or DEFAULT_IMAGE_MIME
        logger.debug(f"Fetched DeepAI image: {len(asset.content)} bytes, {mime_type}")
        return ImageResult(content=asset.content, mime_type=mime_type)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        return await self.http_client.request(method, url, **kwargs)

    async def close(self) -> None:
        await self.http_client.aclose()

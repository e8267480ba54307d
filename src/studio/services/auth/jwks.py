"""Cloudflare Access signing keys (JWKS), fetched over HTTP and cached with a TTL."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from jose import jwk
from jose.backends.base import Key

logger = logging.getLogger(__name__)

# Access publishes RS256 keys today; EC keys are accepted for completeness
DEFAULT_ALGORITHMS = {"RSA": "RS256", "EC": "ES256"}


def _construct_keys(documents: list[dict[str, Any]]) -> dict[str, Key]:
    keys: dict[str, Key] = {}
    for document in documents:
        kid = document.get("kid")
        if not kid:
            logger.warning("Skipping JWKS entry without 'kid'")
            continue
        algorithm = document.get("alg") or DEFAULT_ALGORITHMS.get(document.get("kty"), "RS256")
        keys[kid] = jwk.construct(document, algorithm=algorithm)
    return keys


class JWKSCache:
    """
    Key set for one certs URL.

    Keys are loaded on first use and kept for ``cache_ttl`` seconds. An
    unknown ``kid`` forces one extra fetch, which picks up rotated keys.
    Concurrent refreshes are serialized so a burst of requests after expiry
    produces a single fetch.

    Example:
        >>> cache = JWKSCache("https://team.cloudflareaccess.com/cdn-cgi/access/certs")
        >>> signing_key = await cache.get_signing_key(kid)
    """

    def __init__(
        self,
        jwks_url: str,
        cache_ttl: int = 3600,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self._keys: dict[str, Key] = {}
        self._last_refresh: datetime | None = None
        self._refresh_lock = asyncio.Lock()
        self._http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=30.0)
        )

    async def get_signing_key(self, kid: str) -> Key:
        """
        Resolve the public key for a token's ``kid``.

        Raises:
            ValueError: If the kid is still unknown after a refresh
            httpx.HTTPError: If the key set cannot be fetched
        """
        if self._is_stale():
            async with self._refresh_lock:
                # Another request may have refreshed while this one waited
                if self._is_stale():
                    await self._fetch_keys()

        if kid not in self._keys:
            logger.warning(
                f"Unknown signing key '{kid}', refreshing JWKS",
                extra={"kid": kid, "cached_kids": list(self._keys)},
            )
            await self.refresh_keys()

        try:
            return self._keys[kid]
        except KeyError:
            raise ValueError(
                f"Key ID '{kid}' not found in JWKS. Available keys: {list(self._keys)}"
            ) from None

    async def refresh_keys(self) -> None:
        """
        Replace the cached key set with a fresh fetch.

        Raises:
            httpx.HTTPError: If the request fails or returns an error status
        """
        async with self._refresh_lock:
            await self._fetch_keys()

    async def _fetch_keys(self) -> None:
        try:
            response = await self._http_client.get(self.jwks_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch JWKS from {self.jwks_url}: {e}",
                extra={"error_type": "jwks_fetch_failed"},
            )
            raise

        documents = response.json().get("keys") or []
        if not documents:
            logger.warning("JWKS response contains no keys", extra={"jwks_url": self.jwks_url})

        self._keys = _construct_keys(documents)
        self._last_refresh = datetime.now(UTC)
        logger.info(
            f"Loaded {len(self._keys)} Access signing keys",
            extra={"key_ids": list(self._keys), "ttl_seconds": self.cache_ttl},
        )

    def _is_stale(self) -> bool:
        if self._last_refresh is None:
            return True
        return (datetime.now(UTC) - self._last_refresh).total_seconds() >= self.cache_ttl

    async def close(self) -> None:
        """Close the HTTP client on application shutdown."""
        await self._http_client.aclose()

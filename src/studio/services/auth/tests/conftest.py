"""Shared fixtures for authentication tests."""

import base64
import time
from typing import Any

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from src.studio.services.auth.access import AccessVerifier
from src.studio.services.auth.access_config import AccessConfig
from src.studio.services.auth.jwks import JWKSCache

TEST_KID = "test-kid"
TEST_AUDIENCE = "test-aud-tag"
TEST_CERTS_URL = "https://team.cloudflareaccess.com/cdn-cgi/access/certs"


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Generate one RSA key pair for the whole test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def jwks_document(rsa_private_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    """Public half of the test key in JWKS form."""
    numbers = rsa_private_key.public_key().public_numbers()
    return {
        "keys": [
            {
                "kty": "RSA",
                "kid": TEST_KID,
                "use": "sig",
                "alg": "RS256",
                "n": _b64url_uint(numbers.n),
                "e": _b64url_uint(numbers.e),
            }
        ]
    }


@pytest.fixture
def make_token(private_key_pem: bytes):
    """Factory signing Access-style assertions with the test key."""

    def _make(claims: dict[str, Any] | None = None, kid: str = TEST_KID, **overrides: Any) -> str:
        now = int(time.time())
        payload = {
            "sub": "access-sub-123",
            "email": "creator@example.com",
            "aud": [TEST_AUDIENCE],
            "iss": "https://team.cloudflareaccess.com",
            "iat": now,
            "exp": now + 300,
        }
        payload.update(claims or {})
        payload.update(overrides)
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, private_key_pem.decode(), algorithm="RS256", headers={"kid": kid})

    return _make


@pytest.fixture
def jwks_requests() -> list[httpx.Request]:
    """Requests seen by the mock certs endpoint."""
    return []


@pytest.fixture
def jwks_cache(jwks_document: dict[str, Any], jwks_requests: list[httpx.Request]) -> JWKSCache:
    """JWKSCache served by an in-process transport."""

    def handler(request: httpx.Request) -> httpx.Response:
        jwks_requests.append(request)
        return httpx.Response(200, json=jwks_document)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JWKSCache(TEST_CERTS_URL, cache_ttl=3600, http_client=client)


@pytest.fixture
def access_config() -> AccessConfig:
    return AccessConfig(
        audience=TEST_AUDIENCE,
        certs_url=TEST_CERTS_URL,
        login_url="https://team.cloudflareaccess.com/cdn-cgi/access/login",
    )


@pytest.fixture
def verifier(access_config: AccessConfig, jwks_cache: JWKSCache) -> AccessVerifier:
    return AccessVerifier(access_config, jwks_cache, leeway=10)

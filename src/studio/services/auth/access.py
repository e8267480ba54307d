"""Cloudflare Access assertion verification and the development bypass."""

import hmac
import logging
from collections.abc import Mapping
from typing import Any

from jose import JWTError, jwt

from src.studio.config import Settings
from src.studio.exceptions import UnauthorizedError
from src.studio.services.auth.access_config import AccessConfig
from src.studio.services.auth.jwks import JWKSCache
from src.studio.services.auth.models import (
    AccessError,
    AccessIdentity,
    AccessSuccess,
    AccessUnauthorized,
    AccessVerificationResult,
    DevBypassIdentity,
)

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHMS = ["RS256", "ES256"]


class AccessVerifier:
    """
    Verifies Cloudflare Access assertions against the team's public keys.

    Validates signature, expiry, audience, and (when configured) issuer and
    algorithm pin. Never raises: every outcome is returned as an
    AccessVerificationResult so the request gate can decide what to do.

    Attributes:
        config: Resolved Access configuration
        jwks_cache: JWKS cache for fetching signing keys
        leeway: Clock skew tolerance in seconds

    Example:
        >>> verifier = AccessVerifier(config, JWKSCache(config.certs_url))
        >>> result = await verifier.verify(assertion)
        >>> if result.type == "success":
        ...     print(result.identity.sub)
    """

    def __init__(self, config: AccessConfig, jwks_cache: JWKSCache, leeway: int = 10):
        self.config = config
        self.jwks_cache = jwks_cache
        self.leeway = leeway

    async def verify(self, token: str | None) -> AccessVerificationResult:
        """
        Verify an Access assertion.

        Args:
            token: Raw assertion from the header or cookie (may be empty)

        Returns:
            AccessUnauthorized for an empty token, AccessSuccess with the
            extracted identity, or AccessError carrying the failure cause
        """
        trimmed = (token or "").strip()
        if not trimmed:
            return AccessUnauthorized()

        try:
            claims = await self._decode(trimmed)
        except Exception as e:
            logger.warning(
                f"Access token verification failed: {e}",
                extra={"error_type": "access_verification_failed", "error": str(e)},
            )
            return AccessError(error=e)

        subject = claims.get("sub")
        if not subject:
            return AccessError(error=UnauthorizedError("Access token missing 'sub' claim"))

        identity = AccessIdentity(
            sub=subject,
            email=claims.get("email") or claims.get("identity_email"),
            name=claims.get("name") or claims.get("common_name"),
            issuer=claims.get("iss"),
            token=trimmed,
        )

        logger.debug(
            "Access token verified",
            extra={"sub": identity.sub, "iss": identity.issuer},
        )
        return AccessSuccess(identity=identity)

    async def _decode(self, token: str) -> dict[str, Any]:
        header = jwt.get_unverified_header(token)
        kid = header.get("kid")
        if not kid:
            raise JWTError("JWT header missing 'kid' (key ID)")

        if self.config.algorithm and header.get("alg") != self.config.algorithm:
            raise JWTError("Unexpected Access token algorithm")

        signing_key = await self.jwks_cache.get_signing_key(kid)

        algorithms = [self.config.algorithm] if self.config.algorithm else DEFAULT_ALGORITHMS
        return jwt.decode(
            token,
            signing_key,
            algorithms=algorithms,
            audience=self.config.audience,
            issuer=self.config.issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_aud": True,
                "verify_iss": self.config.issuer is not None,
                "require_exp": True,
                "require_aud": True,
                "leeway": self.leeway,
            },
        )

    def login_url(self) -> str:
        """URL that unauthenticated callers are redirected to."""
        return self.config.login_url


def get_dev_bypass_identity(
    headers: Mapping[str, str], settings: Settings
) -> DevBypassIdentity | None:
    """
    Build an identity from development bypass headers.

    Only honoured when DEV_AUTH_BYPASS_TOKEN is configured and the caller
    sends a matching 'x-dev-auth' header. The request gate additionally only
    calls this in development runtimes.

    Args:
        headers: Request headers (case-insensitive mapping)
        settings: Application settings

    Returns:
        DevBypassIdentity, or None when the bypass does not apply
    """
    bypass_token = settings.dev_auth_bypass_token
    if not bypass_token:
        return None

    provided = headers.get("x-dev-auth")
    if not provided or not hmac.compare_digest(provided.encode(), bypass_token.encode()):
        return None

    email = headers.get("x-dev-email") or "dev@example.com"
    name = headers.get("x-dev-name") or "Dev User"
    subject = headers.get("x-dev-sub") or f"dev-{email}"

    return DevBypassIdentity(sub=subject, email=email, name=name)

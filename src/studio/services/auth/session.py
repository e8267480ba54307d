"""HMAC-signed session tokens."""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time

from pydantic import ValidationError

from src.studio.config import Settings
from src.studio.exceptions import ConfigurationError
from src.studio.services.auth.models import SessionIdentity, SessionPayload

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "yav_session"
SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days
MIN_SECRET_LENGTH = 32


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    data = base64.urlsafe_b64decode(segment + padding)
    # Reject non-canonical encodings so every distinct string maps to distinct bytes
    if _b64url_encode(data) != segment:
        raise ValueError("Non-canonical base64url segment")
    return data


class SessionCodec:
    """
    Signs and verifies compact session tokens.

    Token format is ``base64url(json_payload) + "." + base64url(hmac_sha256)``.
    The key is derived once from the secret; rotating the secret invalidates
    every previously issued session.

    Example:
        >>> codec = SessionCodec("x" * 32)
        >>> token = codec.create(SessionIdentity(sub="user-1"))
        >>> codec.parse(token).sub
        'user-1'
    """

    def __init__(self, secret: str):
        """
        Initialize codec.

        Args:
            secret: Signing secret, at least 32 characters

        Raises:
            ConfigurationError: If the secret is missing or too short
        """
        if not secret:
            raise ConfigurationError("Missing required environment variable: SESSION_SECRET")
        if len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters long"
            )
        self._key = secret.encode("utf-8")

    def _sign(self, data: bytes) -> bytes:
        return hmac.new(self._key, data, hashlib.sha256).digest()

    def create(self, identity: SessionIdentity) -> str:
        """
        Create a signed session token for an identity.

        Args:
            identity: Subject, email and name to embed

        Returns:
            Session token string
        """
        payload = SessionPayload(
            sub=identity.sub,
            email=identity.email,
            name=identity.name,
            issued_at=int(time.time() * 1000),
        )
        data = json.dumps(
            payload.model_dump(by_alias=True, exclude_none=True), separators=(",", ":")
        ).encode("utf-8")
        return f"{_b64url_encode(data)}.{_b64url_encode(self._sign(data))}"

    def parse(self, value: str | None) -> SessionPayload | None:
        """
        Verify and decode a session token.

        Args:
            value: Token from the session cookie (may be None)

        Returns:
            SessionPayload when the signature verifies, otherwise None
        """
        if not value:
            return None

        parts = value.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None

        try:
            data = _b64url_decode(parts[0])
            signature = _b64url_decode(parts[1])
        except (ValueError, binascii.Error):
            return None

        if not hmac.compare_digest(self._sign(data), signature):
            return None

        try:
            return SessionPayload.model_validate(json.loads(data))
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to parse session payload: {e}")
            return None


def should_bypass_session(settings: Settings) -> bool:
    """Whether session cookie issuance is disabled (DEV_AUTH_BYPASS_SESSION)."""
    return settings.dev_auth_bypass_session

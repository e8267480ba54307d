"""Authentication module for Cloudflare Access and local sessions."""

from src.studio.services.auth.access import AccessVerifier, get_dev_bypass_identity
from src.studio.services.auth.access_config import AccessConfig, resolve_access_config
from src.studio.services.auth.dependencies import get_current_session, get_request_identity
from src.studio.services.auth.jwks import JWKSCache
from src.studio.services.auth.middleware import AccessGateMiddleware
from src.studio.services.auth.models import (
    AccessIdentity,
    AccessVerificationResult,
    RequestIdentity,
    SessionPayload,
)
from src.studio.services.auth.session import SessionCodec

__all__ = [
    "AccessConfig",
    "AccessGateMiddleware",
    "AccessIdentity",
    "AccessVerificationResult",
    "AccessVerifier",
    "JWKSCache",
    "RequestIdentity",
    "SessionCodec",
    "SessionPayload",
    "get_current_session",
    "get_dev_bypass_identity",
    "get_request_identity",
    "resolve_access_config",
]

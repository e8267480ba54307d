"""Request gate: authenticates every inbound request behind Cloudflare Access."""

import logging
import re
from urllib.parse import urlencode, urlsplit, urlunsplit

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from src.studio.services.auth.access import get_dev_bypass_identity
from src.studio.services.auth.models import (
    AccessIdentity,
    AccessSuccess,
    AccessUnauthorized,
    SessionIdentity,
)
from src.studio.services.auth.session import (
    SESSION_COOKIE_MAX_AGE,
    SESSION_COOKIE_NAME,
    should_bypass_session,
)

logger = logging.getLogger(__name__)

ACCESS_HEADER = "cf-access-jwt-assertion"
ACCESS_COOKIE = "CF_Authorization"
DEV_TOKEN_MARKER = "dev"

IDENTITY_HEADERS = ("x-user-sub", "x-user-email", "x-user-name")

PUBLIC_PATHS = {"/api/health", "/api/status"}
STATIC_PATH_REGEX = re.compile(
    r"^/(?:static|favicon\.ico|robots\.txt|sitemap\.xml|manifest\.webmanifest"
    r"|app-icon\.png|apple-touch-icon\.png|public)(?:/|$)"
)


def is_public_path(path: str) -> bool:
    """Health probes and static assets skip authentication."""
    return path in PUBLIC_PATHS or STATIC_PATH_REGEX.match(path) is not None


def build_login_redirect_url(login_url: str, return_to: str) -> str:
    """Append the original URL to the login URL as 'redirect_url'."""
    parts = urlsplit(login_url)
    params = urlencode({"redirect_url": return_to})
    query = f"{parts.query}&{params}" if parts.query else params
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _attach_identity_headers(request: Request, identity: AccessIdentity) -> None:
    # Drop anything the client sent under our identity header names
    headers = [
        (name, value)
        for name, value in request.scope["headers"]
        if name.decode("latin-1").lower() not in IDENTITY_HEADERS
    ]
    headers.append((b"x-user-sub", identity.sub.encode("utf-8")))
    if identity.email:
        headers.append((b"x-user-email", identity.email.encode("utf-8")))
    if identity.name:
        headers.append((b"x-user-name", identity.name.encode("utf-8")))
    request.scope["headers"] = headers


class AccessGateMiddleware(BaseHTTPMiddleware):
    """
    Authenticates requests, forwards identity headers and issues sessions.

    Per request:
    1. OPTIONS preflights and public/static paths pass through
    2. The Access assertion (header, then cookie) is verified
    3. In development, an absent assertion may be replaced by the dev bypass
    4. Unauthorized or failed verification redirects to the Access login
    5. On success, x-user-* headers are set for handlers and a fresh session
       cookie is issued

    Collaborators are read from ``request.app.state.container``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return await call_next(request)

        if is_public_path(request.url.path):
            return await call_next(request)

        container = request.app.state.container
        settings = container.settings

        assertion = request.headers.get(ACCESS_HEADER) or request.cookies.get(ACCESS_COOKIE)
        result = await container.access_verifier.verify(assertion)

        if isinstance(result, AccessUnauthorized) and settings.is_dev:
            dev_identity = get_dev_bypass_identity(request.headers, settings)
            if dev_identity is not None:
                result = AccessSuccess(
                    identity=AccessIdentity(
                        sub=dev_identity.sub,
                        email=dev_identity.email,
                        name=dev_identity.name,
                        token=DEV_TOKEN_MARKER,
                    )
                )

        if not isinstance(result, AccessSuccess):
            if result.type == "error":
                logger.error(
                    f"Failed to verify Cloudflare Access token: {result.error}",
                    extra={"error_type": "access_gate_verification_failed"},
                )
            container.analytics.capture(
                distinct_id="anonymous",
                event="authentication_failed",
                properties={"reason": result.type, "path": request.url.path},
            )
            return RedirectResponse(
                build_login_redirect_url(container.access_verifier.login_url(), str(request.url)),
                status_code=307,
            )

        identity = result.identity
        _attach_identity_headers(request, identity)

        response = await call_next(request)

        if not should_bypass_session(settings):
            session_value = container.session_codec.create(
                SessionIdentity(sub=identity.sub, email=identity.email, name=identity.name)
            )
            response.set_cookie(
                SESSION_COOKIE_NAME,
                session_value,
                max_age=SESSION_COOKIE_MAX_AGE,
                path="/",
                secure=not settings.is_dev,
                httponly=True,
                samesite="lax",
            )

        return response

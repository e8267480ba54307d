"""FastAPI dependencies for the identity attached by the access gate."""

import logging

from fastapi import HTTPException, Request, status

from src.studio.services.auth.models import RequestIdentity, SessionPayload
from src.studio.services.auth.session import SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)


async def get_request_identity(request: Request) -> RequestIdentity:
    """
    Read the caller identity forwarded by AccessGateMiddleware.

    Args:
        request: Incoming request carrying x-user-* headers

    Returns:
        RequestIdentity with sub, email and name

    Raises:
        HTTPException: 401 if no subject header is present

    Example:
        @router.post("/generate/script")
        async def generate(identity: RequestIdentity = Depends(get_request_identity)):
            ...
    """
    subject = request.headers.get("x-user-sub")
    if not subject:
        logger.warning(
            "Request reached handler without an authenticated subject",
            extra={"path": request.url.path},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return RequestIdentity(
        sub=subject,
        email=request.headers.get("x-user-email") or None,
        name=request.headers.get("x-user-name") or None,
    )


async def get_current_session(request: Request) -> SessionPayload | None:
    """Parse the session cookie; an absent or invalid cookie yields None."""
    codec = request.app.state.container.session_codec
    if codec is None:
        return None
    return codec.parse(request.cookies.get(SESSION_COOKIE_NAME))

"""Resolution of Cloudflare Access settings into a verifier configuration."""

import logging
import re

from pydantic import BaseModel, ConfigDict

from src.studio.config import Settings
from src.studio.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CERTS_PATH = "/cdn-cgi/access/certs"
LOGIN_PATH = "/cdn-cgi/access/login"


class AccessConfig(BaseModel):
    """
    Identity-provider settings needed to verify Access assertions.

    Built once at start-up and shared read-only by the verifier and the
    request gate.

    Attributes:
        audience: Expected 'aud' claim (the Access application AUD tag)
        certs_url: URL of the public-key set
        login_url: Where unauthenticated callers are redirected
        algorithm: Optional signing algorithm pin (e.g. "RS256")
        issuer: Optional expected 'iss' claim
    """

    model_config = ConfigDict(frozen=True)

    audience: str
    certs_url: str
    login_url: str
    algorithm: str | None = None
    issuer: str | None = None


def _certs_url_from_team_domain(team_domain: str) -> str:
    sanitized = team_domain if team_domain.startswith("http") else f"https://{team_domain}"
    return f"{sanitized.rstrip('/')}{CERTS_PATH}"


def resolve_access_config(settings: Settings) -> AccessConfig:
    """
    Resolve the Access configuration from settings.

    The certs URL comes from CF_ACCESS_CERTS_URL, or is derived from
    CF_ACCESS_TEAM_DOMAIN. The login URL comes from CF_ACCESS_LOGIN_URL, or is
    derived from the certs URL by swapping the path suffix.

    Args:
        settings: Application settings

    Returns:
        Immutable AccessConfig

    Raises:
        ConfigurationError: If the audience is missing, or neither a certs URL
            nor a team domain is configured

    Example:
        >>> config = resolve_access_config(Settings(
        ...     cf_access_aud="aud-tag", cf_access_team_domain="team.cloudflareaccess.com"
        ... ))
        >>> config.login_url
        'https://team.cloudflareaccess.com/cdn-cgi/access/login'
    """
    if not settings.cf_access_aud:
        raise ConfigurationError("Missing required environment variable: CF_ACCESS_AUD")

    certs_url = settings.cf_access_certs_url
    if not certs_url:
        if not settings.cf_access_team_domain:
            raise ConfigurationError(
                "Provide either CF_ACCESS_CERTS_URL or CF_ACCESS_TEAM_DOMAIN "
                "to verify Cloudflare Access tokens."
            )
        certs_url = _certs_url_from_team_domain(settings.cf_access_team_domain)

    login_url = settings.cf_access_login_url or re.sub(
        re.escape(CERTS_PATH) + "$", LOGIN_PATH, certs_url
    )

    config = AccessConfig(
        audience=settings.cf_access_aud,
        certs_url=certs_url,
        login_url=login_url,
        algorithm=settings.cf_access_jwt_alg or None,
        issuer=settings.cf_access_issuer or None,
    )

    logger.info(
        "Resolved Cloudflare Access configuration",
        extra={"certs_url": config.certs_url, "algorithm": config.algorithm},
    )
    return config

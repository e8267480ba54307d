"""Data models for authentication."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AccessIdentity(BaseModel):
    """
    Identity extracted from a verified Access assertion.

    Attributes:
        sub: Subject claim (stable per user)
        email: 'email' claim, falling back to 'identity_email'
        name: 'name' claim, falling back to 'common_name'
        issuer: 'iss' claim
        token: The raw assertion ("dev" for the development bypass)
    """

    sub: str
    email: str | None = None
    name: str | None = None
    issuer: str | None = None
    token: str


class AccessSuccess(BaseModel):
    """Verification succeeded."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["success"] = "success"
    identity: AccessIdentity


class AccessError(BaseModel):
    """Verification was attempted and failed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["error"] = "error"
    error: Exception


class AccessUnauthorized(BaseModel):
    """No assertion was supplied."""

    type: Literal["unauthorized"] = "unauthorized"


AccessVerificationResult = AccessSuccess | AccessError | AccessUnauthorized


class DevBypassIdentity(BaseModel):
    """Identity synthesized from development bypass headers."""

    sub: str
    email: str
    name: str | None = None


class SessionIdentity(BaseModel):
    """Identity fields carried by a session token."""

    sub: str
    email: str | None = None
    name: str | None = None


class SessionPayload(SessionIdentity):
    """
    Signed session payload.

    issuedAt is epoch milliseconds and informational only; expiry is left to
    the cookie max-age.
    """

    model_config = ConfigDict(populate_by_name=True)

    issued_at: int = Field(alias="issuedAt")


class RequestIdentity(BaseModel):
    """Identity attached to a request by the access gate."""

    sub: str
    email: str | None = None
    name: str | None = None

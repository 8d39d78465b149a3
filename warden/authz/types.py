"""Request, grant and outcome types for bearer authorization decisions."""

from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class Decision(StrEnum):
    """Outcome reported by the live authorization evaluator."""

    PERMIT = "permit"
    DENY = "deny"


class DenyReason(StrEnum):
    """Why a bearer request was denied."""

    INTROSPECTION_FAILED = "introspection_failed"
    FEATURE_DISABLED = "feature_disabled"
    CLIENT_NOT_PERMITTED = "client_not_permitted"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    AUDIENCE_MISMATCH = "audience_mismatch"
    EVALUATION_FAILED = "evaluation_failed"
    SUBJECT_DENIED = "subject_denied"
    TIMEOUT = "timeout"


class AccessGrant(BaseModel):
    """What an active token was granted, as resolved by introspection."""

    model_config = ConfigDict(frozen=True)

    scopes: frozenset[str] = frozenset()
    audience: tuple[str, ...] = ()
    subject: str
    client_id: str | None = None


class BearerRequest(BaseModel):
    """An inbound request to authorize a bearer token for a resource."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)
    resource: str
    timeout: float | None = None


class Authorization(BaseModel):
    """Allow or deny outcome of a bearer request."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: DenyReason | None = None
    subject: str | None = None
    client_id: str | None = None

    @classmethod
    def allow(cls, grant: AccessGrant) -> "Authorization":
        """Permit the request on behalf of the granted subject."""
        return cls(allowed=True, subject=grant.subject, client_id=grant.client_id)

    @classmethod
    def deny(
        cls, reason: DenyReason, grant: AccessGrant | None = None
    ) -> "Authorization":
        """Refuse the request, keeping the subject when the grant is known."""
        if grant is None:
            return cls(allowed=False, reason=reason)
        return cls(
            allowed=False,
            reason=reason,
            subject=grant.subject,
            client_id=grant.client_id,
        )


class Introspector(Protocol):
    """Resolves a presented token to its grant."""

    async def introspect(self, token: str) -> AccessGrant:
        """Return the grant of an active token or raise ``IntrospectionError``."""
        ...


class AuthorizationEvaluator(Protocol):
    """Computes a subject's current decision for a resource."""

    async def evaluate(self, subject: str, resource: str) -> Decision:
        """Return the live decision or raise ``EvaluationError``."""
        ...

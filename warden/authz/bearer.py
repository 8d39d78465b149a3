"""Runtime decisions for bearer-authorized resource requests."""

import asyncio
from collections.abc import Iterable

from warden.authz.types import (
    AccessGrant,
    Authorization,
    AuthorizationEvaluator,
    BearerRequest,
    Decision,
    DenyReason,
    Introspector,
)
from warden.core.logging import get_logger
from warden.core.settings import BEARER_DECISION_TIMEOUT_DEFAULT, WardenSettings
from warden.oidc.const import SCOPE_BEARER_AUTHZ
from warden.oidc.store import PolicyStore
from warden.oidc.types import PolicyModel

logger = get_logger(__name__)

_PATH_BOUNDARIES = ("/", "?", "#")


def audience_matches(audience: Iterable[str], resource: str) -> bool:
    """Return True when an audience entry equals or is a path prefix of the resource.

    A prefix only counts when it ends on a path boundary (the entry ends in
    '/' or the resource continues with '/', '?' or '#'). Plain string
    prefixes are rejected so 'https://app.example.com' never matches
    'https://app.example.com.evil.test'.
    """
    for entry in audience:
        if not entry:
            continue
        if entry == resource:
            return True
        if resource.startswith(entry):
            if entry.endswith("/") or resource[len(entry)] in _PATH_BOUNDARIES:
                return True
    return False


class BearerAuthorizer:
    """Decides whether a bearer token may reach a resource right now.

    The subject's decision is always computed fresh by the evaluator; nothing
    about it is taken from the token or remembered between requests.
    """

    def __init__(
        self,
        store: PolicyStore,
        introspector: Introspector,
        evaluator: AuthorizationEvaluator,
        timeout: float = BEARER_DECISION_TIMEOUT_DEFAULT,
    ) -> None:
        self._store = store
        self._introspector = introspector
        self._evaluator = evaluator
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls,
        store: PolicyStore,
        introspector: Introspector,
        evaluator: AuthorizationEvaluator,
        settings: WardenSettings | None = None,
    ) -> "BearerAuthorizer":
        """Build an authorizer using the configured decision timeout."""
        settings = settings or WardenSettings()
        return cls(store, introspector, evaluator, timeout=settings.bearer_decision_timeout)

    async def authorize(self, request: BearerRequest) -> Authorization:
        """Run a request through introspection, scope, audience and subject checks."""
        snapshot = self._store.current
        timeout = request.timeout if request.timeout is not None else self._timeout
        try:
            async with asyncio.timeout(timeout):
                return await self._decide(snapshot, request)
        except TimeoutError:
            logger.warning(
                "bearer.timeout", resource=request.resource, timeout=timeout
            )
            return self._deny(DenyReason.TIMEOUT, request)

    async def _decide(
        self, snapshot: PolicyModel, request: BearerRequest
    ) -> Authorization:
        try:
            grant = await self._introspector.introspect(request.token)
        except Exception as err:
            logger.warning(
                "bearer.introspection_error", resource=request.resource, error=str(err)
            )
            return self._deny(DenyReason.INTROSPECTION_FAILED, request)

        if not snapshot.discovery.bearer_authorization:
            return self._deny(DenyReason.FEATURE_DISABLED, request, grant)
        if grant.client_id is not None:
            client = snapshot.client(grant.client_id)
            if client is None or not client.bearer_authorization:
                return self._deny(DenyReason.CLIENT_NOT_PERMITTED, request, grant)
        if SCOPE_BEARER_AUTHZ not in grant.scopes:
            return self._deny(DenyReason.INSUFFICIENT_SCOPE, request, grant)
        if not audience_matches(grant.audience, request.resource):
            return self._deny(DenyReason.AUDIENCE_MISMATCH, request, grant)

        try:
            decision = await self._evaluator.evaluate(grant.subject, request.resource)
        except Exception as err:
            logger.warning(
                "bearer.evaluation_error",
                resource=request.resource,
                subject=grant.subject,
                error=str(err),
            )
            return self._deny(DenyReason.EVALUATION_FAILED, request, grant)
        if decision != Decision.PERMIT:
            return self._deny(DenyReason.SUBJECT_DENIED, request, grant)

        logger.debug(
            "bearer.allowed",
            resource=request.resource,
            subject=grant.subject,
            client_id=grant.client_id,
        )
        return Authorization.allow(grant)

    @staticmethod
    def _deny(
        reason: DenyReason, request: BearerRequest, grant: AccessGrant | None = None
    ) -> Authorization:
        logger.info(
            "bearer.denied",
            reason=reason.value,
            resource=request.resource,
            subject=grant.subject if grant else None,
            client_id=grant.client_id if grant else None,
        )
        return Authorization.deny(reason, grant)

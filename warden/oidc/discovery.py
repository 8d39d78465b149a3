"""Discovery aggregate built during validation and the published document."""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from warden.crypto.keys import signing_key_to_jwk_entry
from warden.crypto.types import JWKSResponse, SigningKey
from warden.oidc.const import (
    ALG_NONE,
    ASYMMETRIC_SIGNING_ALGS,
    AUTH_METHODS,
    CLIENT_SCOPES,
    GRANT_TYPES,
    HMAC_SIGNING_ALGS,
    PKCE_CHALLENGE_METHODS,
    POLICY_BUILTINS,
    RESPONSE_MODES,
    RESPONSE_TYPES,
    SCOPE_BEARER_AUTHZ,
)
from warden.oidc.keyring import IssuerKeys


def sort_signing_algs(algorithms: Iterable[str]) -> tuple[str, ...]:
    """Sort algorithms deterministically: known families first, unknown last."""
    known = {alg: i for i, alg in enumerate(ASYMMETRIC_SIGNING_ALGS)}
    unknown = len(known)
    return tuple(sorted(set(algorithms), key=lambda alg: (known.get(alg, unknown), alg)))


class DiscoveryAggregate(BaseModel):
    """Derived capability sets consulted by client validation and publishers.

    Frozen once built; client validation contributes through ``with_clients``
    which returns a new aggregate.
    """

    model_config = ConfigDict(frozen=True)

    response_object_signing_algs: tuple[str, ...] = ()
    response_object_signing_key_ids: tuple[str, ...] = ()
    default_key_ids: dict[str, str] = Field(default_factory=dict)
    request_object_signing_algs: tuple[str, ...] = ()
    authorization_policies: tuple[str, ...] = POLICY_BUILTINS
    lifespans: tuple[str, ...] = ()
    bearer_authorization: bool = False
    jwt_response_access_tokens: bool = False

    def with_clients(
        self,
        request_object_signing_algs: Iterable[str],
        bearer_authorization: bool,
        jwt_response_access_tokens: bool,
    ) -> "DiscoveryAggregate":
        """Fold the contributions of validated clients into a new aggregate."""
        merged = list(self.request_object_signing_algs)
        for alg in request_object_signing_algs:
            if alg not in merged:
                merged.append(alg)
        return self.model_copy(
            update={
                "request_object_signing_algs": sort_signing_algs(merged),
                "bearer_authorization": self.bearer_authorization
                or bearer_authorization,
                "jwt_response_access_tokens": self.jwt_response_access_tokens
                or jwt_response_access_tokens,
            }
        )


class DiscoveryBuilder:
    """Accumulates discovery sets while keys, policies and lifespans are read."""

    def __init__(self) -> None:
        self._algs: list[str] = []
        self._key_ids: list[str] = []
        self._default_key_ids: dict[str, str] = {}
        self._policies: list[str] = list(POLICY_BUILTINS)
        self._lifespans: list[str] = []

    def add_issuer_keys(self, issuer_keys: IssuerKeys) -> "DiscoveryBuilder":
        """Record algorithms, key IDs and per-algorithm default key IDs."""
        for alg in issuer_keys.algorithms:
            if alg not in self._algs:
                self._algs.append(alg)
        for kid in issuer_keys.key_ids:
            if kid not in self._key_ids:
                self._key_ids.append(kid)
        for alg, kid in issuer_keys.default_key_ids.items():
            self._default_key_ids.setdefault(alg, kid)
        return self

    def add_policies(self, names: Iterable[str]) -> "DiscoveryBuilder":
        """Record authorization policy names clients may reference."""
        for name in names:
            if name not in self._policies:
                self._policies.append(name)
        return self

    def add_lifespans(self, names: Iterable[str]) -> "DiscoveryBuilder":
        """Record custom lifespan names clients may reference."""
        for name in names:
            if name not in self._lifespans:
                self._lifespans.append(name)
        return self

    def build(self) -> DiscoveryAggregate:
        """Freeze the accumulated sets."""
        return DiscoveryAggregate(
            response_object_signing_algs=sort_signing_algs(self._algs),
            response_object_signing_key_ids=tuple(self._key_ids),
            default_key_ids=dict(self._default_key_ids),
            authorization_policies=tuple(self._policies),
            lifespans=tuple(self._lifespans),
        )


class DiscoveryDocument(BaseModel):
    """OIDC .well-known/openid-configuration response."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    introspection_endpoint: str
    revocation_endpoint: str
    jwks_uri: str
    response_types_supported: list[str]
    response_modes_supported: list[str]
    grant_types_supported: list[str]
    subject_types_supported: list[str]
    scopes_supported: list[str]
    token_endpoint_auth_methods_supported: list[str]
    token_endpoint_auth_signing_alg_values_supported: list[str]
    code_challenge_methods_supported: list[str]
    id_token_signing_alg_values_supported: list[str]
    userinfo_signing_alg_values_supported: list[str]
    introspection_signing_alg_values_supported: list[str]
    authorization_signing_alg_values_supported: list[str]
    request_object_signing_alg_values_supported: list[str]
    authorization_policies: list[str]
    lifespans: list[str]
    bearer_authorization_supported: bool
    jwt_access_tokens_supported: bool


def build_discovery(aggregate: DiscoveryAggregate, issuer_url: str) -> DiscoveryDocument:
    """Build the OIDC discovery document from a validated aggregate."""
    issuer = issuer_url.rstrip("/")
    algs = list(aggregate.response_object_signing_algs)
    scopes = [s for s in CLIENT_SCOPES if s != SCOPE_BEARER_AUTHZ]
    if aggregate.bearer_authorization:
        scopes.append(SCOPE_BEARER_AUTHZ)
    return DiscoveryDocument(
        issuer=issuer,
        authorization_endpoint=f"{issuer}/api/oidc/authorization",
        token_endpoint=f"{issuer}/api/oidc/token",
        userinfo_endpoint=f"{issuer}/api/oidc/userinfo",
        introspection_endpoint=f"{issuer}/api/oidc/introspection",
        revocation_endpoint=f"{issuer}/api/oidc/revocation",
        jwks_uri=f"{issuer}/jwks.json",
        response_types_supported=list(RESPONSE_TYPES),
        response_modes_supported=list(RESPONSE_MODES),
        grant_types_supported=list(GRANT_TYPES),
        subject_types_supported=["public", "pairwise"],
        scopes_supported=scopes,
        token_endpoint_auth_methods_supported=list(AUTH_METHODS),
        token_endpoint_auth_signing_alg_values_supported=[
            *HMAC_SIGNING_ALGS,
            *ASYMMETRIC_SIGNING_ALGS,
        ],
        code_challenge_methods_supported=list(PKCE_CHALLENGE_METHODS),
        id_token_signing_alg_values_supported=algs,
        userinfo_signing_alg_values_supported=[*algs, ALG_NONE],
        introspection_signing_alg_values_supported=[*algs, ALG_NONE],
        authorization_signing_alg_values_supported=algs,
        request_object_signing_alg_values_supported=[
            *aggregate.request_object_signing_algs,
            ALG_NONE,
        ],
        authorization_policies=list(aggregate.authorization_policies),
        lifespans=list(aggregate.lifespans),
        bearer_authorization_supported=aggregate.bearer_authorization,
        jwt_access_tokens_supported=aggregate.jwt_response_access_tokens,
    )


def build_jwks(keys: Iterable[SigningKey]) -> JWKSResponse:
    """Build the public JWKS for the issuer signing keys."""
    return JWKSResponse(keys=[signing_key_to_jwk_entry(k) for k in keys])

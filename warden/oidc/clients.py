"""Client validation: normalizes each configured client in a fixed order of steps.

Every step takes a client and returns an updated copy, recording problems on
the shared report. Steps run in declaration order because later steps read
what earlier ones defaulted (grant types are inferred from response types,
token endpoint auth reads the client's own key algorithms, and so on).
"""

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from warden.config.types import ClientConfig
from warden.core.logging import get_logger
from warden.core.settings import (
    CLIENT_AUTHORIZATION_POLICY_DEFAULT,
    CLIENT_REQUESTED_AUDIENCE_MODE_DEFAULT,
    CLIENT_RESPONSE_TYPES_DEFAULT,
    CLIENT_SCOPES_DEFAULT,
    CONSENT_PRE_CONFIGURED_DURATION_DEFAULT,
)
from warden.oidc.client_auth import validate_token_endpoint_auth
from warden.oidc.const import (
    CLIENT_CREDENTIALS_FORBIDDEN_SCOPES,
    CLIENT_SCOPES,
    CONSENT_MODE_AUTO,
    CONSENT_MODE_EXPLICIT,
    CONSENT_MODE_PRE_CONFIGURED,
    CONSENT_MODES,
    GRANT_TYPE_AUTHORIZATION_CODE,
    GRANT_TYPE_CLIENT_CREDENTIALS,
    GRANT_TYPE_IMPLICIT,
    GRANT_TYPE_REFRESH_TOKEN,
    GRANT_TYPES,
    INSTALLED_APP_REDIRECT_URI,
    OFFLINE_SCOPES,
    PKCE_CHALLENGE_METHODS,
    REQUESTED_AUDIENCE_MODES,
    RESPONSE_MODE_FRAGMENT,
    RESPONSE_MODE_QUERY,
    RESPONSE_MODES,
    RESPONSE_TYPE_CODE,
    RESPONSE_TYPES,
    RESPONSE_TYPES_HYBRID,
    RESPONSE_TYPES_IMPLICIT,
    RESPONSE_TYPES_REFRESH_CAPABLE,
    SCOPE_BEARER_AUTHZ,
    SCOPE_OPENID,
)
from warden.oidc.discovery import DiscoveryAggregate
from warden.oidc.keyring import ClientKeys, IssuerKeys, resolve_client_keys
from warden.oidc.report import ValidationReport, join_and, join_or
from warden.oidc.signing import SIGNING_PROFILES, resolve_signing
from warden.oidc.types import Client

logger = get_logger(__name__)

_HOST_PATTERN = re.compile(
    r"^(?:\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?)(?::\d{1,5})?$"
)
_CONSENT_MODE_ALIASES = {"pre_configured": CONSENT_MODE_PRE_CONFIGURED}


class ClientOutcome(BaseModel):
    """A normalized client and what it contributes to discovery."""

    model_config = ConfigDict(frozen=True)

    client: Client
    bearer_authorization: bool = False
    jwt_response_access_tokens: bool = False


class ClientsResult(BaseModel):
    """Normalized clients plus the identity problems found across the batch."""

    model_config = ConfigDict(frozen=True)

    clients: tuple[Client, ...] = ()
    blank_ids: tuple[str, ...] = ()
    duplicate_ids: tuple[str, ...] = ()
    request_object_signing_algs: tuple[str, ...] = ()
    bearer_authorization: bool = False
    jwt_response_access_tokens: bool = False


def _list_problems(
    values: Sequence[str], allowed: Iterable[str] | None
) -> tuple[list[str], list[str]]:
    """Return values outside ``allowed`` and values that repeat, each once."""
    allowed_set = set(allowed) if allowed is not None else None
    invalid: list[str] = []
    duplicates: list[str] = []
    seen: set[str] = set()
    for value in values:
        if allowed_set is not None and value not in allowed_set and value not in invalid:
            invalid.append(value)
        if value in seen:
            if value not in duplicates:
                duplicates.append(value)
        else:
            seen.add(value)
    return invalid, duplicates


def _warn_duplicates(
    client: ClientConfig, option: str, duplicates: list[str], report: ValidationReport
) -> None:
    if duplicates:
        report.warn(
            f"client '{client.client_id}': option '{option}' must have unique values "
            f"but the values {join_and(duplicates)} are duplicated",
            deprecation=True,
        )


def validate_identity(client: ClientConfig) -> ClientConfig:
    """Default the client name to the client ID."""
    if client.client_name:
        return client
    return client.model_copy(update={"client_name": client.client_id})


def validate_references(
    client: ClientConfig, aggregate: DiscoveryAggregate, report: ValidationReport
) -> ClientConfig:
    """Check policy, lifespan, PKCE, audience mode and consent mode options."""
    prefix = f"client '{client.client_id}'"
    updates: dict[str, object] = {}

    policy = client.authorization_policy or CLIENT_AUTHORIZATION_POLICY_DEFAULT
    if policy not in aggregate.authorization_policies:
        report.error(
            f"{prefix}: option 'authorization_policy' must be one of "
            f"{join_or(aggregate.authorization_policies)} but it's configured as "
            f"'{policy}'"
        )
    updates["authorization_policy"] = policy

    if client.lifespan and client.lifespan not in aggregate.lifespans:
        if aggregate.lifespans:
            report.error(
                f"{prefix}: option 'lifespan' must be one of "
                f"{join_or(aggregate.lifespans)} but it's configured as "
                f"'{client.lifespan}'"
            )
        else:
            report.error(
                f"{prefix}: option 'lifespan' must not be configured when no custom "
                f"lifespans are configured but it's configured as '{client.lifespan}'"
            )

    method = client.pkce_challenge_method
    if method and method not in PKCE_CHALLENGE_METHODS:
        report.error(
            f"{prefix}: option 'pkce_challenge_method' must be one of "
            f"{join_or(PKCE_CHALLENGE_METHODS)} but it's configured as '{method}'"
        )

    audience_mode = client.requested_audience_mode or CLIENT_REQUESTED_AUDIENCE_MODE_DEFAULT
    if audience_mode not in REQUESTED_AUDIENCE_MODES:
        report.error(
            f"{prefix}: option 'requested_audience_mode' must be one of "
            f"{join_or(REQUESTED_AUDIENCE_MODES)} but it's configured as "
            f"'{audience_mode}'"
        )
    updates["requested_audience_mode"] = audience_mode

    consent = _CONSENT_MODE_ALIASES.get(client.consent_mode, client.consent_mode)
    if consent in ("", CONSENT_MODE_AUTO):
        if client.pre_configured_consent_duration is not None:
            consent = CONSENT_MODE_PRE_CONFIGURED
        else:
            consent = CONSENT_MODE_EXPLICIT
    elif consent not in CONSENT_MODES:
        report.error(
            f"{prefix}: option 'consent_mode' must be one of "
            f"{join_or((CONSENT_MODE_AUTO, *CONSENT_MODES))} but it's configured as "
            f"'{client.consent_mode}'"
        )
    updates["consent_mode"] = consent
    if consent == CONSENT_MODE_PRE_CONFIGURED and client.pre_configured_consent_duration is None:
        updates["pre_configured_consent_duration"] = CONSENT_PRE_CONFIGURED_DURATION_DEFAULT

    return client.model_copy(update=updates)


def validate_scopes(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Default and check scopes."""
    prefix = f"client '{client.client_id}'"
    client_credentials = GRANT_TYPE_CLIENT_CREDENTIALS in client.grant_types
    client_credentials_only = client.grant_types == [GRANT_TYPE_CLIENT_CREDENTIALS]

    scopes = list(client.scopes)
    if not scopes:
        if not client_credentials_only:
            scopes = list(CLIENT_SCOPES_DEFAULT)
    elif not client_credentials and SCOPE_OPENID not in scopes:
        scopes.insert(0, SCOPE_OPENID)

    invalid, duplicates = _list_problems(scopes, CLIENT_SCOPES)
    _warn_duplicates(client, "scopes", duplicates, report)

    if client_credentials_only:
        forbidden = [s for s in scopes if s in CLIENT_CREDENTIALS_FORBIDDEN_SCOPES]
        if forbidden:
            report.error(
                f"{prefix}: option 'scopes' has the values {join_and(forbidden)} "
                f"however when exclusively utilizing the "
                f"'{GRANT_TYPE_CLIENT_CREDENTIALS}' value for the 'grant_types' the "
                f"values {join_or(CLIENT_CREDENTIALS_FORBIDDEN_SCOPES)} are not allowed"
            )
    elif invalid:
        report.error(
            f"{prefix}: option 'scopes' must only have the values "
            f"{join_or(CLIENT_SCOPES)} but the values {join_and(invalid)} are present"
        )

    response_types = client.response_types or list(CLIENT_RESPONSE_TYPES_DEFAULT)
    offline = [s for s in scopes if s in OFFLINE_SCOPES]
    if offline and not any(rt in RESPONSE_TYPES_REFRESH_CAPABLE for rt in response_types):
        report.warn(
            f"{prefix}: option 'scopes' should only have the values "
            f"{join_and(OFFLINE_SCOPES)} if the client is also configured with a "
            f"'response_type' such as {join_and(RESPONSE_TYPES_REFRESH_CAPABLE)} which "
            "respond with authorization codes",
            deprecation=True,
        )

    return client.model_copy(update={"scopes": scopes})


def validate_response_types(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Default response types; unknown values only warn."""
    response_types = client.response_types or list(CLIENT_RESPONSE_TYPES_DEFAULT)
    invalid, duplicates = _list_problems(response_types, RESPONSE_TYPES)
    if invalid:
        report.warn(
            f"client '{client.client_id}': option 'response_types' should only have "
            f"the values {join_or(RESPONSE_TYPES)} but the values {join_and(invalid)} "
            "are present"
        )
    _warn_duplicates(client, "response_types", duplicates, report)
    return client.model_copy(update={"response_types": response_types})


def _default_response_modes(response_types: Sequence[str]) -> list[str]:
    modes: list[str] = []
    for response_type in response_types:
        if response_type == RESPONSE_TYPE_CODE:
            mode = RESPONSE_MODE_QUERY
        elif response_type in RESPONSE_TYPES_IMPLICIT or response_type in RESPONSE_TYPES_HYBRID:
            mode = RESPONSE_MODE_FRAGMENT
        else:
            continue
        if mode not in modes:
            modes.append(mode)
    return modes


def validate_response_modes(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Infer response modes from response types when unset and check them."""
    modes = client.response_modes or _default_response_modes(client.response_types)
    invalid, duplicates = _list_problems(modes, RESPONSE_MODES)
    if invalid:
        report.error(
            f"client '{client.client_id}': option 'response_modes' must only have the "
            f"values {join_or(RESPONSE_MODES)} but the values {join_and(invalid)} are "
            "present"
        )
    _warn_duplicates(client, "response_modes", duplicates, report)
    return client.model_copy(update={"response_modes": modes})


def _default_grant_types(response_types: Sequence[str]) -> list[str]:
    grants: list[str] = []

    def add(grant: str) -> None:
        if grant not in grants:
            grants.append(grant)

    for response_type in response_types:
        if response_type == RESPONSE_TYPE_CODE:
            add(GRANT_TYPE_AUTHORIZATION_CODE)
        elif response_type in RESPONSE_TYPES_IMPLICIT:
            add(GRANT_TYPE_IMPLICIT)
        elif response_type in RESPONSE_TYPES_HYBRID:
            add(GRANT_TYPE_AUTHORIZATION_CODE)
            add(GRANT_TYPE_IMPLICIT)
    return grants


def validate_grant_types(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Infer grant types from response types when unset and cross-check them."""
    prefix = f"client '{client.client_id}'"
    grants = client.grant_types or _default_grant_types(client.response_types)
    response_types = client.response_types
    code_capable = any(rt in RESPONSE_TYPES_REFRESH_CAPABLE for rt in response_types)
    implicit_capable = any(
        rt in RESPONSE_TYPES_IMPLICIT or rt in RESPONSE_TYPES_HYBRID for rt in response_types
    )

    def mismatch(grant: str, needs: str) -> None:
        report.warn(
            f"{prefix}: option 'grant_types' should only have the '{grant}' value if "
            f"the client is also configured with {needs}",
            deprecation=True,
        )

    if GRANT_TYPE_AUTHORIZATION_CODE in grants and not code_capable:
        mismatch(
            GRANT_TYPE_AUTHORIZATION_CODE,
            f"a 'response_type' such as {join_and(RESPONSE_TYPES_REFRESH_CAPABLE)}",
        )
    if GRANT_TYPE_IMPLICIT in grants and not implicit_capable:
        mismatch(
            GRANT_TYPE_IMPLICIT,
            "a 'response_type' such as "
            f"{join_and((*RESPONSE_TYPES_IMPLICIT, *RESPONSE_TYPES_HYBRID))}",
        )
    if GRANT_TYPE_REFRESH_TOKEN in grants:
        if not any(s in OFFLINE_SCOPES for s in client.scopes):
            mismatch(GRANT_TYPE_REFRESH_TOKEN, f"the {join_or(OFFLINE_SCOPES)} scope")
        if not code_capable:
            mismatch(
                GRANT_TYPE_REFRESH_TOKEN,
                f"a 'response_type' such as {join_and(RESPONSE_TYPES_REFRESH_CAPABLE)}",
            )
    if GRANT_TYPE_CLIENT_CREDENTIALS in grants and client.public:
        report.error(
            f"{prefix}: option 'grant_types' should only have the "
            f"'{GRANT_TYPE_CLIENT_CREDENTIALS}' value if it is of the confidential "
            "client type but it's of the public client type"
        )

    invalid, duplicates = _list_problems(grants, GRANT_TYPES)
    if invalid:
        report.error(
            f"{prefix}: option 'grant_types' must only have the values "
            f"{join_or(GRANT_TYPES)} but the values {join_and(invalid)} are present"
        )
    _warn_duplicates(client, "grant_types", duplicates, report)
    return client.model_copy(update={"grant_types": grants})


def validate_redirect_uris(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Check every redirect URI is absolute, except for public clients."""
    prefix = f"client '{client.client_id}'"
    for uri in client.redirect_uris:
        if uri == INSTALLED_APP_REDIRECT_URI:
            if not client.public:
                report.error(
                    f"{prefix}: option 'redirect_uris' has the redirect uri '{uri}' "
                    "when option 'public' is false but this is invalid as this uri is "
                    "not valid for the openid connect confidential client type"
                )
            continue
        try:
            parts = urlsplit(uri)
        except ValueError as err:
            report.error(
                f"{prefix}: option 'redirect_uris' has an invalid value: redirect uri "
                f"'{uri}' could not be parsed: {err}"
            )
            continue
        if not parts.scheme and not client.public:
            report.error(
                f"{prefix}: option 'redirect_uris' has an invalid value: redirect uri "
                f"'{uri}' must have a scheme but it's absent"
            )

    _, duplicates = _list_problems(client.redirect_uris, None)
    _warn_duplicates(client, "redirect_uris", duplicates, report)
    return client


def validate_sector_identifier(client: ClientConfig, report: ValidationReport) -> ClientConfig:
    """Check the sector identifier is a bare host with an optional port."""
    value = client.sector_identifier_uri
    if not value or _HOST_PATTERN.match(value):
        return client

    prefix = f"client '{client.client_id}': option 'sector_identifier_uri'"
    try:
        parts = urlsplit(value)
    except ValueError as err:
        report.error(f"{prefix} with value '{value}' could not be parsed: {err}")
        return client
    if parts.scheme:
        report.error(
            f"{prefix} with value '{value}': must be a URL with only the host "
            f"component for example '{parts.hostname or 'example.com'}' but it has a "
            f"scheme with the value '{parts.scheme}'"
        )
        present = (
            ("path", parts.path),
            ("query", parts.query),
            ("fragment", parts.fragment),
            ("username", parts.username),
            ("password", parts.password),
        )
        for component, component_value in present:
            if component_value:
                report.error(
                    f"{prefix} with value '{value}': must be a URL with only the host "
                    f"component but it has a {component} with the value "
                    f"'{component_value}'"
                )
    elif not parts.netloc:
        report.error(
            f"{prefix} with value '{value}': must be a URL with only the host "
            "component but it doesn't have a host component"
        )
    return client


def validate_public_keys(
    client: ClientConfig, report: ValidationReport
) -> tuple[ClientConfig, ClientKeys]:
    """Check the public key URI or inline keys and collect their algorithms."""
    prefix = f"client '{client.client_id}'"
    public_keys = client.public_keys
    if public_keys.uri is not None and public_keys.values:
        report.error(
            f"{prefix}: option 'public_keys' must not have both the 'uri' and "
            "'values' options configured"
        )
        public_keys = public_keys.model_copy(update={"values": []})
        client = client.model_copy(update={"public_keys": public_keys})

    if public_keys.uri is not None:
        try:
            scheme = urlsplit(public_keys.uri).scheme
        except ValueError:
            scheme = ""
        if scheme != "https":
            report.error(
                f"{prefix}: option 'public_keys' option 'uri' must have the 'https' "
                f"scheme but the scheme is '{scheme}'"
            )
        return client, ClientKeys()

    keys = resolve_client_keys(client.client_id, public_keys.values, report)
    alg = client.request_object_signing_alg
    if alg and not keys.algorithms:
        report.error(
            f"{prefix}: option 'request_object_signing_alg' requires option "
            f"'public_keys' to be configured with a key offering '{alg}'"
        )
    elif alg and alg not in keys.algorithms:
        report.error(
            f"{prefix}: option 'request_object_signing_alg' must be one of "
            f"{join_or(keys.algorithms)} configured in the client option 'public_keys'"
        )
    return client, keys


def validate_signing(
    client: ClientConfig, issuer_keys: IssuerKeys, report: ValidationReport
) -> tuple[ClientConfig, bool]:
    """Resolve the five response signing pairs; return whether any emits JWTs."""
    updates: dict[str, str] = {}
    jwt_access_tokens = False
    for profile in SIGNING_PROFILES:
        resolution = resolve_signing(
            profile,
            getattr(client, profile.alg_option),
            getattr(client, profile.kid_option),
            issuer_keys,
        )
        if resolution.error:
            report.error(f"client '{client.client_id}': {resolution.error}")
        updates[profile.alg_option] = resolution.algorithm
        updates[profile.kid_option] = resolution.key_id
        jwt_access_tokens = jwt_access_tokens or resolution.jwt_access_tokens
    return client.model_copy(update=updates), jwt_access_tokens


def validate_client(
    config: ClientConfig,
    aggregate: DiscoveryAggregate,
    issuer_keys: IssuerKeys,
    report: ValidationReport,
) -> ClientOutcome:
    """Run every step for one client and build its normalized form."""
    client = validate_identity(config)
    client = validate_references(client, aggregate, report)
    client = validate_scopes(client, report)
    client = validate_response_types(client, report)
    client = validate_response_modes(client, report)
    client = validate_grant_types(client, report)
    client = validate_redirect_uris(client, report)
    client = validate_sector_identifier(client, report)
    client, keys = validate_public_keys(client, report)
    client, client_auth = validate_token_endpoint_auth(client, keys.algorithms, report)
    client, jwt_access_tokens = validate_signing(client, issuer_keys, report)

    normalized = Client(
        **dict(client),
        client_auth=client_auth,
        public_key_set=keys.keys,
        request_object_signing_algs=keys.algorithms,
    )
    return ClientOutcome(
        client=normalized,
        bearer_authorization=SCOPE_BEARER_AUTHZ in normalized.scopes,
        jwt_response_access_tokens=jwt_access_tokens,
    )


def validate_clients(
    configs: Sequence[ClientConfig],
    aggregate: DiscoveryAggregate,
    issuer_keys: IssuerKeys,
    report: ValidationReport,
) -> ClientsResult:
    """Validate all clients as one batch.

    Blank IDs are collected as 1-based positions and duplicate IDs, compared
    without case, as lowercased values; each list is reported once.
    """
    clients: list[Client] = []
    blank_ids: list[str] = []
    duplicate_ids: list[str] = []
    seen: set[str] = set()
    algorithms: list[str] = []
    bearer = False
    jwt_access_tokens = False

    for i, config in enumerate(configs, start=1):
        client_id = config.client_id.strip()
        if client_id == "":
            blank_ids.append(f"#{i}")
        else:
            lowered = client_id.lower()
            if lowered in seen:
                if lowered not in duplicate_ids:
                    duplicate_ids.append(lowered)
            else:
                seen.add(lowered)

        outcome = validate_client(config, aggregate, issuer_keys, report)
        clients.append(outcome.client)
        for alg in outcome.client.request_object_signing_algs:
            if alg not in algorithms:
                algorithms.append(alg)
        bearer = bearer or outcome.bearer_authorization
        jwt_access_tokens = jwt_access_tokens or outcome.jwt_response_access_tokens

    if blank_ids:
        report.error(
            f"clients: option 'client_id' is required but it's absent on the clients "
            f"in positions {join_and(blank_ids)}"
        )
    if duplicate_ids:
        report.error(
            f"clients: option 'client_id' must be unique for every client but one or "
            f"more clients share the following values {join_and(duplicate_ids)}"
        )

    logger.debug(
        "clients.validated",
        clients=len(clients),
        bearer_authorization=bearer,
        jwt_response_access_tokens=jwt_access_tokens,
    )
    return ClientsResult(
        clients=tuple(clients),
        blank_ids=tuple(blank_ids),
        duplicate_ids=tuple(duplicate_ids),
        request_object_signing_algs=tuple(algorithms),
        bearer_authorization=bearer,
        jwt_response_access_tokens=jwt_access_tokens,
    )

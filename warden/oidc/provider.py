"""Provider-level validation producing an activatable policy model."""

from collections.abc import Sequence
from urllib.parse import urlsplit

from warden.config.types import ClientConfig, CORSConfig, LifespansConfig, ProviderConfig
from warden.core.logging import get_logger
from warden.core.settings import (
    ACCESS_TOKEN_LIFESPAN_DEFAULT,
    AUTHORIZE_CODE_LIFESPAN_DEFAULT,
    ENFORCE_PKCE_DEFAULT,
    ID_TOKEN_LIFESPAN_DEFAULT,
    MINIMUM_PARAMETER_ENTROPY_DEFAULT,
    REFRESH_TOKEN_LIFESPAN_DEFAULT,
)
from warden.oidc.clients import validate_clients
from warden.oidc.const import CORS_ENDPOINTS, ENFORCE_PKCE_MODES
from warden.oidc.discovery import DiscoveryBuilder
from warden.oidc.keyring import resolve_issuer_keys
from warden.oidc.policies import build_policy_table
from warden.oidc.report import ValidationReport, join_or
from warden.oidc.types import PolicyModel, ValidationResult

logger = get_logger(__name__)

ENTROPY_DISABLED = -1
CORS_ORIGIN_SCHEMES = ("http", "https")


def apply_lifespan_defaults(lifespans: LifespansConfig) -> LifespansConfig:
    """Fill unset provider lifespans with their defaults."""
    defaults = {
        "access_token": ACCESS_TOKEN_LIFESPAN_DEFAULT,
        "authorize_code": AUTHORIZE_CODE_LIFESPAN_DEFAULT,
        "id_token": ID_TOKEN_LIFESPAN_DEFAULT,
        "refresh_token": REFRESH_TOKEN_LIFESPAN_DEFAULT,
    }
    updates = {
        name: default for name, default in defaults.items() if not getattr(lifespans, name)
    }
    return lifespans.model_copy(update=updates)


def validate_entropy(value: int, report: ValidationReport) -> int:
    """Normalize the minimum parameter entropy."""
    if value == ENTROPY_DISABLED:
        report.warn(
            "option 'minimum_parameter_entropy' is disabled which is considered unsafe "
            "and insecure"
        )
        return value
    if value <= 0:
        return MINIMUM_PARAMETER_ENTROPY_DEFAULT
    if value < MINIMUM_PARAMETER_ENTROPY_DEFAULT:
        report.warn(
            f"option 'minimum_parameter_entropy' is configured to an unsafe and "
            f"insecure value, it should at least be {MINIMUM_PARAMETER_ENTROPY_DEFAULT} "
            f"but it's configured to {value}"
        )
    return value


def _redirect_origins(clients: Sequence[ClientConfig]) -> list[str]:
    origins: list[str] = []
    for client in clients:
        for uri in client.redirect_uris:
            try:
                parts = urlsplit(uri)
                port = parts.port
            except ValueError:
                continue
            if parts.scheme not in CORS_ORIGIN_SCHEMES or not parts.hostname:
                continue
            if parts.hostname == "localhost":
                continue
            origin = f"{parts.scheme}://{parts.hostname}"
            if port is not None:
                origin = f"{origin}:{port}"
            if origin not in origins:
                origins.append(origin)
    return origins


def validate_cors(
    cors: CORSConfig, clients: Sequence[ClientConfig], report: ValidationReport
) -> CORSConfig:
    """Check CORS endpoints and origins, adding origins from redirect URIs."""
    origins = list(cors.allowed_origins)
    for origin in origins:
        if origin == "*":
            if len(origins) != 1:
                report.error(
                    "cors: option 'allowed_origins' contains the wildcard origin '*' "
                    "with more than one origin but the wildcard origin must be defined "
                    "by itself"
                )
            if cors.allowed_origins_from_client_redirect_uris:
                report.error(
                    "cors: option 'allowed_origins' contains the wildcard origin '*' "
                    "cannot be specified with option "
                    "'allowed_origins_from_client_redirect_uris' enabled"
                )
            continue
        try:
            parts = urlsplit(origin)
        except ValueError as err:
            report.error(
                f"cors: option 'allowed_origins' contains an invalid value '{origin}': "
                f"{err}"
            )
            continue
        if parts.path:
            report.error(
                f"cors: option 'allowed_origins' contains an invalid value '{origin}' "
                "as it has a path"
            )
        if parts.query:
            report.error(
                f"cors: option 'allowed_origins' contains an invalid value '{origin}' "
                "as it has a query string"
            )

    if cors.allowed_origins_from_client_redirect_uris:
        for origin in _redirect_origins(clients):
            if origin not in origins:
                origins.append(origin)

    for endpoint in cors.endpoints:
        if endpoint not in CORS_ENDPOINTS:
            report.error(
                f"cors: option 'endpoints' contains an invalid value '{endpoint}': "
                f"must be one of {join_or(CORS_ENDPOINTS)}"
            )
    return cors.model_copy(update={"allowed_origins": origins})


def validate_provider(config: ProviderConfig) -> ValidationResult:
    """Validate a provider configuration in one pass.

    Keys, policies and lifespans are read first and frozen into a discovery
    aggregate; clients are then validated against it and their contributions
    folded into a new aggregate. Every problem found is recorded rather than
    stopping at the first.
    """
    report = ValidationReport()
    lifespans = apply_lifespan_defaults(config.lifespans)
    enforce_pkce = config.enforce_pkce or ENFORCE_PKCE_DEFAULT

    if config.issuer_private_key is None and not config.issuer_private_keys:
        report.error(
            "option 'issuer_private_keys' or 'issuer_private_key' is required"
        )
    issuer_keys = resolve_issuer_keys(
        config.issuer_private_keys,
        report,
        legacy_key=config.issuer_private_key,
        legacy_certificate_chain=config.issuer_certificate_chain,
    )
    policies = build_policy_table(config.authorization_policies, report)
    aggregate = (
        DiscoveryBuilder()
        .add_issuer_keys(issuer_keys)
        .add_policies(policies.discovery_names)
        .add_lifespans(lifespans.custom)
        .build()
    )

    entropy = validate_entropy(config.minimum_parameter_entropy, report)
    if enforce_pkce not in ENFORCE_PKCE_MODES:
        report.error(
            f"option 'enforce_pkce' must be {join_or(ENFORCE_PKCE_MODES)} but it's "
            f"configured as '{enforce_pkce}'"
        )
    cors = validate_cors(config.cors, config.clients, report)

    clients = ()
    if not config.clients:
        report.error("option 'clients' must have one or more clients configured")
    else:
        result = validate_clients(config.clients, aggregate, issuer_keys, report)
        clients = result.clients
        aggregate = aggregate.with_clients(
            result.request_object_signing_algs,
            result.bearer_authorization,
            result.jwt_response_access_tokens,
        )
        if report.deprecated:
            report.warn(
                "clients: one or more clients rely on deprecated behaviour which will "
                "become an error in a future release"
            )

    model = PolicyModel(
        issuer_keys=issuer_keys,
        policies=policies,
        lifespans=lifespans,
        cors=cors,
        enforce_pkce=enforce_pkce,
        minimum_parameter_entropy=entropy,
        clients=clients,
        discovery=aggregate,
    )
    logger.info(
        "policy.validated",
        errors=len(report.errors),
        warnings=len(report.warnings),
        clients=len(clients),
        keys=len(issuer_keys.keys),
    )
    return ValidationResult(
        model=model, errors=tuple(report.errors), warnings=tuple(report.warnings)
    )

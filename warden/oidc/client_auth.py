"""Token endpoint authentication checks for registered clients."""

from warden.config.types import ClientConfig
from warden.oidc.const import (
    ALG_HS256,
    ASYMMETRIC_SIGNING_ALGS,
    AUTH_METHOD_CLIENT_SECRET_BASIC,
    AUTH_METHOD_CLIENT_SECRET_JWT,
    AUTH_METHOD_CLIENT_SECRET_POST,
    AUTH_METHOD_NONE,
    AUTH_METHOD_PRIVATE_KEY_JWT,
    AUTH_METHODS,
    AUTH_METHODS_CONFIDENTIAL,
    HMAC_SIGNING_ALGS,
    RESPONSE_TYPES_IMPLICIT,
)
from warden.oidc.report import ValidationReport, join_and, join_or
from warden.oidc.types import ClientAuthKind


def _is_implicit_only(client: ClientConfig) -> bool:
    if not client.response_types:
        return False
    return all(rt in RESPONSE_TYPES_IMPLICIT for rt in client.response_types)


def _client_secret_jwt_alg(client: ClientConfig, report: ValidationReport) -> str:
    alg = client.token_endpoint_auth_signing_alg
    if alg == "":
        return ALG_HS256
    if alg not in HMAC_SIGNING_ALGS:
        report.error(
            f"client '{client.client_id}': option 'token_endpoint_auth_signing_alg' "
            f"must be one of {join_or(HMAC_SIGNING_ALGS)} when option "
            f"'token_endpoint_auth_method' is configured as "
            f"'{AUTH_METHOD_CLIENT_SECRET_JWT}' but it's configured as '{alg}'"
        )
    return alg


def _check_private_key_jwt(
    client: ClientConfig, client_algs: tuple[str, ...], report: ValidationReport
) -> None:
    alg = client.token_endpoint_auth_signing_alg
    prefix = f"client '{client.client_id}'"
    if alg == "":
        report.error(
            f"{prefix}: option 'token_endpoint_auth_signing_alg' is required when "
            f"option 'token_endpoint_auth_method' is configured as "
            f"'{AUTH_METHOD_PRIVATE_KEY_JWT}'"
        )
    elif alg not in ASYMMETRIC_SIGNING_ALGS:
        report.error(
            f"{prefix}: option 'token_endpoint_auth_signing_alg' must be one of "
            f"{join_or(ASYMMETRIC_SIGNING_ALGS)} when option "
            f"'token_endpoint_auth_method' is configured as "
            f"'{AUTH_METHOD_PRIVATE_KEY_JWT}' but it's configured as '{alg}'"
        )

    if client.public_keys.uri is not None:
        return
    if not client.public_keys.values:
        report.error(
            f"{prefix}: option 'public_keys' is required with either the 'uri' or "
            f"'values' option when option 'token_endpoint_auth_method' is "
            f"configured as '{AUTH_METHOD_PRIVATE_KEY_JWT}'"
        )
    elif client_algs and alg not in client_algs:
        report.error(
            f"{prefix}: option 'token_endpoint_auth_signing_alg' must be one of the "
            f"registered public key algorithm values {join_or(client_algs)} when "
            f"option 'token_endpoint_auth_method' is configured as "
            f"'{AUTH_METHOD_PRIVATE_KEY_JWT}'"
        )


def validate_token_endpoint_auth(
    client: ClientConfig, client_algs: tuple[str, ...], report: ValidationReport
) -> tuple[ClientConfig, ClientAuthKind]:
    """Check the token endpoint auth method and select what the client presents.

    ``client_algs`` are the algorithms of the client's own inline public keys.
    """
    method = client.token_endpoint_auth_method
    prefix = f"client '{client.client_id}'"

    if method != "" and method not in AUTH_METHODS:
        report.error(
            f"{prefix}: option 'token_endpoint_auth_method' must be one of "
            f"{join_or(AUTH_METHODS)} but it's configured as '{method}'"
        )
        return client, ClientAuthKind.NONE
    if method == AUTH_METHOD_NONE and not client.public and not _is_implicit_only(client):
        report.error(
            f"{prefix}: option 'token_endpoint_auth_method' must be one of "
            f"{join_or(AUTH_METHODS_CONFIDENTIAL)} when configured as the "
            f"confidential client type unless it only includes implicit flow response "
            f"types such as {join_and(RESPONSE_TYPES_IMPLICIT)} but it's configured "
            f"as '{method}'"
        )
    elif method not in ("", AUTH_METHOD_NONE) and client.public:
        report.error(
            f"{prefix}: option 'token_endpoint_auth_method' must be 'none' when "
            f"configured as the public client type but it's configured as '{method}'"
        )

    kind = ClientAuthKind.NONE
    updates: dict[str, str] = {}
    if method == AUTH_METHOD_CLIENT_SECRET_JWT:
        updates["token_endpoint_auth_signing_alg"] = _client_secret_jwt_alg(
            client, report
        )
        kind = ClientAuthKind.CLIENT_SECRET
    elif method in (AUTH_METHOD_CLIENT_SECRET_POST, AUTH_METHOD_CLIENT_SECRET_BASIC):
        kind = ClientAuthKind.CLIENT_SECRET
    elif method == "" and not client.public:
        kind = ClientAuthKind.CLIENT_SECRET
    elif method == AUTH_METHOD_PRIVATE_KEY_JWT:
        _check_private_key_jwt(client, client_algs, report)
        kind = ClientAuthKind.PRIVATE_KEY_JWT

    client = client.model_copy(update=updates)
    secret = client.client_secret

    if kind is ClientAuthKind.CLIENT_SECRET:
        if client.public:
            return client, ClientAuthKind.NONE
        if secret is None:
            report.error(
                f"{prefix}: missing secret: option 'client_secret' is required for "
                "confidential clients authenticating with a client secret"
            )
        elif secret.is_plaintext and method != AUTH_METHOD_CLIENT_SECRET_JWT:
            report.warn(
                f"{prefix}: option 'client_secret' is plaintext but for clients not "
                f"using the '{AUTH_METHOD_CLIENT_SECRET_JWT}' method it should be a "
                "hashed value as plaintext values are deprecated"
            )
        elif not secret.is_plaintext and method == AUTH_METHOD_CLIENT_SECRET_JWT:
            report.error(
                f"{prefix}: option 'client_secret' must be plaintext with option "
                f"'token_endpoint_auth_method' with a value of "
                f"'{AUTH_METHOD_CLIENT_SECRET_JWT}'"
            )
    elif secret is not None:
        if client.public:
            report.error(
                f"{prefix}: option 'client_secret' is required to be empty when "
                "option 'public' is true"
            )
        else:
            report.error(
                f"{prefix}: option 'client_secret' is required to be empty when "
                f"option 'token_endpoint_auth_method' is configured as '{method}'"
            )
    return client, kind

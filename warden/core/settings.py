"""Runtime settings and provider-wide configuration defaults."""

from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

ACCESS_TOKEN_LIFESPAN_DEFAULT = timedelta(hours=1)
AUTHORIZE_CODE_LIFESPAN_DEFAULT = timedelta(minutes=1)
ID_TOKEN_LIFESPAN_DEFAULT = timedelta(hours=1)
REFRESH_TOKEN_LIFESPAN_DEFAULT = timedelta(minutes=90)
CONSENT_PRE_CONFIGURED_DURATION_DEFAULT = timedelta(weeks=1)

ENFORCE_PKCE_DEFAULT = "public_clients_only"
MINIMUM_PARAMETER_ENTROPY_DEFAULT = 8

CLIENT_AUTHORIZATION_POLICY_DEFAULT = "two_factor"
CLIENT_SCOPES_DEFAULT = ("openid",)
CLIENT_RESPONSE_TYPES_DEFAULT = ("code",)
CLIENT_REQUESTED_AUDIENCE_MODE_DEFAULT = "explicit"
CLIENT_ID_TOKEN_SIGNING_ALG_DEFAULT = "RS256"
CLIENT_ACCESS_TOKEN_SIGNING_ALG_DEFAULT = "none"
CLIENT_USERINFO_SIGNING_ALG_DEFAULT = "none"
CLIENT_INTROSPECTION_SIGNING_ALG_DEFAULT = "none"
CLIENT_AUTHORIZATION_SIGNING_ALG_DEFAULT = "RS256"

POLICY_DECISION_DEFAULT = "two_factor"

BEARER_DECISION_TIMEOUT_DEFAULT = 5.0


class WardenSettings(BaseSettings):
    """Process-level settings for the policy core."""

    model_config = SettingsConfigDict(env_prefix="WARDEN_")

    service_name: str = "warden"
    log_level: str = "info"
    log_json: bool = True
    bearer_decision_timeout: float = BEARER_DECISION_TIMEOUT_DEFAULT

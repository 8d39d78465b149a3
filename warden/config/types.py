"""Pydantic models of the already-parsed provider configuration document.

These models only coerce shapes. Semantic checks (enumerations, cross-field
rules, key strength) are performed by the validator so that every problem in
a document is reported in a single pass.
"""

from datetime import timedelta
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

PLAINTEXT_SECRET_PREFIX = "$plaintext$"


def _as_list(value: Any) -> Any:
    """Accept a scalar where the document allows a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


StringList = Annotated[list[str], BeforeValidator(_as_list)]


class ClientSecret(BaseModel):
    """A client secret, either plaintext or a PHC-format digest."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(repr=False)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data}
        return data

    @property
    def is_plaintext(self) -> bool:
        """Return True unless the value is a `$`-prefixed digest."""
        if self.value.startswith(PLAINTEXT_SECRET_PREFIX):
            return True
        return not self.value.startswith("$")


class JWKConfig(BaseModel):
    """A configured JSON Web Key.

    ``key`` may be PEM text, a JWK mapping, or a loaded ``cryptography`` key.
    ``certificate_chain`` may be PEM text or a list of x509 certificates.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key_id: str = ""
    use: str = ""
    algorithm: str = ""
    key: Any = None
    certificate_chain: Any = None


class PublicKeysConfig(BaseModel):
    """Client public key material: a remote JWKS URI or inline keys."""

    uri: str | None = None
    values: list[JWKConfig] = Field(default_factory=list)


class PolicyRuleConfig(BaseModel):
    """A single rule of an authorization policy."""

    policy: str = ""
    subject: StringList = Field(default_factory=list)


class PolicyConfig(BaseModel):
    """A named authorization policy."""

    default_policy: str = ""
    rules: list[PolicyRuleConfig] = Field(default_factory=list)


class LifespanConfig(BaseModel):
    """Token lifespans; a zero duration means unset."""

    access_token: timedelta = timedelta(0)
    authorize_code: timedelta = timedelta(0)
    id_token: timedelta = timedelta(0)
    refresh_token: timedelta = timedelta(0)


class LifespansConfig(LifespanConfig):
    """Provider lifespans plus named custom lifespans clients can select."""

    custom: dict[str, LifespanConfig] = Field(default_factory=dict)


class CORSConfig(BaseModel):
    """Cross-origin settings for the provider endpoints."""

    endpoints: StringList = Field(default_factory=list)
    allowed_origins: StringList = Field(default_factory=list)
    allowed_origins_from_client_redirect_uris: bool = False


class ClientConfig(BaseModel):
    """A registered OAuth 2.0 / OpenID Connect client."""

    client_id: str = ""
    client_name: str = ""
    client_secret: ClientSecret | None = None
    public: bool = False

    authorization_policy: str = ""
    lifespan: str = ""
    pkce_challenge_method: str = ""
    requested_audience_mode: str = ""
    consent_mode: str = ""
    pre_configured_consent_duration: timedelta | None = None

    audience: StringList = Field(default_factory=list)
    scopes: StringList = Field(default_factory=list)
    grant_types: StringList = Field(default_factory=list)
    response_types: StringList = Field(default_factory=list)
    response_modes: StringList = Field(default_factory=list)
    redirect_uris: StringList = Field(default_factory=list)

    sector_identifier_uri: str = ""
    public_keys: PublicKeysConfig = Field(default_factory=PublicKeysConfig)
    request_object_signing_alg: str = ""

    token_endpoint_auth_method: str = ""
    token_endpoint_auth_signing_alg: str = ""

    id_token_signed_response_alg: str = ""
    id_token_signed_response_key_id: str = ""
    access_token_signed_response_alg: str = ""
    access_token_signed_response_key_id: str = ""
    userinfo_signed_response_alg: str = ""
    userinfo_signed_response_key_id: str = ""
    introspection_signed_response_alg: str = ""
    introspection_signed_response_key_id: str = ""
    authorization_signed_response_alg: str = ""
    authorization_signed_response_key_id: str = ""


class ProviderConfig(BaseModel):
    """The OpenID Connect provider section of the configuration document."""

    issuer_private_key: Any = None
    issuer_certificate_chain: Any = None
    issuer_private_keys: list[JWKConfig] = Field(default_factory=list)

    enforce_pkce: str = ""
    minimum_parameter_entropy: int = 0
    lifespans: LifespansConfig = Field(default_factory=LifespansConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)
    authorization_policies: dict[str, PolicyConfig] = Field(default_factory=dict)
    clients: list[ClientConfig] = Field(default_factory=list)

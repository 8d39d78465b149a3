"""Normalized runtime policy model produced by validation."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from warden.config.types import ClientConfig, CORSConfig, LifespansConfig
from warden.crypto.types import ClientPublicKey, SigningKey
from warden.oidc.const import SCOPE_BEARER_AUTHZ
from warden.oidc.discovery import DiscoveryAggregate
from warden.oidc.keyring import IssuerKeys
from warden.oidc.policies import AuthorizationPolicy, PolicyTable
from warden.oidc.signing import SigningProfile


class ClientAuthKind(StrEnum):
    """What a client must present at the token endpoint."""

    NONE = "none"
    CLIENT_SECRET = "client_secret"
    PRIVATE_KEY_JWT = "private_key_jwt"


class Client(ClientConfig):
    """A validated client with every default applied."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client_auth: ClientAuthKind = ClientAuthKind.NONE
    public_key_set: tuple[ClientPublicKey, ...] = ()
    request_object_signing_algs: tuple[str, ...] = ()

    @property
    def bearer_authorization(self) -> bool:
        """Return True when the client may request bearer authorization."""
        return SCOPE_BEARER_AUTHZ in self.scopes


class PolicyModel(BaseModel):
    """Immutable snapshot of a fully validated provider configuration."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    issuer_keys: IssuerKeys = IssuerKeys()
    policies: PolicyTable = PolicyTable()
    lifespans: LifespansConfig = LifespansConfig()
    cors: CORSConfig = CORSConfig()
    enforce_pkce: str = ""
    minimum_parameter_entropy: int = 0
    clients: tuple[Client, ...] = ()
    discovery: DiscoveryAggregate = DiscoveryAggregate()

    def client(self, client_id: str) -> Client | None:
        """Find a client by ID, ignoring case."""
        wanted = client_id.lower()
        return next((c for c in self.clients if c.client_id.lower() == wanted), None)

    def policy(self, name: str) -> AuthorizationPolicy | None:
        """Find an authorization policy by name."""
        return self.policies.get(name)

    def signing_key(self, client: Client, profile: SigningProfile) -> SigningKey | None:
        """Return the issuer key a client's responses of one type are signed with."""
        key_id = getattr(client, profile.kid_option)
        if not key_id:
            return None
        return self.issuer_keys.find_by_key_id(key_id)


class ValidationResult(BaseModel):
    """Output of a validation pass: the model plus ordered errors and warnings."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    model: PolicyModel
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        """Return True when the model may be activated."""
        return not self.errors

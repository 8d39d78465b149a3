"""Type definitions for signing keys, client keys and JWKS publication."""

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from pydantic import BaseModel, ConfigDict


class KeyProperties(BaseModel):
    """Use and algorithm inferred from the type of a key."""

    model_config = ConfigDict(frozen=True)

    use: str
    algorithm: str


class SigningKey(BaseModel):
    """A resolved issuer signing key handed to the external signer."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key_id: str
    algorithm: str
    use: str
    key: PrivateKeyTypes
    certificate_chain: tuple[x509.Certificate, ...] = ()


class ClientPublicKey(BaseModel):
    """A resolved public key a client signs its assertions with."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key_id: str
    algorithm: str
    use: str
    key: PublicKeyTypes
    certificate_chain: tuple[x509.Certificate, ...] = ()


class JWKEntry(BaseModel):
    """Single public JWK entry in a JWKS response."""

    kty: str
    use: str
    alg: str
    kid: str
    n: str | None = None
    e: str | None = None
    crv: str | None = None
    x: str | None = None
    y: str | None = None


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: list[JWKEntry]

"""Shared test fixtures for the warden policy core."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from warden.config.types import ProviderConfig

HASHED_SECRET = "$pbkdf2-sha512$310000$c8p78n7pUMln0jzvd4aK4Q$JNRBzwAo0ek5qKn50cFzzv"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """RSA 2048 bit private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_key_alt() -> rsa.RSAPrivateKey:
    """A second, unrelated RSA 2048 bit private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_key_1024() -> rsa.RSAPrivateKey:
    """Undersized RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=1024)


@pytest.fixture(scope="session")
def ec_key() -> ec.EllipticCurvePrivateKey:
    """ECDSA P-256 private key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def rsa_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    """The RSA 2048 bit key as PKCS#8 PEM text."""
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def make_certificate() -> Callable[..., x509.Certificate]:
    """Build certificates for a key, self-signed unless an issuer is given."""

    def _make(
        key: Any,
        issuer_key: Any = None,
        issuer_name: str = "issuer",
        subject_name: str = "warden",
        not_before: datetime | None = None,
        not_after: datetime | None = None,
    ) -> x509.Certificate:
        now = datetime.now(UTC)
        signer = issuer_key if issuer_key is not None else key
        issuer = subject_name if issuer_key is None else issuer_name
        return (
            x509.CertificateBuilder()
            .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject_name)]))
            .issuer_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, issuer)]))
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before or now - timedelta(days=1))
            .not_valid_after(not_after or now + timedelta(days=30))
            .sign(signer, hashes.SHA256())
        )

    return _make


@pytest.fixture
def make_provider(rsa_key: rsa.RSAPrivateKey) -> Callable[..., ProviderConfig]:
    """Build a provider configuration with one RS256 issuer key."""

    def _make(clients: list[dict[str, Any]] | None = None, **overrides: Any) -> ProviderConfig:
        data: dict[str, Any] = {
            "issuer_private_keys": [{"key_id": "main", "key": rsa_key}],
            "clients": clients if clients is not None else [_confidential_client()],
        }
        data.update(overrides)
        return ProviderConfig.model_validate(data)

    return _make


def _confidential_client(**overrides: Any) -> dict[str, Any]:
    """A minimal valid confidential client document."""
    data: dict[str, Any] = {
        "client_id": "app",
        "client_secret": HASHED_SECRET,
        "redirect_uris": ["https://app.example.com/callback"],
    }
    data.update(overrides)
    return data


def _public_client(**overrides: Any) -> dict[str, Any]:
    """A minimal valid public client document."""
    data: dict[str, Any] = {
        "client_id": "spa",
        "public": True,
        "token_endpoint_auth_method": "none",
        "response_types": ["code"],
        "redirect_uris": ["https://spa.example.com/callback"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def confidential_client() -> Callable[..., dict[str, Any]]:
    """Factory for confidential client documents."""
    return _confidential_client


@pytest.fixture
def public_client() -> Callable[..., dict[str, Any]]:
    """Factory for public client documents."""
    return _public_client

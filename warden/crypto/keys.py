"""Key loading, property inference, JWK thumbprints and certificate checks."""

import hashlib
import json
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import jwt
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from jwt.algorithms import ECAlgorithm, RSAAlgorithm

from warden.crypto.types import JWKEntry, KeyProperties, SigningKey
from warden.oidc.const import ALG_RS256, KEY_USE_SIGNATURE

AnyKey = PrivateKeyTypes | PublicKeyTypes

_KEY_OBJECT_TYPES = (
    rsa.RSAPrivateKey,
    rsa.RSAPublicKey,
    ec.EllipticCurvePrivateKey,
    ec.EllipticCurvePublicKey,
    ed25519.Ed25519PrivateKey,
    ed25519.Ed25519PublicKey,
    ed448.Ed448PrivateKey,
    ed448.Ed448PublicKey,
)

_EC_CURVE_ALGS = {
    "secp256r1": "ES256",
    "secp384r1": "ES384",
    "secp521r1": "ES512",
}

# RFC 7638 section 3.2 required members per key type.
_THUMBPRINT_MEMBERS = {
    "RSA": ("e", "kty", "n"),
    "EC": ("crv", "kty", "x", "y"),
}


def load_key(material: Any) -> AnyKey:
    """Load key material from PEM text, a JWK mapping or a key object.

    Raises ValueError when the material is absent or malformed.
    """
    if material is None:
        raise ValueError("no key material was provided")
    if isinstance(material, _KEY_OBJECT_TYPES):
        return material
    try:
        if isinstance(material, Mapping):
            return jwt.PyJWK(dict(material)).key
        if isinstance(material, str):
            material = material.encode()
        if isinstance(material, bytes):
            data = material.strip()
            if b"PRIVATE KEY" in data:
                return serialization.load_pem_private_key(data, password=None)
            return serialization.load_pem_public_key(data)
    except (TypeError, KeyError, jwt.PyJWTError, UnsupportedAlgorithm) as err:
        raise ValueError(str(err)) from err
    raise ValueError(f"unsupported key material of type {type(material).__name__}")


def public_key_of(key: AnyKey) -> PublicKeyTypes:
    """Return the public half of a key."""
    if isinstance(key, rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey):
        return key.public_key()
    if isinstance(key, ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey):
        return key.public_key()
    return key  # type: ignore[return-value]


def key_properties(key: AnyKey) -> KeyProperties:
    """Infer the JWK use and default algorithm for a key."""
    if isinstance(key, rsa.RSAPrivateKey | rsa.RSAPublicKey):
        return KeyProperties(use=KEY_USE_SIGNATURE, algorithm=ALG_RS256)
    if isinstance(key, ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey):
        alg = _EC_CURVE_ALGS.get(key.curve.name)
        if alg is None:
            raise ValueError(f"elliptic curve '{key.curve.name}' is not supported")
        return KeyProperties(use=KEY_USE_SIGNATURE, algorithm=alg)
    raise ValueError(f"key type '{type(key).__name__}' is not supported")


def public_jwk(key: AnyKey) -> dict[str, Any]:
    """Render the public half of an RSA or EC key as a JWK mapping."""
    public = public_key_of(key)
    if isinstance(public, rsa.RSAPublicKey):
        return RSAAlgorithm.to_jwk(public, as_dict=True)
    if isinstance(public, ec.EllipticCurvePublicKey):
        return ECAlgorithm.to_jwk(public, as_dict=True)
    raise ValueError(f"key type '{type(key).__name__}' is not supported")


def jwk_thumbprint(key: AnyKey) -> str:
    """Compute the hex encoded RFC 7638 SHA-256 thumbprint of a key."""
    jwk = public_jwk(key)
    members = {name: jwk[name] for name in _THUMBPRINT_MEMBERS[jwk["kty"]]}
    canonical = json.dumps(members, separators=(",", ":"), sort_keys=True)
    return hashlib.sha256(canonical.encode()).hexdigest()


def signing_key_to_jwk_entry(signing_key: SigningKey) -> JWKEntry:
    """Convert a resolved signing key to its public JWKS entry."""
    jwk = public_jwk(signing_key.key)
    return JWKEntry(
        kty=jwk["kty"],
        use=signing_key.use,
        alg=signing_key.algorithm,
        kid=signing_key.key_id,
        n=jwk.get("n"),
        e=jwk.get("e"),
        crv=jwk.get("crv"),
        x=jwk.get("x"),
        y=jwk.get("y"),
    )


def load_certificate_chain(material: Any) -> tuple[x509.Certificate, ...]:
    """Load a certificate chain from PEM text or a list of certificates."""
    if not material:
        return ()
    if isinstance(material, str):
        material = material.encode()
    if isinstance(material, bytes):
        return tuple(x509.load_pem_x509_certificates(material))
    chain: list[x509.Certificate] = []
    for item in material:
        if isinstance(item, x509.Certificate):
            chain.append(item)
        else:
            text = item.encode() if isinstance(item, str) else item
            chain.append(x509.load_pem_x509_certificate(text))
    return tuple(chain)


def certificate_matches_key(chain: tuple[x509.Certificate, ...], key: AnyKey) -> bool:
    """Return True when the leaf certificate carries the key's public half."""
    if not chain:
        return False
    encoding = serialization.Encoding.DER
    spki = serialization.PublicFormat.SubjectPublicKeyInfo
    leaf = chain[0].public_key().public_bytes(encoding, spki)
    return leaf == public_key_of(key).public_bytes(encoding, spki)


def validate_certificate_chain(
    chain: tuple[x509.Certificate, ...], now: datetime | None = None
) -> None:
    """Check validity periods and issuer ordering, leaf first.

    Raises ValueError describing the first problem found.
    """
    now = now or datetime.now(UTC)
    for i, cert in enumerate(chain, start=1):
        if now < cert.not_valid_before_utc:
            raise ValueError(f"certificate #{i} is not yet valid")
        if now > cert.not_valid_after_utc:
            raise ValueError(f"certificate #{i} has expired")
    for i in range(len(chain) - 1):
        try:
            chain[i].verify_directly_issued_by(chain[i + 1])
        except (ValueError, TypeError, InvalidSignature) as err:
            raise ValueError(
                f"certificate #{i + 1} is not issued by certificate #{i + 2}"
            ) from err

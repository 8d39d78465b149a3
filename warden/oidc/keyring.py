"""Issuer signing key registry and inline client public key validation."""

import re
from collections.abc import Sequence
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from pydantic import BaseModel, ConfigDict, Field

from warden.config.types import JWKConfig
from warden.crypto.keys import (
    AnyKey,
    certificate_matches_key,
    jwk_thumbprint,
    key_properties,
    load_certificate_chain,
    load_key,
    validate_certificate_chain,
)
from warden.crypto.types import ClientPublicKey, KeyProperties, SigningKey
from warden.oidc.const import (
    ALG_RS256,
    ASYMMETRIC_SIGNING_ALGS,
    KEY_ID_MAX_LENGTH,
    KEY_USE_SIGNATURE,
    RSA_MIN_KEY_SIZE,
)
from warden.oidc.report import ValidationReport, join_and, join_or

KEY_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]{1,100}$")


class IssuerKeys(BaseModel):
    """Resolved issuer keys and the discovery sets derived from them."""

    model_config = ConfigDict(frozen=True)

    keys: tuple[SigningKey, ...] = ()
    algorithms: tuple[str, ...] = ()
    key_ids: tuple[str, ...] = ()
    default_key_ids: dict[str, str] = Field(default_factory=dict)

    def find_by_algorithm(self, algorithm: str) -> SigningKey | None:
        """Return the first key, in declaration order, offering an algorithm."""
        return next((k for k in self.keys if k.algorithm == algorithm), None)

    def find_by_key_id(self, key_id: str) -> SigningKey | None:
        """Return the key with the given key ID."""
        return next((k for k in self.keys if k.key_id == key_id), None)


class ClientKeys(BaseModel):
    """Resolved inline client public keys and their algorithms."""

    model_config = ConfigDict(frozen=True)

    keys: tuple[ClientPublicKey, ...] = ()
    algorithms: tuple[str, ...] = ()


def _algorithm_fits_key(algorithm: str, key: AnyKey, props: KeyProperties) -> bool:
    if isinstance(key, rsa.RSAPrivateKey | rsa.RSAPublicKey):
        return algorithm.startswith(("RS", "PS"))
    return algorithm == props.algorithm


def _resolve_use(
    prefix: str, use: str, props: KeyProperties, report: ValidationReport
) -> str:
    if use == "":
        return props.use
    if use != KEY_USE_SIGNATURE:
        report.error(
            f"{prefix}: option 'use' must be {join_or([KEY_USE_SIGNATURE])} "
            f"but it's configured as '{use}'"
        )
    return use


def _resolve_algorithm(
    prefix: str,
    algorithm: str,
    key: AnyKey,
    props: KeyProperties,
    report: ValidationReport,
) -> tuple[str, bool]:
    """Return the effective algorithm and whether it was accepted."""
    if algorithm == "":
        return props.algorithm, True
    if algorithm not in ASYMMETRIC_SIGNING_ALGS:
        report.error(
            f"{prefix}: option 'algorithm' must be one of "
            f"{join_or(ASYMMETRIC_SIGNING_ALGS)} but it's configured as '{algorithm}'"
        )
        return algorithm, False
    if not _algorithm_fits_key(algorithm, key, props):
        report.error(
            f"{prefix}: option 'algorithm' is configured as '{algorithm}' which "
            f"can't be used with a key of type '{type(key).__name__}'"
        )
        return algorithm, False
    return algorithm, True


def _load_chain(
    prefix: str, material: Any, report: ValidationReport
) -> tuple[x509.Certificate, ...]:
    try:
        return load_certificate_chain(material)
    except ValueError as err:
        report.error(f"{prefix}: option 'certificate_chain' could not be parsed: {err}")
        return ()


def _check_chain(
    prefix: str,
    chain: tuple[x509.Certificate, ...],
    key: AnyKey,
    check_equal_key: bool,
    report: ValidationReport,
) -> None:
    if not chain:
        return
    if check_equal_key and not certificate_matches_key(chain, key):
        report.error(
            f"{prefix}: option 'certificate_chain' does not appear to contain the "
            "public key for the key configured"
        )
    try:
        validate_certificate_chain(chain)
    except ValueError as err:
        report.error(f"{prefix}: option 'certificate_chain' is invalid: {err}")


def _check_issuer_key_pair(
    prefix: str, key: AnyKey, chain: tuple[x509.Certificate, ...], report: ValidationReport
) -> bool:
    """Check key type, strength and certificate; return True for a private key."""
    usable = isinstance(key, rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey)
    check_equal_key = usable
    if isinstance(key, rsa.RSAPrivateKey) and key.key_size < RSA_MIN_KEY_SIZE:
        check_equal_key = False
        report.error(
            f"{prefix}: option 'key' is an RSA {key.key_size} bit private key but "
            f"it must at minimum be a RSA {RSA_MIN_KEY_SIZE} bit private key"
        )
    elif not usable:
        report.error(
            f"{prefix}: option 'key' must be a RSA private key or ECDSA private key "
            f"but it's type is {type(key).__name__}"
        )
    _check_chain(prefix, chain, key, check_equal_key, report)
    return usable


def resolve_issuer_keys(
    configs: Sequence[JWKConfig],
    report: ValidationReport,
    legacy_key: Any = None,
    legacy_certificate_chain: Any = None,
) -> IssuerKeys:
    """Normalize issuer signing keys and derive their discovery sets.

    Keys are processed in declaration order. A legacy single key is treated as
    if it were declared first as an RS256 signature key. Problems are recorded
    on the report; only keys whose material cannot be trusted at all are
    skipped.
    """
    if legacy_key is not None:
        legacy = JWKConfig(
            algorithm=ALG_RS256,
            use=KEY_USE_SIGNATURE,
            key=legacy_key,
            certificate_chain=legacy_certificate_chain,
        )
        configs = [legacy, *configs]

    keys: list[SigningKey] = []
    algorithms: list[str] = []
    key_ids: list[str] = []
    default_key_ids: dict[str, str] = {}

    for i, config in enumerate(configs, start=1):
        prefix = f"issuer_private_keys: key #{i}"
        try:
            key = load_key(config.key)
        except ValueError as err:
            report.error(f"{prefix}: option 'key' is malformed or missing: {err}")
            continue

        key_id = config.key_id
        if key_id == "":
            try:
                key_id = jwk_thumbprint(key)
            except (ValueError, KeyError) as err:
                report.error(f"{prefix}: option 'key_id' could not be calculated: {err}")
                continue
        elif len(key_id) > KEY_ID_MAX_LENGTH:
            report.error(
                f"{prefix} with key id '{key_id}': option 'key_id' must be "
                f"{KEY_ID_MAX_LENGTH} characters or less"
            )

        prefix = f"{prefix} with key id '{key_id}'"
        if key_id in key_ids:
            report.error(f"{prefix}: option 'key_id' must be unique")
        else:
            key_ids.append(key_id)

        if not KEY_ID_PATTERN.match(key_id):
            report.error(
                f"{prefix}: option 'key_id' must only contain alphanumeric characters"
            )

        try:
            props = key_properties(key)
        except ValueError as err:
            report.error(f"{prefix}: could not determine key properties: {err}")
            continue

        use = _resolve_use(prefix, config.use, props, report)
        algorithm, accepted = _resolve_algorithm(
            prefix, config.algorithm, key, props, report
        )
        if accepted:
            if algorithm not in algorithms:
                algorithms.append(algorithm)
            default_key_ids.setdefault(algorithm, key_id)

        chain = _load_chain(prefix, config.certificate_chain, report)
        if _check_issuer_key_pair(prefix, key, chain, report):
            keys.append(
                SigningKey(
                    key_id=key_id,
                    algorithm=algorithm,
                    use=use,
                    key=key,
                    certificate_chain=chain,
                )
            )

    if algorithms and ALG_RS256 not in algorithms:
        report.error(
            f"issuer_private_keys: keys must contain one with the algorithm "
            f"'{ALG_RS256}' but only {join_and(algorithms)} were configured"
        )

    return IssuerKeys(
        keys=tuple(keys),
        algorithms=tuple(algorithms),
        key_ids=tuple(key_ids),
        default_key_ids=default_key_ids,
    )


def _check_client_public_key(
    prefix: str, key: AnyKey, chain: tuple[x509.Certificate, ...], report: ValidationReport
) -> bool:
    """Check key type, strength and certificate; return True for a public key."""
    usable = isinstance(key, rsa.RSAPublicKey | ec.EllipticCurvePublicKey)
    check_equal_key = usable
    if isinstance(key, rsa.RSAPublicKey) and key.key_size < RSA_MIN_KEY_SIZE:
        check_equal_key = False
        report.error(
            f"{prefix}: option 'key' is an RSA {key.key_size} bit public key but "
            f"it must at minimum be a RSA {RSA_MIN_KEY_SIZE} bit public key"
        )
    elif not usable:
        report.error(
            f"{prefix}: option 'key' must be a RSA public key or ECDSA public key "
            f"but it's type is {type(key).__name__}"
        )
    _check_chain(prefix, chain, key, check_equal_key, report)
    return usable


def resolve_client_keys(
    client_id: str, configs: Sequence[JWKConfig], report: ValidationReport
) -> ClientKeys:
    """Validate a client's inline public keys and collect their algorithms."""
    keys: list[ClientPublicKey] = []
    algorithms: list[str] = []

    for i, config in enumerate(configs, start=1):
        prefix = f"client '{client_id}': public_keys: key #{i}"
        if config.key_id == "":
            report.error(f"{prefix}: option 'key_id' must be provided")
        else:
            prefix = f"{prefix} with key id '{config.key_id}'"

        if config.key is None:
            report.error(f"{prefix}: option 'key' must be provided")
            continue
        try:
            key = load_key(config.key)
            props = key_properties(key)
        except ValueError as err:
            report.error(f"{prefix}: option 'key' could not be used: {err}")
            continue

        use = _resolve_use(prefix, config.use, props, report)
        algorithm, accepted = _resolve_algorithm(
            prefix, config.algorithm, key, props, report
        )
        if accepted and algorithm not in algorithms:
            algorithms.append(algorithm)

        chain = _load_chain(prefix, config.certificate_chain, report)
        if _check_client_public_key(prefix, key, chain, report):
            keys.append(
                ClientPublicKey(
                    key_id=config.key_id,
                    algorithm=algorithm,
                    use=use,
                    key=key,
                    certificate_chain=chain,
                )
            )

    return ClientKeys(keys=tuple(keys), algorithms=tuple(algorithms))

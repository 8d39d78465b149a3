"""Tests for algorithm and key ID resolution."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from warden.config.types import JWKConfig
from warden.oidc.keyring import IssuerKeys, resolve_issuer_keys
from warden.oidc.report import ValidationReport
from warden.oidc.signing import (
    ACCESS_TOKEN_PROFILE,
    ID_TOKEN_PROFILE,
    INTROSPECTION_PROFILE,
    USERINFO_PROFILE,
    apply_alg_kid_defaults,
    resolve_signing,
)


@pytest.fixture
def issuer_keys(
    rsa_key: rsa.RSAPrivateKey, ec_key: ec.EllipticCurvePrivateKey
) -> IssuerKeys:
    report = ValidationReport()
    keys = resolve_issuer_keys(
        [JWKConfig(key_id="rsa", key=rsa_key), JWKConfig(key_id="ec", key=ec_key)], report
    )
    assert report.ok
    return keys


class TestApplyDefaults:
    """Tests for filling a partially specified pair."""

    def test_neither_uses_profile_default(self, issuer_keys: IssuerKeys) -> None:
        assert apply_alg_kid_defaults("", "", "RS256", issuer_keys) == ("RS256", "rsa")

    def test_algorithm_only_finds_key(self, issuer_keys: IssuerKeys) -> None:
        assert apply_alg_kid_defaults("ES256", "", "RS256", issuer_keys) == ("ES256", "ec")

    def test_key_id_only_finds_algorithm(self, issuer_keys: IssuerKeys) -> None:
        assert apply_alg_kid_defaults("", "ec", "RS256", issuer_keys) == ("ES256", "ec")

    def test_unmatched_lookup_leaves_half_empty(self, issuer_keys: IssuerKeys) -> None:
        assert apply_alg_kid_defaults("PS512", "", "RS256", issuer_keys) == ("PS512", "")
        assert apply_alg_kid_defaults("", "nope", "RS256", issuer_keys) == ("", "nope")

    def test_both_set_untouched(self, issuer_keys: IssuerKeys) -> None:
        assert apply_alg_kid_defaults("RS256", "ec", "none", issuer_keys) == ("RS256", "ec")


class TestResolveSigning:
    """Tests for the shared resolution procedure."""

    def test_id_token_default(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(ID_TOKEN_PROFILE, "", "", issuer_keys)
        assert (result.algorithm, result.key_id, result.error) == ("RS256", "rsa", None)
        assert not result.jwt_access_tokens

    def test_access_token_default_is_opaque(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(ACCESS_TOKEN_PROFILE, "", "", issuer_keys)
        assert (result.algorithm, result.key_id) == ("none", "")
        assert result.error is None
        assert not result.jwt_access_tokens

    def test_access_token_key_id_marks_jwt(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(ACCESS_TOKEN_PROFILE, "", "ec", issuer_keys)
        assert (result.algorithm, result.key_id) == ("ES256", "ec")
        assert result.jwt_access_tokens

    def test_introspection_algorithm_marks_jwt(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(INTROSPECTION_PROFILE, "ES256", "", issuer_keys)
        assert result.error is None
        assert result.key_id == "ec"
        assert result.jwt_access_tokens

    def test_key_id_overrides_algorithm(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(USERINFO_PROFILE, "RS256", "ec", issuer_keys)
        assert (result.algorithm, result.key_id) == ("ES256", "ec")

    def test_unknown_key_id(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(ID_TOKEN_PROFILE, "", "missing", issuer_keys)
        assert result.error is not None
        assert "id_token_signed_response_key_id" in result.error

    def test_unknown_algorithm(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(USERINFO_PROFILE, "PS384", "", issuer_keys)
        assert result.error is not None
        assert "'none'" in result.error
        assert "userinfo_signed_response_alg" in result.error

    def test_id_token_never_offers_none(self, issuer_keys: IssuerKeys) -> None:
        result = resolve_signing(ID_TOKEN_PROFILE, "none", "", issuer_keys)
        assert result.error is not None
        assert "'none'" not in result.error.split("must be one of")[1].split("but")[0]

    def test_pure_function(self, issuer_keys: IssuerKeys) -> None:
        first = resolve_signing(ACCESS_TOKEN_PROFILE, "ES256", "", issuer_keys)
        second = resolve_signing(ACCESS_TOKEN_PROFILE, "ES256", "", issuer_keys)
        assert first == second

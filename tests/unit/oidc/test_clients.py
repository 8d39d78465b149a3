"""Tests for client validation steps."""

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from warden.config.types import ClientConfig, JWKConfig
from warden.crypto.keys import public_jwk
from warden.oidc.clients import (
    validate_client,
    validate_clients,
    validate_grant_types,
    validate_redirect_uris,
    validate_references,
    validate_response_modes,
    validate_response_types,
    validate_scopes,
    validate_sector_identifier,
)
from warden.oidc.discovery import DiscoveryAggregate, DiscoveryBuilder
from warden.oidc.keyring import IssuerKeys, resolve_issuer_keys
from warden.oidc.report import ValidationReport
from warden.oidc.types import ClientAuthKind


@pytest.fixture
def issuer_keys(rsa_key: rsa.RSAPrivateKey) -> IssuerKeys:
    return resolve_issuer_keys([JWKConfig(key_id="main", key=rsa_key)], ValidationReport())


@pytest.fixture
def aggregate(issuer_keys: IssuerKeys) -> DiscoveryAggregate:
    return (
        DiscoveryBuilder()
        .add_issuer_keys(issuer_keys)
        .add_policies(["admins"])
        .add_lifespans(["short"])
        .build()
    )


def _client(**data: Any) -> ClientConfig:
    data.setdefault("client_id", "app")
    return ClientConfig.model_validate(data)


class TestReferences:
    """Tests for policy, lifespan, PKCE, audience and consent options."""

    def test_defaults(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        client = validate_references(_client(), aggregate, report)
        assert report.ok
        assert client.authorization_policy == "two_factor"
        assert client.requested_audience_mode == "explicit"
        assert client.consent_mode == "explicit"
        assert client.pre_configured_consent_duration is None

    def test_unknown_policy(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        validate_references(_client(authorization_policy="nobody"), aggregate, report)
        assert len(report.errors) == 1
        assert "'admins'" in report.errors[0]

    def test_custom_policy(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        validate_references(_client(authorization_policy="admins"), aggregate, report)
        assert report.ok

    def test_lifespan(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        validate_references(_client(lifespan="short"), aggregate, report)
        validate_references(_client(lifespan="long"), aggregate, report)
        assert len(report.errors) == 1
        assert "'short'" in report.errors[0]

    def test_lifespan_without_custom_lifespans(self) -> None:
        report = ValidationReport()
        validate_references(_client(lifespan="short"), DiscoveryAggregate(), report)
        assert "no custom lifespans" in report.errors[0]

    def test_pkce_and_audience_mode(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        validate_references(
            _client(pkce_challenge_method="S512", requested_audience_mode="sometimes"),
            aggregate,
            report,
        )
        assert len(report.errors) == 2

    def test_consent_from_duration(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        client = validate_references(
            _client(pre_configured_consent_duration=timedelta(days=2)), aggregate, report
        )
        assert client.consent_mode == "pre-configured"
        assert client.pre_configured_consent_duration == timedelta(days=2)

    def test_pre_configured_spellings(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        for value in ("pre-configured", "pre_configured"):
            client = validate_references(_client(consent_mode=value), aggregate, report)
            assert client.consent_mode == "pre-configured"
            assert client.pre_configured_consent_duration == timedelta(weeks=1)
        assert report.ok

    def test_invalid_consent_mode(self, aggregate: DiscoveryAggregate) -> None:
        report = ValidationReport()
        validate_references(_client(consent_mode="never"), aggregate, report)
        assert "option 'consent_mode'" in report.errors[0]


class TestScopes:
    """Tests for scope defaults and checks."""

    def test_default_openid(self) -> None:
        report = ValidationReport()
        assert validate_scopes(_client(), report).scopes == ["openid"]
        assert report.ok

    def test_openid_prepended(self) -> None:
        report = ValidationReport()
        client = validate_scopes(_client(scopes=["profile", "email"]), report)
        assert client.scopes == ["openid", "profile", "email"]

    def test_client_credentials_only_not_defaulted(self) -> None:
        report = ValidationReport()
        client = validate_scopes(_client(grant_types=["client_credentials"]), report)
        assert client.scopes == []
        assert report.ok

    def test_mixed_grants_defaulted(self) -> None:
        report = ValidationReport()
        client = validate_scopes(
            _client(grant_types=["authorization_code", "client_credentials"]), report
        )
        assert client.scopes == ["openid"]
        assert report.ok

    def test_mixed_grants_not_prepended(self) -> None:
        report = ValidationReport()
        client = validate_scopes(
            _client(grant_types=["authorization_code", "client_credentials"], scopes=["groups"]),
            report,
        )
        assert client.scopes == ["groups"]

    def test_client_credentials_only_forbids_openid(self) -> None:
        report = ValidationReport()
        validate_scopes(
            _client(grant_types=["client_credentials"], scopes=["openid", "offline", "custom"]),
            report,
        )
        assert len(report.errors) == 1
        assert "'openid', and 'offline'" in report.errors[0]

    def test_unknown_scope(self) -> None:
        report = ValidationReport()
        validate_scopes(_client(scopes=["openid", "wat"]), report)
        assert any("'wat'" in e for e in report.errors)

    def test_duplicates_warn(self) -> None:
        report = ValidationReport()
        validate_scopes(_client(scopes=["openid", "email", "email"]), report)
        assert report.ok
        assert report.deprecated
        assert "'email'" in report.warnings[0]

    def test_offline_needs_refresh_capable_response_type(self) -> None:
        report = ValidationReport()
        validate_scopes(_client(scopes=["offline_access"], response_types=["id_token"]), report)
        assert report.ok
        assert report.deprecated

        report = ValidationReport()
        validate_scopes(_client(scopes=["offline_access"]), report)
        assert report.warnings == []


class TestResponseTypesAndModes:
    """Tests for response type and response mode defaults."""

    def test_response_type_default(self) -> None:
        report = ValidationReport()
        assert validate_response_types(_client(), report).response_types == ["code"]

    def test_unknown_response_type_only_warns(self) -> None:
        report = ValidationReport()
        validate_response_types(_client(response_types=["code", "magic"]), report)
        assert report.ok
        assert "'magic'" in report.warnings[0]

    def test_response_modes_inferred(self) -> None:
        report = ValidationReport()
        client = validate_response_modes(
            _client(response_types=["code", "id_token", "code id_token"]), report
        )
        assert client.response_modes == ["query", "fragment"]

    def test_unknown_response_mode_is_error(self) -> None:
        report = ValidationReport()
        validate_response_modes(
            _client(response_types=["code"], response_modes=["carrier_pigeon"]), report
        )
        assert len(report.errors) == 1


class TestGrantTypes:
    """Tests for grant type inference and cross checks."""

    def test_inferred_from_response_types(self) -> None:
        report = ValidationReport()
        client = validate_grant_types(
            _client(response_types=["code", "code id_token", "token"]), report
        )
        assert client.grant_types == ["authorization_code", "implicit"]
        assert report.warnings == []

    def test_mismatches_are_deprecation_warnings(self) -> None:
        report = ValidationReport()
        validate_grant_types(
            _client(
                response_types=["id_token"],
                grant_types=["authorization_code", "refresh_token"],
                scopes=["openid"],
            ),
            report,
        )
        assert report.ok
        assert report.deprecated
        assert len(report.warnings) == 3

    def test_client_credentials_not_public(self) -> None:
        report = ValidationReport()
        validate_grant_types(
            _client(public=True, response_types=["code"], grant_types=["client_credentials"]),
            report,
        )
        assert any("public client type" in e for e in report.errors)

    def test_unknown_grant_type(self) -> None:
        report = ValidationReport()
        validate_grant_types(
            _client(response_types=["code"], grant_types=["authorization_code", "password"]),
            report,
        )
        assert any("'password'" in e for e in report.errors)


class TestRedirectURIs:
    """Tests for redirect URI checks."""

    def test_installed_app_uri_public_only(self) -> None:
        report = ValidationReport()
        validate_redirect_uris(
            _client(public=True, redirect_uris=["urn:ietf:wg:oauth:2.0:oob"]), report
        )
        assert report.ok
        validate_redirect_uris(_client(redirect_uris=["urn:ietf:wg:oauth:2.0:oob"]), report)
        assert len(report.errors) == 1

    def test_relative_uri(self) -> None:
        report = ValidationReport()
        validate_redirect_uris(_client(redirect_uris=["/callback"]), report)
        assert "must have a scheme" in report.errors[0]

        report = ValidationReport()
        validate_redirect_uris(_client(public=True, redirect_uris=["/callback"]), report)
        assert report.ok

    def test_unparseable_uri(self) -> None:
        report = ValidationReport()
        validate_redirect_uris(_client(redirect_uris=["https://[::1/cb"]), report)
        assert "could not be parsed" in report.errors[0]

    def test_duplicates_warn(self) -> None:
        report = ValidationReport()
        validate_redirect_uris(
            _client(redirect_uris=["https://a.example.com/cb", "https://a.example.com/cb"]),
            report,
        )
        assert report.ok
        assert report.deprecated


class TestSectorIdentifier:
    """Tests for sector identifier checks."""

    @pytest.mark.parametrize("value", ["example.com", "example.com:8443", "sub.example.com"])
    def test_bare_host(self, value: str) -> None:
        report = ValidationReport()
        validate_sector_identifier(_client(sector_identifier_uri=value), report)
        assert report.ok

    def test_scheme_and_components_reported(self) -> None:
        report = ValidationReport()
        validate_sector_identifier(
            _client(sector_identifier_uri="https://user@example.com/path?q=1#frag"), report
        )
        joined = "\n".join(report.errors)
        for component in ("scheme", "path", "query", "fragment", "username"):
            assert f"has a {component}" in joined

    def test_no_host(self) -> None:
        report = ValidationReport()
        validate_sector_identifier(_client(sector_identifier_uri="example.com/path"), report)
        assert "doesn't have a host component" in report.errors[0]


class TestValidateClient:
    """Tests for the full per-client pipeline."""

    def test_confidential_defaults(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        report = ValidationReport()
        outcome = validate_client(
            ClientConfig.model_validate(confidential_client()), aggregate, issuer_keys, report
        )
        client = outcome.client
        assert report.errors == []
        assert report.warnings == []
        assert client.client_name == "app"
        assert client.client_auth is ClientAuthKind.CLIENT_SECRET
        assert client.id_token_signed_response_alg == "RS256"
        assert client.id_token_signed_response_key_id == "main"
        assert client.access_token_signed_response_alg == "none"
        assert not outcome.jwt_response_access_tokens
        assert not outcome.bearer_authorization

    def test_bearer_scope_and_jwt_access_tokens(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        report = ValidationReport()
        outcome = validate_client(
            ClientConfig.model_validate(
                confidential_client(
                    scopes=["openid", "warden.bearer.authz"],
                    access_token_signed_response_alg="RS256",
                )
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert report.ok
        assert outcome.bearer_authorization
        assert outcome.client.bearer_authorization
        assert outcome.jwt_response_access_tokens
        assert outcome.client.access_token_signed_response_key_id == "main"

    def test_public_keys_uri_and_values_exclusive(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
        rsa_key_alt: rsa.RSAPrivateKey,
    ) -> None:
        report = ValidationReport()
        outcome = validate_client(
            ClientConfig.model_validate(
                confidential_client(
                    public_keys={
                        "uri": "https://app.example.com/jwks.json",
                        "values": [{"key_id": "c1", "key": public_jwk(rsa_key_alt)}],
                    }
                )
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert any("must not have both" in e for e in report.errors)
        assert outcome.client.public_keys.uri is not None
        assert outcome.client.public_keys.values == []

    def test_public_keys_uri_must_be_https(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        report = ValidationReport()
        validate_client(
            ClientConfig.model_validate(
                confidential_client(public_keys={"uri": "http://app.example.com/jwks.json"})
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert any("'https' scheme" in e for e in report.errors)

    def test_private_key_jwt_with_inline_keys(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        ec_key: ec.EllipticCurvePrivateKey,
    ) -> None:
        report = ValidationReport()
        outcome = validate_client(
            _client(
                token_endpoint_auth_method="private_key_jwt",
                token_endpoint_auth_signing_alg="ES256",
                request_object_signing_alg="ES256",
                public_keys={"values": [{"key_id": "c1", "key": ec_key.public_key()}]},
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert report.errors == []
        assert outcome.client.client_auth is ClientAuthKind.PRIVATE_KEY_JWT
        assert outcome.client.request_object_signing_algs == ("ES256",)
        assert outcome.client.public_key_set[0].key_id == "c1"

    def test_request_object_alg_must_be_registered(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
        ec_key: ec.EllipticCurvePrivateKey,
    ) -> None:
        report = ValidationReport()
        validate_client(
            ClientConfig.model_validate(
                confidential_client(
                    request_object_signing_alg="RS256",
                    public_keys={"values": [{"key_id": "c1", "key": ec_key.public_key()}]},
                )
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert any("option 'request_object_signing_alg'" in e for e in report.errors)

    def test_request_object_alg_without_keys(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        report = ValidationReport()
        validate_client(
            ClientConfig.model_validate(confidential_client(request_object_signing_alg="RS256")),
            aggregate,
            issuer_keys,
            report,
        )
        assert report.errors == [
            "client 'app': option 'request_object_signing_alg' requires option "
            "'public_keys' to be configured with a key offering 'RS256'"
        ]

    def test_signing_errors_prefixed_with_client(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        report = ValidationReport()
        validate_client(
            ClientConfig.model_validate(
                confidential_client(id_token_signed_response_key_id="missing")
            ),
            aggregate,
            issuer_keys,
            report,
        )
        assert report.errors[0].startswith("client 'app': option 'id_token_signed_response_key_id'")


class TestValidateClients:
    """Tests for batch validation."""

    def test_blank_and_duplicate_ids(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
    ) -> None:
        configs = [
            ClientConfig.model_validate(confidential_client(client_id=client_id))
            for client_id in ("", "App", "app", " ", "other")
        ]
        report = ValidationReport()
        result = validate_clients(configs, aggregate, issuer_keys, report)
        assert result.blank_ids == ("#1", "#4")
        assert result.duplicate_ids == ("app",)
        assert len(result.clients) == 5
        assert any("'#1', and '#4'" in e for e in report.errors)
        assert any("share the following values 'app'" in e for e in report.errors)

    def test_contributions_are_folded(
        self,
        aggregate: DiscoveryAggregate,
        issuer_keys: IssuerKeys,
        confidential_client: Callable[..., dict[str, Any]],
        public_client: Callable[..., dict[str, Any]],
        ec_key: ec.EllipticCurvePrivateKey,
    ) -> None:
        configs = [
            ClientConfig.model_validate(
                confidential_client(
                    public_keys={"values": [{"key_id": "c1", "key": ec_key.public_key()}]}
                )
            ),
            ClientConfig.model_validate(public_client(scopes=["openid", "warden.bearer.authz"])),
        ]
        report = ValidationReport()
        result = validate_clients(configs, aggregate, issuer_keys, report)
        assert report.ok
        assert result.request_object_signing_algs == ("ES256",)
        assert result.bearer_authorization
        assert not result.jwt_response_access_tokens

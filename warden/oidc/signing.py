"""Resolution of per-response-type signing algorithm and key ID pairs."""

from pydantic import BaseModel, ConfigDict

from warden.core.settings import (
    CLIENT_ACCESS_TOKEN_SIGNING_ALG_DEFAULT,
    CLIENT_AUTHORIZATION_SIGNING_ALG_DEFAULT,
    CLIENT_ID_TOKEN_SIGNING_ALG_DEFAULT,
    CLIENT_INTROSPECTION_SIGNING_ALG_DEFAULT,
    CLIENT_USERINFO_SIGNING_ALG_DEFAULT,
)
from warden.oidc.const import ALG_NONE, ALG_RS256
from warden.oidc.keyring import IssuerKeys
from warden.oidc.report import join_or


class SigningProfile(BaseModel):
    """How one response type selects its signing algorithm and key."""

    model_config = ConfigDict(frozen=True)

    alg_option: str
    kid_option: str
    default_alg: str
    implicit_algs: tuple[str, ...]
    marks_jwt_access_tokens: bool = False


AUTHORIZATION_PROFILE = SigningProfile(
    alg_option="authorization_signed_response_alg",
    kid_option="authorization_signed_response_key_id",
    default_alg=CLIENT_AUTHORIZATION_SIGNING_ALG_DEFAULT,
    implicit_algs=("", ALG_NONE, ALG_RS256),
)
ID_TOKEN_PROFILE = SigningProfile(
    alg_option="id_token_signed_response_alg",
    kid_option="id_token_signed_response_key_id",
    default_alg=CLIENT_ID_TOKEN_SIGNING_ALG_DEFAULT,
    implicit_algs=("", ALG_RS256),
)
ACCESS_TOKEN_PROFILE = SigningProfile(
    alg_option="access_token_signed_response_alg",
    kid_option="access_token_signed_response_key_id",
    default_alg=CLIENT_ACCESS_TOKEN_SIGNING_ALG_DEFAULT,
    implicit_algs=("", ALG_NONE, ALG_RS256),
    marks_jwt_access_tokens=True,
)
USERINFO_PROFILE = SigningProfile(
    alg_option="userinfo_signed_response_alg",
    kid_option="userinfo_signed_response_key_id",
    default_alg=CLIENT_USERINFO_SIGNING_ALG_DEFAULT,
    implicit_algs=("", ALG_NONE, ALG_RS256),
)
INTROSPECTION_PROFILE = SigningProfile(
    alg_option="introspection_signed_response_alg",
    kid_option="introspection_signed_response_key_id",
    default_alg=CLIENT_INTROSPECTION_SIGNING_ALG_DEFAULT,
    implicit_algs=("", ALG_NONE, ALG_RS256),
    marks_jwt_access_tokens=True,
)

SIGNING_PROFILES = (
    AUTHORIZATION_PROFILE,
    ID_TOKEN_PROFILE,
    ACCESS_TOKEN_PROFILE,
    USERINFO_PROFILE,
    INTROSPECTION_PROFILE,
)


class SigningResolution(BaseModel):
    """Outcome of resolving one algorithm and key ID pair."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    key_id: str
    error: str | None = None
    jwt_access_tokens: bool = False


def apply_alg_kid_defaults(
    algorithm: str, key_id: str, default_alg: str, issuer_keys: IssuerKeys
) -> tuple[str, str]:
    """Fill in whichever half of an algorithm and key ID pair is missing.

    With neither half set the profile default algorithm is used. A missing key
    ID is taken from the first key offering the algorithm; a missing algorithm
    from the key with the key ID. Unmatched lookups leave the half empty.
    """
    if algorithm and key_id:
        return algorithm, key_id
    if not algorithm and not key_id:
        if not default_alg:
            return algorithm, key_id
        algorithm = default_alg

    if not key_id:
        key = issuer_keys.find_by_algorithm(algorithm)
        if key is not None:
            key_id = key.key_id
    elif not algorithm:
        key = issuer_keys.find_by_key_id(key_id)
        if key is not None:
            algorithm = key.algorithm
    return algorithm, key_id


def resolve_signing(
    profile: SigningProfile, algorithm: str, key_id: str, issuer_keys: IssuerKeys
) -> SigningResolution:
    """Resolve and check a pair against the issuer key discovery sets."""
    algorithm, key_id = apply_alg_kid_defaults(
        algorithm, key_id, profile.default_alg, issuer_keys
    )

    if key_id:
        if key_id not in issuer_keys.key_ids:
            return SigningResolution(
                algorithm=algorithm,
                key_id=key_id,
                error=(
                    f"option '{profile.kid_option}' must be one of "
                    f"{join_or(issuer_keys.key_ids)} but it's configured as '{key_id}'"
                ),
            )
        key = issuer_keys.find_by_key_id(key_id)
        if key is not None:
            algorithm = key.algorithm
        return SigningResolution(
            algorithm=algorithm,
            key_id=key_id,
            jwt_access_tokens=profile.marks_jwt_access_tokens,
        )

    if algorithm in profile.implicit_algs:
        return SigningResolution(algorithm=algorithm, key_id=key_id)

    if algorithm not in issuer_keys.algorithms:
        allowed = list(issuer_keys.algorithms)
        if ALG_NONE in profile.implicit_algs:
            allowed.append(ALG_NONE)
        return SigningResolution(
            algorithm=algorithm,
            key_id=key_id,
            error=(
                f"option '{profile.alg_option}' must be one of {join_or(allowed)} "
                f"but it's configured as '{algorithm}'"
            ),
        )
    return SigningResolution(
        algorithm=algorithm,
        key_id=key_id,
        jwt_access_tokens=profile.marks_jwt_access_tokens,
    )

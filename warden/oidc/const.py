"""Accepted values for provider and client configuration options."""

POLICY_ONE_FACTOR = "one_factor"
POLICY_TWO_FACTOR = "two_factor"
POLICY_DENY = "deny"
POLICY_DECISIONS = (POLICY_ONE_FACTOR, POLICY_TWO_FACTOR, POLICY_DENY)
POLICY_BUILTINS = (POLICY_ONE_FACTOR, POLICY_TWO_FACTOR)

SUBJECT_PREFIX_USER = "user:"
SUBJECT_PREFIX_GROUP = "group:"

KEY_USE_SIGNATURE = "sig"

ALG_NONE = "none"
ALG_RS256 = "RS256"
ALG_RS384 = "RS384"
ALG_RS512 = "RS512"
ALG_PS256 = "PS256"
ALG_PS384 = "PS384"
ALG_PS512 = "PS512"
ALG_ES256 = "ES256"
ALG_ES384 = "ES384"
ALG_ES512 = "ES512"
ALG_HS256 = "HS256"
ALG_HS384 = "HS384"
ALG_HS512 = "HS512"

ASYMMETRIC_SIGNING_ALGS = (
    ALG_RS256,
    ALG_RS384,
    ALG_RS512,
    ALG_PS256,
    ALG_PS384,
    ALG_PS512,
    ALG_ES256,
    ALG_ES384,
    ALG_ES512,
)
HMAC_SIGNING_ALGS = (ALG_HS256, ALG_HS384, ALG_HS512)

SCOPE_OPENID = "openid"
SCOPE_OFFLINE_ACCESS = "offline_access"
SCOPE_OFFLINE = "offline"
SCOPE_PROFILE = "profile"
SCOPE_EMAIL = "email"
SCOPE_ADDRESS = "address"
SCOPE_PHONE = "phone"
SCOPE_GROUPS = "groups"
SCOPE_BEARER_AUTHZ = "warden.bearer.authz"

CLIENT_SCOPES = (
    SCOPE_OPENID,
    SCOPE_OFFLINE_ACCESS,
    SCOPE_OFFLINE,
    SCOPE_PROFILE,
    SCOPE_EMAIL,
    SCOPE_ADDRESS,
    SCOPE_PHONE,
    SCOPE_GROUPS,
    SCOPE_BEARER_AUTHZ,
)
OFFLINE_SCOPES = (SCOPE_OFFLINE_ACCESS, SCOPE_OFFLINE)
CLIENT_CREDENTIALS_FORBIDDEN_SCOPES = (SCOPE_OPENID, SCOPE_OFFLINE, SCOPE_OFFLINE_ACCESS)

RESPONSE_TYPE_CODE = "code"
RESPONSE_TYPES_IMPLICIT = ("id_token", "token", "id_token token")
RESPONSE_TYPES_HYBRID = ("code id_token", "code token", "code id_token token")
RESPONSE_TYPES = (RESPONSE_TYPE_CODE, *RESPONSE_TYPES_IMPLICIT, *RESPONSE_TYPES_HYBRID)
RESPONSE_TYPES_REFRESH_CAPABLE = (RESPONSE_TYPE_CODE, *RESPONSE_TYPES_HYBRID)

RESPONSE_MODE_QUERY = "query"
RESPONSE_MODE_FRAGMENT = "fragment"
RESPONSE_MODE_FORM_POST = "form_post"
RESPONSE_MODES = (
    RESPONSE_MODE_FORM_POST,
    RESPONSE_MODE_QUERY,
    RESPONSE_MODE_FRAGMENT,
    "jwt",
    "form_post.jwt",
    "query.jwt",
    "fragment.jwt",
)

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_IMPLICIT = "implicit"
GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"
GRANT_TYPES = (
    GRANT_TYPE_AUTHORIZATION_CODE,
    GRANT_TYPE_IMPLICIT,
    GRANT_TYPE_CLIENT_CREDENTIALS,
    GRANT_TYPE_REFRESH_TOKEN,
)

AUTH_METHOD_NONE = "none"
AUTH_METHOD_CLIENT_SECRET_BASIC = "client_secret_basic"
AUTH_METHOD_CLIENT_SECRET_POST = "client_secret_post"
AUTH_METHOD_CLIENT_SECRET_JWT = "client_secret_jwt"
AUTH_METHOD_PRIVATE_KEY_JWT = "private_key_jwt"
AUTH_METHODS_CONFIDENTIAL = (
    AUTH_METHOD_CLIENT_SECRET_BASIC,
    AUTH_METHOD_CLIENT_SECRET_POST,
    AUTH_METHOD_CLIENT_SECRET_JWT,
    AUTH_METHOD_PRIVATE_KEY_JWT,
)
AUTH_METHODS = (AUTH_METHOD_NONE, *AUTH_METHODS_CONFIDENTIAL)

CONSENT_MODE_AUTO = "auto"
CONSENT_MODE_EXPLICIT = "explicit"
CONSENT_MODE_IMPLICIT = "implicit"
CONSENT_MODE_PRE_CONFIGURED = "pre-configured"
CONSENT_MODES = (CONSENT_MODE_EXPLICIT, CONSENT_MODE_IMPLICIT, CONSENT_MODE_PRE_CONFIGURED)

REQUESTED_AUDIENCE_MODES = ("explicit", "implicit")
PKCE_CHALLENGE_METHODS = ("plain", "S256")
ENFORCE_PKCE_MODES = ("always", "never", "public_clients_only")

CORS_ENDPOINTS = (
    "authorization",
    "pushed-authorization-request",
    "token",
    "revocation",
    "introspection",
    "userinfo",
)

INSTALLED_APP_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

KEY_ID_MAX_LENGTH = 100
RSA_MIN_KEY_SIZE = 2048

"""
Bearer-token auth for every OmniCRM route.

Tokens are Supabase access tokens signed with ES256; signing keys come from
the project's JWKS endpoint and PyJWKClient caches them. The tenant is the
`sub` claim, and every query downstream is scoped by it.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from omnicrm.config import settings

SUPABASE_AUDIENCE = "authenticated"
ACCEPTED_ALGORITHMS = ["ES256"]
CLOCK_SKEW_LEEWAY_S = 10

_jwk_client = PyJWKClient(settings.jwks_url(), cache_keys=True)
_bearer = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """Decode and validate a Supabase access token, returning its claims."""
    try:
        signing_key = _jwk_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=ACCEPTED_ALGORITHMS,
            audience=SUPABASE_AUDIENCE,
            leeway=CLOCK_SKEW_LEEWAY_S,
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_bearer)) -> dict:
    return verify_jwt(credentials.credentials)


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    """Tenant id for the request."""
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Token has no subject")
    return user_id

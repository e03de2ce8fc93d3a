"""Bearer-token authentication for Firebase ID tokens.

Backends (SIA_AUTH_BACKEND):
- firebase (default): RS256 tokens verified against Google's securetoken JWKS,
  audience FIREBASE_PROJECT_ID, issuer https://securetoken.google.com/<project>.
- shared_secret: HS256 tokens signed with SIA_AUTH_SECRET (local dev and tests).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import jwt
from fastapi import Header

from sia.services.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

FIREBASE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
)
AUTH_REQUIRED = "Authentication required"

_JWK_CLIENT_CACHE: dict[str, Any] = {"url": "", "client": None}


@dataclass(frozen=True)
class AuthContext:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    phone_number: Optional[str] = None
    sign_in_provider: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def _backend() -> str:
    return (os.getenv("SIA_AUTH_BACKEND") or "firebase").strip().lower()


def _jwk_client() -> jwt.PyJWKClient:
    url = (os.getenv("FIREBASE_JWKS_URL") or FIREBASE_JWKS_URL).strip()
    if _JWK_CLIENT_CACHE["client"] is None or _JWK_CLIENT_CACHE["url"] != url:
        _JWK_CLIENT_CACHE["client"] = jwt.PyJWKClient(url)
        _JWK_CLIENT_CACHE["url"] = url
    return _JWK_CLIENT_CACHE["client"]


def _decode_firebase(token: str) -> dict[str, Any]:
    project_id = (os.getenv("FIREBASE_PROJECT_ID") or "").strip()
    if not project_id:
        logger.error("auth_misconfigured missing_required_env:FIREBASE_PROJECT_ID")
        raise UnauthenticatedError(AUTH_REQUIRED)
    signing_key = _jwk_client().get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=project_id,
        issuer=f"https://securetoken.google.com/{project_id}",
        options={"require": ["exp", "iat", "sub"]},
    )


def _decode_shared_secret(token: str) -> dict[str, Any]:
    secret = (os.getenv("SIA_AUTH_SECRET") or "").strip()
    if not secret:
        logger.error("auth_misconfigured missing_required_env:SIA_AUTH_SECRET")
        raise UnauthenticatedError(AUTH_REQUIRED)
    return jwt.decode(token, secret, algorithms=["HS256"], options={"require": ["sub"], "verify_aud": False})


def verify_id_token(token: str) -> AuthContext:
    backend = _backend()
    try:
        if backend == "shared_secret":
            claims = _decode_shared_secret(token)
        elif backend == "firebase":
            claims = _decode_firebase(token)
        else:
            logger.error("auth_misconfigured unsupported_auth_backend:%s", backend)
            raise UnauthenticatedError(AUTH_REQUIRED)
    except jwt.PyJWTError as exc:
        logger.info("auth_token_rejected backend=%s reason=%s", backend, exc)
        raise UnauthenticatedError(AUTH_REQUIRED) from exc

    uid = str(claims.get("sub") or claims.get("user_id") or "").strip()
    if not uid:
        raise UnauthenticatedError(AUTH_REQUIRED)
    firebase_claims = claims.get("firebase") if isinstance(claims.get("firebase"), dict) else {}
    return AuthContext(
        uid=uid,
        email=claims.get("email"),
        name=claims.get("name"),
        picture=claims.get("picture"),
        phone_number=claims.get("phone_number"),
        sign_in_provider=firebase_claims.get("sign_in_provider"),
        claims=claims,
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_user(authorization: Optional[str] = Header(None)) -> AuthContext:
    """FastAPI dependency: 401 unless a valid ID token is presented."""
    token = _bearer_token(authorization)
    if token is None:
        raise UnauthenticatedError(AUTH_REQUIRED)
    return verify_id_token(token)


async def optional_user(authorization: Optional[str] = Header(None)) -> Optional[AuthContext]:
    """FastAPI dependency for endpoints that work anonymously."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return verify_id_token(token)
    except UnauthenticatedError:
        return None

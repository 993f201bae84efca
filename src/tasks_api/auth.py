from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Sequence

import jwt
from fastapi import Depends, Header

from .errors import ConfigurationError, Unauthorized
from .settings import get_settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class AuthResult:
    """Per-request outcome of the authoritative token check."""

    authenticated: bool
    user_id: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return {"authenticated": self.authenticated, "userId": self.user_id, "email": self.email}


ANONYMOUS = AuthResult(authenticated=False)


@dataclass(frozen=True)
class VerifiedClaims:
    subject: str
    email: Optional[str]


# PUBLIC_INTERFACE
class TokenVerifier:
    """
    Verify identity tokens issued by a Cognito user pool.

    Signing keys come from the pool's published JWKS through PyJWT's
    PyJWKClient (keys are cached by kid). A token is accepted only when its
    RS256 signature, issuer, audience (the app client id) and expiry check
    out and its ``token_use`` claim matches the configured use.
    """

    algorithms: Sequence[str] = ("RS256",)

    def __init__(
        self,
        issuer: Optional[str],
        client_id: Optional[str],
        jwks_client: Any = None,
        token_use: str = "id",
        leeway: int = 0,
    ) -> None:
        self.issuer = issuer
        self.client_id = client_id
        self.token_use = token_use
        self.leeway = leeway
        if jwks_client is None and issuer:
            jwks_client = jwt.PyJWKClient(f"{issuer}/.well-known/jwks.json", cache_keys=True)
        self._jwks_client = jwks_client

    def verify(self, token: str) -> VerifiedClaims:
        """
        Return the verified subject and email of ``token``.

        Raises:
            jwt.PyJWTError: signature, claims or key lookup failed.
            ConfigurationError: pool or client id is not configured.
        """
        if not self.issuer or not self.client_id or self._jwks_client is None:
            raise ConfigurationError("COGNITO_USER_POOL_ID and COGNITO_CLIENT_ID must be set")

        signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=list(self.algorithms),
            audience=self.client_id,
            issuer=self.issuer,
            leeway=self.leeway,
            options={"require": ["exp", "iat", "sub"]},
        )
        if claims.get("token_use") != self.token_use:
            raise jwt.InvalidTokenError(f"token_use must be {self.token_use!r}")
        email = claims.get("email")
        return VerifiedClaims(subject=claims["sub"], email=email if isinstance(email, str) else None)


# PUBLIC_INTERFACE
def validate_token(authorization: Optional[str], verifier: TokenVerifier) -> AuthResult:
    """
    Check the ``Authorization`` header value and return the caller's identity.

    A missing header or one without the ``Bearer `` prefix is simply
    anonymous. Verification failures are logged and reported as anonymous too;
    the reason never reaches the caller.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return ANONYMOUS

    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        claims = verifier.verify(token)
    except jwt.PyJWTError as exc:
        logger.warning("token validation failed: %s", exc)
        return ANONYMOUS
    return AuthResult(authenticated=True, user_id=claims.subject, email=claims.email)


# PUBLIC_INTERFACE
def require_auth(authorization: Optional[str], verifier: TokenVerifier) -> AuthResult:
    """Like validate_token, but raise Unauthorized instead of returning anonymous."""
    result = validate_token(authorization, verifier)
    if not result.authenticated or not result.user_id:
        raise Unauthorized()
    return result


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_token_verifier() -> TokenVerifier:
    """Return the process-wide verifier built from settings."""
    settings = get_settings()
    return TokenVerifier(issuer=settings.cognito_issuer, client_id=settings.cognito_client_id)


# PUBLIC_INTERFACE
def get_auth_result(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthResult:
    """FastAPI dependency yielding the (possibly anonymous) AuthResult."""
    return validate_token(authorization, verifier)


# PUBLIC_INTERFACE
def require_user(auth: AuthResult = Depends(get_auth_result)) -> AuthResult:
    """
    FastAPI dependency for routes that need a trusted identity.

    Usage:
        @router.get("", ...)
        def handler(user: AuthResult = Depends(require_user)): ...

    Raises:
        Unauthorized when no valid identity token was presented.
    """
    if not auth.authenticated or not auth.user_id:
        raise Unauthorized()
    return auth

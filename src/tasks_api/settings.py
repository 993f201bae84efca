from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from .errors import ConfigurationError

DEFAULT_PUBLIC_ROUTES = "/login,/signup,/verify-email"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'mongo'
    - MONGODB_URI: connection string (required when PERSISTENCE_BACKEND=mongo)
    - MONGODB_DB_NAME: database holding the 'tasks' collection. Default 'tasks'
    - COGNITO_USER_POOL_ID: user pool that issues identity tokens
    - COGNITO_CLIENT_ID: app client id, the expected token audience
    - COGNITO_REGION: AWS region of the pool; derived from the pool id when unset
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level name. Default 'INFO'
    - PUBLIC_ROUTES: comma-separated path prefixes reachable without a session
    - SESSION_COOKIE_SECURE: 'false' to drop the Secure flag on session cookies
    """

    persistence_backend: str
    mongodb_uri: Optional[str]
    mongodb_db_name: str
    cognito_user_pool_id: Optional[str]
    cognito_client_id: Optional[str]
    cognito_region: Optional[str]
    cors_allow_origins: List[str]
    log_level: str
    public_routes: List[str]
    session_cookie_secure: bool

    @property
    def cognito_issuer(self) -> Optional[str]:
        if not self.cognito_user_pool_id or not self.cognito_region:
            return None
        return f"https://cognito-idp.{self.cognito_region}.amazonaws.com/{self.cognito_user_pool_id}"

    @property
    def cognito_jwks_url(self) -> Optional[str]:
        issuer = self.cognito_issuer
        return f"{issuer}/.well-known/jwks.json" if issuer else None


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_list(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return _parse_list(value)


def _region_from_pool(pool_id: Optional[str]) -> Optional[str]:
    # Pool ids look like 'us-east-1_AbCdEfGhI'
    if not pool_id or "_" not in pool_id:
        return None
    return pool_id.split("_", 1)[0]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return application settings loaded from environment variables.

    The result is cached for the process; call ``get_settings.cache_clear()``
    after changing the environment (tests do this).
    """
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "mongo"}:
        raise ConfigurationError(f"Unsupported PERSISTENCE_BACKEND: {backend!r}")

    mongodb_uri = os.getenv("MONGODB_URI") or None
    if backend == "mongo" and not mongodb_uri:
        raise ConfigurationError("MONGODB_URI is required when PERSISTENCE_BACKEND=mongo")

    pool_id = os.getenv("COGNITO_USER_POOL_ID") or None
    region = os.getenv("COGNITO_REGION") or _region_from_pool(pool_id)

    return Settings(
        persistence_backend=backend,
        mongodb_uri=mongodb_uri,
        mongodb_db_name=_get_env("MONGODB_DB_NAME", "tasks").strip(),
        cognito_user_pool_id=pool_id,
        cognito_client_id=os.getenv("COGNITO_CLIENT_ID") or None,
        cognito_region=region,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        public_routes=_parse_list(_get_env("PUBLIC_ROUTES", DEFAULT_PUBLIC_ROUTES)),
        session_cookie_secure=_parse_bool(_get_env("SESSION_COOKIE_SECURE", "true"), True),
    )

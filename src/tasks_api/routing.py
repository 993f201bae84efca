from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from .settings import DEFAULT_PUBLIC_ROUTES


class RouteKind(str, Enum):
    ASSET = "asset"
    API = "api"
    PUBLIC = "public"
    PROTECTED = "protected"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class RouteTable:
    """
    Path prefixes used to classify inbound requests.

    - asset_prefixes: framework/static paths that are never gated
    - api_prefix: API handlers run their own authoritative check
    - public_prefixes: entry points reachable without a session
    """

    asset_prefixes: Tuple[str, ...] = ("/static", "/docs", "/redoc", "/openapi.json", "/favicon.ico")
    api_prefix: str = "/api"
    public_prefixes: Tuple[str, ...] = field(
        default_factory=lambda: tuple(DEFAULT_PUBLIC_ROUTES.split(","))
    )


# PUBLIC_INTERFACE
def classify(path: str, table: RouteTable) -> RouteKind:
    """Classify ``path`` by case-sensitive prefix match: asset > api > public > protected."""
    if any(path.startswith(prefix) for prefix in table.asset_prefixes):
        return RouteKind.ASSET
    if path.startswith(table.api_prefix):
        return RouteKind.API
    if any(path.startswith(prefix) for prefix in table.public_prefixes):
        return RouteKind.PUBLIC
    return RouteKind.PROTECTED

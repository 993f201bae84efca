"""
Edge gate: redirect-only routing decisions made before any handler runs.

The decision is a pure function of the cookie set and the request path.
It relies on unverified cookie hints, so it is a navigation aid and not a
security boundary; API handlers verify tokens themselves.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from .routing import RouteKind, RouteTable, classify
from .tokens import CookieSource, has_session_cookie, subject_from_cookies

logger = logging.getLogger(__name__)

ROOT_PATH = "/"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class GateDecision:
    """Either pass the request through or redirect it to ``location``."""

    location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.location is not None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls()

    @classmethod
    def redirect(cls, location: str) -> "GateDecision":
        return cls(location=location)


def _first_segment(path: str) -> str:
    return path.lstrip("/").split("/", 1)[0]


# PUBLIC_INTERFACE
def evaluate(cookies: CookieSource, path: str, table: RouteTable) -> GateDecision:
    """
    Decide what to do with a request for ``path`` carrying ``cookies``.

    Rules are evaluated in order and the first match wins:
    asset/api paths pass; a signed-in user is sent from public pages and from
    the root to their own page, and from another user's page back to their
    own; anonymous visitors of protected pages are sent to the root.
    """
    kind = classify(path, table)
    if kind in (RouteKind.ASSET, RouteKind.API):
        return GateDecision.allow()

    cookies = list(cookies.items()) if isinstance(cookies, Mapping) else list(cookies)
    signed_in = has_session_cookie(cookies)
    user_id = subject_from_cookies(cookies) if signed_in else None
    is_root = path == ROOT_PATH
    is_protected = kind is RouteKind.PROTECTED and not is_root

    if user_id and kind is RouteKind.PUBLIC:
        return GateDecision.redirect(f"/{user_id}")
    if not signed_in and is_protected:
        return GateDecision.redirect(ROOT_PATH)
    if user_id and is_root:
        return GateDecision.redirect(f"/{user_id}")
    if user_id and is_protected:
        requested = _first_segment(path)
        if requested and requested != user_id:
            return GateDecision.redirect(f"/{user_id}")
    return GateDecision.allow()


# PUBLIC_INTERFACE
class EdgeGateMiddleware(BaseHTTPMiddleware):
    """Apply ``evaluate`` to every request, answering redirects with 307."""

    def __init__(self, app: ASGIApp, table: Optional[RouteTable] = None) -> None:
        super().__init__(app)
        self.table = table or RouteTable()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        decision = evaluate(request.cookies, path, self.table)
        if decision.is_redirect:
            logger.debug("edge gate redirect %s -> %s", path, decision.location)
            return RedirectResponse(url=decision.location, status_code=307)
        return await call_next(request)

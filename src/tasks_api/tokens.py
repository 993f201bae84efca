"""
Optimistic identity hints read from identity-provider session cookies.

Nothing in this module verifies a signature. The subject recovered here is
only good enough for routing decisions in the edge gate; data access always
goes through tasks_api.auth.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Iterable, Mapping, Optional, Tuple, Union

SESSION_COOKIE_PREFIX = "CognitoIdentityServiceProvider."
ID_TOKEN_MARKER = ".idToken"
ACCESS_TOKEN_MARKER = ".accessToken"

CookieSource = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def _pairs(cookies: CookieSource) -> Iterable[Tuple[str, str]]:
    if isinstance(cookies, Mapping):
        return cookies.items()
    return cookies


# PUBLIC_INTERFACE
def is_session_cookie(name: str) -> bool:
    """Return True if ``name`` looks like an identity-provider token cookie."""
    return name.startswith(SESSION_COOKIE_PREFIX) and (
        ID_TOKEN_MARKER in name or ACCESS_TOKEN_MARKER in name
    )


# PUBLIC_INTERFACE
def has_session_cookie(cookies: CookieSource) -> bool:
    return any(is_session_cookie(name) for name, _ in _pairs(cookies))


def _b64decode(segment: str) -> bytes:
    # Accept both alphabets and missing padding
    normalized = segment.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized, validate=True)


# PUBLIC_INTERFACE
def decode_subject(token: str) -> Optional[str]:
    """
    Best-effort read of the ``sub`` claim of a JWT without verifying it.

    Returns None for anything that is not a three-segment token whose middle
    segment is base64 encoded JSON carrying a string ``sub``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        payload = json.loads(_b64decode(parts[1]).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError):
        return None
    if not isinstance(payload, dict):
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) and sub else None


# PUBLIC_INTERFACE
def subject_from_cookies(cookies: CookieSource) -> Optional[str]:
    """
    Return the unverified subject carried by the session cookies, if any.

    The idToken cookie is preferred; the accessToken cookie is only consulted
    when no idToken cookie is present.
    """
    id_tokens = []
    access_tokens = []
    for name, value in _pairs(cookies):
        if not name.startswith(SESSION_COOKIE_PREFIX):
            continue
        if ID_TOKEN_MARKER in name:
            id_tokens.append(value)
        elif ACCESS_TOKEN_MARKER in name:
            access_tokens.append(value)
    for value in id_tokens or access_tokens:
        sub = decode_subject(value or "")
        if sub:
            return sub
    return None

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request, Response, status

from ..auth import AuthResult, get_auth_result
from ..identity import IdentityError, IdentityProvider, SessionTokens, get_identity_provider
from ..schemas import (
    ConfirmSignUpRequest,
    ErrorOut,
    MessageOut,
    ResendCodeRequest,
    SessionOut,
    SignInRequest,
    SignUpOut,
    SignUpRequest,
)
from ..settings import get_settings
from ..tokens import SESSION_COOKIE_PREFIX, decode_subject

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    responses={502: {"model": ErrorOut, "description": "Identity provider error"}},
)

REFRESH_TOKEN_MAX_AGE = 30 * 24 * 3600


def session_cookie_names(client_id: str, username: str) -> Dict[str, str]:
    """Cookie names in the provider's namespace, as its client libraries write them."""
    base = f"{SESSION_COOKIE_PREFIX}{client_id}"
    return {
        "idToken": f"{base}.{username}.idToken",
        "accessToken": f"{base}.{username}.accessToken",
        "refreshToken": f"{base}.{username}.refreshToken",
        "LastAuthUser": f"{base}.LastAuthUser",
    }


def _set_session_cookies(response: Response, client_id: str, username: str, tokens: SessionTokens) -> None:
    settings = get_settings()
    names = session_cookie_names(client_id, username)
    values = {
        "idToken": (tokens.id_token, tokens.expires_in),
        "accessToken": (tokens.access_token, tokens.expires_in),
        "refreshToken": (tokens.refresh_token, REFRESH_TOKEN_MAX_AGE),
        "LastAuthUser": (username, REFRESH_TOKEN_MAX_AGE),
    }
    for key, (value, max_age) in values.items():
        if value is None:
            continue
        response.set_cookie(
            names[key],
            value,
            max_age=max_age,
            httponly=True,
            samesite="lax",
            secure=settings.session_cookie_secure,
        )


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=SignUpOut,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Register a user. The identity provider emails a verification code.",
    responses={409: {"model": ErrorOut, "description": "Account already exists"}},
)
def sign_up(payload: SignUpRequest, provider: IdentityProvider = Depends(get_identity_provider)) -> SignUpOut:
    result = provider.sign_up(payload.email, payload.password, payload.name)
    return SignUpOut(user_id=result.user_id, confirmed=result.confirmed)


# PUBLIC_INTERFACE
@router.post("/confirm", response_model=MessageOut, summary="Verify Email")
def confirm_sign_up(
    payload: ConfirmSignUpRequest, provider: IdentityProvider = Depends(get_identity_provider)
) -> MessageOut:
    provider.confirm_sign_up(payload.email, payload.code)
    return MessageOut(message="Email verified successfully")


# PUBLIC_INTERFACE
@router.post("/resend-code", response_model=MessageOut, summary="Resend Verification Code")
def resend_code(payload: ResendCodeRequest, provider: IdentityProvider = Depends(get_identity_provider)) -> MessageOut:
    provider.resend_confirmation_code(payload.email)
    return MessageOut(message="Verification code sent")


# PUBLIC_INTERFACE
@router.post(
    "/signin",
    response_model=SessionOut,
    summary="Sign In",
    description=(
        "Exchange credentials for tokens. The tokens are returned in the body and "
        "also stored as session cookies in the provider's cookie namespace."
    ),
    responses={
        401: {"model": ErrorOut, "description": "Incorrect email or password"},
        403: {"model": ErrorOut, "description": "Email address is not verified"},
    },
)
def sign_in(
    payload: SignInRequest,
    response: Response,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> SessionOut:
    tokens = provider.sign_in(payload.email, payload.password)
    user_id = decode_subject(tokens.id_token)
    client_id = get_settings().cognito_client_id or "client"
    _set_session_cookies(response, client_id, user_id or "user", tokens)
    logger.info("user %s signed in", user_id)
    return SessionOut(
        id_token=tokens.id_token,
        access_token=tokens.access_token,
        expires_in=tokens.expires_in,
        user_id=user_id,
    )


# PUBLIC_INTERFACE
@router.post("/signout", response_model=MessageOut, summary="Sign Out")
def sign_out(
    request: Request,
    response: Response,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> MessageOut:
    """
    Clear every provider session cookie. When an access token cookie is
    present the provider is also asked to revoke the user's sessions; a
    failure there is logged and the cookies are cleared anyway.
    """
    session_cookies = [name for name in request.cookies if name.startswith(SESSION_COOKIE_PREFIX)]
    access_token = next(
        (request.cookies[name] for name in session_cookies if name.endswith(".accessToken")),
        None,
    )
    if access_token:
        try:
            provider.sign_out(access_token)
        except IdentityError as exc:
            logger.warning("provider sign-out failed, clearing cookies only: %s", exc.message)
    for name in session_cookies:
        response.delete_cookie(name)
    return MessageOut(message="Signed out")


# PUBLIC_INTERFACE
@router.get("/session", summary="Current Session")
def current_session(auth: AuthResult = Depends(get_auth_result)) -> dict:
    """Report who the bearer token belongs to; anonymous callers get authenticated=false."""
    return auth.to_dict()

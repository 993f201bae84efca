"""
Boundary to the managed identity provider.

The provider owns credentials, password policy, verification codes and
session refresh. This module only forwards calls to it and translates its
errors into HTTP-friendly IdentityError values.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .settings import get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class IdentityError(Exception):
    """A provider call failed; ``status_code`` is the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 502, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


@dataclass(frozen=True)
class SignUpResult:
    user_id: Optional[str]
    confirmed: bool


@dataclass(frozen=True)
class SessionTokens:
    id_token: str
    access_token: str
    refresh_token: Optional[str]
    expires_in: int


# PUBLIC_INTERFACE
class IdentityProvider(ABC):
    """Minimal authentication interface the API needs from the provider."""

    @abstractmethod
    def sign_up(self, email: str, password: str, name: str) -> SignUpResult:
        """Register a user; the provider emails a verification code."""

    @abstractmethod
    def confirm_sign_up(self, email: str, code: str) -> None:
        """Confirm the email address with the code the user received."""

    @abstractmethod
    def resend_confirmation_code(self, email: str) -> None:
        """Ask the provider to send a fresh verification code."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> SessionTokens:
        """Exchange credentials for id/access/refresh tokens."""

    @abstractmethod
    def sign_out(self, access_token: str) -> None:
        """Revoke every session of the user owning ``access_token``."""


# Cognito error code -> (HTTP status, message shown to the client)
_ERRORS = {
    "UsernameExistsException": (409, "An account with this email already exists"),
    "InvalidPasswordException": (400, "Password does not meet the requirements"),
    "InvalidParameterException": (400, "Invalid request"),
    "CodeMismatchException": (400, "Invalid verification code"),
    "ExpiredCodeException": (400, "Verification code has expired"),
    "NotAuthorizedException": (401, "Incorrect email or password"),
    "UserNotConfirmedException": (403, "Email address is not verified"),
    "UserNotFoundException": (404, "User not found"),
    "LimitExceededException": (429, "Too many attempts, try again later"),
    "TooManyRequestsException": (429, "Too many attempts, try again later"),
}


def _translate(exc: Exception) -> IdentityError:
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        status, message = _ERRORS.get(code, (502, "Identity provider error"))
        return IdentityError(message, status_code=status, code=code)
    return IdentityError("Identity provider unavailable", status_code=502)


class CognitoIdentityProvider(IdentityProvider):
    """IdentityProvider backed by an Amazon Cognito user pool app client."""

    def __init__(self, client_id: str, region: Optional[str], client: Any = None) -> None:
        self.client_id = client_id
        self._client = client or boto3.client("cognito-idp", region_name=region)

    def _call(self, operation: str, **kwargs: Any) -> dict:
        try:
            return getattr(self._client, operation)(ClientId=self.client_id, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            error = _translate(exc)
            logger.warning("cognito %s failed: %s", operation, error.code or exc)
            raise error from exc

    def sign_up(self, email: str, password: str, name: str) -> SignUpResult:
        response = self._call(
            "sign_up",
            Username=email,
            Password=password,
            UserAttributes=[
                {"Name": "email", "Value": email},
                {"Name": "name", "Value": name},
            ],
        )
        return SignUpResult(user_id=response.get("UserSub"), confirmed=bool(response.get("UserConfirmed")))

    def confirm_sign_up(self, email: str, code: str) -> None:
        self._call("confirm_sign_up", Username=email, ConfirmationCode=code)

    def resend_confirmation_code(self, email: str) -> None:
        self._call("resend_confirmation_code", Username=email)

    def sign_in(self, email: str, password: str) -> SessionTokens:
        response = self._call(
            "initiate_auth",
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={"USERNAME": email, "PASSWORD": password},
        )
        result = response.get("AuthenticationResult")
        if not result:
            # A challenge (e.g. NEW_PASSWORD_REQUIRED) is not supported here
            raise IdentityError("Additional sign-in challenge required", status_code=401,
                                code=response.get("ChallengeName"))
        return SessionTokens(
            id_token=result["IdToken"],
            access_token=result["AccessToken"],
            refresh_token=result.get("RefreshToken"),
            expires_in=int(result.get("ExpiresIn", 3600)),
        )

    def sign_out(self, access_token: str) -> None:
        try:
            self._client.global_sign_out(AccessToken=access_token)
        except (ClientError, BotoCoreError) as exc:
            error = _translate(exc)
            logger.warning("cognito global_sign_out failed: %s", error.code or exc)
            raise error from exc


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    settings = get_settings()
    if not settings.cognito_client_id:
        raise IdentityError("Identity provider is not configured", status_code=503)
    return CognitoIdentityProvider(client_id=settings.cognito_client_id, region=settings.cognito_region)

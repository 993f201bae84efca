# tests/conftest.py

from __future__ import annotations

import os
import uuid
from typing import Callable, Dict, Optional

import pytest

# Settings are read once when the app module is imported; pin the environment first.
os.environ["PERSISTENCE_BACKEND"] = "memory"
os.environ["COGNITO_USER_POOL_ID"] = "us-east-1_TestPool"
os.environ["COGNITO_CLIENT_ID"] = "test-client"
os.environ["SESSION_COOKIE_SECURE"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from tasks_api.auth import TokenVerifier, get_token_verifier  # noqa: E402
from tasks_api.main import app  # noqa: E402
from tasks_api.settings import get_settings  # noqa: E402

from .fakes import CLIENT_ID, ISSUER, PRIVATE_KEY, FakeJwksClient, mint_token  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def verifier() -> TokenVerifier:
    return TokenVerifier(issuer=ISSUER, client_id=CLIENT_ID, jwks_client=FakeJwksClient(PRIVATE_KEY.public_key()))


@pytest.fixture()
def client(verifier: TokenVerifier):
    """TestClient with the token verifier wired to the in-process test key."""
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture()
def auth_headers() -> Callable[..., Dict[str, str]]:
    def _headers(sub: str, email: Optional[str] = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {mint_token(sub, email=email)}"}

    return _headers

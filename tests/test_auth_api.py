from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from tasks_api.identity import CognitoIdentityProvider, IdentityError, get_identity_provider
from tasks_api.main import app
from tasks_api.routers.auth import session_cookie_names
from tasks_api.tokens import decode_subject

from .fakes import CLIENT_ID, FakeIdentityProvider

AUTH = "/api/auth"
STRONG_PASSWORD = "Str0ng!pass"


@pytest.fixture()
def provider(client):
    fake = FakeIdentityProvider()
    app.dependency_overrides[get_identity_provider] = lambda: fake
    return fake


def set_cookie_headers(res):
    return res.headers.get_list("set-cookie")


class TestSignUp:
    def test_sign_up_returns_user_id(self, client, provider):
        res = client.post(
            f"{AUTH}/signup",
            json={"name": "Ada", "email": "ada@example.com", "password": STRONG_PASSWORD},
        )
        assert res.status_code == 201
        assert res.json() == {"userId": "user-123", "confirmed": False}
        assert provider.calls == [("sign_up", ("ada@example.com", "Ada"))]

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"],
    )
    def test_weak_password_is_400(self, client, provider, password):
        res = client.post(f"{AUTH}/signup", json={"name": "Ada", "email": "ada@example.com", "password": password})
        assert res.status_code == 400
        assert res.json()["details"][0]["field"] == "password"
        assert provider.calls == []

    def test_invalid_email_is_400(self, client, provider):
        res = client.post(f"{AUTH}/signup", json={"name": "Ada", "email": "nope", "password": STRONG_PASSWORD})
        assert res.status_code == 400

    def test_malformed_json_reports_the_body(self, client, provider):
        res = client.post(f"{AUTH}/signup", content=b"{not json", headers={"Content-Type": "application/json"})
        assert res.status_code == 400
        (detail,) = res.json()["details"]
        assert detail["field"] == "body"
        assert provider.calls == []

    def test_existing_account_is_409(self, client, provider):
        provider.fail_with = IdentityError("An account with this email already exists", status_code=409)
        res = client.post(
            f"{AUTH}/signup",
            json={"name": "Ada", "email": "ada@example.com", "password": STRONG_PASSWORD},
        )
        assert res.status_code == 409
        assert res.json() == {"error": "An account with this email already exists"}


class TestVerification:
    def test_confirm(self, client, provider):
        res = client.post(f"{AUTH}/confirm", json={"email": "ada@example.com", "code": "123456"})
        assert res.status_code == 200
        assert res.json() == {"message": "Email verified successfully"}
        assert provider.calls == [("confirm_sign_up", ("ada@example.com", "123456"))]

    def test_code_must_be_six_characters(self, client, provider):
        res = client.post(f"{AUTH}/confirm", json={"email": "ada@example.com", "code": "123"})
        assert res.status_code == 400

    def test_resend_code(self, client, provider):
        res = client.post(f"{AUTH}/resend-code", json={"email": "ada@example.com"})
        assert res.status_code == 200
        assert provider.calls == [("resend_confirmation_code", ("ada@example.com",))]


class TestSignIn:
    def test_sign_in_returns_tokens_and_sets_session_cookies(self, client, provider):
        res = client.post(f"{AUTH}/signin", json={"email": "ada@example.com", "password": "whatever"})
        assert res.status_code == 200
        body = res.json()
        assert body["userId"] == "user-123"
        assert body["expiresIn"] == 3600
        assert decode_subject(body["idToken"]) == "user-123"

        headers = set_cookie_headers(res)
        names = session_cookie_names(CLIENT_ID, "user-123")
        for key in ("idToken", "accessToken", "refreshToken", "LastAuthUser"):
            assert any(h.startswith(f"{names[key]}=") for h in headers), key
        assert all("httponly" in h.lower() for h in headers)
        assert names["idToken"] == f"CognitoIdentityServiceProvider.{CLIENT_ID}.user-123.idToken"

    def test_issued_token_authenticates_api_calls(self, client, provider):
        body = client.post(f"{AUTH}/signin", json={"email": "ada@example.com", "password": "pw"}).json()
        res = client.get("/api/tasks", headers={"Authorization": f"Bearer {body['idToken']}"})
        assert res.status_code == 200

    def test_bad_credentials_are_reported(self, client, provider):
        provider.fail_with = IdentityError("Incorrect email or password", status_code=401)
        res = client.post(f"{AUTH}/signin", json={"email": "ada@example.com", "password": "wrong"})
        assert res.status_code == 401
        assert res.json() == {"error": "Incorrect email or password"}
        assert set_cookie_headers(res) == []


class TestSignOut:
    def test_sign_out_revokes_and_clears_cookies(self, client, provider):
        names = session_cookie_names(CLIENT_ID, "user-123")
        client.cookies.set(names["idToken"], "id")
        client.cookies.set(names["accessToken"], "access")
        client.cookies.set("theme", "dark")

        res = client.post(f"{AUTH}/signout")
        assert res.status_code == 200
        assert provider.calls == [("sign_out", ("access",))]
        cleared = set_cookie_headers(res)
        assert any(h.startswith(f"{names['idToken']}=") for h in cleared)
        assert any(h.startswith(f"{names['accessToken']}=") for h in cleared)
        assert not any(h.startswith("theme=") for h in cleared)

    def test_provider_failure_still_clears_cookies(self, client, provider):
        names = session_cookie_names(CLIENT_ID, "user-123")
        client.cookies.set(names["accessToken"], "access")
        provider.fail_with = IdentityError("Identity provider unavailable")
        res = client.post(f"{AUTH}/signout")
        assert res.status_code == 200
        assert any(h.startswith(f"{names['accessToken']}=") for h in set_cookie_headers(res))

    def test_sign_out_without_session_skips_provider(self, client, provider):
        res = client.post(f"{AUTH}/signout")
        assert res.status_code == 200
        assert provider.calls == []


def client_error(code: str, operation: str = "SignUp") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestCognitoIdentityProvider:
    @pytest.fixture()
    def cognito(self):
        return MagicMock()

    @pytest.fixture()
    def idp(self, cognito):
        return CognitoIdentityProvider(client_id=CLIENT_ID, region="us-east-1", client=cognito)

    def test_sign_up_forwards_attributes(self, idp, cognito):
        cognito.sign_up.return_value = {"UserSub": "sub-1", "UserConfirmed": False}
        result = idp.sign_up("ada@example.com", STRONG_PASSWORD, "Ada")
        assert result.user_id == "sub-1"
        assert result.confirmed is False
        kwargs = cognito.sign_up.call_args.kwargs
        assert kwargs["ClientId"] == CLIENT_ID
        assert kwargs["Username"] == "ada@example.com"
        assert {"Name": "name", "Value": "Ada"} in kwargs["UserAttributes"]

    def test_sign_in_uses_password_flow(self, idp, cognito):
        cognito.initiate_auth.return_value = {
            "AuthenticationResult": {"IdToken": "i", "AccessToken": "a", "RefreshToken": "r", "ExpiresIn": 60}
        }
        tokens = idp.sign_in("ada@example.com", "pw")
        assert (tokens.id_token, tokens.access_token, tokens.refresh_token, tokens.expires_in) == ("i", "a", "r", 60)
        kwargs = cognito.initiate_auth.call_args.kwargs
        assert kwargs["AuthFlow"] == "USER_PASSWORD_AUTH"
        assert kwargs["AuthParameters"] == {"USERNAME": "ada@example.com", "PASSWORD": "pw"}

    def test_challenge_is_401(self, idp, cognito):
        cognito.initiate_auth.return_value = {"ChallengeName": "NEW_PASSWORD_REQUIRED"}
        with pytest.raises(IdentityError) as excinfo:
            idp.sign_in("ada@example.com", "pw")
        assert excinfo.value.status_code == 401

    @pytest.mark.parametrize(
        "code,status",
        [
            ("UsernameExistsException", 409),
            ("InvalidPasswordException", 400),
            ("CodeMismatchException", 400),
            ("NotAuthorizedException", 401),
            ("UserNotConfirmedException", 403),
            ("LimitExceededException", 429),
            ("InternalErrorException", 502),
        ],
    )
    def test_client_errors_are_translated(self, idp, cognito, code, status):
        cognito.confirm_sign_up.side_effect = client_error(code, "ConfirmSignUp")
        with pytest.raises(IdentityError) as excinfo:
            idp.confirm_sign_up("ada@example.com", "123456")
        assert excinfo.value.status_code == status
        assert excinfo.value.code == code

    def test_connection_errors_are_502(self, idp, cognito):
        cognito.resend_confirmation_code.side_effect = EndpointConnectionError(endpoint_url="https://cognito")
        with pytest.raises(IdentityError) as excinfo:
            idp.resend_confirmation_code("ada@example.com")
        assert excinfo.value.status_code == 502

    def test_global_sign_out_takes_only_the_access_token(self, idp, cognito):
        idp.sign_out("access")
        cognito.global_sign_out.assert_called_once_with(AccessToken="access")


def test_unconfigured_provider_is_503(client, monkeypatch):
    monkeypatch.delenv("COGNITO_CLIENT_ID")
    get_identity_provider.cache_clear()
    try:
        res = client.post(f"{AUTH}/resend-code", json={"email": "ada@example.com"})
    finally:
        get_identity_provider.cache_clear()
    assert res.status_code == 503
    assert res.json() == {"error": "Identity provider is not configured"}

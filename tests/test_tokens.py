from tasks_api.tokens import decode_subject, has_session_cookie, is_session_cookie, subject_from_cookies

from .fakes import b64_segment, session_cookie, unsigned_token


class TestSessionCookieMatching:
    def test_id_and_access_token_cookies_qualify(self):
        assert is_session_cookie("CognitoIdentityServiceProvider.abc.user.idToken")
        assert is_session_cookie("CognitoIdentityServiceProvider.abc.user.accessToken")

    def test_other_cookies_do_not_qualify(self):
        assert not is_session_cookie("CognitoIdentityServiceProvider.abc.user.refreshToken")
        assert not is_session_cookie("CognitoIdentityServiceProvider.abc.LastAuthUser")
        assert not is_session_cookie("session.idToken")
        # Prefix match is case-sensitive
        assert not is_session_cookie("cognitoidentityserviceprovider.abc.user.idToken")

    def test_has_session_cookie_accepts_pairs_and_mappings(self):
        assert has_session_cookie(session_cookie("u1"))
        assert has_session_cookie(list(session_cookie("u1").items()))
        assert not has_session_cookie({"theme": "dark"})
        assert not has_session_cookie([])


class TestDecodeSubject:
    def test_reads_sub_from_middle_segment(self):
        assert decode_subject(unsigned_token({"sub": "abc-123", "email": "a@b.c"})) == "abc-123"

    def test_accepts_standard_alphabet_and_padding(self):
        import base64
        import json

        payload = base64.b64encode(json.dumps({"sub": "??>>"}).encode()).decode()
        assert decode_subject(f"x.{payload}.y") == "??>>"

    def test_wrong_segment_count_is_none(self):
        assert decode_subject("only.two") is None
        assert decode_subject("a.b.c.d") is None
        assert decode_subject("") is None

    def test_non_base64_middle_segment_is_none(self):
        assert decode_subject("header.@@not base64@@.sig") is None

    def test_non_json_payload_is_none(self):
        assert decode_subject(f"h.{b64_segment(b'not json at all')}.s") is None

    def test_invalid_utf8_is_none(self):
        assert decode_subject(f"h.{b64_segment(bytes([0xff, 0xfe, 0xfd]))}.s") is None

    def test_payload_without_string_sub_is_none(self):
        assert decode_subject(unsigned_token({"email": "a@b.c"})) is None
        assert decode_subject(unsigned_token({"sub": 42})) is None
        assert decode_subject(unsigned_token({"sub": ""})) is None
        assert decode_subject(f"h.{b64_segment([1, 2, 3])}.s") is None

    def test_deeply_nested_payload_is_none(self):
        assert decode_subject(f"h.{b64_segment(b'[' * 100000)}.s") is None


class TestSubjectFromCookies:
    def test_prefers_id_token_cookie(self):
        cookies = {}
        cookies.update(session_cookie("from-access", "accessToken"))
        cookies.update(session_cookie("from-id", "idToken"))
        assert subject_from_cookies(cookies) == "from-id"

    def test_falls_back_to_access_token_cookie(self):
        assert subject_from_cookies(session_cookie("from-access", "accessToken")) == "from-access"

    def test_malformed_cookie_yields_none(self):
        name = "CognitoIdentityServiceProvider.c.u.idToken"
        assert subject_from_cookies({name: "garbage"}) is None
        assert subject_from_cookies({name: ""}) is None

    def test_no_session_cookie_yields_none(self):
        assert subject_from_cookies({"other": unsigned_token({"sub": "x"})}) is None

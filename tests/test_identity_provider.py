"""
Identity provider: principals, signed tokens with claim snapshots, refresh,
revocation and the password-reset round trip; plus the /auth endpoints.
"""
import time
from urllib.parse import parse_qs, urlparse

import jwt
import pytest

from pos_api.constants.service_code import COLLECTIONS
from pos_api.services.identity_provider import IdentityProvider
from pos_api.store import InMemoryDocumentStore
from pos_api.utils.errors import AuthenticationError, UpstreamError

from .conftest import PASSWORD, auth_headers, login, register

SECRET = "unit-test-secret-with-enough-length"


@pytest.fixture
def sent():
    return []


@pytest.fixture
def provider(sent):
    return IdentityProvider(
        InMemoryDocumentStore(),
        SECRET,
        reset_url="https://pos.test/reset",
        mailer=lambda email, link: sent.append((email, link)),
        bcrypt_rounds=4,
    )


def oob_code(link):
    return parse_qs(urlparse(link).query)["oobCode"][0]


class TestPrincipals:

    def test_create_normalises_email_and_hides_hash(self, provider):
        principal = provider.create_principal("  Owner@Cafe.Test ", "secret1", "Owner")
        assert principal["email"] == "owner@cafe.test"
        assert principal["custom_claims"] == {}
        assert "password_hash" not in principal

    @pytest.mark.parametrize("email, password, code", [
        ("not-an-email", "secret1", "INVALID_EMAIL"),
        ("a@cafe.test", "123", "WEAK_PASSWORD"),
    ])
    def test_invalid_input(self, provider, email, password, code):
        with pytest.raises(UpstreamError) as exc:
            provider.create_principal(email, password)
        assert exc.value.upstream_message == code
        assert exc.value.status_key == "BAD_REQUEST"

    def test_duplicate_email(self, provider):
        provider.create_principal("a@cafe.test", "secret1")
        with pytest.raises(UpstreamError) as exc:
            provider.create_principal("A@cafe.test", "secret1")
        assert exc.value.status_key == "CONFLICT"

    def test_phone_number_is_validated_and_normalised(self, provider):
        uid = provider.create_principal("a@cafe.test", "secret1")["uid"]

        with pytest.raises(UpstreamError):
            provider.update_principal(uid, phone_number="0244000000")
        assert provider.update_principal(uid, phone_number="+44 20 7183 8750")["phone_number"] == "+442071838750"

    def test_unknown_principal(self, provider):
        with pytest.raises(UpstreamError) as exc:
            provider.set_claims("missing", {"role": "owner"})
        assert exc.value.status_key == "NOT_FOUND"


class TestTokens:

    def test_id_token_carries_claims_at_issue_time(self, provider):
        uid = provider.create_principal("a@cafe.test", "secret1")["uid"]
        provider.set_claims(uid, {"role": "owner", "business_id": "biz-1"})

        tokens = provider.sign_in_with_password("a@cafe.test", "secret1")
        provider.set_claims(uid, {"role": "user"})

        decoded = provider.verify_bearer_token(tokens["id_token"])
        assert decoded == {"uid": uid, "email": "a@cafe.test", "claims": {"role": "owner", "business_id": "biz-1"}}

        fresh = provider.refresh_id_token(tokens["refresh_token"])
        assert provider.verify_bearer_token(fresh["id_token"])["claims"] == {"role": "user"}

    def test_wrong_password(self, provider):
        provider.create_principal("a@cafe.test", "secret1")
        with pytest.raises(UpstreamError) as exc:
            provider.sign_in_with_password("a@cafe.test", "wrong-password")
        assert exc.value.status_key == "UNAUTHORIZED"

    def test_refresh_token_is_not_a_bearer_token(self, provider):
        provider.create_principal("a@cafe.test", "secret1")
        tokens = provider.sign_in_with_password("a@cafe.test", "secret1")

        with pytest.raises(AuthenticationError):
            provider.verify_bearer_token(tokens["refresh_token"])
        with pytest.raises(AuthenticationError):
            provider.refresh_id_token(tokens["id_token"])

    def test_expired_and_forged_tokens(self, provider):
        uid = provider.create_principal("a@cafe.test", "secret1")["uid"]
        now = int(time.time())
        expired = jwt.encode({"sub": uid, "type": "id", "iat": now - 100, "exp": now - 10}, SECRET, algorithm="HS256")
        forged = jwt.encode({"sub": uid, "type": "id", "iat": now, "exp": now + 60}, "other-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc:
            provider.verify_bearer_token(expired)
        assert exc.value.message == "Token expired"
        with pytest.raises(AuthenticationError):
            provider.verify_bearer_token(forged)

    def test_revoked_tokens(self, provider):
        uid = provider.create_principal("a@cafe.test", "secret1")["uid"]
        tokens = provider.sign_in_with_password("a@cafe.test", "secret1")

        provider.store.update(COLLECTIONS["PRINCIPALS"], uid, {"tokens_valid_after": int(time.time()) + 5})

        with pytest.raises(AuthenticationError) as exc:
            provider.verify_bearer_token(tokens["id_token"])
        assert exc.value.message == "Token has been revoked"
        assert provider.verify_bearer_token(tokens["id_token"], check_revoked=False)["uid"] == uid

    def test_deleted_principal_token_is_invalid(self, provider):
        uid = provider.create_principal("a@cafe.test", "secret1")["uid"]
        tokens = provider.sign_in_with_password("a@cafe.test", "secret1")
        provider.delete_principal(uid)

        with pytest.raises(AuthenticationError):
            provider.verify_bearer_token(tokens["id_token"])


class TestPasswordReset:

    def test_reset_round_trip(self, provider, sent):
        provider.create_principal("a@cafe.test", "secret1")

        assert provider.send_password_reset("a@cafe.test") is True
        email, link = sent[0]
        assert email == "a@cafe.test"
        assert link.startswith("https://pos.test/reset?oobCode=")

        provider.confirm_password_reset(oob_code(link), "new-secret")

        assert provider.sign_in_with_password("a@cafe.test", "new-secret")["email"] == "a@cafe.test"
        with pytest.raises(UpstreamError):
            provider.sign_in_with_password("a@cafe.test", "secret1")

    def test_code_is_single_use(self, provider, sent):
        provider.create_principal("a@cafe.test", "secret1")
        provider.send_password_reset("a@cafe.test")
        code = oob_code(sent[0][1])
        provider.confirm_password_reset(code, "new-secret")

        with pytest.raises(UpstreamError) as exc:
            provider.confirm_password_reset(code, "other-secret")
        assert exc.value.upstream_message == "INVALID_OOB_CODE"

    def test_expired_code(self, provider, sent):
        provider.reset_token_ttl = -1
        provider.create_principal("a@cafe.test", "secret1")
        provider.send_password_reset("a@cafe.test")

        with pytest.raises(UpstreamError):
            provider.confirm_password_reset(oob_code(sent[0][1]), "new-secret")

    def test_unknown_email_sends_nothing(self, provider, sent):
        assert provider.send_password_reset("nobody@cafe.test") is False
        assert sent == []

    def test_mailer_failure_is_upstream_error(self, provider):
        def broken(email, link):
            raise RuntimeError("smtp down")

        provider.mailer = broken
        provider.create_principal("a@cafe.test", "secret1")
        with pytest.raises(UpstreamError):
            provider.send_password_reset("a@cafe.test")


class TestAuthEndpoints:

    def test_register_creates_plain_user(self, client):
        profile = register(client, "new@cafe.test", display_name="New")
        assert profile["role"] == "user"
        assert profile["business_id"] is None

        duplicate = client.post("/api/auth/register", json={"email": "new@cafe.test", "password": PASSWORD})
        assert duplicate.status_code == 409

    def test_register_validation(self, client):
        response = client.post("/api/auth/register", json={"email": "bad", "password": "123"})
        assert response.status_code == 400
        assert set(response.get_json()["errors"]["json"]) == {"email", "password"}

    def test_login_failure(self, client):
        register(client, "a@cafe.test")
        response = client.post("/api/auth/login", json={"email": "a@cafe.test", "password": "wrong-one"})
        assert response.status_code == 401
        assert response.get_json()["success"] is False

    def test_me_update_and_delete(self, client):
        register(client, "me@cafe.test")
        headers = auth_headers(login(client, "me@cafe.test")["id_token"])

        assert client.get("/api/auth/me", headers=headers).get_json()["data"]["email"] == "me@cafe.test"

        updated = client.put("/api/auth/update", json={"display_name": "Barista"}, headers=headers)
        assert updated.status_code == 200
        assert client.get("/api/auth/me", headers=headers).get_json()["data"]["display_name"] == "Barista"

        bad_phone = client.put("/api/auth/update", json={"phone_number": "12345"}, headers=headers)
        assert bad_phone.status_code == 400

        assert client.delete("/api/auth/delete", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_forgot_and_reset_password(self, client, mailer):
        register(client, "forgot@cafe.test")

        response = client.post("/api/auth/forgot-password", json={"email": "forgot@cafe.test"})
        assert response.status_code == 200
        link = mailer.sent[0]["link"]

        response = client.post(
            "/api/auth/reset-password", json={"oob_code": oob_code(link), "new_password": "brand-new-pass"}
        )
        assert response.status_code == 200
        login(client, "forgot@cafe.test", "brand-new-pass")

    def test_forgot_password_for_unknown_email(self, client, mailer):
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@cafe.test"})
        assert response.status_code == 200
        assert mailer.sent == []

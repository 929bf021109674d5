"""Integration tests for the /api/auth password-reset and email-verification flows."""

from argon2 import PasswordHasher

from repositories.user_repository import COLLECTION_NAME as USERS


def _code(email_provider) -> str:
    return email_provider.send_code.call_args.args[1]


class TestForgotPassword:
    def test_unknown_email_404(self, client, email_provider):
        resp = client.post("/api/auth/forgot-password", json={"email": "ghost@x.com"})
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "not_found"
        email_provider.send_code.assert_not_awaited()

    def test_sends_code(self, client, seed_user, email_provider):
        seed_user()
        resp = client.post("/api/auth/forgot-password", json={"email": "Alice@x.com"})
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "Password reset OTP sent to your email",
            "expires_in": 600,
        }
        args = email_provider.send_code.call_args.args
        assert args[0] == "alice@x.com"
        assert args[2] == "Alice"


class TestResetPassword:
    def test_full_flow(self, client, seed_user, email_provider, mock_db):
        user = seed_user()
        client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
        resp = client.post(
            "/api/auth/reset-password",
            json={
                "email": "alice@x.com",
                "code": _code(email_provider),
                "password": "brand-new-pw",
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Password reset successful"}
        stored = mock_db[USERS].find_one({"_id": user["_id"]})
        assert PasswordHasher().verify(stored["password_hash"], "brand-new-pw")
        email_provider.send_confirmation.assert_awaited_once()

    def test_wrong_code_rejected(self, client, seed_user, email_provider, mock_db):
        user = seed_user()
        client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
        code = _code(email_provider)
        wrong = "100000" if code != "100000" else "100001"
        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@x.com", "code": wrong, "password": "brand-new-pw"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid OTP"
        stored = mock_db[USERS].find_one({"_id": user["_id"]})
        assert stored["password_hash"] == user["password_hash"]

    def test_short_password_rejected(self, client, seed_user):
        seed_user()
        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@x.com", "code": "123456", "password": "123"},
        )
        assert resp.status_code == 400
        assert resp.json()["field"] == "password"


class TestEmailVerification:
    def test_full_flow(self, client, seed_user, email_provider, mock_db):
        user = seed_user()
        resp = client.post(
            "/api/auth/send-verification", json={"email": "alice@x.com"}
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Verification code sent to your email"

        resp = client.post(
            "/api/auth/verify-email",
            json={"email": "alice@x.com", "code": _code(email_provider)},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Email verified successfully"}
        assert mock_db[USERS].find_one({"_id": user["_id"]})["email_verified"] is True

    def test_already_verified_409(self, client, seed_user):
        seed_user(verified=True)
        resp = client.post(
            "/api/auth/send-verification", json={"email": "alice@x.com"}
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "Email is already verified"

    def test_unknown_email_404(self, client):
        resp = client.post(
            "/api/auth/verify-email", json={"email": "ghost@x.com", "code": "123456"}
        )
        assert resp.status_code == 404


class TestAccountRateLimiting:
    def test_forgot_password_throttled(self, make_client, seed_user):
        seed_user()
        client = make_client(env="production")
        for _ in range(3):
            resp = client.post(
                "/api/auth/forgot-password", json={"email": "alice@x.com"}
            )
            assert resp.status_code == 200
        resp = client.post("/api/auth/forgot-password", json={"email": "alice@x.com"})
        assert resp.status_code == 429

"""Integration tests for POST /api/otp/send and POST /api/otp/verify."""

import pytest

from repositories.otp_repository import COLLECTION_NAME as OTPS


def _code(email_provider) -> str:
    return email_provider.send_code.call_args.args[1]


def _wrong(code: str) -> str:
    return "100000" if code != "100000" else "100001"


def _send(client, email="a@x.com", purpose="email_verification"):
    return client.post("/api/otp/send", json={"email": email, "purpose": purpose})


def _verify(client, code, email="a@x.com", purpose="email_verification"):
    return client.post(
        "/api/otp/verify", json={"email": email, "code": code, "purpose": purpose}
    )


class TestSend:
    def test_success_shape(self, client, email_provider):
        resp = _send(client)
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "OTP sent successfully to your email",
            "expires_in": 600,
        }
        email_provider.send_code.assert_awaited_once()

    def test_stores_hash_only(self, client, email_provider, mock_db):
        _send(client, email="A@X.com")
        raw = mock_db[OTPS].find_one({"email": "a@x.com"})
        assert raw is not None
        assert _code(email_provider) not in raw.values()

    def test_dispatch_failure_is_502(self, client, email_provider, mock_db):
        email_provider.send_code.return_value = False
        resp = _send(client)
        assert resp.status_code == 502
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Failed to send OTP email"
        assert mock_db[OTPS].count_documents({"email": "a@x.com"}) == 1

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"email": "not-an-email"}, "email"),
            ({}, "email"),
            ({"email": "a@x.com", "purpose": "login"}, "purpose"),
        ],
        ids=["bad_email", "missing_email", "bad_purpose"],
    )
    def test_invalid_input_is_400(self, client, payload, field):
        resp = client.post("/api/otp/send", json=payload)
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert body["field"] == field


class TestVerify:
    def test_correct_code(self, client, email_provider):
        _send(client)
        resp = _verify(client, _code(email_provider))
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "OTP verified successfully",
            "purpose": "email_verification",
        }

    def test_not_found(self, client):
        resp = _verify(client, "123456")
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "OTP not found"
        assert body["reason"] == "not_found"

    def test_wrong_code(self, client, email_provider):
        _send(client)
        resp = _verify(client, _wrong(_code(email_provider)))
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid OTP"
        assert body["code"] == "otp_invalid"
        assert body["reason"] == "invalid_code"

    def test_single_use(self, client, email_provider):
        _send(client)
        code = _code(email_provider)
        assert _verify(client, code).status_code == 200
        resp = _verify(client, code)
        assert resp.status_code == 400
        assert resp.json()["message"] == "OTP has already been used"

    def test_lockout_after_three_wrong_codes(self, client, email_provider):
        _send(client)
        code = _code(email_provider)
        reasons = [_verify(client, _wrong(code)).json()["reason"] for _ in range(3)]
        assert reasons == ["invalid_code", "invalid_code", "max_attempts_exceeded"]
        resp = _verify(client, code)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Maximum attempts exceeded"

    def test_purposes_are_separate(self, client, email_provider):
        _send(client, purpose="password_reset")
        resp = _verify(client, _code(email_provider))
        assert resp.json()["reason"] == "not_found"

    def test_password_reset_code_left_for_reset_endpoint(
        self, client, email_provider, mock_db
    ):
        _send(client, purpose="password_reset")
        resp = _verify(client, _code(email_provider), purpose="password_reset")
        assert resp.status_code == 400
        assert resp.json()["field"] == "purpose"
        raw = mock_db[OTPS].find_one({"email": "a@x.com"})
        assert raw["consumed"] is False
        assert raw["attempt_count"] == 0

    def test_malformed_code_is_validation_error(self, client):
        resp = _verify(client, "12ab56")
        assert resp.status_code == 400
        assert resp.json()["field"] == "code"


class TestRateLimiting:
    def test_fourth_send_throttled_in_production(self, make_client, email_provider):
        client = make_client(env="production")
        for _ in range(3):
            assert _send(client).status_code == 200
        resp = _send(client)
        assert resp.status_code == 429
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == (
            "Too many OTP requests. Please wait 15 minutes before trying again."
        )
        assert int(resp.headers["Retry-After"]) >= 1
        # Throttled before the lifecycle service is reached
        assert email_provider.send_code.await_count == 3

    def test_throttle_is_per_email(self, make_client):
        client = make_client(env="production")
        for _ in range(3):
            _send(client, email="a@x.com")
        assert _send(client, email="b@x.com").status_code == 200

    def test_sixth_verify_throttled(self, make_client, email_provider):
        client = make_client(env="production")
        _send(client)
        code = _code(email_provider)
        for _ in range(5):
            _verify(client, _wrong(code))
        resp = _verify(client, code)
        assert resp.status_code == 429
        assert "verification attempts" in resp.json()["message"]

    def test_bypassed_outside_production(self, client):
        for _ in range(5):
            assert _send(client).status_code == 200

    def test_forced_on_in_development(self, make_client):
        client = make_client(env="development", enabled=True)
        for _ in range(3):
            _send(client)
        assert _send(client).status_code == 429

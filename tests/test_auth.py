from datetime import timedelta

import pytest

from model.password_reset import PasswordResetToken
from model.user import InviteCode
from routes import password_reset
from src.utils import hash_token, utcnow


class RecordingEmailService:
    def __init__(self):
        self.reset_tokens = []
        self.changed = []

    def send_password_reset_email(self, to_email, reset_token, user_name=None):
        self.reset_tokens.append((to_email, reset_token))
        return True

    def send_password_changed_notification(self, to_email, user_name=None):
        self.changed.append(to_email)
        return True


@pytest.fixture
def outbox(monkeypatch):
    service = RecordingEmailService()
    monkeypatch.setattr(password_reset, "get_email_service", lambda: service)
    return service


@pytest.fixture
def invite(db):
    code = InviteCode(code="COINS2026", usage_limit=2, usage_count=0, is_active=True)
    db.add(code)
    db.commit()
    return code


# ------------------------------------------------------------------
# Sign up / sign in / sign out
# ------------------------------------------------------------------
def test_sign_up_returns_token_and_profile(client):
    res = client.post(
        "/api/auth/sign-up/email",
        json={"email": "New@Example.com", "password": "hunter2hunter2", "name": "Newbie"},
    )
    assert res.status_code == 201
    data = res.json()
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["displayName"] == "Newbie"
    assert data["user"]["username"] is None

    client.cookies.clear()
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == data["user"]["id"]


def test_sign_up_sets_session_cookie(client):
    client.post("/api/auth/sign-up/email", json={"email": "cookie@example.com", "password": "hunter2hunter2"})
    assert client.get("/api/auth/me").status_code == 200


def test_sign_up_duplicate_email(client, make_user):
    make_user(email="taken@example.com")
    res = client.post("/api/auth/sign-up/email", json={"email": "taken@example.com", "password": "hunter2hunter2"})
    assert res.status_code == 409
    assert res.json()["message"] == "Email already in use"


def test_sign_up_validates_password_length(client):
    res = client.post("/api/auth/sign-up/email", json={"email": "short@example.com", "password": "short"})
    assert res.status_code == 400
    assert res.json()["code"] == "validation_error"


def test_sign_in(client, make_user):
    make_user(email="collector@example.com", password="correct-horse")

    bad = client.post("/api/auth/sign-in/email", json={"email": "collector@example.com", "password": "wrong-horse"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid email or password"

    ok = client.post("/api/auth/sign-in/email", json={"email": "COLLECTOR@example.com", "password": "correct-horse"})
    assert ok.status_code == 200
    assert ok.json()["token"]


def test_sign_out_revokes_session(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    assert client.post("/api/auth/sign-out", headers=headers).json() == {"success": True}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_garbage_token_is_unauthorized(client):
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


# ------------------------------------------------------------------
# Invites and onboarding
# ------------------------------------------------------------------
def test_validate_invite(client, invite):
    res = client.post("/api/auth/validate-invite", json={"code": " coins2026 "})
    assert res.status_code == 200
    assert res.json()["valid"] is True
    assert res.json()["code"] == "COINS2026"

    res = client.post("/api/auth/validate-invite", json={"code": "NOPE"})
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid invite code"


def test_invite_codes_validate_returns_stored_code(client, invite):
    res = client.post("/api/invite-codes/validate", json={"code": "coins2026"})
    assert res.json() == {"valid": True, "code": "COINS2026", "message": None}


def test_invite_codes_validate_reports_reason(client, db):
    db.add(InviteCode(code="OLD", expires_at=utcnow() - timedelta(days=1)))
    db.add(InviteCode(code="FULL", usage_limit=1, usage_count=1))
    db.commit()

    assert client.post("/api/invite-codes/validate", json={"code": "old"}).json() == {
        "valid": False, "code": None, "message": "Invite code has expired",
    }
    assert client.post("/api/invite-codes/validate", json={"code": "FULL"}).json()["message"] == "Invite code usage limit reached"


def test_use_invite_code(client, make_user, auth_headers, invite, db):
    user = make_user()
    res = client.post("/api/invite-codes/use", json={"code": "COINS2026"}, headers=auth_headers(user))
    assert res.json() == {"success": True}
    db.refresh(invite)
    assert invite.usage_count == 1


def test_complete_profile(client, make_user, auth_headers, invite, db):
    make_user("taken_name")
    user = make_user(username=None, email="fresh@example.com")
    headers = auth_headers(user)

    res = client.post(
        "/api/auth/complete-profile",
        json={"username": "taken_name", "displayName": "Fresh"},
        headers=headers,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Username is already taken"

    res = client.post(
        "/api/auth/complete-profile",
        json={"username": "fresh_collector", "displayName": "Fresh", "inviteCode": "coins2026"},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["username"] == "fresh_collector"
    assert res.json()["inviteCodeUsed"] == "COINS2026"
    db.refresh(invite)
    assert invite.usage_count == 1


def test_complete_profile_rejects_bad_username(client, make_user, auth_headers):
    user = make_user(username=None)
    res = client.post(
        "/api/auth/complete-profile",
        json={"username": "no spaces!", "displayName": "X"},
        headers=auth_headers(user),
    )
    assert res.status_code == 400


# ------------------------------------------------------------------
# Password reset
# ------------------------------------------------------------------
def test_forgot_password_same_answer_for_unknown_email(client, outbox):
    res = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert res.status_code == 200
    assert "reset link" in res.json()["message"]
    assert outbox.reset_tokens == []


def test_password_reset_flow(client, make_user, auth_headers, outbox, db):
    user = make_user(email="reset@example.com", password="old-password")
    old_headers = auth_headers(user)

    client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
    (to_email, token), = outbox.reset_tokens
    assert to_email == "reset@example.com"

    row = db.query(PasswordResetToken).filter_by(user_id=user.id).one()
    assert row.token_hash == hash_token(token)
    assert row.token_hash != token

    assert client.post("/api/auth/verify-reset-token", json={"token": token}).json()["valid"] is True

    res = client.post("/api/auth/reset-password", json={"token": token, "newPassword": "new-password"})
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert outbox.changed == ["reset@example.com"]

    # token is single use and old sessions are gone
    assert client.post("/api/auth/reset-password", json={"token": token, "newPassword": "another-one"}).status_code == 400
    assert client.get("/api/auth/me", headers=old_headers).status_code == 401

    signin = client.post("/api/auth/sign-in/email", json={"email": "reset@example.com", "password": "new-password"})
    assert signin.status_code == 200


def test_expired_reset_token_is_invalid(client, make_user, db):
    user = make_user()
    token = "expired-token-value-123456"
    db.add(PasswordResetToken(user_id=user.id, token_hash=hash_token(token), expires_at=utcnow() - timedelta(minutes=1)))
    db.commit()

    res = client.post("/api/auth/verify-reset-token", json={"token": token})
    assert res.json() == {"valid": False, "message": "Invalid or expired reset token"}


def test_console_email_does_not_log_reset_link(caplog, monkeypatch):
    from src.email_service import EmailService

    monkeypatch.delenv("SMTP_USER", raising=False)
    monkeypatch.delenv("SMTP_PASSWORD", raising=False)
    service = EmailService()
    assert service.console_mode

    with caplog.at_level("INFO", logger="src.email_service"):
        assert service.send_password_reset_email(
            to_email="reader@example.com", reset_token="s3cret-reset-token", user_name="Reader"
        )

    assert "reader@example.com" in caplog.text
    assert "s3cret-reset-token" not in caplog.text
    assert "mode=reset" not in caplog.text

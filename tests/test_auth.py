"""Account flows: registration, login approval gate, tokens, decorators.

Design Decisions:
    - Firebase Auth REST calls are mocked at requests.post
    - firebase_admin.auth create/delete are monkeypatched on the auth module
"""

import jwt
import pytest
from firebase_admin import auth as firebase_auth

from meetrecorder import auth
from meetrecorder.config import JWT_SECRET, JWT_ALGORITHM
from meetrecorder.errors import (
    ServiceError, ValidationError, AuthenticationError, ApprovalRequiredError,
)

from tests.conftest import make_user


class _Response:
    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


class _UserRecord:
    def __init__(self, uid):
        self.uid = uid


@pytest.fixture
def identity(monkeypatch):
    """Queue of canned Identity Toolkit responses; records calls."""
    calls = []
    responses = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        return _Response(responses.pop(0))

    monkeypatch.setattr(auth.requests, "post", fake_post)
    return {"calls": calls, "responses": responses}


@pytest.fixture
def admin_sdk(monkeypatch):
    created, deleted = [], []

    def create_user(email, password, display_name=None):
        created.append(email)
        return _UserRecord(f"uid-{len(created)}")

    monkeypatch.setattr(auth.firebase_auth, "create_user", create_user)
    monkeypatch.setattr(auth.firebase_auth, "delete_user", deleted.append)
    return {"created": created, "deleted": deleted}


# ==============================================================================
# Tokens
# ==============================================================================


def test_jwt_round_trip():
    token = auth.create_jwt("u1", "teacher")
    payload = auth.verify_jwt_token(token)
    assert payload["sub"] == "u1"
    assert payload["role"] == "teacher"


def test_verify_rejects_tampered_and_foreign_tokens():
    assert auth.verify_jwt_token("not-a-token") is None
    foreign = jwt.encode({"sub": "u1"}, "other-secret", algorithm=JWT_ALGORITHM)
    assert auth.verify_jwt_token(foreign) is None


def test_verify_rejects_expired_token():
    expired = jwt.encode({"sub": "u1", "exp": 1}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    assert auth.verify_jwt_token(expired) is None


# ==============================================================================
# Registration
# ==============================================================================


def test_register_student_requires_approval(db, admin_sdk):
    result = auth.register("new@example.com", "secret123", {"firstName": "New", "lastName": "User"})

    assert result["requiresApproval"] is True
    stored = db.raw("users", "uid-1")
    assert stored["displayName"] == "New User"
    assert stored["isActive"] is False


def test_register_admin_is_active(db, admin_sdk):
    result = auth.register("boss@example.com", "secret123", {"role": "admin"})
    assert result == {"success": True, "userId": "uid-1", "requiresApproval": False}


def test_register_duplicate_email(db, monkeypatch):
    def create_user(**kwargs):
        raise firebase_auth.EmailAlreadyExistsError("exists", None, None)

    monkeypatch.setattr(auth.firebase_auth, "create_user", create_user)

    with pytest.raises(ValidationError) as exc_info:
        auth.register("dup@example.com", "secret123", {})
    assert exc_info.value.message == auth.REGISTER_ERROR_MESSAGES["EMAIL_EXISTS"]


def test_register_cleans_up_auth_account_on_profile_failure(db, admin_sdk):
    with pytest.raises(ValidationError):
        auth.register("odd@example.com", "secret123", {"role": "owner"})

    assert admin_sdk["deleted"] == ["uid-1"]
    assert db.raw("users", "uid-1") is None


def test_register_requires_credentials(db):
    with pytest.raises(ValidationError):
        auth.register("", "", {})


# ==============================================================================
# Login
# ==============================================================================


def test_login_approved_user(db, identity):
    make_user(db, "u1", role="teacher")
    identity["responses"].append({"localId": "u1", "idToken": "firebase-id-token"})

    result = auth.login("u1@example.com", "pw")

    assert result["role"] == "teacher"
    assert auth.verify_jwt_token(result["token"])["sub"] == "u1"
    assert identity["calls"][0]["url"].endswith("accounts:signInWithPassword?key=test-web-api-key")
    assert identity["calls"][0]["json"]["returnSecureToken"] is True
    assert auth.profile_mirror.is_watching("u1")

    token_exp = auth.verify_jwt_token(result["token"])["exp"]
    assert abs(auth.profile_mirror.expires_at("u1").timestamp() - token_exp) < 5


def test_login_pending_user_is_blocked(db, identity):
    make_user(db, "u1", active=False)
    identity["responses"].append({"localId": "u1"})

    with pytest.raises(ApprovalRequiredError) as exc_info:
        auth.login("u1@example.com", "pw")
    assert exc_info.value.to_response()["requiresApproval"] is True
    assert db.raw("users", "u1").get("lastLogin") is None


def test_login_missing_profile(db, identity):
    identity["responses"].append({"localId": "ghost"})
    with pytest.raises(AuthenticationError) as exc_info:
        auth.login("ghost@example.com", "pw")
    assert exc_info.value.message == "User profile not found. Please contact support."


@pytest.mark.parametrize("code, message", [
    ("INVALID_LOGIN_CREDENTIALS", "Invalid email or password."),
    ("TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled", "Too many failed attempts. Please try again later."),
    ("SOMETHING_NEW", "Login failed. Please try again."),
])
def test_login_error_codes(db, identity, code, message):
    identity["responses"].append({"error": {"code": 400, "message": code}})
    with pytest.raises(AuthenticationError) as exc_info:
        auth.login("x@example.com", "pw")
    assert exc_info.value.message == message


def test_identity_toolkit_unavailable(db, monkeypatch):
    def broken_post(*args, **kwargs):
        raise auth.requests.ConnectionError("down")

    monkeypatch.setattr(auth.requests, "post", broken_post)
    with pytest.raises(ServiceError) as exc_info:
        auth.login("x@example.com", "pw")
    assert exc_info.value.status_code == 503


def test_reset_password(db, identity):
    identity["responses"].append({"email": "x@example.com"})
    assert auth.reset_password("x@example.com") == {"success": True}
    assert identity["calls"][0]["json"]["requestType"] == "PASSWORD_RESET"

    identity["responses"].append({"error": {"message": "EMAIL_NOT_FOUND"}})
    with pytest.raises(ValidationError):
        auth.reset_password("missing@example.com")


def test_logout_unwatches_profile(db, identity):
    make_user(db, "u1")
    identity["responses"].append({"localId": "u1"})
    auth.login("u1@example.com", "pw")

    auth.logout("u1")
    assert auth.profile_mirror.is_watching("u1") is False

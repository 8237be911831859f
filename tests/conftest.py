"""Shared fixtures: in-memory Firestore, Flask app and client, seeded users."""

import os
from datetime import datetime, timezone

import pytest

# Ensure tests never pick up real credentials
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("FIREBASE_WEB_API_KEY", "test-web-api-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from meetrecorder import database
from meetrecorder.auth import create_jwt
from meetrecorder.auth_state import profile_mirror

from tests.fakes import FakeFirestore


@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory Firestore wired into meetrecorder.database."""
    fake = FakeFirestore()
    monkeypatch.setattr(database, "_db", fake)
    yield fake
    profile_mirror.stop()


@pytest.fixture
def app(db):
    from meetrecorder.app import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(db, uid, role="student", active=True, **extra):
    """Seed a users/{uid} profile the way create_user_profile shapes it."""
    profile = {
        "uid": uid,
        "email": f"{uid}@example.com",
        "displayName": uid.title(),
        "role": role,
        "isActive": active,
        "approvalStatus": "approved" if active else "pending",
        "subscription": {"plan": "free", "status": "active" if active else "pending_approval"},
        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    profile.update(extra)
    db.seed("users", uid, profile)
    return profile


def auth_headers(uid, role="student"):
    return {"Authorization": f"Bearer {create_jwt(uid, role)}"}

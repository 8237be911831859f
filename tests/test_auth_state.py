"""Auth-state predicates and the real-time profile mirror.

Invariants:
    - approved ⇔ isActive is True or role == 'admin'
    - A previously approved user who loses approval is revoked
    - Deleting the profile revokes the uid
    - lastLogin is refreshed when missing or older than five minutes
"""

from datetime import datetime, timedelta, timezone

from meetrecorder.auth_state import (
    ProfileMirror, build_auth_state, can_access, has_any_role, has_role,
    is_approved, is_public_route, needs_last_login_refresh,
)

from tests.conftest import make_user


# ==============================================================================
# Predicates
# ==============================================================================


def test_is_approved():
    assert is_approved({"isActive": True, "role": "student"}) is True
    assert is_approved({"isActive": False, "role": "admin"}) is True
    assert is_approved({"isActive": False, "role": "teacher"}) is False
    assert is_approved({"isActive": "yes", "role": "student"}) is False
    assert is_approved(None) is False


def test_build_auth_state_without_profile():
    state = build_auth_state("u1", None)
    assert state["isAuthenticated"] is False
    assert state["isApproved"] is False
    assert state["authChecked"] is True


def test_can_access_rules():
    teacher = build_auth_state("t1", {"role": "teacher", "isActive": True})
    pending = build_auth_state("s1", {"role": "student", "isActive": False})

    assert can_access(teacher) is True
    assert can_access(teacher, "teacher") is True
    assert can_access(teacher, "admin") is False
    assert can_access(pending) is False
    assert has_role(teacher, "teacher") is True
    assert has_any_role(teacher, ["admin", "student"]) is False


def test_is_public_route():
    assert is_public_route("/login") is True
    assert is_public_route("/static/app.js") is True
    assert is_public_route("/dashboard") is False


def test_needs_last_login_refresh():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert needs_last_login_refresh({}, now) is True
    assert needs_last_login_refresh({"lastLogin": now - timedelta(minutes=4)}, now) is False
    assert needs_last_login_refresh({"lastLogin": now - timedelta(minutes=6)}, now) is True


# ==============================================================================
# ProfileMirror
# ==============================================================================


def test_mirror_tracks_profile_and_refreshes_last_login(db):
    make_user(db, "u1")
    mirror = ProfileMirror()

    mirror.watch("u1")

    state = mirror.get("u1")
    assert state["isApproved"] is True
    assert state["role"] == "student"
    assert isinstance(db.raw("users", "u1")["lastLogin"], datetime)
    mirror.stop()


def test_mirror_revokes_when_approval_is_withdrawn(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    mirror = ProfileMirror()
    mirror.watch("u1")

    db.collection("users").document("u1").update({"isActive": False, "approvalStatus": "deactivated"})

    assert mirror.is_revoked("u1") is True
    assert mirror.get("u1")["isApproved"] is False

    db.collection("users").document("u1").update({"isActive": True})
    assert mirror.is_revoked("u1") is False
    mirror.stop()


def test_mirror_revokes_on_profile_deletion(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    mirror = ProfileMirror()
    mirror.watch("u1")

    db.collection("users").document("u1").delete()

    assert mirror.is_revoked("u1") is True
    assert mirror.get("u1")["isAuthenticated"] is False
    mirror.stop()


def test_mirror_pending_user_is_not_revoked(db):
    """Never-approved users are simply unapproved, not revoked."""
    make_user(db, "u1", active=False)
    mirror = ProfileMirror()
    mirror.watch("u1")

    assert mirror.is_revoked("u1") is False
    assert mirror.get("u1")["isApproved"] is False
    assert db.raw("users", "u1").get("lastLogin") is None
    mirror.stop()


def test_unwatch_stops_updates(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    mirror = ProfileMirror()
    mirror.watch("u1")
    mirror.unwatch("u1")

    db.collection("users").document("u1").update({"isActive": False})

    assert mirror.is_watching("u1") is False
    assert mirror.get("u1") is None
    assert mirror.is_revoked("u1") is False


def test_duplicate_watch_subscribes_once(db):
    """구독 중에 같은 uid 로 다시 watch 해도 리스너는 하나"""
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))

    class ReentrantMirror(ProfileMirror):
        def _on_snapshot(self, uid, docs):
            self.watch(uid)
            super()._on_snapshot(uid, docs)

    mirror = ReentrantMirror()
    mirror.watch("u1")
    mirror.watch("u1")

    assert len(db.listeners[("users", "u1")]) == 1
    assert mirror.is_watching("u1") is True
    mirror.stop()
    assert db.listeners[("users", "u1")] == []


def test_unwatch_during_subscribe_releases_listener(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))

    class LogoutMidSubscribe(ProfileMirror):
        def _on_snapshot(self, uid, docs):
            self.unwatch(uid)
            super()._on_snapshot(uid, docs)

    mirror = LogoutMidSubscribe()
    mirror.watch("u1")

    assert mirror.is_watching("u1") is False
    assert mirror.get("u1") is None
    assert db.listeners[("users", "u1")] == []


# ==============================================================================
# Watch expiry
# ==============================================================================


def test_evict_expired_releases_watch(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    make_user(db, "u2", lastLogin=datetime.now(timezone.utc))
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    mirror = ProfileMirror()
    mirror.watch("u1", now - timedelta(minutes=1))
    mirror.watch("u2", now + timedelta(hours=1))

    assert mirror.evict_expired(now) == ["u1"]

    assert mirror.is_watching("u1") is False
    assert mirror.get("u1") is None
    assert db.listeners[("users", "u1")] == []
    assert mirror.is_watching("u2") is True
    mirror.stop()


def test_evict_expired_clears_revocation(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    mirror = ProfileMirror()
    mirror.watch("u1", now - timedelta(minutes=1))
    db.collection("users").document("u1").update({"isActive": False})
    assert mirror.is_revoked("u1") is True

    mirror.evict_expired(now)

    assert mirror.is_revoked("u1") is False


def test_extend_keeps_latest_expiry(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    mirror = ProfileMirror()
    mirror.watch("u1", now)

    mirror.extend("u1", now + timedelta(hours=2))
    mirror.extend("u1", now + timedelta(hours=1))
    mirror.watch("u1", now - timedelta(hours=1))

    assert mirror.expires_at("u1") == now + timedelta(hours=2)
    assert mirror.evict_expired(now + timedelta(hours=1)) == []
    mirror.stop()


def test_watch_without_expiry_is_never_evicted(db):
    make_user(db, "u1", lastLogin=datetime.now(timezone.utc))
    mirror = ProfileMirror()
    mirror.watch("u1")

    assert mirror.evict_expired(datetime(2100, 1, 1, tzinfo=timezone.utc)) == []
    assert mirror.is_watching("u1") is True
    mirror.stop()

"""User profiles and the account approval gate.

Invariants:
    - Non-admin registrations start pending (isActive False)
    - Admin profiles are approved by 'system' on creation
    - Self-service updates only touch the editable allow-list
    - Admin profiles cannot be deleted through delete_user_profile
"""

from datetime import datetime, timedelta, timezone

import pytest

from meetrecorder import user_service
from meetrecorder.errors import ValidationError, NotFoundError, PermissionDeniedError

from tests.conftest import make_user


# ==============================================================================
# Profile creation
# ==============================================================================


def test_create_student_profile_is_pending(db):
    """student → isActive False, approvalStatus pending, member features."""
    result = user_service.create_user_profile("u1", {
        "email": "  Alice@Example.COM ",
        "firstName": "Alice",
        "lastName": "Kim",
    })

    stored = db.raw("users", "u1")
    assert result["success"] is True
    assert stored["email"] == "alice@example.com"
    assert stored["displayName"] == "Alice Kim"
    assert stored["role"] == "student"
    assert stored["isActive"] is False
    assert stored["approvalStatus"] == "pending"
    assert stored["subscription"]["status"] == "pending_approval"
    assert stored["subscription"]["features"]["canCreateSessions"] is False


def test_create_admin_profile_is_auto_approved(db):
    """admin → active immediately, approvedBy system."""
    user_service.create_user_profile("a1", {"email": "root@example.com", "role": "admin"})

    stored = db.raw("users", "a1")
    assert stored["isActive"] is True
    assert stored["approvalStatus"] == "approved"
    assert stored["approvedBy"] == "system"
    assert stored["subscription"]["features"]["maxRecordings"] == 999


def test_display_name_falls_back_to_email_local_part(db):
    user_service.create_user_profile("u2", {"email": "bob@example.com"})
    assert db.raw("users", "u2")["displayName"] == "bob"


def test_create_profile_requires_email(db):
    with pytest.raises(ValidationError):
        user_service.create_user_profile("u3", {})


def test_create_profile_rejects_unknown_role(db):
    with pytest.raises(ValidationError):
        user_service.create_user_profile("u4", {"email": "x@example.com", "role": "owner"})


# ==============================================================================
# Reads and self-service updates
# ==============================================================================


def test_get_user_profile_missing_returns_none(db):
    assert user_service.get_user_profile("nobody") is None


def test_update_user_profile_filters_disallowed_fields(db):
    """role / isActive are silently dropped from self-service updates."""
    make_user(db, "u1", active=False)

    result = user_service.update_user_profile("u1", {
        "displayName": "New Name",
        "role": "admin",
        "isActive": True,
    })

    stored = db.raw("users", "u1")
    assert result["updatedFields"] == ["displayName"]
    assert stored["displayName"] == "New Name"
    assert stored["role"] == "student"
    assert stored["isActive"] is False


def test_increment_usage_adds_to_counter(db):
    make_user(db, "u1", usage={"sessionsAttended": 2})
    user_service.increment_usage("u1", "sessionsAttended", 3)
    assert db.raw("users", "u1")["usage"]["sessionsAttended"] == 5


def test_increment_usage_swallows_failures(db):
    """Missing document → logged, not raised."""
    user_service.increment_usage("ghost", "sessionsAttended")


def test_update_last_login_stamps_timestamp(db):
    make_user(db, "u1")
    user_service.update_last_login("u1")
    assert isinstance(db.raw("users", "u1")["lastLogin"], datetime)


# ==============================================================================
# Listing, counting, searching
# ==============================================================================


def test_get_all_users_status_and_search_filters(db):
    make_user(db, "alice", active=True)
    make_user(db, "bob", active=False)
    make_user(db, "carol", role="teacher", active=True, phone="010-1234")

    pending = user_service.get_all_users(status="pending")
    assert [u["id"] for u in pending] == ["bob"]

    teachers = user_service.get_all_users(role="teacher")
    assert [u["id"] for u in teachers] == ["carol"]

    by_phone = user_service.get_all_users(search_term="1234")
    assert [u["id"] for u in by_phone] == ["carol"]

    by_email = user_service.get_all_users(search_term="ALICE@")
    assert [u["id"] for u in by_email] == ["alice"]


def test_get_users_count_breakdown(db):
    today = datetime.now(timezone.utc)
    make_user(db, "admin", role="admin", active=True, lastLogin=today)
    make_user(db, "t1", role="teacher", active=True,
              lastLogin=today - timedelta(days=3))
    make_user(db, "s1", active=False)
    make_user(db, "s2", active=False, approvalStatus="deactivated")

    counts = user_service.get_users_count()

    assert counts["total"] == 4
    assert counts["pending"] == 2
    assert counts["active"] == 2
    assert counts["deactivated"] == 1
    assert counts["admins"] == 1
    assert counts["teachers"] == 1
    assert counts["students"] == 2
    assert counts["activeToday"] == 1
    assert counts["neverLoggedIn"] == 2


def test_search_users_all_fields_includes_user_id(db):
    make_user(db, "xyz-42", userId="xyz-42")
    make_user(db, "other")

    matched = user_service.search_users("xyz-4")
    assert [u["id"] for u in matched] == ["xyz-42"]


def test_get_pending_users_excludes_rejected(db):
    make_user(db, "p1", active=False)
    make_user(db, "r1", active=False, approvalStatus="rejected")
    assert [u["id"] for u in user_service.get_pending_users()] == ["p1"]


# ==============================================================================
# Approval transitions
# ==============================================================================


def test_approve_user_activates_account(db):
    make_user(db, "u1", active=False)

    user_service.approve_user("u1", approved_by="admin-1", notes="welcome")

    stored = db.raw("users", "u1")
    assert stored["isActive"] is True
    assert stored["approvalStatus"] == "approved"
    assert stored["approvedBy"] == "admin-1"
    assert stored["subscription"]["status"] == "active"
    assert stored["subscription"]["plan"] == "free"


def test_approve_missing_user_is_not_found(db):
    with pytest.raises(NotFoundError) as exc_info:
        user_service.approve_user("ghost")
    assert exc_info.value.status_code == 404
    assert "ghost" not in exc_info.value.message


def test_reject_then_deactivate_then_reactivate(db):
    make_user(db, "u1", active=False)

    user_service.reject_user("u1", reason="unknown applicant")
    assert db.raw("users", "u1")["approvalStatus"] == "rejected"

    user_service.deactivate_user("u1", reason="abuse")
    stored = db.raw("users", "u1")
    assert stored["approvalStatus"] == "deactivated"
    assert stored["subscription"]["status"] == "inactive"

    user_service.reactivate_user("u1")
    stored = db.raw("users", "u1")
    assert stored["isActive"] is True
    assert stored["approvalStatus"] == "approved"


def test_change_role_to_admin_grants_enterprise(db):
    make_user(db, "u1", active=False)

    result = user_service.change_user_role("u1", "admin", changed_by="root")

    stored = db.raw("users", "u1")
    assert result["newRole"] == "admin"
    assert stored["isActive"] is True
    assert stored["subscription"]["plan"] == "enterprise"
    assert stored["subscription"]["features"]["maxStorageGB"] == 100


def test_change_role_rejects_invalid_role(db):
    make_user(db, "u1")
    with pytest.raises(ValidationError):
        user_service.change_user_role("u1", "superuser")


def test_bulk_approve_users(db):
    make_user(db, "a", active=False)
    make_user(db, "b", active=False)

    result = user_service.bulk_approve_users(["a", "b"])

    assert result["approvedCount"] == 2
    assert db.raw("users", "a")["isActive"] is True
    assert db.raw("users", "b")["isActive"] is True


def test_bulk_approve_empty_list_is_noop(db):
    assert user_service.bulk_approve_users([]) == {"success": True, "approvedCount": 0}


def test_update_subscription_validates_plan(db):
    make_user(db, "u1")
    with pytest.raises(ValidationError):
        user_service.update_user_subscription("u1", {"plan": "gold"})

    user_service.update_user_subscription("u1", {"plan": "premium", "status": "active"})
    assert db.raw("users", "u1")["subscription"]["plan"] == "premium"


def test_delete_user_profile_guards(db):
    make_user(db, "admin", role="admin")
    make_user(db, "s1")

    with pytest.raises(NotFoundError):
        user_service.delete_user_profile("ghost")
    with pytest.raises(PermissionDeniedError):
        user_service.delete_user_profile("admin")

    user_service.delete_user_profile("s1")
    assert db.raw("users", "s1") is None

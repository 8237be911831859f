"""Courses, enrollments and module completion."""

from datetime import datetime, timezone

import pytest

from meetrecorder import course_service
from meetrecorder.errors import ValidationError, NotFoundError, ConflictError


def _seed_course(db, course_id, **fields):
    data = {
        "title": course_id,
        "isPublished": True,
        "category": "math",
        "level": "beginner",
        "instructorId": "t1",
        "instructorName": "Teacher One",
        "totalEnrollments": 0,
        "enrolledStudents": [],
        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    data.update(fields)
    db.seed("courses", course_id, data)


def _seed_modules(db, course_id, count):
    for index in range(count):
        db.seed("modules", f"{course_id}-m{index}", {
            "courseId": course_id,
            "isPublished": True,
            "order": count - index,
            "title": f"Module {index}",
        })


# ==============================================================================
# Enrollment
# ==============================================================================


def test_enroll_in_course(db):
    _seed_course(db, "c1")
    _seed_modules(db, "c1", 3)

    result = course_service.enroll_in_course("c1", "st1", {"email": "st1@example.com", "name": "St One"})

    enrollment = db.raw("enrollments", result["enrollmentId"])
    course = db.raw("courses", "c1")
    assert result["course"]["totalModules"] == 3
    assert enrollment["status"] == "active"
    assert enrollment["completedModules"] == []
    assert course["enrolledStudents"] == ["st1"]
    assert course["totalEnrollments"] == 1


def test_enroll_errors(db):
    _seed_course(db, "draft", isPublished=False)
    _seed_course(db, "c1")

    with pytest.raises(NotFoundError):
        course_service.enroll_in_course("ghost", "st1")
    with pytest.raises(ValidationError):
        course_service.enroll_in_course("draft", "st1")

    course_service.enroll_in_course("c1", "st1")
    with pytest.raises(ConflictError):
        course_service.enroll_in_course("c1", "st1")


def test_get_course_by_id_attaches_enrollment(db):
    _seed_course(db, "c1")
    _seed_course(db, "draft", isPublished=False)
    course_service.enroll_in_course("c1", "st1")

    course = course_service.get_course_by_id("c1", "st1")
    assert course["enrollment"]["status"] == "active"
    assert course["enrollment"]["completedModules"] == 0

    assert course_service.get_course_by_id("draft") is None
    assert "enrollment" not in course_service.get_course_by_id("c1", "st2")


def test_enrolled_courses_and_unenroll(db):
    _seed_course(db, "c1")
    enrollment_id = course_service.enroll_in_course("c1", "st1")["enrollmentId"]

    enrolled = course_service.get_enrolled_courses("st1")
    assert [c["id"] for c in enrolled] == ["c1"]
    assert enrolled[0]["enrollmentId"] == enrollment_id

    course_service.unenroll_from_course(enrollment_id, "c1", "st1")
    course = db.raw("courses", "c1")
    assert course["enrolledStudents"] == []
    assert course["totalEnrollments"] == 0
    assert course_service.get_enrolled_courses("st1") == []


def test_get_enrolled_courses_requires_student():
    with pytest.raises(ValidationError):
        course_service.get_enrolled_courses(None)


# ==============================================================================
# Progress
# ==============================================================================


def test_update_course_progress_clamps(db):
    _seed_course(db, "c1")
    enrollment_id = course_service.enroll_in_course("c1", "st1")["enrollmentId"]

    assert course_service.update_course_progress(enrollment_id, {"progress": -5})["progress"] == 0

    result = course_service.update_course_progress(enrollment_id, {"progress": 140})
    assert result["progress"] == 100
    assert result["status"] == "completed"
    assert db.raw("enrollments", enrollment_id)["status"] == "completed"


def test_update_course_progress_parses_input(db):
    _seed_course(db, "c1")
    enrollment_id = course_service.enroll_in_course("c1", "st1")["enrollmentId"]

    assert course_service.update_course_progress(enrollment_id, {"progress": "55"})["progress"] == 55
    with pytest.raises(ValidationError):
        course_service.update_course_progress(enrollment_id, {"progress": "half"})
    with pytest.raises(NotFoundError):
        course_service.update_course_progress("ghost", {"progress": 10})


def test_modules_ordered_with_completion(db):
    _seed_course(db, "c1")
    _seed_modules(db, "c1", 2)
    enrollment_id = course_service.enroll_in_course("c1", "st1")["enrollmentId"]

    result = course_service.mark_module_completed(enrollment_id, "c1-m1")
    assert result["progress"] == 50
    assert result["isCourseCompleted"] is False

    again = course_service.mark_module_completed(enrollment_id, "c1-m1")
    assert again["alreadyCompleted"] is True

    modules = course_service.get_course_modules("c1", "st1")
    assert [m["id"] for m in modules] == ["c1-m1", "c1-m0"]
    assert [m["isCompleted"] for m in modules] == [True, False]

    final = course_service.mark_module_completed(enrollment_id, "c1-m0")
    assert final["isCourseCompleted"] is True
    assert db.raw("enrollments", enrollment_id)["status"] == "completed"


def test_mark_module_completed_missing_enrollment(db):
    with pytest.raises(NotFoundError):
        course_service.mark_module_completed("ghost", "m1")


# ==============================================================================
# Discovery and stats
# ==============================================================================


def test_search_courses(db):
    _seed_course(db, "alg", title="Linear Algebra", tags=["vectors"])
    _seed_course(db, "bio", title="Cell Biology", category="science")

    assert [c["id"] for c in course_service.search_courses("VECTOR")] == ["alg"]
    assert [c["id"] for c in course_service.search_courses("", category="science")] == ["bio"]


def test_featured_and_popular(db):
    _seed_course(db, "plain", totalEnrollments=1)
    _seed_course(db, "star", isFeatured=True, totalEnrollments=10)

    assert [c["id"] for c in course_service.get_featured_courses()] == ["star"]
    assert [c["id"] for c in course_service.get_popular_courses()] == ["star", "plain"]


def test_student_course_stats(db):
    _seed_course(db, "c1", estimatedDuration=120)
    _seed_course(db, "c2", estimatedDuration=60)
    _seed_course(db, "c3")
    first = course_service.enroll_in_course("c1", "st1")["enrollmentId"]
    course_service.enroll_in_course("c2", "st1")
    course_service.update_course_progress(first, {"progress": 100})

    stats = course_service.get_student_course_stats("st1")
    assert stats["totalEnrolled"] == 2
    assert stats["totalAvailable"] == 3
    assert stats["completedCourses"] == 1
    assert stats["inProgressCourses"] == 1
    assert stats["averageProgress"] == 50
    assert stats["totalLearningTime"] == 180

"""Drive/Meet helpers, id generators and small request helpers."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from meetrecorder.database import as_datetime
from meetrecorder.errors import ValidationError
from meetrecorder.utils import (
    contains, extract_drive_file_id, filter_fields, generate_drive_url,
    generate_meet_id, generate_meet_link, generate_session_id, parse_limit,
    parse_number, should_recording_be_available, slugify, validate_drive_url,
)

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


# ==============================================================================
# Google Drive
# ==============================================================================


def test_extract_drive_file_id():
    assert extract_drive_file_id("https://drive.google.com/file/d/1aB_c-9/view?usp=sharing") == "1aB_c-9"
    assert extract_drive_file_id("https://drive.google.com/drive/folders/xyz") == ""
    assert extract_drive_file_id(None) == ""


def test_generate_drive_url():
    assert generate_drive_url("abc") == "https://drive.google.com/file/d/abc/view"
    assert generate_drive_url("") == ""


def test_validate_drive_url():
    assert validate_drive_url("https://drive.google.com/file/d/abc/view") is True
    assert validate_drive_url("https://drive.google.com/drive/folders/abc") is False
    assert validate_drive_url("https://example.com/file/d/abc") is False
    assert validate_drive_url("") is False


def test_should_recording_be_available():
    """Available once 30 minutes have passed since the session ended."""
    assert should_recording_be_available({"actualEndTime": NOW - timedelta(minutes=30)}, NOW) is True
    assert should_recording_be_available({"actualEndTime": NOW - timedelta(minutes=29)}, NOW) is False
    assert should_recording_be_available({"actualEndTime": "2030-01-01T11:00:00Z"}, NOW) is True
    assert should_recording_be_available({}, NOW) is False
    assert should_recording_be_available(None, NOW) is False


# ==============================================================================
# Generators
# ==============================================================================


def test_generate_meet_id_shape():
    meet_id = generate_meet_id()
    assert re.fullmatch(r"[a-z0-9]{3}-[a-z0-9]{4}-[a-z0-9]{5}", meet_id)
    assert generate_meet_link(meet_id) == f"https://meet.google.com/{meet_id}"


def test_generate_session_id_shape():
    session_id = generate_session_id()
    assert re.fullmatch(r"sess_\d+_[a-z0-9]{9}", session_id)
    assert generate_session_id() != session_id


def test_slugify():
    assert slugify("Intro to Algebra: Part 1") == "intro-to-algebra-part-1"


# ==============================================================================
# Request helpers
# ==============================================================================


def test_filter_fields():
    assert filter_fields({"a": 1, "b": 2}, {"a"}) == {"a": 1}
    assert filter_fields(None, {"a"}) == {}


def test_contains():
    assert contains("Linear Algebra", "ALG") is True
    assert contains(None, "x") is False
    assert contains(42, "4") is False


def test_parse_limit():
    assert parse_limit("25", 10) == 25
    assert parse_limit(None, 10) == 10
    assert parse_limit("many", 10) == 10


def test_parse_number():
    assert parse_number("96", "progress") == 96
    assert parse_number("12.5", "progress") == 12.5
    assert parse_number(7.0, "progress") == 7
    assert parse_number(None, "progress", default=60) == 60
    assert parse_number("", "progress") == 0


@pytest.mark.parametrize("value", ["abc", True, [1], {"n": 1}])
def test_parse_number_rejects_non_numbers(value):
    with pytest.raises(ValidationError) as exc_info:
        parse_number(value, "duration")
    assert exc_info.value.message == "duration must be a number"


def test_as_datetime_rejects_unparseable_values():
    assert as_datetime("2030-01-01T12:00:00Z") == NOW
    with pytest.raises(ValidationError):
        as_datetime("tomorrow")
    with pytest.raises(ValidationError):
        as_datetime(12345)

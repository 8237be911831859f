# meetrecorder/utils.py

import random
import re
import string
import time
from datetime import timedelta

from .config import GOOGLE_DRIVE_BASE_URL, GOOGLE_MEET_BASE_URL, RECORDING_PROCESSING_MINUTES
from .database import as_datetime, utcnow
from .errors import ValidationError

DRIVE_FILE_ID_PATTERN = re.compile(r'/file/d/([a-zA-Z0-9_-]+)')

RECORDING_STEPS = [
    "1. Create Google Meet session manually",
    "2. Save Meet link in your platform",
    "3. Start session at scheduled time",
    "4. Click 'Record meeting' in Google Meet",
    "5. Teach your session",
    "6. End meeting or stop recording",
    "7. Wait for recording to process (5-60 minutes)",
    "8. Find recording in Google Drive 'Meet Recordings' folder",
    "9. Get shareable link and update in platform"
]

SHAREABLE_LINK_STEPS = [
    "1. Go to drive.google.com",
    "2. Navigate to 'Meet Recordings' folder",
    "3. Find your recording file",
    "4. Right-click → 'Share'",
    "5. Set permission to 'Anyone with link can view'",
    "6. Copy the shareable link",
    "7. Paste in your platform to update the session"
]


def extract_drive_file_id(drive_url):
    """Google Drive 공유 링크에서 파일 ID 추출"""
    if not drive_url:
        return ''
    match = DRIVE_FILE_ID_PATTERN.search(drive_url)
    return match.group(1) if match else ''


def generate_drive_url(file_id):
    return f"{GOOGLE_DRIVE_BASE_URL}{file_id}/view" if file_id else ''


def validate_drive_url(url):
    return bool(url) and 'drive.google.com' in url and '/file/d/' in url


def should_recording_be_available(recording, now=None):
    """세션 종료 후 처리 시간(30분)이 지났는지"""
    if not recording or not recording.get('actualEndTime'):
        return False
    now = now or utcnow()
    end_time = as_datetime(recording['actualEndTime'])
    return now - end_time >= timedelta(minutes=RECORDING_PROCESSING_MINUTES)


def generate_meet_id():
    """Meet 형식 ID (xxx-xxxx-xxxxx)"""
    chars = string.ascii_lowercase + string.digits
    result = ''.join(random.choice(chars) for _ in range(12))
    return f"{result[:3]}-{result[3:7]}-{result[7:]}"


def generate_meet_link(meet_id):
    return f"{GOOGLE_MEET_BASE_URL}{meet_id}"


def generate_session_id():
    """sess_<밀리초>_<랜덤 9자>"""
    suffix = ''.join(random.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"sess_{int(time.time() * 1000)}_{suffix}"


def slugify(title):
    return re.sub(r'[^a-z0-9]+', '-', title.lower())


def filter_fields(updates, allowed_fields):
    """허용된 필드만 남긴다"""
    return {key: value for key, value in (updates or {}).items() if key in allowed_fields}


def contains(value, term):
    """대소문자 구분 없는 부분 문자열 검색"""
    return isinstance(value, str) and term.lower() in value.lower()


def parse_limit(value, default):
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def parse_number(value, name, default=0):
    """숫자 입력값 변환 (문자열 숫자 허용, 그 외는 ValidationError)"""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    return int(number) if number.is_integer() else number

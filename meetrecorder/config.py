# meetrecorder/config.py

import os

# 환경변수 설정
ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', '')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', '')
JWT_SECRET = os.environ.get('JWT_SECRET', 'supersecretjwt')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRES_HOURS = int(os.environ.get('JWT_EXPIRES_HOURS', '4'))
SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', 'supersecret')

# Firebase Auth REST API (비밀번호 로그인/재설정용 Web API Key)
FIREBASE_WEB_API_KEY = os.environ.get('FIREBASE_WEB_API_KEY', '')
IDENTITY_TOOLKIT_URL = 'https://identitytoolkit.googleapis.com/v1'
AUTH_REQUEST_TIMEOUT = 15

# Firebase 설정 (project_id 가 없으면 기본 자격 증명 사용)
FIREBASE_CREDS = None
if os.environ.get('project_id'):
    FIREBASE_CREDS = {
        "type": os.environ.get("type", "service_account"),
        "project_id": os.environ["project_id"],
        "private_key_id": os.environ.get("private_key_id", ""),
        "private_key": os.environ.get("private_key", "").replace('\\n', '\n'),
        "client_email": os.environ.get("client_email", ""),
        "client_id": os.environ.get("client_id", ""),
        "auth_uri": os.environ.get("auth_uri", "https://accounts.google.com/o/oauth2/auth"),
        "token_uri": os.environ.get("token_uri", "https://oauth2.googleapis.com/token"),
        "auth_provider_x509_cert_url": os.environ.get("auth_provider_x509_cert_url", "https://www.googleapis.com/oauth2/v1/certs"),
        "client_x509_cert_url": os.environ.get("client_x509_cert_url", "")
    }

# 스케줄러 설정
SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'
LIFECYCLE_INTERVAL_MINUTES = int(os.environ.get('LIFECYCLE_INTERVAL_MINUTES', '5'))
# false 면 시작/종료 대상만 기록하고 상태는 바꾸지 않음
LIFECYCLE_AUTO_ADVANCE = os.environ.get('LIFECYCLE_AUTO_ADVANCE', 'false').lower() == 'true'
WATCH_SWEEP_MINUTES = int(os.environ.get('WATCH_SWEEP_MINUTES', '10'))

# 역할 / 상태 값
ROLES = ['admin', 'teacher', 'student']
APPROVAL_STATUSES = ['pending', 'approved', 'rejected', 'deactivated']
SESSION_STATUSES = ['scheduled', 'live', 'completed', 'cancelled']
RECORDING_STATUSES = ['scheduled', 'live', 'completed', 'recorded']
RECORDING_PROCESS_STATUSES = ['not_started', 'recording', 'processing', 'available', 'disabled']
SUBSCRIPTION_PLANS = ['free', 'premium', 'enterprise']

# 사용자가 직접 수정할 수 있는 필드
USER_EDITABLE_FIELDS = [
    'displayName', 'firstName', 'lastName', 'phone',
    'preferences', 'usage'
]

SESSION_UPDATABLE_FIELDS = [
    'meetLink', 'topic', 'title', 'description', 'scheduledTime', 'date', 'status',
    'courseId', 'courseName', 'duration', 'category', 'visibility', 'maxParticipants',
    'enableRecording', 'recordingStatus', 'isPublished', 'sessionEndTime'
]

RECORDING_UPDATABLE_FIELDS = [
    'title', 'description', 'meetLink', 'recordingUrl', 'thumbnailUrl', 'duration',
    'fileSize', 'quality', 'format', 'status', 'recordingStatus', 'isPublished',
    'isFeatured', 'visibility', 'category', 'tags', 'language', 'level', 'metaTitle',
    'metaDescription', 'processingStatus', 'processingProgress', 'errorMessage',
    'requiresApproval', 'accessCode', 'allowedUsers', 'driveFileId', 'instructorEmail',
    'participantEmails', 'attendeeCount', 'scheduledTime', 'sessionEndTime',
    'actualStartTime', 'actualEndTime', 'recordingAvailableFrom', 'maxParticipants',
    'enableRecording'
]

# 날짜로 저장되는 필드 (ISO 문자열 → datetime 변환 대상)
SESSION_DATE_FIELDS = ['scheduledTime', 'date', 'sessionEndTime']
RECORDING_DATE_FIELDS = [
    'scheduledTime', 'sessionEndTime', 'actualStartTime', 'actualEndTime',
    'recordingAvailableFrom', 'recordingStartedAt', 'recordingEndedAt'
]

# 역할별 기본 구독 기능
ADMIN_FEATURES = {
    'maxRecordings': 999,
    'maxStorageGB': 50,
    'canDownload': True,
    'canShare': True,
    'canCreateSessions': True
}
MEMBER_FEATURES = {
    'maxRecordings': 10,
    'maxStorageGB': 5,
    'canDownload': True,
    'canShare': False,
    'canCreateSessions': False
}
ENTERPRISE_FEATURES = {
    'maxRecordings': 999,
    'maxStorageGB': 100,
    'canDownload': True,
    'canShare': True,
    'canCreateSessions': True
}

# Google Meet / Drive 연동
GOOGLE_DRIVE_BASE_URL = 'https://drive.google.com/file/d/'
GOOGLE_MEET_BASE_URL = 'https://meet.google.com/'
MEET_RECORDINGS_FOLDER = 'Meet Recordings'
RECORDING_PROCESSING_MINUTES = 30
COMPLETION_THRESHOLD = 95

# lastLogin 갱신 주기 (초)
LAST_LOGIN_REFRESH_SECONDS = 300

# 인증 없이 접근 가능한 경로
PUBLIC_ROUTES = [
    '/', '/login', '/register', '/forgot-password', '/reset-password',
    '/about', '/contact', '/privacy', '/terms'
]
STATIC_EXTENSIONS = [
    '.ico', '.js', '.css', '.png', '.jpg', '.jpeg', '.gif', '.svg',
    '.woff', '.woff2', '.ttf', '.eot'
]

# 조회 제한
DEFAULT_PAGE_SIZE = 50
SEARCH_RESULT_LIMIT = 50

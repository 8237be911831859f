# meetrecorder/auth.py
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
import requests
from firebase_admin import auth as firebase_auth
from flask import request, g

from .config import (
    JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRES_HOURS, FIREBASE_WEB_API_KEY,
    IDENTITY_TOOLKIT_URL, AUTH_REQUEST_TIMEOUT
)
from .errors import (
    ServiceError, ValidationError, AuthenticationError, ApprovalRequiredError,
    PermissionDeniedError
)
from .auth_state import build_auth_state, is_approved, profile_mirror
from . import user_service

logger = logging.getLogger(__name__)

REGISTER_ERROR_MESSAGES = {
    'EMAIL_EXISTS': 'An account with this email already exists.',
    'WEAK_PASSWORD': 'Password is too weak. Please use a stronger password.',
    'INVALID_EMAIL': 'Invalid email address.',
    'OPERATION_NOT_ALLOWED': 'Email/password accounts are not enabled. Please contact support.'
}

LOGIN_ERROR_MESSAGES = {
    'INVALID_LOGIN_CREDENTIALS': 'Invalid email or password.',
    'EMAIL_NOT_FOUND': 'No account found with this email.',
    'INVALID_PASSWORD': 'Incorrect password.',
    'USER_DISABLED': 'This account has been disabled.',
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'Too many failed attempts. Please try again later.'
}


def create_jwt(uid, role):
    """서비스 JWT 토큰 생성"""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': uid,
        'role': role,
        'iat': now,
        'exp': now + timedelta(hours=JWT_EXPIRES_HOURS)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token):
    """JWT 토큰 검증 (실패 시 None)"""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload if payload.get('sub') else None
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def _identity_toolkit(endpoint, payload):
    """Firebase Auth REST API 호출"""
    if not FIREBASE_WEB_API_KEY:
        raise ServiceError('FIREBASE_WEB_API_KEY is not configured')

    url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}?key={FIREBASE_WEB_API_KEY}"
    try:
        resp = requests.post(url, json=payload, timeout=AUTH_REQUEST_TIMEOUT)
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"❌ Firebase Auth 요청 실패 ({endpoint}): {e}")
        raise ServiceError('Authentication service unavailable. Please try again.', 503)

    if 'error' in data:
        error = data['error'] if isinstance(data['error'], dict) else {}
        code = str(error.get('message', data['error'])).split(' ')[0]
        return None, code
    return data, None


def register(email, password, user_data):
    """회원가입: Auth 계정 + Firestore 프로필 (관리자 외에는 승인 대기)"""
    if not email or not password:
        raise ValidationError('Email and password are required')

    first_name = (user_data.get('firstName') or '').strip()
    last_name = (user_data.get('lastName') or '').strip()
    display_name = f"{first_name} {last_name}".strip() or None

    try:
        user_record = firebase_auth.create_user(
            email=email, password=password, display_name=display_name
        )
    except firebase_auth.EmailAlreadyExistsError:
        raise ValidationError(REGISTER_ERROR_MESSAGES['EMAIL_EXISTS'])
    except ValueError as e:
        logger.warning(f"회원가입 입력값 오류: {e}")
        message = REGISTER_ERROR_MESSAGES['WEAK_PASSWORD'] if 'password' in str(e).lower() \
            else REGISTER_ERROR_MESSAGES['INVALID_EMAIL']
        raise ValidationError(message)
    except Exception as e:
        logger.error(f"❌ 회원가입 실패: {e}")
        raise ServiceError('Registration failed. Please try again.')

    try:
        profile_data = dict(user_data, email=email)
        if display_name:
            profile_data.setdefault('displayName', display_name)
        result = user_service.create_user_profile(user_record.uid, profile_data)
    except Exception as e:
        logger.error(f"❌ 프로필 생성 실패, Auth 계정 정리: {e}")
        try:
            firebase_auth.delete_user(user_record.uid)
        except Exception as delete_error:
            logger.error(f"Auth 계정 정리 실패 ({user_record.uid}): {delete_error}")
        if isinstance(e, ValidationError):
            raise
        raise ServiceError('Registration failed. Please try again.')

    role = result['profile']['role']
    logger.info(f"📝 회원가입 완료: {user_record.uid} ({role})")
    if role != 'admin':
        return {
            'success': True,
            'message': 'Registration successful! Please wait for admin approval before logging in.',
            'requiresApproval': True
        }
    return {'success': True, 'userId': user_record.uid, 'requiresApproval': False}


def login(email, password):
    """로그인: 비밀번호 확인 → 프로필 승인 여부 확인 → 토큰 발급"""
    data, error_code = _identity_toolkit('signInWithPassword', {
        'email': email,
        'password': password,
        'returnSecureToken': True
    })
    if error_code:
        logger.info(f"로그인 실패 ({email}): {error_code}")
        raise AuthenticationError(LOGIN_ERROR_MESSAGES.get(error_code, 'Login failed. Please try again.'))

    uid = data['localId']
    profile = user_service.get_user_profile(uid)
    if not profile:
        raise AuthenticationError('User profile not found. Please contact support.')
    if not is_approved(profile):
        logger.info(f"⏳ 승인 대기 계정 로그인 시도: {uid}")
        raise ApprovalRequiredError()

    user_service.update_last_login(uid)
    profile_mirror.watch(uid, datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRES_HOURS))

    state = build_auth_state(uid, profile)
    logger.info(f"🔐 로그인: {uid} ({profile.get('role')})")
    return {
        'token': create_jwt(uid, profile.get('role')),
        'user': state['user'],
        'role': state['role'],
        'profile': profile
    }


def reset_password(email):
    """비밀번호 재설정 메일 발송"""
    if not email:
        raise ValidationError('Email is required')
    _, error_code = _identity_toolkit('sendOobCode', {'requestType': 'PASSWORD_RESET', 'email': email})
    if error_code:
        logger.info(f"비밀번호 재설정 실패 ({email}): {error_code}")
        raise ValidationError(LOGIN_ERROR_MESSAGES.get(error_code, 'Password reset failed.'))
    return {'success': True}


def logout(uid):
    profile_mirror.unwatch(uid)
    return {'success': True}


def current_auth_state(uid, expires_at=None):
    """미러된 상태, 없으면 프로필을 읽고 토큰 만료 시각까지 구독"""
    state = profile_mirror.get(uid)
    if state is None:
        profile = user_service.get_user_profile(uid)
        state = build_auth_state(uid, profile)
        if profile:
            profile_mirror.watch(uid, expires_at)
    else:
        profile_mirror.extend(uid, expires_at)
    return state


def login_required(f):
    """로그인 + 승인 확인 데코레이터"""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', None)
        if not auth_header or not auth_header.startswith('Bearer '):
            raise AuthenticationError('Authentication required')

        token = auth_header.split(' ', 1)[1]
        payload = verify_jwt_token(token)
        if not payload:
            raise AuthenticationError('Invalid or expired token')

        uid = payload['sub']
        if profile_mirror.is_revoked(uid):
            raise AuthenticationError('Session revoked. Please log in again.')

        expires_at = datetime.fromtimestamp(payload['exp'], timezone.utc) if payload.get('exp') else None
        state = current_auth_state(uid, expires_at)
        if not state['isAuthenticated']:
            raise AuthenticationError('User profile not found. Please contact support.')
        if not state['isApproved']:
            raise ApprovalRequiredError()

        g.auth_state = state
        g.uid = uid
        g.profile = state['profile']
        return f(*args, **kwargs)
    return decorated


def role_required(*roles):
    """역할 확인 데코레이터 (login_required 포함)"""
    def decorator(f):
        @wraps(f)
        def checked(*args, **kwargs):
            if g.auth_state['role'] not in roles:
                raise PermissionDeniedError("You don't have permission to access this resource.")
            return f(*args, **kwargs)
        return login_required(checked)
    return decorator


admin_required = role_required('admin')


def require_owner(resource, owner_field='instructorId'):
    """관리자가 아니면 본인 소유 문서만 허용"""
    if g.auth_state['role'] == 'admin':
        return
    if not resource or resource.get(owner_field) != g.uid:
        raise PermissionDeniedError("You don't have permission to modify this resource.")


def current_instructor():
    """로그인한 사용자의 강사 필드"""
    profile = g.profile or {}
    return {
        'instructorId': g.uid,
        'instructorEmail': profile.get('email'),
        'instructorName': profile.get('displayName')
    }

# meetrecorder/user_service.py
"""사용자 프로필 및 계정 승인 관리

계정 상태: pending → approved (isActive) → deactivated / rejected.
관리자(admin)는 생성 즉시 승인됩니다.
"""

import logging

from firebase_admin import firestore

from .config import (
    ROLES, USER_EDITABLE_FIELDS, ADMIN_FEATURES, MEMBER_FEATURES,
    ENTERPRISE_FEATURES, SEARCH_RESULT_LIMIT
)
from .database import collection, get_db, get_document, snapshot_to_dict, apply_query_options, as_datetime, utcnow
from .errors import ValidationError, NotFoundError, PermissionDeniedError, wrap_failure
from .utils import filter_fields, contains

logger = logging.getLogger(__name__)

USERS = 'users'


def create_user_profile(user_id, user_data):
    """사용자 프로필 생성"""
    if not user_id or not user_data.get('email'):
        raise ValidationError('User ID and email are required')

    try:
        role = user_data.get('role') or 'student'
        if role not in ROLES:
            raise ValidationError(f"Invalid role: {role}. Must be one of: {', '.join(ROLES)}")
        is_admin = role == 'admin'
        email = user_data['email'].strip().lower()
        first_name = (user_data.get('firstName') or '').strip()
        last_name = (user_data.get('lastName') or '').strip()
        display_name = (
            user_data.get('displayName')
            or f"{first_name} {last_name}".strip()
            or email.split('@')[0]
        )
        now = firestore.SERVER_TIMESTAMP

        profile = {
            'userId': user_id,
            'email': email,
            'displayName': display_name,
            'firstName': first_name,
            'lastName': last_name,
            'phone': user_data.get('phone', ''),

            'role': role,
            'isActive': is_admin,
            'isEmailVerified': False,
            'lastLogin': None,

            'approvalStatus': 'approved' if is_admin else 'pending',
            'submittedAt': now,
            'approvedAt': now if is_admin else None,
            'approvedBy': 'system' if is_admin else None,
            'rejectionReason': None,

            'subscription': {
                'plan': 'free',
                'status': 'active' if is_admin else 'pending_approval',
                'startDate': now if is_admin else None,
                'endDate': None,
                'features': dict(ADMIN_FEATURES if is_admin else MEMBER_FEATURES)
            },

            'usage': {
                'recordingsCount': 0,
                'storageUsed': 0,
                'sessionsAttended': 0,
                'sessionsCreated': 0,
                'lastActivity': None,
                'totalTimeSpent': 0
            },

            'preferences': {
                'language': user_data.get('language', 'en'),
                'notifications': {
                    'email': True,
                    'push': True,
                    'sessionReminders': True,
                    'recordingAvailable': True,
                    'monthlyReports': True
                },
                'theme': 'system',
                'timezone': user_data.get('timezone', 'UTC'),
                'emailFrequency': 'weekly'
            },

            'createdAt': now,
            'updatedAt': now,
            'lastPasswordChange': now,
            'loginAttempts': 0,
            'accountLocked': False
        }

        collection(USERS).document(user_id).set(profile)
        logger.info(f"✅ 사용자 프로필 생성: {user_id} ({role})")
        return {'success': True, 'userId': user_id, 'profile': profile}

    except Exception as e:
        logger.error(f"❌ 사용자 프로필 생성 실패 ({user_id}): {e}")
        raise wrap_failure('create user profile', e)


def get_user_profile(user_id):
    """사용자 프로필 조회 (없으면 None)"""
    if not user_id:
        raise ValidationError('User ID is required')
    try:
        profile = get_document(USERS, user_id)
        if profile is None:
            logger.warning(f"⚠️ 사용자 프로필 없음: {user_id}")
        return profile
    except Exception as e:
        logger.error(f"❌ 사용자 프로필 조회 실패 ({user_id}): {e}")
        raise wrap_failure('fetch user profile', e)


def update_user_profile(user_id, updates):
    """사용자 본인 프로필 수정 (허용 필드만)"""
    if not user_id:
        raise ValidationError('User ID is required')
    try:
        filtered = filter_fields(updates, USER_EDITABLE_FIELDS)
        update_data = dict(filtered)
        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP
        collection(USERS).document(user_id).update(update_data)
        return {'success': True, 'userId': user_id, 'updatedFields': list(filtered)}
    except Exception as e:
        logger.error(f"❌ 사용자 프로필 수정 실패 ({user_id}): {e}")
        raise wrap_failure('update user profile', e)


def update_last_login(user_id):
    """마지막 로그인 기록 (실패해도 예외를 올리지 않음)"""
    if not user_id:
        return
    try:
        collection(USERS).document(user_id).update({
            'lastLogin': firestore.SERVER_TIMESTAMP,
            'usage.lastActivity': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
            'loginAttempts': 0,
            'accountLocked': False
        })
    except Exception as e:
        logger.error(f"❌ 마지막 로그인 기록 실패 ({user_id}): {e}")


def increment_usage(user_id, field, amount=1):
    """사용량 통계 증가 (실패해도 예외를 올리지 않음)"""
    if not user_id or not field:
        return
    try:
        collection(USERS).document(user_id).update({
            f'usage.{field}': firestore.Increment(amount),
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
    except Exception as e:
        logger.error(f"❌ 사용량 증가 실패 ({user_id}, {field}): {e}")


def get_all_users(status='all', role='all', search_term='', sort_by='createdAt',
                  sort_order='desc', limit=50):
    """관리자: 사용자 목록 조회"""
    try:
        query = collection(USERS)

        if status == 'pending':
            query = query.where('isActive', '==', False)
        elif status == 'active':
            query = query.where('isActive', '==', True)
        elif status == 'inactive':
            query = query.where('approvalStatus', '==', 'deactivated')

        if role and role != 'all':
            query = query.where('role', '==', role)

        query = apply_query_options(query, sort_by, sort_order, limit)
        users = [snapshot_to_dict(doc) for doc in query.stream()]

        if search_term:
            users = [user for user in users if _matches_user(user, search_term)]
        return users

    except Exception as e:
        logger.error(f"❌ 사용자 목록 조회 실패: {e}")
        raise wrap_failure('fetch users', e)


def _matches_user(user, term, include_id=False):
    if any(contains(user.get(key), term) for key in ('email', 'displayName', 'firstName', 'lastName')):
        return True
    if term in (user.get('phone') or ''):
        return True
    return include_id and term in (user.get('userId') or user.get('id') or '')


def get_users_count():
    """관리자: 사용자 수 통계"""
    try:
        users = [snapshot_to_dict(doc) for doc in collection(USERS).stream()]
        today = utcnow().date()

        def logged_in_today(user):
            last_login = user.get('lastLogin')
            return bool(last_login) and as_datetime(last_login).date() == today

        def plan(user):
            return (user.get('subscription') or {}).get('plan')

        return {
            'total': len(users),
            'pending': sum(1 for u in users if not u.get('isActive') and u.get('role') != 'admin'),
            'active': sum(1 for u in users if u.get('isActive')),
            'deactivated': sum(1 for u in users if u.get('approvalStatus') == 'deactivated'),

            'admins': sum(1 for u in users if u.get('role') == 'admin'),
            'teachers': sum(1 for u in users if u.get('role') == 'teacher'),
            'students': sum(1 for u in users if u.get('role') == 'student'),

            'free': sum(1 for u in users if plan(u) == 'free'),
            'premium': sum(1 for u in users if plan(u) == 'premium'),
            'enterprise': sum(1 for u in users if plan(u) == 'enterprise'),

            'activeToday': sum(1 for u in users if logged_in_today(u)),
            'neverLoggedIn': sum(1 for u in users if not u.get('lastLogin'))
        }
    except Exception as e:
        logger.error(f"❌ 사용자 수 조회 실패: {e}")
        raise wrap_failure('fetch users count', e)


def approve_user(user_id, approved_by='admin', notes=''):
    """관리자: 사용자 승인"""
    if not user_id:
        raise ValidationError('User ID is required')
    try:
        collection(USERS).document(user_id).update({
            'isActive': True,
            'approvalStatus': 'approved',
            'approvedAt': firestore.SERVER_TIMESTAMP,
            'approvedBy': approved_by,
            'approvalNotes': notes,
            'subscription.status': 'active',
            'subscription.startDate': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"✅ 사용자 승인: {user_id} (by {approved_by})")
        return {'success': True, 'userId': user_id, 'approvedAt': utcnow(), 'approvedBy': approved_by}
    except Exception as e:
        logger.error(f"❌ 사용자 승인 실패 ({user_id}): {e}")
        raise wrap_failure('approve user', e)


def reject_user(user_id, rejected_by='admin', reason=''):
    """관리자: 가입 신청 거절"""
    try:
        collection(USERS).document(user_id).update({
            'isActive': False,
            'approvalStatus': 'rejected',
            'rejectedAt': firestore.SERVER_TIMESTAMP,
            'rejectedBy': rejected_by,
            'rejectionReason': reason,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"🚫 사용자 거절: {user_id} (by {rejected_by})")
        return {'success': True, 'userId': user_id, 'rejectedAt': utcnow(), 'reason': reason}
    except Exception as e:
        logger.error(f"❌ 사용자 거절 실패 ({user_id}): {e}")
        raise wrap_failure('reject user', e)


def deactivate_user(user_id, reason='', deactivated_by='admin'):
    """관리자: 사용자 비활성화"""
    try:
        collection(USERS).document(user_id).update({
            'isActive': False,
            'approvalStatus': 'deactivated',
            'subscription.status': 'inactive',
            'deactivatedAt': firestore.SERVER_TIMESTAMP,
            'deactivatedBy': deactivated_by,
            'deactivationReason': reason,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"⏸️ 사용자 비활성화: {user_id} (by {deactivated_by})")
        return {'success': True, 'userId': user_id, 'deactivatedAt': utcnow(), 'reason': reason}
    except Exception as e:
        logger.error(f"❌ 사용자 비활성화 실패 ({user_id}): {e}")
        raise wrap_failure('deactivate user', e)


def reactivate_user(user_id, reactivated_by='admin'):
    """관리자: 사용자 재활성화"""
    try:
        collection(USERS).document(user_id).update({
            'isActive': True,
            'approvalStatus': 'approved',
            'subscription.status': 'active',
            'reactivatedAt': firestore.SERVER_TIMESTAMP,
            'reactivatedBy': reactivated_by,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"▶️ 사용자 재활성화: {user_id} (by {reactivated_by})")
        return {'success': True, 'userId': user_id, 'reactivatedAt': utcnow()}
    except Exception as e:
        logger.error(f"❌ 사용자 재활성화 실패 ({user_id}): {e}")
        raise wrap_failure('reactivate user', e)


def change_user_role(user_id, new_role, changed_by='admin'):
    """관리자: 역할 변경 (admin 으로 변경 시 자동 승인)"""
    if new_role not in ROLES:
        raise ValidationError(f"Invalid role: {new_role}. Must be one of: {', '.join(ROLES)}")
    try:
        update_data = {
            'role': new_role,
            'roleChangedAt': firestore.SERVER_TIMESTAMP,
            'roleChangedBy': changed_by,
            'updatedAt': firestore.SERVER_TIMESTAMP
        }

        if new_role == 'admin':
            update_data.update({
                'isActive': True,
                'approvalStatus': 'approved',
                'approvedAt': firestore.SERVER_TIMESTAMP,
                'approvedBy': changed_by,
                'subscription': {
                    'plan': 'enterprise',
                    'status': 'active',
                    'startDate': firestore.SERVER_TIMESTAMP,
                    'endDate': None,
                    'features': dict(ENTERPRISE_FEATURES)
                }
            })

        collection(USERS).document(user_id).update(update_data)
        logger.info(f"🔁 역할 변경: {user_id} → {new_role} (by {changed_by})")
        return {'success': True, 'userId': user_id, 'newRole': new_role, 'changedAt': utcnow()}
    except Exception as e:
        logger.error(f"❌ 역할 변경 실패 ({user_id}): {e}")
        raise wrap_failure('change user role', e)


def bulk_approve_users(user_ids, approved_by='admin'):
    """관리자: 일괄 승인 (write batch)"""
    if not user_ids:
        return {'success': True, 'approvedCount': 0}
    try:
        batch = get_db().batch()
        for user_id in user_ids:
            batch.update(collection(USERS).document(user_id), {
                'isActive': True,
                'approvalStatus': 'approved',
                'approvedAt': firestore.SERVER_TIMESTAMP,
                'approvedBy': approved_by,
                'subscription.status': 'active',
                'subscription.startDate': firestore.SERVER_TIMESTAMP,
                'updatedAt': firestore.SERVER_TIMESTAMP
            })
        batch.commit()
        logger.info(f"✅ 일괄 승인 완료: {len(user_ids)}명")
        return {'success': True, 'approvedCount': len(user_ids), 'approvedAt': utcnow()}
    except Exception as e:
        logger.error(f"❌ 일괄 승인 실패: {e}")
        raise wrap_failure('bulk approve users', e)


def get_pending_users():
    """승인 대기 사용자 목록"""
    try:
        query = collection(USERS) \
            .where('isActive', '==', False) \
            .where('approvalStatus', '==', 'pending')
        query = apply_query_options(query, 'createdAt', 'desc')
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 승인 대기 사용자 조회 실패: {e}")
        raise wrap_failure('fetch pending users', e)


def update_user_subscription(user_id, subscription_data):
    """구독 정보 교체"""
    try:
        subscription = dict(subscription_data or {})
        plan = subscription.get('plan')
        if plan is not None and plan not in ('free', 'premium', 'enterprise'):
            raise ValidationError(f"Invalid subscription plan: {plan}")
        subscription['updatedAt'] = firestore.SERVER_TIMESTAMP

        collection(USERS).document(user_id).update({
            'subscription': subscription,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        return {'success': True, 'userId': user_id, 'subscription': subscription_data}
    except Exception as e:
        logger.error(f"❌ 구독 정보 수정 실패 ({user_id}): {e}")
        raise wrap_failure('update user subscription', e)


def delete_user_profile(user_id):
    """관리자: 사용자 프로필 삭제 (admin 계정은 삭제 불가)"""
    if not user_id:
        raise ValidationError('User ID is required')
    try:
        profile = get_user_profile(user_id)
        if not profile:
            raise NotFoundError('User profile not found')
        if profile.get('role') == 'admin':
            raise PermissionDeniedError('Cannot delete admin users through this method')

        collection(USERS).document(user_id).delete()
        logger.info(f"🗑️ 사용자 프로필 삭제: {user_id}")
        return {'success': True, 'userId': user_id, 'deletedAt': utcnow()}
    except Exception as e:
        logger.error(f"❌ 사용자 프로필 삭제 실패 ({user_id}): {e}")
        raise wrap_failure('delete user profile', e)


def search_users(search_term, field='all'):
    """사용자 검색 (최대 50명)"""
    try:
        users = get_all_users(limit=1000)
        if not search_term:
            return users[:SEARCH_RESULT_LIMIT]

        if field == 'all':
            matched = [u for u in users if _matches_user(u, search_term, include_id=True)]
        else:
            matched = [
                u for u in users
                if u.get(field) is not None and contains(str(u.get(field)), search_term)
            ]
        return matched[:SEARCH_RESULT_LIMIT]
    except Exception as e:
        logger.error(f"❌ 사용자 검색 실패: {e}")
        raise wrap_failure('search users', e)

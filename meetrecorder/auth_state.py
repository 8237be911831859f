# meetrecorder/auth_state.py
"""인증 상태 관리

로그인한 사용자의 users/{uid} 문서를 Firestore on_snapshot 으로 구독해서
서버 쪽 인증 상태에 반영합니다. 승인되어 있던 사용자가 비활성화/거절되거나
프로필이 삭제되면 해당 uid 는 revoked 로 표시되고, 발급된 토큰은 더 이상
통과하지 못합니다.
"""

import logging
import threading
from datetime import timedelta

from .config import PUBLIC_ROUTES, STATIC_EXTENSIONS, LAST_LOGIN_REFRESH_SECONDS
from .database import collection, snapshot_to_dict, as_datetime, utcnow

logger = logging.getLogger(__name__)


def is_approved(profile):
    """isActive 이거나 admin 이면 승인된 계정"""
    if not profile:
        return False
    return profile.get('isActive') is True or profile.get('role') == 'admin'


def build_auth_state(uid, profile):
    if not uid or not profile:
        return {
            'user': None,
            'uid': None,
            'profile': None,
            'role': None,
            'isApproved': False,
            'isAuthenticated': False,
            'isLoading': False,
            'authChecked': True
        }
    return {
        'user': {
            'uid': uid,
            'email': profile.get('email'),
            'displayName': profile.get('displayName')
        },
        'uid': uid,
        'profile': profile,
        'role': profile.get('role'),
        'isApproved': is_approved(profile),
        'isAuthenticated': True,
        'isLoading': False,
        'authChecked': True
    }


def has_role(state, role):
    return state.get('role') == role


def has_any_role(state, roles):
    return state.get('role') in roles


def can_access(state, required_role=None):
    """인증 + 승인 + (필요 시) 역할 일치"""
    if not state.get('isAuthenticated') or not state.get('isApproved'):
        return False
    if not required_role:
        return True
    return state.get('role') == required_role


def is_public_route(pathname):
    if pathname in PUBLIC_ROUTES:
        return True
    return any(ext in pathname for ext in STATIC_EXTENSIONS)


def needs_last_login_refresh(profile, now=None):
    """lastLogin 이 없거나 5분 이상 지났으면 갱신 대상"""
    last_login = as_datetime(profile.get('lastLogin')) if profile else None
    if not last_login:
        return True
    now = now or utcnow()
    return now - last_login > timedelta(seconds=LAST_LOGIN_REFRESH_SECONDS)


class ProfileMirror:
    """users/{uid} 문서 실시간 미러

    구독은 토큰 만료 시각까지만 유지되고 evict_expired() 가 정리합니다.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._watches = {}
        self._expires = {}
        self._states = {}
        self._revoked = set()

    def watch(self, uid, expires_at=None):
        with self._lock:
            if uid in self._watches:
                self._extend_locked(uid, expires_at)
                return
            # 자리 선점: 동시에 들어온 요청은 위에서 돌아감
            self._watches[uid] = None
            self._expires[uid] = expires_at
            self._revoked.discard(uid)

        doc_ref = collection('users').document(uid)
        watch = doc_ref.on_snapshot(lambda docs, changes, read_time: self._on_snapshot(uid, docs))

        with self._lock:
            if uid in self._watches and self._watches[uid] is None:
                self._watches[uid] = watch
                watch = None
        if watch is not None:
            # 구독 중에 해제됨
            watch.unsubscribe()
            return
        logger.info(f"👀 프로필 구독 시작: {uid}")

    def extend(self, uid, expires_at):
        """구독 만료 시각 연장 (더 늦은 쪽 유지)"""
        with self._lock:
            if uid in self._watches:
                self._extend_locked(uid, expires_at)

    def _extend_locked(self, uid, expires_at):
        if expires_at is None:
            return
        current = self._expires.get(uid)
        if current is None or expires_at > current:
            self._expires[uid] = expires_at

    def expires_at(self, uid):
        with self._lock:
            return self._expires.get(uid)

    def unwatch(self, uid):
        with self._lock:
            watch = self._watches.pop(uid, None)
            self._expires.pop(uid, None)
            self._states.pop(uid, None)
        if watch is not None:
            watch.unsubscribe()
            logger.info(f"👋 프로필 구독 해제: {uid}")

    def evict_expired(self, now=None):
        """만료 시각이 지난 구독 해제, 해제된 uid 목록 반환"""
        now = now or utcnow()
        with self._lock:
            expired = [
                uid for uid, expires_at in self._expires.items()
                if expires_at is not None and expires_at <= now
            ]
        for uid in expired:
            self.unwatch(uid)
            with self._lock:
                self._revoked.discard(uid)
        if expired:
            logger.info(f"🧹 만료된 프로필 구독 정리: {len(expired)} 개")
        return expired

    def is_watching(self, uid):
        with self._lock:
            return uid in self._watches

    def get(self, uid):
        """미러된 인증 상태 (구독 중이 아니면 None)"""
        with self._lock:
            return self._states.get(uid)

    def is_revoked(self, uid):
        with self._lock:
            return uid in self._revoked

    def stop(self):
        with self._lock:
            uids = list(self._watches)
        for uid in uids:
            self.unwatch(uid)
        with self._lock:
            self._states.clear()
            self._revoked.clear()

    def _on_snapshot(self, uid, docs):
        try:
            doc = docs[0] if docs else None
            if doc is None or not doc.exists:
                logger.warning(f"⚠️ 프로필 삭제됨, 세션 만료 처리: {uid}")
                with self._lock:
                    if uid in self._watches:
                        self._states[uid] = build_auth_state(None, None)
                        self._revoked.add(uid)
                return

            profile = snapshot_to_dict(doc)
            state = build_auth_state(uid, profile)
            with self._lock:
                if uid not in self._watches:
                    return
                previous = self._states.get(uid)
                self._states[uid] = state
                if previous and previous['isApproved'] and not state['isApproved']:
                    self._revoked.add(uid)
                    logger.info(f"🚪 승인 취소된 사용자 로그아웃 처리: {uid}")
                elif state['isApproved']:
                    self._revoked.discard(uid)

            if state['isApproved'] and needs_last_login_refresh(profile):
                doc.reference.update({'lastLogin': utcnow()})

        except Exception as e:
            logger.error(f"❌ 프로필 리스너 오류 ({uid}): {e}")


profile_mirror = ProfileMirror()

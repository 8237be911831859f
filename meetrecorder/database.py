# meetrecorder/database.py

import logging
from datetime import datetime, timezone

import firebase_admin
from firebase_admin import credentials, firestore

from .config import FIREBASE_CREDS
from .errors import ValidationError

logger = logging.getLogger(__name__)

_db = None


def initialize_firebase():
    """Firebase Admin SDK 초기화"""
    if not firebase_admin._apps:
        if FIREBASE_CREDS:
            cred = credentials.Certificate(FIREBASE_CREDS)
            firebase_admin.initialize_app(cred)
            logger.info(f"✅ Firebase 초기화 완료 - Project: {FIREBASE_CREDS['project_id']}")
        else:
            firebase_admin.initialize_app()
            logger.info("✅ Firebase 초기화 완료 - 기본 자격 증명")
    return firebase_admin.get_app()


def get_db():
    """Firestore 클라이언트 (최초 호출 시 초기화)"""
    global _db
    if _db is None:
        initialize_firebase()
        _db = firestore.client()
    return _db


def collection(name):
    return get_db().collection(name)


def get_document(collection_name, doc_id):
    """문서 조회 (id 포함 dict, 없으면 None)"""
    doc = collection(collection_name).document(doc_id).get()
    return snapshot_to_dict(doc) if doc.exists else None


def snapshot_to_dict(doc):
    data = doc.to_dict() or {}
    data['id'] = doc.id
    return data


def utcnow():
    return datetime.now(timezone.utc)


def as_datetime(value):
    """Firestore 타임스탬프 / ISO 문자열 / datetime 을 timezone-aware datetime 으로"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    if hasattr(value, 'to_datetime'):
        return as_datetime(value.to_datetime())
    raise ValidationError(f"Invalid date: {value!r}")


def apply_query_options(query, order_by=None, direction='desc', limit=None):
    """정렬/개수 제한 공통 처리"""
    if order_by:
        query = query.order_by(order_by, direction=_direction(direction))
    if limit and limit > 0:
        query = query.limit(limit)
    return query


def paginate(query, collection_name, cursor=None, limit=12):
    """커서(문서 id) 기반 페이지네이션

    다음 커서는 마지막으로 반환된 문서의 id 입니다.
    """
    if cursor:
        cursor_doc = collection(collection_name).document(cursor).get()
        if cursor_doc.exists:
            query = query.start_after(cursor_doc)
    query = query.limit(limit)
    docs = list(query.stream())
    next_cursor = docs[-1].id if docs else None
    return docs, next_cursor


def count_documents(query):
    """aggregation count() 쿼리"""
    result = query.count().get()
    return int(result[0][0].value)


def _direction(direction):
    if str(direction).lower() in ('asc', 'ascending'):
        return firestore.Query.ASCENDING
    return firestore.Query.DESCENDING

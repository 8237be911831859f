# meetrecorder/session_service.py
"""라이브 세션(Google Meet) 관리

세션 상태: scheduled → live → completed (또는 cancelled).
상태 값의 유효성만 검사하며 전이 순서는 강제하지 않습니다.
"""

import logging
from datetime import timedelta

from firebase_admin import firestore

from .config import SESSION_STATUSES, SESSION_UPDATABLE_FIELDS, SESSION_DATE_FIELDS
from .database import collection, get_document, snapshot_to_dict, apply_query_options, as_datetime, utcnow
from .errors import ValidationError, NotFoundError, wrap_failure
from .utils import filter_fields, generate_meet_id, generate_meet_link, parse_number

logger = logging.getLogger(__name__)

SESSIONS = 'sessions'


def create_session(session_data):
    """세션 생성"""
    try:
        scheduled_raw = session_data.get('scheduledTime') or session_data.get('date')
        if not scheduled_raw:
            raise ValidationError('scheduledTime is required')
        scheduled_time = as_datetime(scheduled_raw)

        duration = parse_number(session_data.get('duration'), 'duration') or 60
        enable_recording = session_data.get('enableRecording')
        if enable_recording is None:
            enable_recording = True
        visibility = session_data.get('visibility') or 'private'
        title = session_data.get('title') or session_data.get('topic') or 'Untitled Session'
        instructor_id = session_data.get('instructorId') or session_data.get('createdBy')

        if session_data.get('sessionEndTime'):
            session_end_time = as_datetime(session_data['sessionEndTime'])
        else:
            session_end_time = scheduled_time + timedelta(minutes=duration)

        session = {
            'meetLink': session_data.get('meetLink', ''),
            'topic': title,
            'title': title,
            'description': session_data.get('description', ''),
            'date': scheduled_time,
            'scheduledTime': scheduled_time,

            'duration': duration,
            'category': session_data.get('category') or 'lecture',
            'visibility': visibility,
            'maxParticipants': parse_number(session_data.get('maxParticipants'), 'maxParticipants') or 50,
            'courseId': session_data.get('courseId') or 'general',
            'enableRecording': enable_recording,

            'isRecorded': False,
            'recordingUrl': '',
            'status': 'scheduled',
            'recordingStatus': 'not_started' if enable_recording else 'disabled',
            'isPublished': visibility == 'public',

            'instructorId': instructor_id,
            'instructorEmail': session_data.get('instructorEmail'),
            'instructorName': session_data.get('instructorName'),
            'createdBy': instructor_id,

            'createdAt': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
            'sessionEndTime': session_end_time,

            'participants': [],
            'participantCount': 0,
            'participantEmails': session_data.get('participantEmails') or [],

            'courseName': session_data.get('courseName', '')
        }
        if session_data.get('meetId'):
            session['meetId'] = session_data['meetId']
        session = {key: value for key, value in session.items() if value is not None}

        _, doc_ref = collection(SESSIONS).add(session)
        logger.info(f"✅ 세션 생성: {doc_ref.id} ({title})")
        return dict(session, success=True, id=doc_ref.id)

    except Exception as e:
        logger.error(f"❌ 세션 생성 실패: {e}")
        raise wrap_failure('create session', e)


def create_meet_session(session_data):
    """Meet 링크를 생성해서 세션 생성"""
    meet_id = generate_meet_id()
    data = dict(session_data)
    data['meetId'] = meet_id
    data['meetLink'] = generate_meet_link(meet_id)
    return create_session(data)


def create_session_recording(session_data):
    """녹화가 켜진 세션 생성"""
    if not session_data.get('sessionId'):
        raise ValidationError('sessionId is required for recording')
    data = dict(session_data)
    data['enableRecording'] = True
    return create_session(data)


def _query_sessions(query, action):
    try:
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 세션 조회 실패 ({action}): {e}")
        raise wrap_failure(f'fetch {action}', e)


def get_all_sessions(status='all', is_recorded='all', date_range='all',
                     instructor_id=None, limit=50):
    """세션 목록 (상태/녹화/기간/강사 필터)"""
    query = collection(SESSIONS)
    if status and status != 'all':
        query = query.where('status', '==', status)
    if is_recorded and is_recorded != 'all':
        query = query.where('isRecorded', '==', is_recorded == 'recorded')
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    if date_range == 'upcoming':
        query = query.where('scheduledTime', '>=', utcnow())
    elif date_range == 'past':
        query = query.where('scheduledTime', '<', utcnow())
    query = apply_query_options(query, 'scheduledTime', 'desc', limit)
    return _query_sessions(query, 'sessions')


def get_public_sessions(status='scheduled', date_range='upcoming', instructor_id=None, limit=50):
    """학생에게 공개된 세션"""
    query = collection(SESSIONS) \
        .where('isPublished', '==', True) \
        .where('status', '==', status)
    if date_range == 'upcoming':
        query = query.where('scheduledTime', '>=', utcnow())
    elif date_range == 'past':
        query = query.where('scheduledTime', '<', utcnow())
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    query = apply_query_options(query, 'scheduledTime', 'asc', limit)
    return _query_sessions(query, 'public sessions')


def get_teacher_sessions_for_students(limit=20, days_ahead=30):
    """학생 대시보드용: 앞으로 N일 내 공개 세션"""
    now = utcnow()
    query = collection(SESSIONS) \
        .where('isPublished', '==', True) \
        .where('status', '==', 'scheduled') \
        .where('scheduledTime', '>=', now) \
        .where('scheduledTime', '<=', now + timedelta(days=days_ahead))
    query = apply_query_options(query, 'scheduledTime', 'asc', limit)
    return _query_sessions(query, 'teacher sessions for students')


def get_course_sessions(course_id, limit=50):
    query = collection(SESSIONS).where('courseId', '==', course_id)
    query = apply_query_options(query, 'scheduledTime', 'desc', limit)
    return _query_sessions(query, 'course sessions')


def get_upcoming_sessions(limit=20):
    query = collection(SESSIONS) \
        .where('scheduledTime', '>=', utcnow()) \
        .where('status', 'in', ['scheduled', 'live'])
    query = apply_query_options(query, 'scheduledTime', 'asc', limit)
    return _query_sessions(query, 'upcoming sessions')


def get_instructor_upcoming_sessions(instructor_id, limit=10, days_ahead=7):
    now = utcnow()
    query = collection(SESSIONS) \
        .where('instructorId', '==', instructor_id) \
        .where('scheduledTime', '>=', now) \
        .where('scheduledTime', '<=', now + timedelta(days=days_ahead)) \
        .where('status', 'in', ['scheduled', 'live'])
    query = apply_query_options(query, 'scheduledTime', 'asc', limit)
    return _query_sessions(query, 'instructor upcoming sessions')


def get_instructor_sessions(instructor_id, status='all', limit=50):
    query = collection(SESSIONS).where('instructorId', '==', instructor_id)
    if status and status != 'all':
        query = query.where('status', '==', status)
    query = apply_query_options(query, 'scheduledTime', 'desc', limit)
    return _query_sessions(query, 'instructor sessions')


def get_recorded_sessions(limit=20):
    query = collection(SESSIONS).where('isRecorded', '==', True)
    query = apply_query_options(query, 'scheduledTime', 'desc', limit)
    return _query_sessions(query, 'recorded sessions')


def get_session_by_id(session_id):
    try:
        return get_document(SESSIONS, session_id)
    except Exception as e:
        logger.error(f"❌ 세션 조회 실패 ({session_id}): {e}")
        raise wrap_failure('fetch session', e)


def update_session(session_id, updates):
    """세션 수정 (허용 필드만)"""
    try:
        filtered = filter_fields(updates, SESSION_UPDATABLE_FIELDS)
        if 'status' in filtered and filtered['status'] not in SESSION_STATUSES:
            raise ValidationError(
                f"Invalid status: {filtered['status']}. Must be one of: {', '.join(SESSION_STATUSES)}"
            )
        update_data = dict(filtered)
        for field in SESSION_DATE_FIELDS:
            if update_data.get(field):
                update_data[field] = as_datetime(update_data[field])
        for field in ('duration', 'maxParticipants'):
            if field in update_data:
                update_data[field] = parse_number(update_data[field], field)
        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP

        collection(SESSIONS).document(session_id).update(update_data)
        return {'success': True, 'sessionId': session_id, 'updates': filtered}
    except Exception as e:
        logger.error(f"❌ 세션 수정 실패 ({session_id}): {e}")
        raise wrap_failure('update session', e)


def mark_as_recorded(session_id, recording_url):
    """녹화 URL 등록 → 세션 완료 처리"""
    try:
        collection(SESSIONS).document(session_id).update({
            'isRecorded': True,
            'recordingUrl': recording_url,
            'recordingStatus': 'completed',
            'status': 'completed',
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"🎬 세션 녹화 등록: {session_id}")
        return {'success': True, 'sessionId': session_id, 'recordingUrl': recording_url}
    except Exception as e:
        logger.error(f"❌ 세션 녹화 등록 실패 ({session_id}): {e}")
        raise wrap_failure('mark session as recorded', e)


def remove_recording(session_id):
    try:
        collection(SESSIONS).document(session_id).update({
            'isRecorded': False,
            'recordingUrl': '',
            'recordingStatus': 'disabled',
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        return {'success': True, 'sessionId': session_id}
    except Exception as e:
        logger.error(f"❌ 세션 녹화 제거 실패 ({session_id}): {e}")
        raise wrap_failure('remove recording', e)


def update_session_status(session_id, status):
    """세션 상태 변경"""
    if status not in SESSION_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of: {', '.join(SESSION_STATUSES)}")
    try:
        collection(SESSIONS).document(session_id).update({
            'status': status,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        logger.info(f"🔄 세션 상태 변경: {session_id} → {status}")
        return {'success': True, 'sessionId': session_id, 'status': status}
    except Exception as e:
        logger.error(f"❌ 세션 상태 변경 실패 ({session_id}): {e}")
        raise wrap_failure('update session status', e)


def add_participant(session_id, participant_id, participant_data=None):
    """세션 참가자 추가"""
    participant_data = participant_data or {}
    try:
        session = get_session_by_id(session_id)
        if not session:
            raise NotFoundError('Session not found')

        participant = {'id': participant_id, 'joinedAt': utcnow()}
        participant.update(participant_data)

        participants = list(session.get('participants') or [])
        if not any(p.get('id') == participant['id'] for p in participants):
            participants.append(participant)

        emails = list(session.get('participantEmails') or [])
        email = participant_data.get('email')
        if email and email not in emails:
            emails.append(email)

        collection(SESSIONS).document(session_id).update({
            'participants': participants,
            'participantCount': len(participants),
            'participantEmails': emails,
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
        return {
            'success': True,
            'sessionId': session_id,
            'participantId': participant['id'],
            'participantCount': len(participants)
        }
    except Exception as e:
        logger.error(f"❌ 참가자 추가 실패 ({session_id}): {e}")
        raise wrap_failure('add participant', e)


def delete_session(session_id):
    try:
        session = get_session_by_id(session_id)
        if not session:
            raise NotFoundError('Session not found')
        if session.get('isRecorded'):
            logger.warning(f"⚠️ 녹화가 있는 세션 삭제: {session_id}")

        collection(SESSIONS).document(session_id).delete()
        logger.info(f"🗑️ 세션 삭제: {session_id}")
        return {'success': True, 'sessionId': session_id, 'hadRecording': bool(session.get('isRecorded'))}
    except Exception as e:
        logger.error(f"❌ 세션 삭제 실패 ({session_id}): {e}")
        raise wrap_failure('delete session', e)


def get_session_stats(instructor_id=None):
    """세션 통계"""
    try:
        sessions = get_all_sessions(instructor_id=instructor_id, limit=1000)
        upcoming = get_upcoming_sessions(limit=1000)
        recorded = get_recorded_sessions(limit=1000)
        if instructor_id:
            upcoming = [s for s in upcoming if s.get('instructorId') == instructor_id]
            recorded = [s for s in recorded if s.get('instructorId') == instructor_id]

        total = len(sessions)
        participants = sum(s.get('participantCount') or 0 for s in sessions)
        return {
            'total': total,
            'upcoming': len(upcoming),
            'recorded': len(recorded),
            'live': sum(1 for s in sessions if s.get('status') == 'live'),
            'completed': sum(1 for s in sessions if s.get('status') == 'completed'),
            'cancelled': sum(1 for s in sessions if s.get('status') == 'cancelled'),
            'averageParticipants': participants / total if total else 0,
            'recentSessions': sessions[:5]
        }
    except Exception as e:
        logger.error(f"❌ 세션 통계 조회 실패: {e}")
        raise wrap_failure('fetch session statistics', e)


def get_teacher_session_analytics(instructor_id):
    """강사 대시보드용 분석"""
    try:
        sessions = get_instructor_sessions(instructor_id, limit=1000)
        now = utcnow()
        past = [s for s in sessions if as_datetime(s.get('scheduledTime')) < now]
        upcoming = [s for s in sessions if as_datetime(s.get('scheduledTime')) >= now]

        student_ids = set()
        for session in sessions:
            for participant in session.get('participants') or []:
                if isinstance(participant, dict):
                    pid = participant.get('id') or participant.get('userId')
                else:
                    pid = participant
                if pid:
                    student_ids.add(pid)

        past_participants = sum(s.get('participantCount') or 0 for s in past)
        completed_past = sum(1 for s in past if s.get('status') == 'completed')
        return {
            'totalSessions': len(sessions),
            'pastSessions': len(past),
            'upcomingSessions': len(upcoming),
            'recordedSessions': sum(1 for s in sessions if s.get('isRecorded')),
            'averageAttendance': past_participants / len(past) if past else 0,
            'totalStudents': len(student_ids),
            'totalParticipants': past_participants,
            'completionRate': completed_past / len(past) * 100 if past else 0,
            'recentSessions': sessions[:5],
            'popularSessions': sorted(
                sessions, key=lambda s: s.get('participantCount') or 0, reverse=True
            )[:5]
        }
    except Exception as e:
        logger.error(f"❌ 강사 분석 조회 실패 ({instructor_id}): {e}")
        raise wrap_failure('fetch teacher analytics', e)

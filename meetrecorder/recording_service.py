# meetrecorder/recording_service.py
"""녹화 관리 (Google Meet 수동 녹화 워크플로)

status:          scheduled → live → completed → recorded
recordingStatus: not_started → recording → processing → available (또는 disabled)

녹화 파일은 강사가 Google Drive 공유 링크를 직접 등록해야 available 이 되고,
isPublished 가 켜져야 학생에게 노출됩니다.
"""

import logging
from datetime import timedelta

from firebase_admin import firestore

from .config import (
    RECORDING_STATUSES, RECORDING_PROCESS_STATUSES, RECORDING_UPDATABLE_FIELDS,
    RECORDING_DATE_FIELDS, MEET_RECORDINGS_FOLDER, COMPLETION_THRESHOLD
)
from .database import (
    collection, get_db, get_document, snapshot_to_dict, apply_query_options,
    paginate, count_documents, as_datetime, utcnow
)
from .errors import ValidationError, NotFoundError, wrap_failure
from .utils import (
    extract_drive_file_id, validate_drive_url, generate_session_id, slugify,
    filter_fields, contains, parse_number
)

logger = logging.getLogger(__name__)

RECORDINGS = 'recordings'
NUMERIC_FIELDS = ('duration', 'fileSize', 'processingProgress', 'attendeeCount', 'maxParticipants')


def _timestamp(value):
    return as_datetime(value) if value else None


def _check_statuses(data):
    if data.get('status') is not None and data['status'] not in RECORDING_STATUSES:
        raise ValidationError(f"Invalid status: {data['status']}")
    if data.get('recordingStatus') is not None and data['recordingStatus'] not in RECORDING_PROCESS_STATUSES:
        raise ValidationError(f"Invalid recording status: {data['recordingStatus']}")


def _clean_updates(updates):
    """허용 필드만 남기고 상태/숫자/날짜 값 검증"""
    update_data = filter_fields(updates, RECORDING_UPDATABLE_FIELDS)
    _check_statuses(update_data)
    for field in NUMERIC_FIELDS:
        if field in update_data:
            update_data[field] = parse_number(update_data[field], field)
    for field in RECORDING_DATE_FIELDS:
        if update_data.get(field):
            update_data[field] = as_datetime(update_data[field])
    return update_data


def create_recording(recording_data):
    """녹화 문서 생성"""
    if not recording_data.get('title') or not recording_data.get('instructorId') \
            or not recording_data.get('instructorEmail'):
        raise ValidationError('Recording title, instructor ID, and instructor email are required')
    _check_statuses(recording_data)

    try:
        title = recording_data['title'].strip()
        description = recording_data.get('description') or ''
        is_published = bool(recording_data.get('isPublished', False))
        enable_recording = recording_data.get('enableRecording')
        if enable_recording is None:
            enable_recording = True

        recording = {
            'title': title,
            'description': description,
            'sessionId': recording_data.get('sessionId') or generate_session_id(),

            'meetLink': recording_data.get('meetLink') or '',
            'instructorEmail': recording_data['instructorEmail'],
            'driveFileId': recording_data.get('driveFileId') or '',
            'driveFolder': MEET_RECORDINGS_FOLDER,

            'recordingUrl': recording_data.get('recordingUrl') or '',
            'thumbnailUrl': recording_data.get('thumbnailUrl') or '',
            'duration': parse_number(recording_data.get('duration'), 'duration'),
            'fileSize': parse_number(recording_data.get('fileSize'), 'fileSize'),
            'quality': recording_data.get('quality') or '720p',
            'format': recording_data.get('format') or 'mp4',

            'scheduledTime': _timestamp(recording_data.get('scheduledTime')) or firestore.SERVER_TIMESTAMP,
            'sessionEndTime': _timestamp(recording_data.get('sessionEndTime')),
            'actualStartTime': _timestamp(recording_data.get('actualStartTime')),
            'actualEndTime': _timestamp(recording_data.get('actualEndTime')),

            'status': recording_data.get('status') or 'scheduled',
            'recordingStatus': recording_data.get('recordingStatus') or 'not_started',
            'isPublished': is_published,
            'isFeatured': bool(recording_data.get('isFeatured', False)),
            'visibility': recording_data.get('visibility') or 'private',

            'createdBy': recording_data.get('createdBy') or recording_data['instructorId'],
            'instructorId': recording_data['instructorId'],
            'instructorName': recording_data.get('instructorName') or '',
            'courseId': recording_data.get('courseId') or 'general',

            'participantEmails': recording_data.get('participantEmails') or [],
            'attendeeCount': parse_number(recording_data.get('attendeeCount'), 'attendeeCount'),
            'maxParticipants': parse_number(recording_data.get('maxParticipants'), 'maxParticipants') or 50,

            'views': 0,
            'likes': 0,
            'dislikes': 0,
            'averageRating': 0,
            'totalRatings': 0,
            'downloadCount': 0,
            'shareCount': 0,

            'category': recording_data.get('category') or 'lecture',
            'tags': recording_data.get('tags') or [],
            'language': recording_data.get('language') or 'en',
            'level': recording_data.get('level') or 'beginner',

            'studentProgress': {},
            'completedBy': [],

            'createdAt': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP,
            'publishedAt': firestore.SERVER_TIMESTAMP if is_published else None,
            'recordingAvailableFrom': _timestamp(recording_data.get('recordingAvailableFrom')),

            'recordingStartedAt': _timestamp(recording_data.get('recordingStartedAt')),
            'recordingEndedAt': _timestamp(recording_data.get('recordingEndedAt')),
            'processingStatus': 'pending',
            'processingProgress': 0,
            'errorMessage': None,

            'slug': recording_data.get('slug') or slugify(title),
            'metaTitle': recording_data.get('metaTitle') or title,
            'metaDescription': recording_data.get('metaDescription') or description[:160],

            'allowedUsers': recording_data.get('allowedUsers') or [],
            'accessCode': recording_data.get('accessCode'),
            'requiresApproval': bool(recording_data.get('requiresApproval', False)),

            'enableRecording': enable_recording
        }

        _, doc_ref = collection(RECORDINGS).add(recording)
        logger.info(f"✅ 녹화 생성: {doc_ref.id} ({title})")
        return dict(recording, success=True, id=doc_ref.id)

    except Exception as e:
        logger.error(f"❌ 녹화 생성 실패: {e}")
        raise wrap_failure('create recording', e)


def create_session_recording(session_data):
    """세션 생성 화면에서 녹화 문서 생성"""
    enable_recording = session_data.get('enableRecording')
    data = {
        key: session_data.get(key) for key in (
            'sessionId', 'title', 'description', 'meetLink', 'instructorId',
            'instructorEmail', 'instructorName', 'scheduledTime', 'sessionEndTime',
            'duration', 'category', 'visibility', 'courseId', 'maxParticipants',
            'enableRecording', 'createdBy'
        )
    }
    data.update({
        'status': 'scheduled',
        'recordingStatus': 'not_started' if enable_recording else 'disabled',
        'isPublished': session_data.get('visibility') == 'public'
    })
    return create_recording(data)


def create_recording_from_meet_session(session_data):
    data = {
        key: session_data.get(key) for key in (
            'title', 'description', 'meetLink', 'instructorId', 'instructorEmail',
            'instructorName', 'scheduledTime', 'sessionEndTime', 'courseId'
        )
    }
    data.update({
        'participantEmails': session_data.get('participantEmails') or [],
        'status': 'scheduled',
        'recordingStatus': 'not_started'
    })
    return create_recording(data)


def _update(recording_id, update_data, action):
    try:
        update_data['updatedAt'] = firestore.SERVER_TIMESTAMP
        collection(RECORDINGS).document(recording_id).update(update_data)
    except Exception as e:
        logger.error(f"❌ 녹화 {action} 실패 ({recording_id}): {e}")
        raise wrap_failure(action, e)


def start_recording_session(recording_id):
    """세션 시작 (live / recording)"""
    _update(recording_id, {
        'status': 'live',
        'recordingStatus': 'recording',
        'actualStartTime': firestore.SERVER_TIMESTAMP
    }, 'start recording session')
    logger.info(f"🔴 녹화 세션 시작: {recording_id}")
    return {'success': True, 'recordingId': recording_id, 'status': 'live', 'recordingStatus': 'recording'}


def end_recording_session(recording_id):
    """세션 종료 (completed / processing)"""
    _update(recording_id, {
        'status': 'completed',
        'recordingStatus': 'processing',
        'actualEndTime': firestore.SERVER_TIMESTAMP
    }, 'end recording session')
    logger.info(f"⏹️ 녹화 세션 종료: {recording_id}")
    return {'success': True, 'recordingId': recording_id, 'status': 'completed', 'recordingStatus': 'processing'}


def _link_update(recording_url):
    return {
        'recordingUrl': recording_url,
        'driveFileId': extract_drive_file_id(recording_url),
        'recordingStatus': 'available',
        'status': 'recorded',
        'recordingAvailableFrom': firestore.SERVER_TIMESTAMP,
        'processingStatus': 'completed',
        'processingProgress': 100
    }


def update_with_drive_recording(recording_id, drive_data):
    """Google Drive 녹화 링크 등록 (재생 시간/용량 포함)"""
    if not recording_id or not drive_data.get('recordingUrl'):
        raise ValidationError('Recording ID and Google Drive URL are required')

    update_data = _link_update(drive_data['recordingUrl'])
    update_data['duration'] = parse_number(drive_data.get('duration'), 'duration')
    update_data['fileSize'] = parse_number(drive_data.get('fileSize'), 'fileSize')
    _update(recording_id, update_data, 'update recording with Drive data')
    logger.info(f"🔗 Drive 녹화 링크 등록: {recording_id}")
    return {
        'success': True,
        'recordingId': recording_id,
        'driveFileId': update_data['driveFileId'],
        'recordingUrl': drive_data['recordingUrl']
    }


def add_recording_url(recording_id, recording_url):
    """녹화 URL 만 빠르게 등록"""
    if not recording_id or not recording_url:
        raise ValidationError('Recording ID and URL are required')
    _update(recording_id, _link_update(recording_url), 'add recording URL')
    logger.info(f"🔗 녹화 URL 등록: {recording_id}")
    return {'success': True, 'recordingId': recording_id, 'recordingUrl': recording_url}


def update_recording_status(recording_id, status, additional_data=None):
    """상태 변경 (상태별 부가 필드 함께 기록)"""
    if status not in RECORDING_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of: {', '.join(RECORDING_STATUSES)}")

    update_data = _clean_updates(additional_data)
    update_data['status'] = status
    if status == 'live':
        update_data['actualStartTime'] = firestore.SERVER_TIMESTAMP
        update_data['recordingStatus'] = 'recording'
    elif status == 'completed':
        update_data['actualEndTime'] = firestore.SERVER_TIMESTAMP
        update_data['recordingStatus'] = 'processing'
    elif status == 'recorded':
        update_data['recordingStatus'] = 'available'

    _update(recording_id, update_data, 'update recording status')
    return {'success': True, 'recordingId': recording_id, 'status': status, 'updatedAt': utcnow()}


def is_recording_live(recording, now=None):
    if not recording:
        return False
    now = now or utcnow()
    scheduled = _timestamp(recording.get('scheduledTime'))
    end = _timestamp(recording.get('sessionEndTime'))
    return bool(scheduled and end and scheduled <= now <= end and recording.get('status') == 'live')


def should_start_session(recording, now=None):
    if not recording:
        return False
    now = now or utcnow()
    scheduled = _timestamp(recording.get('scheduledTime'))
    return bool(scheduled and now >= scheduled and recording.get('status') == 'scheduled')


def should_end_session(recording, now=None):
    if not recording:
        return False
    now = now or utcnow()
    end = _timestamp(recording.get('sessionEndTime'))
    return bool(end and now >= end and recording.get('status') == 'live')


def _fetch(query, action):
    try:
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 녹화 조회 실패 ({action}): {e}")
        raise wrap_failure(f'fetch {action}', e)


def _fetch_page(query, cursor, limit, action, student_id=None):
    try:
        docs, next_cursor = paginate(query, RECORDINGS, cursor, limit)
        recordings = [snapshot_to_dict(doc) for doc in docs]
        if student_id is not None:
            recordings = [_with_student_progress(r, student_id) for r in recordings]
        return {'recordings': recordings, 'nextCursor': next_cursor}
    except Exception as e:
        logger.error(f"❌ 녹화 조회 실패 ({action}): {e}")
        raise wrap_failure(f'fetch {action}', e)


def _with_student_progress(recording, student_id):
    progress = {}
    if student_id:
        progress = (recording.get('studentProgress') or {}).get(student_id) or {}
    recording['watched'] = bool(progress.get('watched', False))
    recording['progress'] = progress.get('progress', 0)
    return recording


def get_sessions_for_recording_management(instructor_id):
    """녹화 관리가 필요한 강사 세션"""
    query = collection(RECORDINGS) \
        .where('instructorId', '==', instructor_id) \
        .where('status', 'in', ['scheduled', 'live', 'completed']) \
        .where('recordingStatus', 'in', ['not_started', 'recording', 'processing'])
    query = apply_query_options(query, 'scheduledTime', 'desc')
    return _fetch(query, 'sessions for recording management')


def get_recordings_needing_links(instructor_id=None):
    """종료됐지만 아직 녹화 링크가 없는 녹화"""
    query = collection(RECORDINGS) \
        .where('status', '==', 'completed') \
        .where('recordingStatus', 'in', ['processing', 'not_started']) \
        .where('recordingUrl', '==', '')
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    query = apply_query_options(query, 'actualEndTime', 'desc')
    return _fetch(query, 'recordings needing links')


def get_instructor_meet_recordings(instructor_email, status='all', recording_status='all',
                                   limit=50, cursor=None):
    query = collection(RECORDINGS).where('instructorEmail', '==', instructor_email)
    if status != 'all':
        query = query.where('status', '==', status)
    if recording_status != 'all':
        query = query.where('recordingStatus', '==', recording_status)
    query = apply_query_options(query, 'scheduledTime', 'desc')
    return _fetch_page(query, cursor, limit, 'instructor Meet recordings')


def get_upcoming_meet_sessions(instructor_id, days_ahead=7):
    now = utcnow()
    query = collection(RECORDINGS) \
        .where('instructorId', '==', instructor_id) \
        .where('scheduledTime', '>=', now) \
        .where('scheduledTime', '<=', now + timedelta(days=days_ahead)) \
        .where('status', 'in', ['scheduled', 'live'])
    query = apply_query_options(query, 'scheduledTime', 'asc')
    return _fetch(query, 'upcoming Meet sessions')


def get_recording_by_id(recording_id):
    """녹화 상세 (isLive 포함, 없으면 None)"""
    if not recording_id:
        raise ValidationError('Recording ID is required')
    try:
        recording = get_document(RECORDINGS, recording_id)
    except Exception as e:
        logger.error(f"❌ 녹화 조회 실패 ({recording_id}): {e}")
        raise wrap_failure('fetch recording', e)
    if recording is None:
        return None
    recording['isLive'] = is_recording_live(recording)
    return recording


def get_available_recordings(student_id=None, cursor=None, limit=12, category='all',
                             instructor_id=None, sort_by='recordingAvailableFrom', sort_order='desc'):
    """학생용: 공개 + 링크가 등록된 녹화"""
    query = collection(RECORDINGS) \
        .where('isPublished', '==', True) \
        .where('recordingStatus', '==', 'available')
    if category != 'all':
        query = query.where('category', '==', category)
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    query = apply_query_options(query, sort_by, sort_order)
    page = _fetch_page(query, cursor, limit, 'available recordings', student_id)
    page['recordings'] = [r for r in page['recordings'] if r.get('recordingUrl')]
    return page


def get_teacher_recordings(teacher_id, cursor=None, limit=12, status='all',
                           is_published='all', sort_by='createdAt', sort_order='desc'):
    if not teacher_id:
        raise ValidationError('Teacher ID is required')
    query = collection(RECORDINGS).where('instructorId', '==', teacher_id)
    if status != 'all':
        query = query.where('status', '==', status)
    if is_published != 'all':
        query = query.where('isPublished', '==', is_published == 'published')
    query = apply_query_options(query, sort_by, sort_order)
    return _fetch_page(query, cursor, limit, 'teacher recordings')


def get_student_recordings(student_id=None, cursor=None, limit=12, category='all',
                           sort_by='createdAt', sort_order='desc', enrolled_courses=None):
    """학생용: 공개된 완료 녹화 (수강 과정 필터)"""
    query = collection(RECORDINGS) \
        .where('isPublished', '==', True) \
        .where('status', 'in', ['completed', 'recorded'])
    if category != 'all':
        query = query.where('category', '==', category)
    if enrolled_courses:
        query = query.where('courseId', 'in', list(enrolled_courses)[:10])
    query = apply_query_options(query, sort_by, sort_order)
    return _fetch_page(query, cursor, limit, 'student recordings', student_id)


def get_all_recordings(limit=50, status='all', is_published='all', category='all',
                       instructor_id=None, sort_by='createdAt', sort_order='desc', search_term=''):
    query = collection(RECORDINGS)
    if status != 'all':
        query = query.where('status', '==', status)
    if is_published != 'all':
        query = query.where('isPublished', '==', is_published in (True, 'published'))
    if category != 'all':
        query = query.where('category', '==', category)
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    query = apply_query_options(query, sort_by, sort_order, limit)
    recordings = _fetch(query, 'recordings')
    if search_term:
        recordings = [r for r in recordings if _matches_recording(r, search_term)]
    return recordings


def _matches_recording(recording, term, include_category=False):
    fields = ['title', 'description', 'instructorName']
    if include_category:
        fields.append('category')
    if any(contains(recording.get(field), term) for field in fields):
        return True
    return any(contains(tag, term) for tag in recording.get('tags') or [])


def get_featured_recordings(limit=10):
    query = collection(RECORDINGS) \
        .where('isPublished', '==', True) \
        .where('isFeatured', '==', True) \
        .where('status', 'in', ['completed', 'recorded'])
    query = apply_query_options(query, 'createdAt', 'desc', limit)
    return _fetch(query, 'featured recordings')


def get_course_recordings(course_id, limit=50, status='recorded', is_published=True):
    query = collection(RECORDINGS) \
        .where('courseId', '==', course_id) \
        .where('status', '==', status)
    if is_published != 'all':
        query = query.where('isPublished', '==', is_published)
    query = apply_query_options(query, 'createdAt', 'desc', limit)
    return _fetch(query, 'course recordings')


def update_recording(recording_id, updates):
    """녹화 수정 (허용 필드만)"""
    if not recording_id:
        raise ValidationError('Recording ID is required')

    update_data = _clean_updates(updates)
    updated_fields = list(update_data)

    # 녹화 URL 이 바뀌면 Drive 파일 ID 추출
    if updates.get('recordingUrl') and not updates.get('driveFileId'):
        drive_file_id = extract_drive_file_id(updates['recordingUrl'])
        if drive_file_id:
            update_data['driveFileId'] = drive_file_id
            update_data['recordingStatus'] = 'available'

    # 최초 공개 시각 기록
    if updates.get('isPublished') and not updates.get('publishedAt'):
        recording = get_recording_by_id(recording_id)
        if recording and not recording.get('publishedAt'):
            update_data['publishedAt'] = firestore.SERVER_TIMESTAMP

    _update(recording_id, update_data, 'update recording')
    return {'success': True, 'recordingId': recording_id, 'updatedFields': updated_fields}


def update_student_progress(recording_id, student_id, progress_data):
    """학생 시청 진도 기록 (95% 이상이면 완료)"""
    progress = parse_number(progress_data.get('progress'), 'progress')
    completed = progress >= COMPLETION_THRESHOLD

    entry = {
        'watched': bool(progress_data.get('watched', False)),
        'lastWatched': firestore.SERVER_TIMESTAMP,
        'completedAt': firestore.SERVER_TIMESTAMP if completed else None
    }
    entry.update(progress_data)
    entry['progress'] = progress

    update_data = {f'studentProgress.{student_id}': entry}
    if completed:
        update_data['completedBy'] = firestore.ArrayUnion([student_id])

    _update(recording_id, update_data, 'update student progress')
    return {'success': True, 'recordingId': recording_id, 'studentId': student_id, 'progress': progress}


def increment_recording_views(recording_id):
    """조회수 증가 (실패해도 예외를 올리지 않음)"""
    try:
        collection(RECORDINGS).document(recording_id).update({
            'views': firestore.Increment(1),
            'updatedAt': firestore.SERVER_TIMESTAMP
        })
    except Exception as e:
        logger.error(f"❌ 조회수 증가 실패 ({recording_id}): {e}")


def update_recording_rating(recording_id, rating, student_id=None):
    """평점 반영 (누적 평균, 소수점 1자리)"""
    try:
        rating = float(rating)
    except (TypeError, ValueError):
        raise ValidationError('Rating must be a number')
    if not 1 <= rating <= 5:
        raise ValidationError('Rating must be between 1 and 5')

    recording = get_recording_by_id(recording_id)
    if not recording:
        raise NotFoundError('Recording not found')

    total_ratings = (recording.get('totalRatings') or 0) + 1
    average = ((recording.get('averageRating') or 0) * (total_ratings - 1) + rating) / total_ratings

    average = round(average, 1)
    update_data = {
        'totalRatings': total_ratings,
        'averageRating': average
    }
    if student_id:
        update_data[f'ratings.{student_id}'] = {
            'rating': rating,
            'ratedAt': firestore.SERVER_TIMESTAMP
        }

    _update(recording_id, update_data, 'update recording rating')
    return {
        'success': True,
        'recordingId': recording_id,
        'averageRating': average,
        'totalRatings': total_ratings
    }


def publish_recording(recording_id):
    _update(recording_id, {
        'isPublished': True,
        'publishedAt': firestore.SERVER_TIMESTAMP
    }, 'publish recording')
    logger.info(f"📢 녹화 공개: {recording_id}")
    return {'success': True, 'recordingId': recording_id, 'publishedAt': utcnow()}


def unpublish_recording(recording_id):
    _update(recording_id, {'isPublished': False}, 'unpublish recording')
    logger.info(f"🙈 녹화 비공개: {recording_id}")
    return {'success': True, 'recordingId': recording_id}


def delete_recording(recording_id):
    """소프트 삭제 (비공개 처리)"""
    return unpublish_recording(recording_id)


def hard_delete_recording(recording_id):
    """관리자 전용: 문서 삭제"""
    recording = get_recording_by_id(recording_id)
    if not recording:
        raise NotFoundError('Recording not found')
    try:
        collection(RECORDINGS).document(recording_id).delete()
    except Exception as e:
        logger.error(f"❌ 녹화 삭제 실패 ({recording_id}): {e}")
        raise wrap_failure('hard delete recording', e)
    logger.info(f"🗑️ 녹화 삭제: {recording_id}")
    return {'success': True, 'recordingId': recording_id, 'deletedAt': utcnow()}


def search_recordings(search_term, category='all', level='all', min_duration=None,
                      max_duration=None, min_rating=None, sort_by='relevance'):
    """공개 녹화 검색"""
    recordings = get_all_recordings(is_published='published', limit=1000)
    recordings = [r for r in recordings if r.get('status') in ('completed', 'recorded')]

    if search_term:
        recordings = [r for r in recordings if _matches_recording(r, search_term, include_category=True)]
    if category != 'all':
        recordings = [r for r in recordings if r.get('category') == category]
    if level != 'all':
        recordings = [r for r in recordings if r.get('level') == level]
    if min_duration is not None:
        recordings = [r for r in recordings if (r.get('duration') or 0) >= min_duration]
    if max_duration is not None:
        recordings = [r for r in recordings if (r.get('duration') or 0) <= max_duration]
    if min_rating is not None:
        recordings = [r for r in recordings if (r.get('averageRating') or 0) >= min_rating]

    if sort_by == 'newest':
        recordings.sort(key=lambda r: as_datetime(r.get('createdAt')) or utcnow(), reverse=True)
    elif sort_by == 'popular':
        recordings.sort(key=lambda r: r.get('views') or 0, reverse=True)
    elif sort_by == 'rating':
        recordings.sort(key=lambda r: r.get('averageRating') or 0, reverse=True)
    elif sort_by == 'duration':
        recordings.sort(key=lambda r: r.get('duration') or 0, reverse=True)
    else:
        # 추천 녹화 우선, 그 다음 조회수
        recordings.sort(key=lambda r: (not r.get('isFeatured'), -(r.get('views') or 0)))
    return recordings


def get_recording_stats(instructor_id=None):
    """녹화 통계"""
    try:
        base = collection(RECORDINGS)
        if instructor_id:
            base = base.where('instructorId', '==', instructor_id)

        recordings = get_all_recordings(limit=1000, instructor_id=instructor_id)

        statuses = {}
        recording_statuses = {}
        for recording in recordings:
            status = recording.get('status') or 'unknown'
            statuses[status] = statuses.get(status, 0) + 1
            recording_status = recording.get('recordingStatus') or 'not_started'
            recording_statuses[recording_status] = recording_statuses.get(recording_status, 0) + 1

        return {
            'total': count_documents(base),
            'published': count_documents(base.where('isPublished', '==', True)),
            'available': count_documents(base.where('recordingStatus', '==', 'available')),
            'scheduled': count_documents(base.where('status', '==', 'scheduled')),
            'processing': recording_statuses.get('processing', 0),

            'totalViews': sum(r.get('views') or 0 for r in recordings),
            'totalDuration': sum(r.get('duration') or 0 for r in recordings),
            'averageRating': (
                sum(r.get('averageRating') or 0 for r in recordings) / len(recordings)
                if recordings else 0
            ),

            'totalMeetSessions': sum(1 for r in recordings if r.get('meetLink')),
            'recordedSessions': recording_statuses.get('available', 0),
            'upcomingSessions': statuses.get('scheduled', 0),

            'statuses': statuses,
            'recordingStatuses': recording_statuses
        }
    except Exception as e:
        logger.error(f"❌ 녹화 통계 조회 실패: {e}")
        raise wrap_failure('fetch recording statistics', e)


def get_total_recordings():
    try:
        return count_documents(collection(RECORDINGS))
    except Exception as e:
        logger.error(f"❌ 녹화 수 조회 실패: {e}")
        return 0


def bulk_update_recordings(recording_ids, updates):
    """관리자: 일괄 수정 (write batch)"""
    if not recording_ids:
        return {'success': True, 'updatedCount': 0}
    filtered = _clean_updates(updates)
    try:
        batch = get_db().batch()
        for recording_id in recording_ids:
            batch.update(
                collection(RECORDINGS).document(recording_id),
                dict(filtered, updatedAt=firestore.SERVER_TIMESTAMP)
            )
        batch.commit()
        logger.info(f"✅ 녹화 일괄 수정: {len(recording_ids)}건")
        return {'success': True, 'updatedCount': len(recording_ids), 'updatedAt': utcnow()}
    except Exception as e:
        logger.error(f"❌ 녹화 일괄 수정 실패: {e}")
        raise wrap_failure('bulk update recordings', e)


def validate_recording_data(recording_data, is_update=False):
    """입력값 검증 결과 {'isValid', 'errors'}"""
    errors = []

    if not is_update or 'title' in recording_data:
        title = recording_data.get('title') or ''
        if not isinstance(title, str) or not title.strip():
            errors.append('Recording title is required')
        elif len(title) > 100:
            errors.append('Recording title must be less than 100 characters')

    if len(recording_data.get('description') or '') > 2000:
        errors.append('Recording description must be less than 2000 characters')
    for field, label in (('duration', 'Duration'), ('fileSize', 'File size')):
        try:
            value = parse_number(recording_data.get(field), field)
        except ValidationError as e:
            errors.append(e.message)
            continue
        if value < 0:
            errors.append(f'{label} cannot be negative')
    status = recording_data.get('status')
    if status is not None and status not in RECORDING_STATUSES:
        errors.append(f"Invalid status: {status}")
    recording_status = recording_data.get('recordingStatus')
    if recording_status is not None and recording_status not in RECORDING_PROCESS_STATUSES:
        errors.append(f"Invalid recording status: {recording_status}")
    if len(recording_data.get('tags') or []) > 10:
        errors.append('Maximum 10 tags allowed')

    meet_link = recording_data.get('meetLink')
    if meet_link and 'meet.google.com' not in meet_link:
        errors.append('Invalid Google Meet link')
    recording_url = recording_data.get('recordingUrl')
    if recording_url and not validate_drive_url(recording_url):
        errors.append('Invalid Google Drive recording URL')

    return {'isValid': not errors, 'errors': errors}

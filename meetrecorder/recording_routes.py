# meetrecorder/recording_routes.py
from flask import Blueprint, request, jsonify, g
import logging

from . import recording_service, course_service
from .auth import login_required, role_required, admin_required, require_owner, current_instructor
from .errors import ValidationError, NotFoundError
from .utils import parse_limit, validate_drive_url, RECORDING_STEPS, SHAREABLE_LINK_STEPS

logger = logging.getLogger(__name__)

recording_bp = Blueprint('recordings', __name__)

staff_required = role_required('admin', 'teacher')


def _load_recording(recording_id):
    recording = recording_service.get_recording_by_id(recording_id)
    if not recording:
        raise NotFoundError('Recording not found')
    return recording


def _validate(data, is_update=False):
    result = recording_service.validate_recording_data(data, is_update=is_update)
    if not result['isValid']:
        raise ValidationError('Invalid recording data', errors=result['errors'])


def _optional_float(name):
    value = request.args.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number")


@recording_bp.route('/recordings', methods=['GET'])
@admin_required
def list_recordings():
    """관리자: 전체 녹화 목록"""
    recordings = recording_service.get_all_recordings(
        limit=parse_limit(request.args.get('limit'), 50),
        status=request.args.get('status', 'all'),
        is_published=request.args.get('published', 'all'),
        category=request.args.get('category', 'all'),
        instructor_id=request.args.get('instructor_id'),
        sort_by=request.args.get('sort_by', 'createdAt'),
        sort_order=request.args.get('sort_order', 'desc'),
        search_term=request.args.get('search', '')
    )
    return jsonify({'recordings': recordings, 'total': len(recordings)}), 200


@recording_bp.route('/recordings', methods=['POST'])
@staff_required
def create_recording():
    """녹화 생성 API"""
    data = request.get_json() or {}
    _validate(data)
    data.update(current_instructor())
    return jsonify(recording_service.create_recording(data)), 201


@recording_bp.route('/recordings/from-session', methods=['POST'])
@staff_required
def create_from_session():
    data = request.get_json() or {}
    data.update(current_instructor())
    if data.get('sessionId'):
        result = recording_service.create_session_recording(data)
    else:
        result = recording_service.create_recording_from_meet_session(data)
    return jsonify(result), 201


@recording_bp.route('/recordings/available', methods=['GET'])
@login_required
def available_recordings():
    """학생용: 시청 가능한 녹화 (cursor 페이지네이션)"""
    page = recording_service.get_available_recordings(
        student_id=g.uid,
        cursor=request.args.get('cursor'),
        limit=parse_limit(request.args.get('limit'), 12),
        category=request.args.get('category', 'all'),
        instructor_id=request.args.get('instructor_id')
    )
    return jsonify(page), 200


@recording_bp.route('/recordings/student', methods=['GET'])
@login_required
def student_recordings():
    enrolled_courses = None
    if request.args.get('enrolled') == 'true':
        enrolled_courses = [c['id'] for c in course_service.get_enrolled_courses(g.uid)]
        if not enrolled_courses:
            return jsonify({'recordings': [], 'nextCursor': None}), 200

    page = recording_service.get_student_recordings(
        student_id=g.uid,
        cursor=request.args.get('cursor'),
        limit=parse_limit(request.args.get('limit'), 12),
        category=request.args.get('category', 'all'),
        enrolled_courses=enrolled_courses
    )
    return jsonify(page), 200


@recording_bp.route('/recordings/teacher', methods=['GET'])
@staff_required
def teacher_recordings():
    page = recording_service.get_teacher_recordings(
        g.uid,
        cursor=request.args.get('cursor'),
        limit=parse_limit(request.args.get('limit'), 12),
        status=request.args.get('status', 'all'),
        is_published=request.args.get('published', 'all')
    )
    return jsonify(page), 200


@recording_bp.route('/recordings/meet', methods=['GET'])
@staff_required
def instructor_meet_recordings():
    page = recording_service.get_instructor_meet_recordings(
        g.profile.get('email'),
        status=request.args.get('status', 'all'),
        recording_status=request.args.get('recording_status', 'all'),
        limit=parse_limit(request.args.get('limit'), 50),
        cursor=request.args.get('cursor')
    )
    return jsonify(page), 200


@recording_bp.route('/recordings/management', methods=['GET'])
@staff_required
def recording_management():
    """녹화 관리가 필요한 세션"""
    recordings = recording_service.get_sessions_for_recording_management(g.uid)
    return jsonify({'recordings': recordings}), 200


@recording_bp.route('/recordings/upcoming', methods=['GET'])
@staff_required
def upcoming_meet_sessions():
    recordings = recording_service.get_upcoming_meet_sessions(
        g.uid, days_ahead=parse_limit(request.args.get('days_ahead'), 7)
    )
    return jsonify({'recordings': recordings}), 200


@recording_bp.route('/recordings/needs-links', methods=['GET'])
@staff_required
def recordings_needing_links():
    instructor_id = g.uid if g.auth_state['role'] == 'teacher' else request.args.get('instructor_id')
    recordings = recording_service.get_recordings_needing_links(instructor_id)
    return jsonify({'recordings': recordings, 'total': len(recordings)}), 200


@recording_bp.route('/recordings/featured', methods=['GET'])
@login_required
def featured_recordings():
    recordings = recording_service.get_featured_recordings(limit=parse_limit(request.args.get('limit'), 10))
    return jsonify({'recordings': recordings}), 200


@recording_bp.route('/recordings/course/<course_id>', methods=['GET'])
@login_required
def course_recordings(course_id):
    recordings = recording_service.get_course_recordings(
        course_id, limit=parse_limit(request.args.get('limit'), 50)
    )
    return jsonify({'recordings': recordings}), 200


@recording_bp.route('/recordings/search', methods=['GET'])
@login_required
def search_recordings():
    """공개 녹화 검색"""
    recordings = recording_service.search_recordings(
        request.args.get('q', ''),
        category=request.args.get('category', 'all'),
        level=request.args.get('level', 'all'),
        min_duration=_optional_float('min_duration'),
        max_duration=_optional_float('max_duration'),
        min_rating=_optional_float('min_rating'),
        sort_by=request.args.get('sort_by', 'relevance')
    )
    return jsonify({'recordings': recordings, 'total': len(recordings)}), 200


@recording_bp.route('/recordings/stats', methods=['GET'])
@staff_required
def recording_stats():
    instructor_id = g.uid if g.auth_state['role'] == 'teacher' else request.args.get('instructor_id')
    stats = recording_service.get_recording_stats(instructor_id)
    return jsonify(stats), 200


@recording_bp.route('/recordings/workflow', methods=['GET'])
@login_required
def recording_workflow():
    """Meet 수동 녹화 안내"""
    return jsonify({
        'recordingSteps': RECORDING_STEPS,
        'shareableLinkSteps': SHAREABLE_LINK_STEPS
    }), 200


@recording_bp.route('/recordings/bulk-update', methods=['POST'])
@admin_required
def bulk_update():
    data = request.get_json() or {}
    result = recording_service.bulk_update_recordings(data.get('recordingIds') or [], data.get('updates') or {})
    return jsonify(result), 200


@recording_bp.route('/recordings/<recording_id>', methods=['GET'])
@login_required
def get_recording(recording_id):
    """녹화 상세 (학생은 공개된 녹화만)"""
    recording = _load_recording(recording_id)
    if g.auth_state['role'] == 'student' and not recording.get('isPublished'):
        raise NotFoundError('Recording not found')
    return jsonify(recording), 200


@recording_bp.route('/recordings/<recording_id>', methods=['PUT'])
@staff_required
def update_recording(recording_id):
    require_owner(_load_recording(recording_id))
    data = request.get_json() or {}
    _validate(data, is_update=True)
    return jsonify(recording_service.update_recording(recording_id, data)), 200


@recording_bp.route('/recordings/<recording_id>', methods=['DELETE'])
@staff_required
def delete_recording(recording_id):
    """소프트 삭제"""
    require_owner(_load_recording(recording_id))
    return jsonify(recording_service.delete_recording(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/hard', methods=['DELETE'])
@admin_required
def hard_delete_recording(recording_id):
    return jsonify(recording_service.hard_delete_recording(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/start', methods=['POST'])
@staff_required
def start_recording(recording_id):
    require_owner(_load_recording(recording_id))
    return jsonify(recording_service.start_recording_session(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/end', methods=['POST'])
@staff_required
def end_recording(recording_id):
    require_owner(_load_recording(recording_id))
    return jsonify(recording_service.end_recording_session(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/link', methods=['POST'])
@staff_required
def attach_drive_link(recording_id):
    """Google Drive 녹화 링크 등록"""
    require_owner(_load_recording(recording_id))
    data = request.get_json() or {}
    recording_url = data.get('recordingUrl')
    if recording_url and not validate_drive_url(recording_url):
        raise ValidationError('Invalid Google Drive recording URL')

    if data.get('duration') is not None or data.get('fileSize') is not None:
        result = recording_service.update_with_drive_recording(recording_id, data)
    else:
        result = recording_service.add_recording_url(recording_id, recording_url)
    return jsonify(result), 200


@recording_bp.route('/recordings/<recording_id>/status', methods=['POST'])
@staff_required
def update_status(recording_id):
    require_owner(_load_recording(recording_id))
    data = request.get_json() or {}
    result = recording_service.update_recording_status(recording_id, data.get('status'), data.get('data'))
    return jsonify(result), 200


@recording_bp.route('/recordings/<recording_id>/publish', methods=['POST'])
@staff_required
def publish_recording(recording_id):
    require_owner(_load_recording(recording_id))
    return jsonify(recording_service.publish_recording(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/unpublish', methods=['POST'])
@staff_required
def unpublish_recording(recording_id):
    require_owner(_load_recording(recording_id))
    return jsonify(recording_service.unpublish_recording(recording_id)), 200


@recording_bp.route('/recordings/<recording_id>/progress', methods=['POST'])
@login_required
def update_progress(recording_id):
    """학생 시청 진도"""
    data = request.get_json() or {}
    return jsonify(recording_service.update_student_progress(recording_id, g.uid, data)), 200


@recording_bp.route('/recordings/<recording_id>/view', methods=['POST'])
@login_required
def record_view(recording_id):
    recording_service.increment_recording_views(recording_id)
    return jsonify({'success': True, 'recordingId': recording_id}), 200


@recording_bp.route('/recordings/<recording_id>/rating', methods=['POST'])
@login_required
def rate_recording(recording_id):
    data = request.get_json() or {}
    return jsonify(recording_service.update_recording_rating(recording_id, data.get('rating'), g.uid)), 200

# meetrecorder/session_routes.py
from flask import Blueprint, request, jsonify, g
import logging

from . import session_service
from .auth import login_required, role_required, require_owner, current_instructor
from .errors import ValidationError, NotFoundError
from .utils import parse_limit

logger = logging.getLogger(__name__)

session_bp = Blueprint('sessions', __name__)

staff_required = role_required('admin', 'teacher')


def _load_session(session_id):
    session = session_service.get_session_by_id(session_id)
    if not session:
        raise NotFoundError('Session not found')
    return session


def _instructor_filter():
    """강사는 본인 세션만, 관리자는 instructor_id 파라미터"""
    if g.auth_state['role'] == 'teacher':
        return g.uid
    return request.args.get('instructor_id')


@session_bp.route('/sessions', methods=['GET'])
@staff_required
def list_sessions():
    sessions = session_service.get_all_sessions(
        status=request.args.get('status', 'all'),
        is_recorded=request.args.get('recorded', 'all'),
        date_range=request.args.get('date_range', 'all'),
        instructor_id=_instructor_filter(),
        limit=parse_limit(request.args.get('limit'), 50)
    )
    return jsonify({'sessions': sessions, 'total': len(sessions)}), 200


@session_bp.route('/sessions', methods=['POST'])
@staff_required
def create_session():
    """세션 생성 API"""
    data = request.get_json() or {}
    data.update(current_instructor())
    return jsonify(session_service.create_session(data)), 201


@session_bp.route('/sessions/meet', methods=['POST'])
@staff_required
def create_meet_session():
    """Meet 링크 자동 생성 세션"""
    data = request.get_json() or {}
    data.update(current_instructor())
    return jsonify(session_service.create_meet_session(data)), 201


@session_bp.route('/sessions/recording', methods=['POST'])
@staff_required
def create_session_recording():
    data = request.get_json() or {}
    data.update(current_instructor())
    return jsonify(session_service.create_session_recording(data)), 201


@session_bp.route('/sessions/public', methods=['GET'])
@login_required
def public_sessions():
    sessions = session_service.get_public_sessions(
        status=request.args.get('status', 'scheduled'),
        date_range=request.args.get('date_range', 'upcoming'),
        instructor_id=request.args.get('instructor_id'),
        limit=parse_limit(request.args.get('limit'), 50)
    )
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/for-students', methods=['GET'])
@login_required
def sessions_for_students():
    sessions = session_service.get_teacher_sessions_for_students(
        limit=parse_limit(request.args.get('limit'), 20),
        days_ahead=parse_limit(request.args.get('days_ahead'), 30)
    )
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/upcoming', methods=['GET'])
@login_required
def upcoming_sessions():
    sessions = session_service.get_upcoming_sessions(limit=parse_limit(request.args.get('limit'), 20))
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/recorded', methods=['GET'])
@login_required
def recorded_sessions():
    sessions = session_service.get_recorded_sessions(limit=parse_limit(request.args.get('limit'), 20))
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/course/<course_id>', methods=['GET'])
@login_required
def course_sessions(course_id):
    sessions = session_service.get_course_sessions(course_id, limit=parse_limit(request.args.get('limit'), 50))
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/mine', methods=['GET'])
@staff_required
def my_sessions():
    """강사 본인 세션"""
    if request.args.get('upcoming') == 'true':
        sessions = session_service.get_instructor_upcoming_sessions(
            g.uid,
            limit=parse_limit(request.args.get('limit'), 10),
            days_ahead=parse_limit(request.args.get('days_ahead'), 7)
        )
    else:
        sessions = session_service.get_instructor_sessions(
            g.uid,
            status=request.args.get('status', 'all'),
            limit=parse_limit(request.args.get('limit'), 50)
        )
    return jsonify({'sessions': sessions}), 200


@session_bp.route('/sessions/stats', methods=['GET'])
@staff_required
def session_stats():
    return jsonify(session_service.get_session_stats(_instructor_filter())), 200


@session_bp.route('/sessions/analytics', methods=['GET'])
@staff_required
def session_analytics():
    instructor_id = _instructor_filter() or g.uid
    return jsonify(session_service.get_teacher_session_analytics(instructor_id)), 200


@session_bp.route('/sessions/<session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    return jsonify(_load_session(session_id)), 200


@session_bp.route('/sessions/<session_id>', methods=['PUT'])
@staff_required
def update_session(session_id):
    """세션 수정"""
    require_owner(_load_session(session_id))
    data = request.get_json() or {}
    return jsonify(session_service.update_session(session_id, data)), 200


@session_bp.route('/sessions/<session_id>', methods=['DELETE'])
@staff_required
def delete_session(session_id):
    require_owner(_load_session(session_id))
    return jsonify(session_service.delete_session(session_id)), 200


@session_bp.route('/sessions/<session_id>/status', methods=['POST'])
@staff_required
def update_status(session_id):
    require_owner(_load_session(session_id))
    data = request.get_json() or {}
    return jsonify(session_service.update_session_status(session_id, data.get('status'))), 200


@session_bp.route('/sessions/<session_id>/participants', methods=['POST'])
@login_required
def join_session(session_id):
    """세션 참가"""
    profile = g.profile or {}
    participant = {
        'email': profile.get('email'),
        'name': profile.get('displayName'),
        'role': profile.get('role')
    }
    return jsonify(session_service.add_participant(session_id, g.uid, participant)), 200


@session_bp.route('/sessions/<session_id>/recorded', methods=['POST'])
@staff_required
def mark_recorded(session_id):
    require_owner(_load_session(session_id))
    data = request.get_json() or {}
    if not data.get('recordingUrl'):
        raise ValidationError('recordingUrl is required')
    return jsonify(session_service.mark_as_recorded(session_id, data['recordingUrl'])), 200


@session_bp.route('/sessions/<session_id>/recording', methods=['DELETE'])
@staff_required
def remove_recording(session_id):
    require_owner(_load_session(session_id))
    return jsonify(session_service.remove_recording(session_id)), 200

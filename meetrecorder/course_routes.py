# meetrecorder/course_routes.py
from flask import Blueprint, request, jsonify, g
import logging

from . import course_service
from .auth import login_required, require_owner
from .database import get_document
from .errors import NotFoundError
from .utils import parse_limit

logger = logging.getLogger(__name__)

course_bp = Blueprint('courses', __name__)


def _load_enrollment(enrollment_id):
    """본인 수강 정보만 (관리자 예외)"""
    enrollment = get_document(course_service.ENROLLMENTS, enrollment_id)
    if not enrollment:
        raise NotFoundError('Enrollment not found')
    require_owner(enrollment, 'studentId')
    return enrollment


@course_bp.route('/courses', methods=['GET'])
@login_required
def published_courses():
    courses = course_service.get_published_courses(
        limit=parse_limit(request.args.get('limit'), 20),
        category=request.args.get('category', 'all'),
        level=request.args.get('level', 'all'),
        instructor_id=request.args.get('instructor_id')
    )
    return jsonify({'courses': courses}), 200


@course_bp.route('/courses/search', methods=['GET'])
@login_required
def search_courses():
    courses = course_service.search_courses(
        request.args.get('q', ''),
        category=request.args.get('category', 'all'),
        level=request.args.get('level', 'all'),
        difficulty=request.args.get('difficulty', 'all'),
        instructor_id=request.args.get('instructor_id')
    )
    return jsonify({'courses': courses, 'total': len(courses)}), 200


@course_bp.route('/courses/featured', methods=['GET'])
@login_required
def featured_courses():
    courses = course_service.get_featured_courses(limit=parse_limit(request.args.get('limit'), 10))
    return jsonify({'courses': courses}), 200


@course_bp.route('/courses/popular', methods=['GET'])
@login_required
def popular_courses():
    courses = course_service.get_popular_courses(limit=parse_limit(request.args.get('limit'), 10))
    return jsonify({'courses': courses}), 200


@course_bp.route('/courses/mine', methods=['GET'])
@login_required
def my_courses():
    """수강 중인 과정"""
    courses = course_service.get_enrolled_courses(
        g.uid,
        limit=parse_limit(request.args.get('limit'), 50),
        status=request.args.get('status', 'all')
    )
    return jsonify({'courses': courses}), 200


@course_bp.route('/courses/stats', methods=['GET'])
@login_required
def course_stats():
    return jsonify(course_service.get_student_course_stats(g.uid)), 200


@course_bp.route('/courses/<course_id>', methods=['GET'])
@login_required
def get_course(course_id):
    course = course_service.get_course_by_id(course_id, g.uid)
    if not course:
        raise NotFoundError('Course not found')
    return jsonify(course), 200


@course_bp.route('/courses/<course_id>/modules', methods=['GET'])
@login_required
def course_modules(course_id):
    return jsonify({'modules': course_service.get_course_modules(course_id, g.uid)}), 200


@course_bp.route('/courses/<course_id>/enroll', methods=['POST'])
@login_required
def enroll(course_id):
    """수강 신청"""
    profile = g.profile or {}
    student_data = {'email': profile.get('email'), 'name': profile.get('displayName')}
    return jsonify(course_service.enroll_in_course(course_id, g.uid, student_data)), 201


@course_bp.route('/enrollments/<enrollment_id>', methods=['DELETE'])
@login_required
def unenroll(enrollment_id):
    enrollment = _load_enrollment(enrollment_id)
    result = course_service.unenroll_from_course(
        enrollment_id, enrollment.get('courseId'), enrollment.get('studentId')
    )
    return jsonify(result), 200


@course_bp.route('/enrollments/<enrollment_id>/progress', methods=['POST'])
@login_required
def update_progress(enrollment_id):
    _load_enrollment(enrollment_id)
    data = request.get_json() or {}
    return jsonify(course_service.update_course_progress(enrollment_id, data)), 200


@course_bp.route('/enrollments/<enrollment_id>/modules/<module_id>/complete', methods=['POST'])
@login_required
def complete_module(enrollment_id, module_id):
    _load_enrollment(enrollment_id)
    return jsonify(course_service.mark_module_completed(enrollment_id, module_id)), 200

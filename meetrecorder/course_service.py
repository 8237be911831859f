# meetrecorder/course_service.py
"""과정(course) / 수강 신청(enrollment) / 모듈(module) 관리"""

import logging

from firebase_admin import firestore

from .config import SEARCH_RESULT_LIMIT
from .database import collection, get_document, snapshot_to_dict, apply_query_options, utcnow
from .errors import ValidationError, NotFoundError, ConflictError, wrap_failure
from .utils import contains, parse_number

logger = logging.getLogger(__name__)

COURSES = 'courses'
ENROLLMENTS = 'enrollments'
MODULES = 'modules'


def _fetch(query, action):
    try:
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 과정 조회 실패 ({action}): {e}")
        raise wrap_failure(f'fetch {action}', e)


def get_published_courses(limit=20, category='all', level='all', instructor_id=None):
    """공개된 과정 목록"""
    query = collection(COURSES).where('isPublished', '==', True)
    if category and category != 'all':
        query = query.where('category', '==', category)
    if level and level != 'all':
        query = query.where('level', '==', level)
    if instructor_id:
        query = query.where('instructorId', '==', instructor_id)
    query = apply_query_options(query, 'createdAt', 'desc', limit)
    return _fetch(query, 'published courses')


def _find_enrollment(student_id, course_id):
    docs = list(
        collection(ENROLLMENTS)
        .where('studentId', '==', student_id)
        .where('courseId', '==', course_id)
        .limit(1)
        .stream()
    )
    return docs[0] if docs else None


def get_enrolled_courses(student_id, limit=50, status='all'):
    """학생이 수강 중인 과정"""
    if not student_id:
        raise ValidationError('Student ID is required')

    query = collection(ENROLLMENTS).where('studentId', '==', student_id)
    if status != 'all':
        query = query.where('status', '==', status)
    query = apply_query_options(query, 'enrolledAt', 'desc', limit)

    enrolled = []
    for enrollment in _fetch(query, 'enrolled courses'):
        course = get_document(COURSES, enrollment.get('courseId'))
        if not course:
            logger.warning(f"⚠️ 수강 과정 문서 없음: {enrollment.get('courseId')}")
            continue
        course.update({
            'enrollmentId': enrollment['id'],
            'enrollmentStatus': enrollment.get('status'),
            'enrolledAt': enrollment.get('enrolledAt'),
            'progress': enrollment.get('progress') or 0,
            'lastAccessed': enrollment.get('lastAccessed'),
            'completedAt': enrollment.get('completedAt')
        })
        enrolled.append(course)
    return enrolled


def get_course_by_id(course_id, student_id=None):
    """과정 상세 (비공개 과정은 None)"""
    if not course_id:
        raise ValidationError('Course ID is required')
    try:
        course = get_document(COURSES, course_id)
        if not course or not course.get('isPublished'):
            return None

        if student_id:
            enrollment_doc = _find_enrollment(student_id, course_id)
            if enrollment_doc:
                enrollment = enrollment_doc.to_dict()
                course['enrollment'] = {
                    'id': enrollment_doc.id,
                    'status': enrollment.get('status'),
                    'enrolledAt': enrollment.get('enrolledAt'),
                    'progress': enrollment.get('progress') or 0,
                    'lastAccessed': enrollment.get('lastAccessed'),
                    'completedAt': enrollment.get('completedAt'),
                    'completedModules': len(enrollment.get('completedModules') or []),
                    'totalModules': enrollment.get('totalModules') or 0
                }
        return course
    except Exception as e:
        logger.error(f"❌ 과정 조회 실패 ({course_id}): {e}")
        raise wrap_failure('fetch course', e)


def enroll_in_course(course_id, student_id, student_data=None):
    """수강 신청"""
    if not course_id or not student_id:
        raise ValidationError('Course ID and Student ID are required')
    student_data = student_data or {}
    try:
        course = get_document(COURSES, course_id)
        if not course:
            raise NotFoundError('Course not found')
        if not course.get('isPublished'):
            raise ValidationError('Course is not available for enrollment')

        existing = _find_enrollment(student_id, course_id)
        if existing:
            raise ConflictError(
                f"Already enrolled in this course (Status: {existing.to_dict().get('status')})"
            )

        modules = collection(MODULES) \
            .where('courseId', '==', course_id) \
            .where('isPublished', '==', True) \
            .stream()
        total_modules = sum(1 for _ in modules)

        enrollment = {
            'courseId': course_id,
            'studentId': student_id,
            'studentEmail': student_data.get('email', ''),
            'studentName': student_data.get('name', ''),
            'status': 'active',
            'progress': 0,
            'enrolledAt': firestore.SERVER_TIMESTAMP,
            'lastAccessed': firestore.SERVER_TIMESTAMP,
            'completedAt': None,
            'totalModules': total_modules,
            'completedModules': [],
            'updatedAt': firestore.SERVER_TIMESTAMP
        }
        _, enrollment_ref = collection(ENROLLMENTS).add(enrollment)

        collection(COURSES).document(course_id).update({
            'enrolledStudents': firestore.ArrayUnion([student_id]),
            'totalEnrollments': firestore.Increment(1),
            'updatedAt': firestore.SERVER_TIMESTAMP
        })

        logger.info(f"✅ 수강 신청: {student_id} → {course_id}")
        return {
            'success': True,
            'enrollmentId': enrollment_ref.id,
            'course': {
                'id': course_id,
                'title': course.get('title'),
                'instructorName': course.get('instructorName'),
                'totalModules': total_modules
            }
        }
    except Exception as e:
        logger.error(f"❌ 수강 신청 실패 ({course_id}, {student_id}): {e}")
        raise wrap_failure('enroll in course', e)


def update_course_progress(enrollment_id, progress_data):
    """진도율 갱신 (0~100, 100 이면 완료)"""
    try:
        progress = min(max(parse_number(progress_data.get('progress'), 'progress'), 0), 100)
        update_data = {
            'progress': progress,
            'lastAccessed': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP
        }
        if progress >= 100:
            update_data['status'] = 'completed'
            update_data['completedAt'] = firestore.SERVER_TIMESTAMP

        collection(ENROLLMENTS).document(enrollment_id).update(update_data)
        return {
            'success': True,
            'enrollmentId': enrollment_id,
            'progress': progress,
            'status': update_data.get('status')
        }
    except Exception as e:
        logger.error(f"❌ 진도율 갱신 실패 ({enrollment_id}): {e}")
        raise wrap_failure('update course progress', e)


def get_course_modules(course_id, student_id=None):
    """과정 모듈 목록 (학생별 완료 여부 포함)"""
    query = collection(MODULES) \
        .where('courseId', '==', course_id) \
        .where('isPublished', '==', True)
    query = apply_query_options(query, 'order', 'asc')
    modules = _fetch(query, 'course modules')

    completed = []
    if student_id:
        enrollment_doc = _find_enrollment(student_id, course_id)
        if enrollment_doc:
            completed = enrollment_doc.to_dict().get('completedModules') or []

    for module in modules:
        module['isCompleted'] = module['id'] in completed
    return modules


def search_courses(search_term, category='all', level='all', difficulty='all', instructor_id=None):
    courses = get_published_courses(limit=1000)

    if search_term:
        courses = [
            c for c in courses
            if any(contains(c.get(key), search_term)
                   for key in ('title', 'description', 'instructorName', 'category'))
            or any(contains(tag, search_term) for tag in c.get('tags') or [])
        ]
    if category != 'all':
        courses = [c for c in courses if c.get('category') == category]
    if level != 'all':
        courses = [c for c in courses if c.get('level') == level]
    if difficulty != 'all':
        courses = [c for c in courses if c.get('difficulty') == difficulty]
    if instructor_id:
        courses = [c for c in courses if c.get('instructorId') == instructor_id]
    return courses[:SEARCH_RESULT_LIMIT]


def get_featured_courses(limit=10):
    """추천 과정 (조회 실패 시 최신 공개 과정)"""
    try:
        query = collection(COURSES) \
            .where('isPublished', '==', True) \
            .where('isFeatured', '==', True)
        query = apply_query_options(query, 'createdAt', 'desc', limit)
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 추천 과정 조회 실패, 최신 과정으로 대체: {e}")
        return get_published_courses(limit=limit)


def get_popular_courses(limit=10):
    """수강생 많은 순 (조회 실패 시 최신 공개 과정)"""
    try:
        query = collection(COURSES).where('isPublished', '==', True)
        query = apply_query_options(query, 'totalEnrollments', 'desc', limit)
        return [snapshot_to_dict(doc) for doc in query.stream()]
    except Exception as e:
        logger.error(f"❌ 인기 과정 조회 실패, 최신 과정으로 대체: {e}")
        return get_published_courses(limit=limit)


def unenroll_from_course(enrollment_id, course_id, student_id):
    """수강 취소"""
    try:
        collection(ENROLLMENTS).document(enrollment_id).delete()

        course = get_document(COURSES, course_id)
        if course:
            collection(COURSES).document(course_id).update({
                'enrolledStudents': firestore.ArrayRemove([student_id]),
                'totalEnrollments': max((course.get('totalEnrollments') or 1) - 1, 0),
                'updatedAt': firestore.SERVER_TIMESTAMP
            })
        logger.info(f"↩️ 수강 취소: {student_id} ← {course_id}")
        return {'success': True, 'enrollmentId': enrollment_id, 'courseId': course_id}
    except Exception as e:
        logger.error(f"❌ 수강 취소 실패 ({enrollment_id}): {e}")
        raise wrap_failure('unenroll from course', e)


def get_student_course_stats(student_id):
    enrolled = get_enrolled_courses(student_id, limit=1000)
    available = get_published_courses(limit=1000)
    return {
        'totalEnrolled': len(enrolled),
        'totalAvailable': len(available),
        'completedCourses': sum(1 for c in enrolled if c.get('enrollmentStatus') == 'completed'),
        'inProgressCourses': sum(1 for c in enrolled if c.get('enrollmentStatus') == 'active'),
        'averageProgress': (
            round(sum(c.get('progress') or 0 for c in enrolled) / len(enrolled)) if enrolled else 0
        ),
        'recentEnrollments': enrolled[:5],
        'totalLearningTime': sum(c.get('estimatedDuration') or 0 for c in enrolled)
    }


def mark_module_completed(enrollment_id, module_id):
    """모듈 완료 처리 → 진도율 재계산"""
    try:
        enrollment = get_document(ENROLLMENTS, enrollment_id)
        if not enrollment:
            raise NotFoundError('Enrollment not found')

        completed = list(enrollment.get('completedModules') or [])
        if module_id in completed:
            return {'success': True, 'alreadyCompleted': True}

        completed.append(module_id)
        total_modules = enrollment.get('totalModules') or 1
        progress = round(len(completed) / total_modules * 100)

        update_data = {
            'completedModules': completed,
            'progress': progress,
            'lastAccessed': firestore.SERVER_TIMESTAMP,
            'updatedAt': firestore.SERVER_TIMESTAMP
        }
        if progress >= 100:
            update_data['status'] = 'completed'
            update_data['completedAt'] = firestore.SERVER_TIMESTAMP

        collection(ENROLLMENTS).document(enrollment_id).update(update_data)
        return {
            'success': True,
            'progress': progress,
            'completedModules': len(completed),
            'totalModules': total_modules,
            'isCourseCompleted': progress >= 100,
            'completedAt': utcnow() if progress >= 100 else None
        }
    except Exception as e:
        logger.error(f"❌ 모듈 완료 처리 실패 ({enrollment_id}, {module_id}): {e}")
        raise wrap_failure('mark module as completed', e)

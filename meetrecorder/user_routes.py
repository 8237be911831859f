# meetrecorder/user_routes.py
from flask import Blueprint, request, jsonify, g
import logging

from . import user_service
from .auth import login_required, admin_required
from .errors import NotFoundError
from .utils import parse_limit

logger = logging.getLogger(__name__)

user_bp = Blueprint('users', __name__)


@user_bp.route('/users/me', methods=['GET'])
@login_required
def get_my_profile():
    profile = user_service.get_user_profile(g.uid)
    if not profile:
        raise NotFoundError('User profile not found')
    return jsonify(profile), 200


@user_bp.route('/users/me', methods=['PATCH'])
@login_required
def update_my_profile():
    """본인 프로필 수정"""
    data = request.get_json() or {}
    return jsonify(user_service.update_user_profile(g.uid, data)), 200


# ===== 관리자 =====

@user_bp.route('/admin/users', methods=['GET'])
@admin_required
def list_users():
    """관리자: 사용자 목록"""
    users = user_service.get_all_users(
        status=request.args.get('status', 'all'),
        role=request.args.get('role', 'all'),
        search_term=request.args.get('search', ''),
        sort_by=request.args.get('sort_by', 'createdAt'),
        sort_order=request.args.get('sort_order', 'desc'),
        limit=parse_limit(request.args.get('limit'), 50)
    )
    return jsonify({'users': users, 'total': len(users)}), 200


@user_bp.route('/admin/users/count', methods=['GET'])
@admin_required
def users_count():
    return jsonify(user_service.get_users_count()), 200


@user_bp.route('/admin/users/pending', methods=['GET'])
@admin_required
def pending_users():
    users = user_service.get_pending_users()
    return jsonify({'users': users, 'total': len(users)}), 200


@user_bp.route('/admin/users/search', methods=['GET'])
@admin_required
def search_users():
    users = user_service.search_users(
        request.args.get('q', ''),
        field=request.args.get('field', 'all')
    )
    return jsonify({'users': users, 'total': len(users)}), 200


@user_bp.route('/admin/users/<user_id>/approve', methods=['POST'])
@admin_required
def approve_user(user_id):
    data = request.get_json(silent=True) or {}
    return jsonify(user_service.approve_user(user_id, approved_by=g.uid, notes=data.get('notes', ''))), 200


@user_bp.route('/admin/users/<user_id>/reject', methods=['POST'])
@admin_required
def reject_user(user_id):
    data = request.get_json(silent=True) or {}
    return jsonify(user_service.reject_user(user_id, rejected_by=g.uid, reason=data.get('reason', ''))), 200


@user_bp.route('/admin/users/<user_id>/deactivate', methods=['POST'])
@admin_required
def deactivate_user(user_id):
    data = request.get_json(silent=True) or {}
    return jsonify(user_service.deactivate_user(user_id, reason=data.get('reason', ''), deactivated_by=g.uid)), 200


@user_bp.route('/admin/users/<user_id>/reactivate', methods=['POST'])
@admin_required
def reactivate_user(user_id):
    return jsonify(user_service.reactivate_user(user_id, reactivated_by=g.uid)), 200


@user_bp.route('/admin/users/<user_id>/role', methods=['POST'])
@admin_required
def change_role(user_id):
    """역할 변경"""
    data = request.get_json() or {}
    return jsonify(user_service.change_user_role(user_id, data.get('role'), changed_by=g.uid)), 200


@user_bp.route('/admin/users/bulk-approve', methods=['POST'])
@admin_required
def bulk_approve():
    data = request.get_json() or {}
    return jsonify(user_service.bulk_approve_users(data.get('userIds') or [], approved_by=g.uid)), 200


@user_bp.route('/admin/users/<user_id>/subscription', methods=['PUT'])
@admin_required
def update_subscription(user_id):
    data = request.get_json() or {}
    return jsonify(user_service.update_user_subscription(user_id, data)), 200


@user_bp.route('/admin/users/<user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    """관리자: 사용자 프로필 삭제"""
    return jsonify(user_service.delete_user_profile(user_id)), 200

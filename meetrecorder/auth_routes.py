# meetrecorder/auth_routes.py
from flask import Blueprint, request, jsonify, g
import logging

from . import auth
from .auth import login_required

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/auth/register', methods=['POST'])
def register():
    """회원가입 API"""
    data = request.get_json() or {}
    email = (data.pop('email', '') or '').strip()
    password = data.pop('password', '')

    result = auth.register(email, password, data)
    return jsonify(result), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """로그인 API"""
    data = request.get_json() or {}
    email = (data.get('email', '') or '').strip()
    password = data.get('password', '')

    return jsonify(auth.login(email, password)), 200


@auth_bp.route('/auth/reset-password', methods=['POST'])
def reset_password():
    data = request.get_json() or {}
    return jsonify(auth.reset_password((data.get('email') or '').strip())), 200


@auth_bp.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    return jsonify(auth.logout(g.uid)), 200


@auth_bp.route('/auth/me', methods=['GET'])
@login_required
def me():
    """현재 인증 상태"""
    return jsonify(g.auth_state), 200

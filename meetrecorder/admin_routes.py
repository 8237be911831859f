# meetrecorder/admin_routes.py
from flask import Blueprint, jsonify, request
import threading
import logging

from .auth import admin_required
from .scheduler import sync_recording_lifecycle, get_scheduler_status

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def _run_sync(auto_advance=False):
    try:
        sync_recording_lifecycle(auto_advance=auto_advance)
    except Exception as e:
        logger.error(f"❌ 수동 상태 동기화 실패: {e}")


@admin_bp.route('/admin/sync-lifecycle', methods=['POST'])
@admin_required
def manual_sync_lifecycle():
    """수동 녹화 상태 동기화 (autoAdvance: true 면 대상 세션 시작/종료)"""
    data = request.get_json(silent=True) or {}
    auto_advance = data.get('autoAdvance') is True
    try:
        thread = threading.Thread(target=_run_sync, args=(auto_advance,))
        thread.daemon = True
        thread.start()

        return jsonify({
            'message': '녹화 상태 동기화 작업이 백그라운드에서 시작되었습니다.',
            'status': 'started',
            'autoAdvance': auto_advance
        }), 202

    except Exception as e:
        logger.error(f"수동 상태 동기화 시작 실패: {e}")
        return jsonify({'error': '동기화 작업 시작에 실패했습니다.'}), 500


@admin_bp.route('/admin/scheduler-status', methods=['GET'])
@admin_required
def scheduler_status():
    """스케줄러 상태 확인"""
    try:
        return jsonify(get_scheduler_status()), 200
    except Exception as e:
        logger.error(f"스케줄러 상태 조회 실패: {e}")
        return jsonify({'error': '스케줄러 상태를 가져올 수 없습니다.'}), 500

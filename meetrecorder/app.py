# meetrecorder/app.py (메인 애플리케이션)
from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider
from firebase_admin import firestore
from werkzeug.exceptions import HTTPException
from datetime import datetime
import atexit
import click
import os
import logging

from . import __version__
from .config import SECRET_KEY, SCHEDULER_ENABLED, ADMIN_EMAIL, ADMIN_PASSWORD
from .errors import ServiceError
from .auth_state import profile_mirror
from .scheduler import scheduler, start_scheduler
from .auth_routes import auth_bp
from .user_routes import user_bp
from .session_routes import session_bp
from .recording_routes import recording_bp
from .course_routes import course_bp
from .admin_routes import admin_bp

logger = logging.getLogger(__name__)


class FirestoreJSONProvider(DefaultJSONProvider):
    """Firestore 타임스탬프를 ISO 문자열로 직렬화"""

    @staticmethod
    def default(o):
        if isinstance(o, datetime):
            return o.isoformat()
        # 서버 타임스탬프는 저장 후에야 값이 정해짐
        if o is firestore.SERVER_TIMESTAMP:
            return None
        return DefaultJSONProvider.default(o)


def register_error_handlers(app):
    """서비스 예외 → JSON 응답"""

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        if e.status_code >= 500:
            logger.error(f"❌ 서비스 오류: {e.message}")
        return jsonify(e.to_response()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.error(f"❌ 처리되지 않은 오류: {e}", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500


def register_cli(app):

    @app.cli.command('create-admin')
    @click.option('--email', default=ADMIN_EMAIL, help='관리자 이메일')
    @click.option('--password', default=ADMIN_PASSWORD, help='관리자 비밀번호')
    @click.option('--name', default='Admin', help='표시 이름')
    def create_admin(email, password, name):
        """관리자 계정 생성"""
        from . import auth
        from .database import initialize_firebase

        initialize_firebase()
        try:
            result = auth.register(email, password, {'role': 'admin', 'firstName': name})
        except ServiceError as e:
            raise click.ClickException(e.message)
        click.echo(f"✅ 관리자 계정 생성 완료: {email} ({result['userId']})")


def create_app():
    """Flask 앱 생성"""
    app = Flask(__name__)
    app.secret_key = SECRET_KEY
    app.json = FirestoreJSONProvider(app)

    # Blueprint 등록
    for blueprint in (auth_bp, user_bp, session_bp, recording_bp, course_bp, admin_bp):
        app.register_blueprint(blueprint, url_prefix='/api')

    register_error_handlers(app)
    register_cli(app)

    # 보안 헤더 설정
    @app.after_request
    def after_request(response):
        """보안 헤더 추가"""
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        return response

    # 헬스체크
    @app.route('/health', methods=['GET'])
    def health_check():
        """서비스 상태 확인"""
        from .database import collection

        try:
            collection('users').limit(1).get()
            firestore_status = 'healthy'
        except Exception as e:
            logger.warning(f"Firestore 헬스체크 실패: {e}")
            firestore_status = 'unhealthy'

        overall_status = 'healthy' if firestore_status == 'healthy' else 'unhealthy'

        return jsonify({
            'status': overall_status,
            'timestamp': datetime.utcnow().isoformat(),
            'services': {
                'firestore': firestore_status,
                'scheduler': scheduler.running
            },
            'version': __version__
        }), 200 if overall_status == 'healthy' else 503

    return app


def initialize_app(app):
    """앱 초기화 (Firebase 연결 + 스케줄러)"""
    from .database import get_db

    try:
        get_db()

        if SCHEDULER_ENABLED and not scheduler.running:
            start_scheduler()
        atexit.register(profile_mirror.stop)

        # Railway 환경 확인
        if os.environ.get('RAILWAY_ENVIRONMENT'):
            app.logger.setLevel(logging.INFO)
            app.logger.info("🚂 Railway 환경에서 실행 중")

        app.logger.info("✅ 앱 초기화 완료")
        return True

    except Exception as e:
        app.logger.error(f"❌ 앱 초기화 실패: {e}")
        return False

# app.py (WSGI 엔트리포인트)
from meetrecorder.app import create_app, initialize_app
import os
import logging

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Flask 앱 생성
app = create_app()
initialize_app(app)

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))

    app.logger.info("🚀 Flask 서버 시작")

    if os.environ.get('RAILWAY_ENVIRONMENT'):
        app.run(host="0.0.0.0", port=port, debug=False)
    else:
        app.run(host="0.0.0.0", port=port, debug=True, use_reloader=False)

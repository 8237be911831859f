# meetrecorder/__init__.py
"""
Meet Recorder Backend Package

Google Meet 수업 세션과 녹화 영상을 관리하는 교육 플랫폼 백엔드입니다.
Firebase Authentication + Cloud Firestore 위에서 동작합니다.

주요 모듈:
- app: Flask 애플리케이션 팩토리
- config: 설정 관리
- auth: 로그인/회원가입 및 권한 데코레이터
- auth_state: 프로필 실시간 미러 (승인 상태 반영)
- database: Firestore 연동
- user_service: 사용자 프로필 / 가입 승인
- session_service: 라이브 세션 관리
- recording_service: 녹화 워크플로 관리
- course_service: 과정 / 수강 관리
- scheduler: 녹화 상태 자동 동기화
- *_routes: REST API 엔드포인트
"""

# 패키지 정보
__version__ = "1.0.0"
__description__ = "Meet Recorder - session and recording management backend"

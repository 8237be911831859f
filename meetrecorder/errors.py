# meetrecorder/errors.py
"""서비스 계층 예외

서비스 함수는 아래 예외를 발생시키고, app.register_error_handlers 가
이를 {'error': message} JSON 응답으로 변환합니다.
"""

from google.api_core import exceptions as google_exceptions


class ServiceError(Exception):
    """모든 서비스 오류의 기본 클래스"""
    status_code = 500

    def __init__(self, message, status_code=None, **extra):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_response(self):
        body = {'error': self.message}
        body.update(self.extra)
        return body


class ValidationError(ServiceError):
    status_code = 400

    def __init__(self, message, errors=None):
        if errors:
            super().__init__(message, errors=errors)
        else:
            super().__init__(message)


class AuthenticationError(ServiceError):
    status_code = 401


class ApprovalRequiredError(ServiceError):
    """승인 대기 중인 계정"""
    status_code = 403

    def __init__(self, message='Account pending approval. Please wait for admin approval.'):
        super().__init__(message, requiresApproval=True)


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


def wrap_failure(action, error):
    """예상하지 못한 SDK 오류를 ServiceError 로 감싼다 (도메인 오류는 그대로)"""
    if isinstance(error, ServiceError):
        return error
    if isinstance(error, google_exceptions.NotFound):
        return NotFoundError(f"Cannot {action}: document not found")
    return ServiceError(f"Failed to {action}: {error}")

"""Custom authentication exceptions.

인증 관련 예외 클래스 정의.
AuthErrorKind로 실패 원인을 분류하고, 예외 계층으로 세부 정보를 전달합니다.
"""

from enum import Enum


class AuthErrorKind(Enum):
    """인증 시도 실패 분류."""

    BAD_PARAMETER = "bad_parameter"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"
    REDIRECT_PARSE_FAILURE = "redirect_parse_failure"
    SESSION_ERROR = "session_error"
    AUTHORIZATION_FAILED = "authorization_failed"


class AuthFailureReason(Enum):
    """리다이렉트 error 파라미터로 전달되는 OAuth 에러 코드."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_SCOPE = "invalid_scope"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    ACCESS_DENIED = "access_denied"
    SERVER_ERROR = "server_error"
    MISCONFIGURED = "misconfigured"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: str | None) -> "AuthFailureReason":
        """에러 코드 문자열을 변환 (알 수 없는 코드는 UNKNOWN)."""
        for reason in cls:
            if reason.value == code:
                return reason
        return cls.UNKNOWN


class AuthenticationError(Exception):
    """기본 인증 예외.

    모든 인증 관련 예외의 베이스 클래스.

    Attributes:
        provider: 인증 제공자 이름
    """

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        super().__init__(message)


class AuthError(AuthenticationError):
    """인증 시도 실패.

    Attributes:
        kind: 실패 분류 (AuthErrorKind)
        message: 에러 메시지
    """

    def __init__(
        self,
        kind: AuthErrorKind,
        message: str | None = None,
        provider: str | None = None,
    ):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(self.message, provider)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.name}, message={self.message!r})"


class CompanionAppUnavailableError(AuthError):
    """동반 앱 실행 실패.

    앱 미설치와 사용자 취소를 구분할 수 없으므로 kind는 CANCELLED.
    """

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(AuthErrorKind.CANCELLED, message)


class OAuthError(AuthError):
    """OAuth 에러 응답.

    리다이렉트 URL의 error 파라미터로 전달된 실패.

    Attributes:
        error_code: OAuth 에러 코드 (예: 'access_denied')
        reason: error_code에 대응하는 AuthFailureReason
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider: str | None = None,
    ):
        self.error_code = error_code
        self.reason = AuthFailureReason.from_code(error_code)
        super().__init__(AuthErrorKind.AUTHORIZATION_FAILED, message, provider)


class SessionCancelledError(AuthenticationError):
    """브라우저 세션이 사용자에 의해 닫힘."""

    pass


class TokenExchangeError(AuthenticationError):
    """토큰/agt 엔드포인트 호출 실패.

    Attributes:
        status_code: HTTP 상태 코드 (응답이 없으면 None)
        error_code: 응답 본문의 error 값
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        provider: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, provider)

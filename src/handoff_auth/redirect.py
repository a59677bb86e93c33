"""Redirect URI Parser

콜백 URL에서 인증 코드 또는 에러를 추출합니다.
모든 함수는 어떤 입력에도 예외를 던지지 않습니다.
"""

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from handoff_auth.exceptions import (
    AuthError,
    AuthErrorKind,
    AuthFailureReason,
    OAuthError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedirectCode:
    """인증 코드 수신."""

    code: str


@dataclass(frozen=True)
class RedirectError:
    """에러 수신 또는 파싱 실패.

    Attributes:
        kind: 실패 분류
        message: error_description 또는 에러 코드
        error_code: 원본 error 파라미터 (파싱 실패 시 None)
    """

    kind: AuthErrorKind
    message: str
    error_code: str | None = None

    @property
    def reason(self) -> AuthFailureReason | None:
        if self.error_code is None:
            return None
        return AuthFailureReason.from_code(self.error_code)

    def to_exception(self) -> AuthError:
        """coordinator가 surface할 예외로 변환."""
        if self.kind is AuthErrorKind.AUTHORIZATION_FAILED:
            return OAuthError(self.message, error_code=self.error_code)
        return AuthError(self.kind, self.message)


RedirectResult = RedirectCode | RedirectError


def _query_params(url) -> dict[str, list[str]] | None:
    if not isinstance(url, str):
        return None
    try:
        return parse_qs(urlparse(url).query)
    except ValueError:
        return None


def parse_redirect(url) -> RedirectResult:
    """콜백 URL 파싱.

    Args:
        url: 리다이렉트된 URL

    Returns:
        RedirectResult: RedirectCode 또는 RedirectError
    """
    params = _query_params(url)
    if params is None:
        logger.error("Failed to parse redirect URI.")
        return RedirectError(
            AuthErrorKind.REDIRECT_PARSE_FAILURE, "Failed to parse redirect URI."
        )

    code = params.get("code", [""])[0]
    if code:
        logger.debug("Auth code received: %s...", code[:8])
        return RedirectCode(code)

    error = params.get("error", [""])[0]
    if error:
        description = params.get("error_description", [""])[0]
        logger.error("OAuth error: %s", error)
        return RedirectError(
            AuthErrorKind.AUTHORIZATION_FAILED,
            description or error,
            error_code=error,
        )

    logger.error("No code or error in redirect parameters")
    return RedirectError(
        AuthErrorKind.REDIRECT_PARSE_FAILURE, "Failed to parse redirect URI."
    )


def is_valid_redirect_uri(url, redirect_uri: str | None) -> bool:
    """URL이 설정된 리다이렉트 URI로 돌아온 것인지 확인.

    scheme과 host(포트 포함)가 일치하고, 설정된 경로가 있으면 경로도 일치해야 합니다.
    """
    if not isinstance(url, str) or not redirect_uri:
        return False
    try:
        received = urlparse(url)
        expected = urlparse(redirect_uri)
    except ValueError:
        return False

    if not expected.scheme or received.scheme.lower() != expected.scheme.lower():
        return False
    if received.netloc.lower() != expected.netloc.lower():
        return False
    expected_path = expected.path.rstrip("/")
    return not expected_path or received.path.rstrip("/") == expected_path

"""Authentication Sessions

브라우저 인증 세션 구현과 실행 환경에 맞는 구현 선택.
"""

import logging
import webbrowser

from handoff_auth.sessions.base import AuthenticationSession, CompletionHandler
from handoff_auth.sessions.loopback import (
    LoopbackAuthenticationSession,
    is_loopback_uri,
    open_in_browser,
)
from handoff_auth.sessions.manual import ManualAuthenticationSession

logger = logging.getLogger(__name__)


def browser_available() -> bool:
    """실행 가능한 브라우저가 있는지 확인."""
    try:
        webbrowser.get()
    except webbrowser.Error:
        return False
    return True


def select_session_factory(redirect_uri: str | None) -> type[AuthenticationSession]:
    """리다이렉트 URI와 실행 환경에 맞는 세션 구현 선택.

    loopback http 리다이렉트이고 브라우저가 있으면 로컬 서버 세션,
    그 외에는 수동 붙여넣기 세션.
    """
    if is_loopback_uri(redirect_uri) and browser_available():
        logger.debug("Using loopback authentication session")
        return LoopbackAuthenticationSession
    logger.debug("Using manual authentication session")
    return ManualAuthenticationSession


__all__ = [
    "AuthenticationSession",
    "CompletionHandler",
    "LoopbackAuthenticationSession",
    "ManualAuthenticationSession",
    "browser_available",
    "is_loopback_uri",
    "open_in_browser",
    "select_session_factory",
]

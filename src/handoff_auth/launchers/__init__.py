"""Launch Strategies

동반 앱 실행과 브라우저 세션, 두 가지 인증 실행 방식.
"""

from handoff_auth.launchers.base import (
    LaunchHandle,
    LaunchKind,
    LaunchStrategy,
    ResultCallback,
)
from handoff_auth.launchers.browser import BrowserSessionLauncher, classify_session_error
from handoff_auth.launchers.companion_app import CompanionAppLauncher

__all__ = [
    "LaunchHandle",
    "LaunchKind",
    "LaunchStrategy",
    "ResultCallback",
    "BrowserSessionLauncher",
    "CompanionAppLauncher",
    "classify_session_error",
]

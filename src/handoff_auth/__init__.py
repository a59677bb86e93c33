"""Handoff Auth - OAuth 2.0 authorization-code client flow.

동반 앱 실행 또는 브라우저 세션으로 인증 코드를 받아 토큰으로 교환합니다.

Example:
    from handoff_auth import AuthConfig, AuthController, LaunchKind

    controller = AuthController(AuthConfig(app_key="..."))
    token = await controller.authorize(LaunchKind.BROWSER)
"""

from handoff_auth.api import AuthApi, OAuthToken
from handoff_auth.config import SDK_VERSION, AuthConfig
from handoff_auth.controller import AuthController, FlowState
from handoff_auth.exceptions import (
    AuthenticationError,
    AuthError,
    AuthErrorKind,
    AuthFailureReason,
    CompanionAppUnavailableError,
    OAuthError,
    SessionCancelledError,
    TokenExchangeError,
)
from handoff_auth.launchers import BrowserSessionLauncher, CompanionAppLauncher, LaunchKind
from handoff_auth.redirect import RedirectCode, RedirectError, parse_redirect
from handoff_auth.request import AuthorizationRequest, build_authorization_request

__version__ = SDK_VERSION

__all__ = [
    # Core
    "AuthController",
    "AuthConfig",
    "FlowState",
    "LaunchKind",
    "AuthApi",
    "OAuthToken",
    "AuthorizationRequest",
    "build_authorization_request",
    "parse_redirect",
    "RedirectCode",
    "RedirectError",
    "BrowserSessionLauncher",
    "CompanionAppLauncher",
    # Exceptions
    "AuthenticationError",
    "AuthError",
    "AuthErrorKind",
    "AuthFailureReason",
    "CompanionAppUnavailableError",
    "OAuthError",
    "SessionCancelledError",
    "TokenExchangeError",
]

"""Browser-Hosted Session

리다이렉트 URI로 범위가 한정된 브라우저 세션에서 인증 URL을 보여줍니다.
agt가 있는 요청은 반드시 ephemeral 세션으로 시작합니다.
"""

import logging

from handoff_auth.config import AuthConfig
from handoff_auth.exceptions import AuthError, AuthErrorKind, SessionCancelledError
from handoff_auth.launchers.base import LaunchKind, LaunchStrategy, ResultCallback
from handoff_auth.request import AuthorizationRequest, authorization_url
from handoff_auth.sessions import AuthenticationSession, select_session_factory

logger = logging.getLogger(__name__)


def classify_session_error(error: BaseException | None) -> AuthError:
    """세션 에러를 AuthError로 분류."""
    if isinstance(error, SessionCancelledError):
        logger.error("The authentication session has been canceled by user.")
        return AuthError(
            AuthErrorKind.CANCELLED, "The authentication session has been canceled by user."
        )
    if isinstance(error, AuthError):
        return error
    if error is not None:
        logger.error("An error occurred on executing authentication session: %r", error)
        return AuthError(
            AuthErrorKind.SESSION_ERROR,
            "An error occurred on executing authentication session.",
        )
    logger.error("An unknown authentication session error occurred.")
    return AuthError(
        AuthErrorKind.UNKNOWN, "An unknown authentication session error occurred."
    )


class BrowserSessionLauncher(LaunchStrategy):
    """브라우저 세션 실행 전략.

    세션 구현은 생성 시점에 한 번 선택됩니다.
    """

    kind = LaunchKind.BROWSER

    def __init__(
        self,
        config: AuthConfig,
        session_factory: type[AuthenticationSession] | None = None,
    ):
        super().__init__(config)
        self.session_factory = session_factory or select_session_factory(
            config.redirect_uri
        )

    def launch(
        self, request: AuthorizationRequest, on_result: ResultCallback
    ) -> AuthenticationSession:
        url = authorization_url(request, self.config)
        logger.debug("request url: %s", url)

        def completion_handler(callback_url: str | None, error: BaseException | None):
            if callback_url is not None:
                on_result(callback_url, None)
            else:
                on_result(None, classify_session_error(error))

        session = self.session_factory(
            url=url,
            callback_uri=request.redirect_uri,
            completion_handler=completion_handler,
            prefers_ephemeral=request.prefers_ephemeral_session,
        )
        if not session.start():
            raise AuthError(
                AuthErrorKind.SESSION_ERROR, "Failed to start authentication session."
            )
        return session

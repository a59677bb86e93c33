"""Companion-App Handoff

URL 스킴으로 동반 앱을 실행해 인증을 위임합니다.
인증 결과는 호스트 앱의 URL 라우팅 훅(AuthController.handle_redirect)으로 돌아옵니다.
"""

import logging
import webbrowser
from collections.abc import Callable

from handoff_auth.config import AuthConfig
from handoff_auth.exceptions import CompanionAppUnavailableError
from handoff_auth.launchers.base import LaunchKind, LaunchStrategy, ResultCallback
from handoff_auth.request import AuthorizationRequest, companion_app_url

logger = logging.getLogger(__name__)

UrlOpener = Callable[[str], bool]


class CompanionAppLauncher(LaunchStrategy):
    """동반 앱 실행 전략.

    Example:
        launcher = CompanionAppLauncher(config)
        launcher.launch(request, pending.complete)
    """

    kind = LaunchKind.COMPANION_APP

    def __init__(self, config: AuthConfig, url_opener: UrlOpener | None = None):
        """초기화.

        Args:
            config: SDK 설정
            url_opener: URL 스킴 실행 함수 (기본: webbrowser.open)
        """
        super().__init__(config)
        self.url_opener = url_opener or webbrowser.open

    def launch(self, request: AuthorizationRequest, on_result: ResultCallback) -> None:
        url = companion_app_url(request, self.config)

        try:
            opened = self.url_opener(url)
        except (OSError, webbrowser.Error) as e:
            logger.error("Failed to open companion app: %s", e)
            opened = False

        if not opened:
            logger.error("Companion app launch canceled")
            raise CompanionAppUnavailableError(
                "The companion app authentication has been canceled by user.", url=url
            )

        logger.debug("Companion app launched: %s", url)
        return None

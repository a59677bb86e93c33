"""Launch Strategy 추상 클래스

인증 요청을 사용자에게 보여주는 방식(동반 앱, 브라우저 세션)의 공통 인터페이스.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from handoff_auth.config import AuthConfig
from handoff_auth.request import AuthorizationRequest

ResultCallback = Callable[[str | None, BaseException | None], bool]


class LaunchKind(Enum):
    """인증 실행 방식."""

    COMPANION_APP = "companion_app"
    BROWSER = "browser"


class LaunchHandle(Protocol):
    """실행 중인 세션 (외부 취소용)."""

    def cancel(self) -> None: ...


class LaunchStrategy(ABC):
    """Launch Strategy 베이스 클래스.

    launch는 동기 실패 시 AuthError를 던지고, 이후 결과는
    on_result(callback_url, error)로 한 번 전달합니다.
    """

    kind: LaunchKind

    def __init__(self, config: AuthConfig):
        self.config = config

    @abstractmethod
    def launch(
        self, request: AuthorizationRequest, on_result: ResultCallback
    ) -> LaunchHandle | None:
        """인증 요청 실행.

        Args:
            request: 인증 요청
            on_result: 결과 콜백 (callback_url, error)

        Returns:
            LaunchHandle | None: 취소 가능한 세션 핸들
        """
        pass

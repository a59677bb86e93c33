"""Authentication Session 추상 클래스

리다이렉트 URI로 돌아올 때까지 인증 URL을 사용자에게 보여주는 플랫폼 세션.
완료 핸들러는 (callback_url, error) 중 하나로 정확히 한 번 호출됩니다.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[str | None, BaseException | None], None]


class AuthenticationSession(ABC):
    """브라우저 인증 세션 베이스 클래스.

    Attributes:
        url: 인증 URL
        callback_uri: 세션이 감시하는 리다이렉트 URI
        prefers_ephemeral: 기존 브라우저 쿠키/세션을 재사용하지 않음
    """

    def __init__(
        self,
        url: str,
        callback_uri: str,
        completion_handler: CompletionHandler,
        prefers_ephemeral: bool = False,
    ):
        self.url = url
        self.callback_uri = callback_uri
        self.prefers_ephemeral = prefers_ephemeral
        self._completion_handler = completion_handler
        self._finished = False
        self._finish_lock = threading.Lock()

    @property
    def finished(self) -> bool:
        return self._finished

    @abstractmethod
    def start(self) -> bool:
        """세션 시작.

        Returns:
            bool: 시작 성공 여부
        """
        pass

    @abstractmethod
    def cancel(self) -> None:
        """세션 종료 (완료 전이면 취소로 완료)."""
        pass

    def _finish(self, url: str | None, error: BaseException | None) -> bool:
        with self._finish_lock:
            if self._finished:
                return False
            self._finished = True
        logger.debug("Session finished (url=%s, error=%r)", url is not None, error)
        self._completion_handler(url, error)
        return True

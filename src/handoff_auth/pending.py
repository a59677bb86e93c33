"""진행 중인 인증 시도

콜백 URL 또는 실패가 정확히 한 번만 전달되는 단일 결과 슬롯.
리다이렉트 훅과 브라우저 세션 완료 핸들러는 어느 스레드에서든 호출될 수 있습니다.
"""

import asyncio
import logging
import threading

from handoff_auth.exceptions import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)


class PendingAuthorization:
    """인증 시도 1회에 대한 결과 대기.

    먼저 도착한 결과만 반영되고, 이후 전달은 무시됩니다(False 반환).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[str] = self._loop.create_future()
        self._lock = threading.Lock()
        self._settled = False
        self.handle = None

    @property
    def settled(self) -> bool:
        with self._lock:
            return self._settled

    def attach(self, handle) -> None:
        """외부 취소용 세션 핸들 등록."""
        self.handle = handle

    def deliver(self, url: str) -> bool:
        """콜백 URL 전달."""
        return self._settle(url, None)

    def fail(self, error: BaseException) -> bool:
        """실패 전달."""
        return self._settle(None, error)

    def complete(self, url: str | None, error: BaseException | None) -> bool:
        """launch strategy용 완료 콜백."""
        if url is None and error is None:
            error = AuthError(AuthErrorKind.UNKNOWN, "An unknown error occurred.")
        return self._settle(url, error)

    def cancel(self, message: str = "The authorization has been canceled.") -> bool:
        """시도 취소 (세션이 있으면 함께 종료)."""
        settled = self.fail(AuthError(AuthErrorKind.CANCELLED, message))
        if settled:
            self._cancel_handle()
        return settled

    async def wait(self) -> str:
        """결과 대기.

        Returns:
            str: 콜백 URL

        Raises:
            AuthError 등 전달된 실패
        """
        return await self._future

    def _settle(self, url: str | None, error: BaseException | None) -> bool:
        with self._lock:
            if self._settled:
                logger.debug("Ignoring result for already settled authorization")
                return False
            self._settled = True

        if self._loop.is_closed():
            return False
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._resolve(url, error)
        else:
            self._loop.call_soon_threadsafe(self._resolve, url, error)
        return True

    def _resolve(self, url: str | None, error: BaseException | None) -> None:
        if self._future.done():
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(url)

    def close(self) -> None:
        """결과 수신 후 아직 열려 있는 세션 정리."""
        if self.handle is not None and not getattr(self.handle, "finished", False):
            self._cancel_handle()
        self.handle = None

    def _cancel_handle(self) -> None:
        handle, self.handle = self.handle, None
        if handle is None:
            return
        try:
            handle.cancel()
        except Exception as e:
            logger.warning("Failed to cancel session: %s", e)

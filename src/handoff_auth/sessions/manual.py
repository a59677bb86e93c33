"""수동 콜백 세션

브라우저에서 로그인한 뒤 리디렉션된 URL을 직접 붙여넣는 방식.
커스텀 스킴 리다이렉트처럼 로컬 서버로 받을 수 없는 경우 사용합니다.
"""

import logging
import threading
import webbrowser
from collections.abc import Callable

from rich.console import Console
from rich.panel import Panel

from handoff_auth.exceptions import SessionCancelledError
from handoff_auth.sessions.base import AuthenticationSession, CompletionHandler

logger = logging.getLogger(__name__)
console = Console()

InputFunc = Callable[[str], str]

_readers_lock = threading.Lock()
_readers: dict[InputFunc, "_LineReader"] = {}


class _LineReader:
    """입력 소스 하나를 읽는 스레드.

    입력 소스마다 하나만 존재하며, 읽은 줄은 읽은 시점에 연결된 세션으로 전달됩니다.
    취소된 세션의 스레드가 다음 세션의 입력을 가로채지 않습니다.
    """

    def __init__(self, input_func: InputFunc):
        self.input_func = input_func
        self.session: "ManualAuthenticationSession | None" = None

    @staticmethod
    def attach(session: "ManualAuthenticationSession") -> None:
        with _readers_lock:
            reader = _readers.get(session.input_func)
            if reader is None:
                reader = _readers[session.input_func] = _LineReader(session.input_func)
                threading.Thread(target=reader._run, daemon=True).start()
            reader.session = session

    @staticmethod
    def detach(session: "ManualAuthenticationSession") -> None:
        with _readers_lock:
            reader = _readers.get(session.input_func)
            if reader is not None and reader.session is session:
                reader.session = None

    def _run(self) -> None:
        line: str | None = None
        error: BaseException | None = None
        try:
            line = self.input_func("> ")
        except (EOFError, KeyboardInterrupt):
            error = SessionCancelledError("사용자가 취소했습니다.")

        with _readers_lock:
            session, self.session = self.session, None
            del _readers[self.input_func]

        if session is None:
            logger.debug("Discarding input with no active session")
            return
        session._on_input(line, error)


class ManualAuthenticationSession(AuthenticationSession):
    """붙여넣기 기반 인증 세션."""

    def __init__(
        self,
        url: str,
        callback_uri: str,
        completion_handler: CompletionHandler,
        prefers_ephemeral: bool = False,
        input_func: InputFunc = input,
        open_browser: bool = True,
    ):
        super().__init__(url, callback_uri, completion_handler, prefers_ephemeral)
        self.input_func = input_func
        self.open_browser = open_browser

    def start(self) -> bool:
        console.print()
        console.print(
            Panel.fit(
                "[bold cyan]수동 인증 모드[/bold cyan]\n\n"
                "1. 아래 URL을 브라우저에서 엽니다\n"
                "2. 로그인을 완료합니다\n"
                f"3. {self.callback_uri} 로 시작하는 URL을 복사합니다\n"
                "4. 복사한 URL을 아래에 붙여넣습니다",
                title="[AUTH] Manual Login",
                border_style="yellow",
            )
        )
        console.print(f"[link={self.url}]{self.url}[/link]")

        if self.open_browser:
            try:
                webbrowser.open(self.url, new=1 if self.prefers_ephemeral else 2)
            except webbrowser.Error as e:
                logger.warning("Failed to open browser: %s", e)

        _LineReader.attach(self)
        return True

    def cancel(self) -> None:
        _LineReader.detach(self)
        self._finish(
            None, SessionCancelledError("The authentication session has been canceled.")
        )

    def _on_input(self, line: str | None, error: BaseException | None) -> None:
        if error is not None:
            self._finish(None, error)
            return

        callback_url = (line or "").strip()
        if not callback_url:
            self._finish(None, ValueError("URL이 입력되지 않았습니다."))
            return
        self._finish(callback_url, None)

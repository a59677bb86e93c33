"""Loopback HTTP 브라우저 세션

로컬 HTTP 서버를 띄워 리다이렉트를 수신하고, 시스템 브라우저로 인증 URL을 엽니다.
redirect_uri가 http://localhost:<port>/... 형태일 때 사용합니다.
"""

import logging
import threading
import webbrowser
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import urlparse

from rich.console import Console
from rich.panel import Panel

from handoff_auth.exceptions import SessionCancelledError
from handoff_auth.sessions.base import AuthenticationSession, CompletionHandler

logger = logging.getLogger(__name__)
console = Console()

LOOPBACK_HOSTS = ("localhost", "127.0.0.1")
# shutdown() 대기 시간 상한 (이벤트 루프 스레드에서 호출됨)
POLL_INTERVAL = 0.05

BrowserOpener = Callable[[str, bool], bool]


def open_in_browser(url: str, ephemeral: bool) -> bool:
    """시스템 브라우저로 URL 열기.

    ephemeral이면 기존 창과 분리된 새 창으로 엽니다.
    """
    return webbrowser.open(url, new=1 if ephemeral else 2)


def is_loopback_uri(uri: str | None) -> bool:
    if not uri:
        return False
    try:
        parsed = urlparse(uri)
        port = parsed.port
    except ValueError:
        return False
    return parsed.scheme == "http" and parsed.hostname in LOOPBACK_HOSTS and bool(port)


class _CallbackServer(HTTPServer):
    session: "LoopbackAuthenticationSession"


class LoopbackCallbackHandler(BaseHTTPRequestHandler):
    """리다이렉트 콜백 핸들러."""

    server: _CallbackServer

    def log_message(self, format, *args):
        """로그 출력 비활성화."""
        pass

    def do_GET(self):
        """GET 요청 처리 (리다이렉트 콜백)."""
        session = self.server.session
        parsed = urlparse(self.path)

        logger.debug("Received request: %s", parsed.path)

        # 브라우저 자동 요청 무시
        if parsed.path in ["/favicon.ico", "/robots.txt"]:
            self.send_response(204)
            self.end_headers()
            return

        if parsed.path.rstrip("/") != session.callback_path:
            logger.warning("Invalid callback path: %s", parsed.path)
            self.send_response(404)
            self.end_headers()
            return

        self._send_page("인증 완료", "이 창을 닫고 앱으로 돌아가세요.")
        session.on_callback(f"{session.callback_origin}{self.path}")

    def _send_page(self, title: str, message: str):
        self.send_response(200)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.end_headers()
        html = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"><title>{title}</title></head>
        <body style="font-family: sans-serif; text-align: center; padding: 40px;">
            <h1>{title}</h1>
            <p>{message}</p>
            <script>setTimeout(() => window.close(), 3000);</script>
        </body>
        </html>
        """
        self.wfile.write(html.encode())


class LoopbackAuthenticationSession(AuthenticationSession):
    """로컬 HTTP 서버 기반 인증 세션.

    Example:
        session = LoopbackAuthenticationSession(
            url=auth_url,
            callback_uri="http://localhost:8765/oauth",
            completion_handler=on_result,
        )
        session.start()
    """

    def __init__(
        self,
        url: str,
        callback_uri: str,
        completion_handler: CompletionHandler,
        prefers_ephemeral: bool = False,
        opener: BrowserOpener = open_in_browser,
    ):
        super().__init__(url, callback_uri, completion_handler, prefers_ephemeral)
        parsed = urlparse(callback_uri)
        self.host = parsed.hostname
        self.port = parsed.port
        self.callback_origin = f"{parsed.scheme}://{parsed.netloc}"
        self.callback_path = parsed.path.rstrip("/")
        self.opener = opener
        self._server: _CallbackServer | None = None
        self._thread: threading.Thread | None = None
        self._server_lock = threading.Lock()

    def start(self) -> bool:
        try:
            server = _CallbackServer((self.host, self.port), LoopbackCallbackHandler)
        except OSError as e:
            logger.error("Failed to bind %s:%s: %s", self.host, self.port, e)
            return False
        server.session = self
        self._server = server

        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": POLL_INTERVAL},
            daemon=True,
        )
        self._thread.start()
        logger.debug("Listening on %s:%d", self.host, self.port)

        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]브라우저에서 로그인을 완료하세요.[/bold cyan]\n\n"
                f"열리지 않으면 아래 URL을 직접 열어주세요:\n"
                f"[link={self.url}]{self.url}[/link]",
                title="[AUTH] Login Required",
                border_style="cyan",
            )
        )

        try:
            opened = self.opener(self.url, self.prefers_ephemeral)
        except webbrowser.Error as e:
            logger.warning("Failed to open browser: %s", e)
            opened = False
        if not opened:
            logger.warning("Browser did not open, waiting for manual navigation")
        return True

    def on_callback(self, url: str) -> None:
        """콜백 수신 (서버 스레드에서 호출)."""
        self._finish(url, None)
        # serve_forever 스레드 안에서는 shutdown()을 직접 호출할 수 없음
        threading.Thread(target=self._stop_server, daemon=True).start()

    def cancel(self) -> None:
        self._stop_server()
        self._finish(
            None, SessionCancelledError("The authentication session has been canceled.")
        )

    def _stop_server(self) -> None:
        with self._server_lock:
            server, self._server = self._server, None
        if server is None:
            return
        server.shutdown()
        server.server_close()
        logger.debug("HTTP Server closed")

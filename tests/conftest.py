"""Shared test fixtures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from handoff_auth.api import OAuthToken
from handoff_auth.config import AuthConfig
from handoff_auth.controller import AuthController, FlowState
from handoff_auth.exceptions import SessionCancelledError
from handoff_auth.launchers import BrowserSessionLauncher, CompanionAppLauncher
from handoff_auth.sessions import AuthenticationSession


class FakeSession(AuthenticationSession):
    """플랫폼 세션 대역. 테스트가 직접 완료시킨다."""

    start_result = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.started = False
        self.cancelled = False

    def start(self) -> bool:
        self.started = True
        return self.start_result

    def cancel(self) -> None:
        self.cancelled = True
        self._finish(None, SessionCancelledError("dismissed"))

    def redirect(self, url: str) -> bool:
        return self._finish(url, None)

    def fail(self, error: BaseException | None) -> bool:
        return self._finish(None, error)


class FakeSessionFactory:
    """생성된 세션을 기록하는 세션 팩토리."""

    def __init__(self, start_result: bool = True):
        self.sessions: list[FakeSession] = []
        self.start_result = start_result

    def __call__(self, **kwargs) -> FakeSession:
        session = FakeSession(**kwargs)
        session.start_result = self.start_result
        self.sessions.append(session)
        return session

    @property
    def last(self) -> FakeSession:
        return self.sessions[-1]


@pytest.fixture
def config() -> AuthConfig:
    """테스트용 설정."""
    return AuthConfig(app_key="testkey", app_attestation_header="sdk/test os/test")


@pytest.fixture
def token() -> OAuthToken:
    return OAuthToken(access_token="access-1", refresh_token="refresh-1")


@pytest.fixture
def token_exchange(token):
    exchange = MagicMock()
    exchange.exchange_code_for_token = AsyncMock(return_value=token)
    return exchange


@pytest.fixture
def grant_fetcher():
    fetcher = MagicMock()
    fetcher.fetch_intermediate_grant = AsyncMock(return_value="agt-1")
    return fetcher


@pytest.fixture
def url_opener():
    return MagicMock(return_value=True)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def controller(config, token_exchange, grant_fetcher, url_opener, session_factory):
    """외부 협력자를 모두 대역으로 바꾼 coordinator."""
    return AuthController(
        config,
        token_exchange=token_exchange,
        grant_fetcher=grant_fetcher,
        companion_app_launcher=CompanionAppLauncher(config, url_opener=url_opener),
        browser_launcher=BrowserSessionLauncher(config, session_factory=session_factory),
    )


async def wait_for_launch(controller: AuthController, attempts: int = 200):
    """authorize 태스크가 strategy를 실행할 때까지 대기."""
    for _ in range(attempts):
        pending = controller.pending
        if pending is not None and controller.state is FlowState.LAUNCHED:
            return pending
        await asyncio.sleep(0.001)
    raise AssertionError("authorization was not launched")


@pytest.fixture
def launched():
    """wait_for_launch 헬퍼."""
    return wait_for_launch

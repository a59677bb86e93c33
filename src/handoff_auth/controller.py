"""Authorization Flow Coordinator

인증 요청 생성 → launch strategy 실행 → 리다이렉트 1회 수신 → 코드 교환.

한 번에 하나의 인증 시도만 진행됩니다. 진행 중에 들어온 authorize 호출은
앞선 시도가 끝날 때까지 대기합니다.
"""

import asyncio
import logging
import threading
from collections.abc import Sequence
from enum import Enum

from handoff_auth.api import AuthApi, IntermediateGrantFetcher, OAuthToken, TokenExchange
from handoff_auth.config import AuthConfig
from handoff_auth.exceptions import AuthError, AuthErrorKind
from handoff_auth.launchers import (
    BrowserSessionLauncher,
    CompanionAppLauncher,
    LaunchKind,
    LaunchStrategy,
)
from handoff_auth.pending import PendingAuthorization
from handoff_auth.redirect import RedirectError, is_valid_redirect_uri, parse_redirect
from handoff_auth.request import AuthorizationRequest, build_authorization_request

logger = logging.getLogger(__name__)


class FlowState(Enum):
    """인증 시도 상태."""

    IDLE = "idle"
    REQUEST_BUILT = "request_built"
    LAUNCHED = "launched"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AuthController:
    """인증 플로우 coordinator.

    Example:
        controller = AuthController(AuthConfig.from_env())
        token = await controller.authorize(
            LaunchKind.COMPANION_APP, channel_public_ids=["_abc"]
        )

        # 호스트 앱의 URL 라우팅 훅
        def open_url(url):
            if controller.handle_redirect(url):
                return True
            ...
    """

    def __init__(
        self,
        config: AuthConfig,
        token_exchange: TokenExchange | None = None,
        grant_fetcher: IntermediateGrantFetcher | None = None,
        companion_app_launcher: LaunchStrategy | None = None,
        browser_launcher: LaunchStrategy | None = None,
    ):
        """초기화.

        Args:
            config: SDK 설정
            token_exchange: 코드 교환 (기본: AuthApi)
            grant_fetcher: agt 발급 (기본: AuthApi)
            companion_app_launcher: 동반 앱 실행 전략
            browser_launcher: 브라우저 세션 실행 전략
        """
        self.config = config
        api = None
        if token_exchange is None or grant_fetcher is None:
            api = AuthApi(config)
        self.token_exchange = token_exchange or api
        self.grant_fetcher = grant_fetcher or api
        self._launchers: dict[LaunchKind, LaunchStrategy] = {
            LaunchKind.COMPANION_APP: (
                companion_app_launcher or CompanionAppLauncher(config)
            ),
            LaunchKind.BROWSER: browser_launcher or BrowserSessionLauncher(config),
        }

        self._state = FlowState.IDLE
        self._pending: PendingAuthorization | None = None
        self._slot_lock = threading.Lock()
        self._attempt_lock = asyncio.Lock()

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def pending(self) -> PendingAuthorization | None:
        with self._slot_lock:
            return self._pending

    def launcher(self, strategy: LaunchKind | str) -> LaunchStrategy:
        try:
            return self._launchers[LaunchKind(strategy)]
        except ValueError:
            raise AuthError(
                AuthErrorKind.BAD_PARAMETER, f"Unknown launch strategy: {strategy!r}"
            ) from None

    async def authorize(
        self,
        strategy: LaunchKind | str,
        *,
        channel_public_ids: Sequence[str] | None = None,
        service_terms: Sequence[str] | None = None,
        scopes: Sequence[str] | None = None,
        intermediate_grant_token: str | None = None,
        timeout: float | None = None,
    ) -> OAuthToken:
        """인증 수행.

        Args:
            strategy: 실행 방식 (LaunchKind 또는 그 값)
            channel_public_ids: 채널 공개 ID 목록
            service_terms: 서비스 약관 태그 목록
            scopes: 추가 동의 scope 목록
            intermediate_grant_token: agt
            timeout: 리다이렉트 대기 시간 (초, None이면 무제한)

        Returns:
            OAuthToken: 토큰

        Raises:
            AuthError: 요청 생성/실행/리다이렉트 실패
            토큰 교환 중 발생한 예외는 그대로 전달됩니다.
        """
        launcher = self.launcher(strategy)
        return await self._authorize(
            launcher,
            timeout,
            channel_public_ids=channel_public_ids,
            service_terms=service_terms,
            scopes=scopes,
            intermediate_grant_token=intermediate_grant_token,
        )

    async def _authorize(
        self,
        launcher: LaunchStrategy,
        timeout: float | None,
        fetch_grant: bool = False,
        **options,
    ) -> OAuthToken:
        async with self._attempt_lock:
            self._state = FlowState.IDLE
            try:
                if fetch_grant:
                    options["intermediate_grant_token"] = (
                        await self.grant_fetcher.fetch_intermediate_grant()
                    )
                request = build_authorization_request(self.config, **options)
                self._state = FlowState.REQUEST_BUILT

                code = await self._await_code(launcher, request, timeout)
                token = await self.token_exchange.exchange_code_for_token(code)
            except BaseException as e:
                self._state = FlowState.FAILED
                logger.debug("Authorization failed: %r", e)
                raise

            self._state = FlowState.SUCCEEDED
            return token

    async def authorize_with_companion_app(
        self,
        channel_public_ids: Sequence[str] | None = None,
        service_terms: Sequence[str] | None = None,
        timeout: float | None = None,
    ) -> OAuthToken:
        return await self.authorize(
            LaunchKind.COMPANION_APP,
            channel_public_ids=channel_public_ids,
            service_terms=service_terms,
            timeout=timeout,
        )

    async def authorize_with_browser(
        self,
        channel_public_ids: Sequence[str] | None = None,
        service_terms: Sequence[str] | None = None,
        timeout: float | None = None,
    ) -> OAuthToken:
        return await self.authorize(
            LaunchKind.BROWSER,
            channel_public_ids=channel_public_ids,
            service_terms=service_terms,
            timeout=timeout,
        )

    async def authorize_with_new_scopes(
        self, scopes: Sequence[str], timeout: float | None = None
    ) -> OAuthToken:
        """추가 동의.

        agt는 이전 시도가 끝난 뒤 발급받으며, ephemeral 브라우저 세션으로 인증합니다.
        agt 발급 실패도 시도 실패(FAILED)로 기록됩니다.
        """
        return await self._authorize(
            self.launcher(LaunchKind.BROWSER), timeout, fetch_grant=True, scopes=scopes
        )

    def is_login_redirect(self, url) -> bool:
        return is_valid_redirect_uri(url, self.config.redirect_uri)

    def handle_redirect(self, url) -> bool:
        """호스트 앱 URL 라우팅 훅.

        설정된 리다이렉트 URI와 일치하고 진행 중인 시도가 이를 받았을 때만 True.
        False면 호스트 앱이 URL을 직접 처리해야 합니다.
        """
        if not self.is_login_redirect(url):
            return False
        pending = self.pending
        if pending is None:
            logger.debug("No pending authorization for redirect")
            return False
        return pending.deliver(url)

    def cancel(self) -> bool:
        """진행 중인 시도를 CANCELLED로 종료."""
        pending = self.pending
        if pending is None:
            return False
        return pending.cancel()

    async def _await_code(
        self,
        launcher: LaunchStrategy,
        request: AuthorizationRequest,
        timeout: float | None,
    ) -> str:
        pending = PendingAuthorization()
        with self._slot_lock:
            self._pending = pending

        try:
            pending.attach(launcher.launch(request, pending.complete))
            self._state = FlowState.LAUNCHED
            logger.debug("Launched %s, waiting for redirect", launcher.kind.value)

            try:
                if timeout is None:
                    callback_url = await pending.wait()
                else:
                    callback_url = await asyncio.wait_for(pending.wait(), timeout)
            except asyncio.TimeoutError:
                pending.cancel("The authorization timed out.")
                logger.error("Timeout waiting for redirect (%ss)", timeout)
                raise AuthError(
                    AuthErrorKind.CANCELLED, "The authorization timed out."
                ) from None
            except asyncio.CancelledError:
                pending.cancel()
                raise
        finally:
            with self._slot_lock:
                if self._pending is pending:
                    self._pending = None
            pending.close()

        result = parse_redirect(callback_url)
        if isinstance(result, RedirectError):
            raise result.to_exception()
        return result.code

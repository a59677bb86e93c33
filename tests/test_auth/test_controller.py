"""AuthController 테스트.

동반 앱/브라우저 세션 플로우, 단일 시도 보장, 취소/타임아웃 처리 검증.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from handoff_auth.api import OAuthToken
from handoff_auth.config import AuthConfig
from handoff_auth.controller import AuthController, FlowState
from handoff_auth.exceptions import (
    AuthError,
    AuthErrorKind,
    AuthFailureReason,
    CompanionAppUnavailableError,
    OAuthError,
    TokenExchangeError,
)
from handoff_auth.launchers import BrowserSessionLauncher, CompanionAppLauncher, LaunchKind

REDIRECT_URI = "kakaotestkey://oauth"


class TestCompanionAppFlow:
    """동반 앱 플로우 테스트."""

    @pytest.mark.asyncio
    async def test_code_is_exchanged_for_token(
        self, controller, token, token_exchange, url_opener, launched
    ):
        """리다이렉트 code로 토큰 교환 (channel_public_ids 포함)."""
        task = asyncio.create_task(
            controller.authorize(LaunchKind.COMPANION_APP, channel_public_ids=["123"])
        )
        await launched(controller)

        opened_url = url_opener.call_args.args[0]
        assert opened_url.startswith("kakaokompassauth://authorize?")
        assert "channel_public_id" in opened_url

        assert controller.handle_redirect(f"{REDIRECT_URI}?code=abc123") is True

        assert await task is token
        token_exchange.exchange_code_for_token.assert_awaited_once_with("abc123")
        assert controller.state is FlowState.SUCCEEDED
        assert controller.pending is None

    @pytest.mark.asyncio
    async def test_app_unavailable_is_cancelled(
        self, controller, token_exchange, url_opener
    ):
        """동반 앱 실행 실패 시 CANCELLED로 종료."""
        url_opener.return_value = False

        with pytest.raises(CompanionAppUnavailableError) as exc_info:
            await controller.authorize_with_companion_app()

        assert exc_info.value.kind is AuthErrorKind.CANCELLED
        assert controller.state is FlowState.FAILED
        assert controller.pending is None
        assert controller.handle_redirect(f"{REDIRECT_URI}?code=late") is False
        token_exchange.exchange_code_for_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_redirect(self, controller, token_exchange, launched):
        """error 리다이렉트는 OAuthError로 종료."""
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)

        controller.handle_redirect(
            f"{REDIRECT_URI}?error=access_denied&error_description=User+denied+access"
        )

        with pytest.raises(OAuthError) as exc_info:
            await task

        assert exc_info.value.kind is AuthErrorKind.AUTHORIZATION_FAILED
        assert exc_info.value.reason is AuthFailureReason.ACCESS_DENIED
        assert exc_info.value.message == "User denied access"
        token_exchange.exchange_code_for_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_redirect(self, controller, launched):
        """code/error 모두 없는 리다이렉트."""
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)

        controller.handle_redirect(f"{REDIRECT_URI}?foo=bar")

        with pytest.raises(AuthError) as exc_info:
            await task
        assert exc_info.value.kind is AuthErrorKind.REDIRECT_PARSE_FAILURE

    @pytest.mark.asyncio
    async def test_unrelated_url_is_not_handled(self, controller, launched):
        """다른 스킴의 URL은 진행 중인 시도에 영향 없음."""
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        pending = await launched(controller)

        assert controller.handle_redirect("otherapp://oauth?code=abc") is False
        assert controller.handle_redirect("https://example.com/?code=abc") is False
        assert not pending.settled

        assert controller.cancel() is True
        with pytest.raises(AuthError) as exc_info:
            await task
        assert exc_info.value.kind is AuthErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_second_delivery_is_ignored(
        self, controller, token_exchange, launched
    ):
        """같은 시도에 두 번째 리다이렉트는 무시."""
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)

        assert controller.handle_redirect(f"{REDIRECT_URI}?code=first") is True
        assert controller.handle_redirect(f"{REDIRECT_URI}?code=second") is False

        await task
        token_exchange.exchange_code_for_token.assert_awaited_once_with("first")

    @pytest.mark.asyncio
    async def test_redirect_from_another_thread(self, controller, token, launched):
        """라우팅 훅은 다른 스레드에서 호출 가능."""
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)

        handled = await asyncio.to_thread(
            controller.handle_redirect, f"{REDIRECT_URI}?code=threaded"
        )

        assert handled is True
        assert await task is token

    @pytest.mark.asyncio
    async def test_handle_redirect_without_pending(self, controller):
        """진행 중인 시도가 없으면 not handled."""
        assert controller.handle_redirect(f"{REDIRECT_URI}?code=abc") is False
        assert controller.cancel() is False
        assert controller.state is FlowState.IDLE


class TestBrowserFlow:
    """브라우저 세션 플로우 테스트."""

    @pytest.mark.asyncio
    async def test_session_redirect(
        self, controller, session_factory, token, token_exchange, launched
    ):
        """세션 완료 핸들러로 받은 code 교환."""
        task = asyncio.create_task(
            controller.authorize_with_browser(service_terms=["tag1", "tag2"])
        )
        await launched(controller)

        session = session_factory.last
        assert session.started
        assert session.prefers_ephemeral is False
        assert "service_terms=tag1%2Ctag2" in session.url
        assert session.callback_uri == REDIRECT_URI

        session.redirect(f"{REDIRECT_URI}?code=web-code")

        assert await task is token
        token_exchange.exchange_code_for_token.assert_awaited_once_with("web-code")

    @pytest.mark.asyncio
    async def test_session_dismissed(self, controller, session_factory, launched):
        """사용자가 세션을 닫으면 CANCELLED."""
        task = asyncio.create_task(controller.authorize(LaunchKind.BROWSER))
        await launched(controller)

        session_factory.last.cancel()

        with pytest.raises(AuthError) as exc_info:
            await task
        assert exc_info.value.kind is AuthErrorKind.CANCELLED
        assert controller.pending is None

    @pytest.mark.asyncio
    async def test_session_platform_error(self, controller, session_factory, launched):
        """취소가 아닌 세션 에러는 SESSION_ERROR."""
        task = asyncio.create_task(controller.authorize(LaunchKind.BROWSER))
        await launched(controller)

        session_factory.last.fail(RuntimeError("boom"))

        with pytest.raises(AuthError) as exc_info:
            await task
        assert exc_info.value.kind is AuthErrorKind.SESSION_ERROR

    @pytest.mark.asyncio
    async def test_routing_hook_closes_session(
        self, controller, session_factory, token, launched
    ):
        """라우팅 훅이 먼저 도착하면 열린 세션을 정리."""
        task = asyncio.create_task(controller.authorize(LaunchKind.BROWSER))
        await launched(controller)

        assert controller.handle_redirect(f"{REDIRECT_URI}?code=hook") is True
        assert await task is token
        assert session_factory.last.cancelled is True

    @pytest.mark.asyncio
    async def test_session_start_failure(self, controller, session_factory):
        """세션 시작 실패."""
        session_factory.start_result = False

        with pytest.raises(AuthError) as exc_info:
            await controller.authorize(LaunchKind.BROWSER)
        assert exc_info.value.kind is AuthErrorKind.SESSION_ERROR
        assert controller.pending is None

    @pytest.mark.asyncio
    async def test_new_scopes_use_ephemeral_session(
        self, controller, session_factory, grant_fetcher, launched
    ):
        """추가 동의는 agt를 포함한 ephemeral 세션으로 진행."""
        task = asyncio.create_task(
            controller.authorize_with_new_scopes(["friends", "talk_message"])
        )
        await launched(controller)

        grant_fetcher.fetch_intermediate_grant.assert_awaited_once()
        session = session_factory.last
        assert session.prefers_ephemeral is True
        assert "agt=agt-1" in session.url
        assert "scope=friends+talk_message" in session.url

        session.redirect(f"{REDIRECT_URI}?code=c")
        await task

    @pytest.mark.asyncio
    async def test_new_scopes_grant_failure(
        self, controller, session_factory, grant_fetcher
    ):
        """agt 발급 실패는 그대로 전달되고 세션 없이 FAILED."""
        grant_fetcher.fetch_intermediate_grant.side_effect = TokenExchangeError("no agt")

        with pytest.raises(TokenExchangeError):
            await controller.authorize_with_new_scopes(["friends"])
        assert session_factory.sessions == []
        assert controller.state is FlowState.FAILED
        assert controller.pending is None


class TestFailures:
    """실패 처리 테스트."""

    @pytest.mark.asyncio
    async def test_missing_configuration(
        self, token_exchange, url_opener, session_factory
    ):
        """앱 설정 누락 시 BAD_PARAMETER, strategy 실행 없음."""
        config = AuthConfig(app_key=None)
        controller = AuthController(
            config,
            token_exchange=token_exchange,
            grant_fetcher=AsyncMock(),
            companion_app_launcher=CompanionAppLauncher(config, url_opener=url_opener),
            browser_launcher=BrowserSessionLauncher(
                config, session_factory=session_factory
            ),
        )

        for strategy in LaunchKind:
            with pytest.raises(AuthError) as exc_info:
                await controller.authorize(strategy)
            assert exc_info.value.kind is AuthErrorKind.BAD_PARAMETER

        url_opener.assert_not_called()
        assert session_factory.sessions == []
        assert controller.state is FlowState.FAILED

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, controller):
        """알 수 없는 strategy."""
        with pytest.raises(AuthError) as exc_info:
            await controller.authorize("carrier_pigeon")
        assert exc_info.value.kind is AuthErrorKind.BAD_PARAMETER

    @pytest.mark.asyncio
    async def test_strategy_by_value(self, controller, url_opener):
        """문자열 값으로 strategy 선택."""
        url_opener.return_value = False
        with pytest.raises(CompanionAppUnavailableError):
            await controller.authorize("companion_app")

    @pytest.mark.asyncio
    async def test_token_exchange_error_passes_through(
        self, controller, token_exchange, launched
    ):
        """토큰 교환 에러는 변경 없이 전달."""
        error = TokenExchangeError("invalid_grant", status_code=400)
        token_exchange.exchange_code_for_token.side_effect = error

        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)
        controller.handle_redirect(f"{REDIRECT_URI}?code=expired")

        with pytest.raises(TokenExchangeError) as exc_info:
            await task
        assert exc_info.value is error
        assert controller.state is FlowState.FAILED
        assert controller.pending is None

    @pytest.mark.asyncio
    async def test_timeout(self, controller, session_factory):
        """리다이렉트 대기 타임아웃은 CANCELLED, 세션 종료."""
        with pytest.raises(AuthError) as exc_info:
            await controller.authorize(LaunchKind.BROWSER, timeout=0.05)

        assert exc_info.value.kind is AuthErrorKind.CANCELLED
        assert "timed out" in exc_info.value.message
        assert session_factory.last.cancelled is True
        assert controller.pending is None

    @pytest.mark.asyncio
    async def test_task_cancellation_clears_pending(
        self, controller, session_factory, launched
    ):
        """호출 태스크 취소 시 슬롯 정리 및 세션 종료."""
        task = asyncio.create_task(controller.authorize(LaunchKind.BROWSER))
        await launched(controller)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert controller.pending is None
        assert session_factory.last.cancelled is True
        assert controller.handle_redirect(f"{REDIRECT_URI}?code=stale") is False

    @pytest.mark.asyncio
    async def test_external_cancel(self, controller, session_factory, launched):
        """cancel()은 진행 중인 시도를 한 번만 종료."""
        task = asyncio.create_task(controller.authorize(LaunchKind.BROWSER))
        await launched(controller)

        assert controller.cancel() is True
        assert controller.cancel() is False

        with pytest.raises(AuthError) as exc_info:
            await task
        assert exc_info.value.kind is AuthErrorKind.CANCELLED
        assert session_factory.last.cancelled is True


class TestSingleAttempt:
    """단일 시도 보장 테스트."""

    @pytest.mark.asyncio
    async def test_concurrent_authorize_is_serialized(
        self, controller, token_exchange, url_opener, launched
    ):
        """두 번째 authorize는 첫 시도가 끝난 뒤 실행."""
        exchanged = []

        async def exchange(code):
            exchanged.append(code)
            return OAuthToken(access_token=f"token-{code}")

        token_exchange.exchange_code_for_token.side_effect = exchange

        first = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)
        second = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await asyncio.sleep(0.01)

        assert url_opener.call_count == 1

        controller.handle_redirect(f"{REDIRECT_URI}?code=one")
        assert (await first).access_token == "token-one"

        await launched(controller)
        assert url_opener.call_count == 2
        controller.handle_redirect(f"{REDIRECT_URI}?code=two")
        assert (await second).access_token == "token-two"

        assert exchanged == ["one", "two"]

    @pytest.mark.asyncio
    async def test_new_cycle_after_failure(self, controller, url_opener, token, launched):
        """실패 후 새 시도는 처음부터 진행."""
        url_opener.return_value = False
        with pytest.raises(CompanionAppUnavailableError):
            await controller.authorize(LaunchKind.COMPANION_APP)

        url_opener.return_value = True
        task = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)
        controller.handle_redirect(f"{REDIRECT_URI}?code=retry")

        assert await task is token
        assert controller.state is FlowState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_grant_is_fetched_after_previous_attempt(
        self, controller, url_opener, grant_fetcher, session_factory, launched
    ):
        """추가 동의의 agt는 진행 중인 시도가 끝난 뒤 발급."""
        first = asyncio.create_task(controller.authorize(LaunchKind.COMPANION_APP))
        await launched(controller)
        upgrade = asyncio.create_task(controller.authorize_with_new_scopes(["friends"]))
        await asyncio.sleep(0.01)

        grant_fetcher.fetch_intermediate_grant.assert_not_awaited()

        controller.handle_redirect(f"{REDIRECT_URI}?code=one")
        await first

        await launched(controller)
        grant_fetcher.fetch_intermediate_grant.assert_awaited_once()
        assert "agt=agt-1" in session_factory.last.url

        session_factory.last.redirect(f"{REDIRECT_URI}?code=two")
        await upgrade
        assert controller.state is FlowState.SUCCEEDED

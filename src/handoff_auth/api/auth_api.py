"""인증 서버 API 클라이언트

토큰 교환(authorization_code grant)과 agt 발급 요청.
"""

import logging
from collections.abc import Awaitable, Callable

import httpx

from handoff_auth.api.token import OAuthToken
from handoff_auth.config import AuthConfig
from handoff_auth.exceptions import TokenExchangeError

logger = logging.getLogger(__name__)

AccessTokenProvider = Callable[[], Awaitable[str | None]]


class AuthApi:
    """TokenExchange / IntermediateGrantFetcher 기본 구현.

    Example:
        api = AuthApi(AuthConfig(app_key="..."))
        token = await api.exchange_code_for_token(code)
    """

    FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}

    def __init__(
        self,
        config: AuthConfig,
        access_token_provider: AccessTokenProvider | None = None,
        timeout: float = 30.0,
    ):
        """초기화.

        Args:
            config: SDK 설정
            access_token_provider: agt 발급에 사용할 액세스 토큰 조회 함수
            timeout: HTTP 요청 타임아웃 (초)
        """
        self.config = config
        self.access_token_provider = access_token_provider
        self.timeout = timeout

    async def exchange_code_for_token(self, code: str) -> OAuthToken:
        """인증 코드를 토큰으로 교환.

        Args:
            code: 인증 코드

        Returns:
            OAuthToken: 발급된 토큰

        Raises:
            TokenExchangeError: 토큰 엔드포인트가 에러를 반환한 경우
        """
        data = {
            "grant_type": "authorization_code",
            "client_id": self.config.app_key,
            "redirect_uri": self.config.redirect_uri,
            "code": code,
        }
        if self.config.client_secret:
            data["client_secret"] = self.config.client_secret

        logger.debug("Exchanging code %s... for token", code[:8])
        result = await self._post(
            self.config.token_endpoint, data=data, headers=self.FORM_HEADERS
        )

        try:
            return OAuthToken.from_response(result)
        except (KeyError, TypeError) as e:
            raise TokenExchangeError("토큰 응답 형식이 올바르지 않습니다.") from e

    async def fetch_intermediate_grant(self) -> str:
        """agt 발급.

        현재 로그인된 사용자의 액세스 토큰으로 agt를 요청합니다.

        Raises:
            TokenExchangeError: 액세스 토큰이 없거나 요청 실패
        """
        access_token = None
        if self.access_token_provider is not None:
            access_token = await self.access_token_provider()
        if not access_token:
            raise TokenExchangeError("agt 발급에 필요한 액세스 토큰이 없습니다.")

        result = await self._post(
            self.config.agt_endpoint,
            headers={
                **self.FORM_HEADERS,
                "Authorization": f"Bearer {access_token}",
            },
        )
        agt = result.get("agt") if isinstance(result, dict) else None
        if not agt:
            raise TokenExchangeError("agt 응답 형식이 올바르지 않습니다.")
        return agt

    async def _post(self, url: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Request to %s failed: %s", url, e)
            raise TokenExchangeError(f"요청 실패: {e}") from e

        if response.status_code != 200:
            error_code = None
            description = response.text
            try:
                error_data = response.json()
                error_code = error_data.get("error")
                description = error_data.get("error_description") or description
            except ValueError:
                pass
            logger.error("Request to %s failed: %s", url, response.status_code)
            raise TokenExchangeError(
                f"요청 실패: {description}",
                status_code=response.status_code,
                error_code=error_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TokenExchangeError("응답을 JSON으로 파싱할 수 없습니다.") from e

"""SDK 설정

앱 키, 리다이렉트 URI, 인증 서버 호스트 등 정적 설정.
필수 값 누락은 생성 시점이 아니라 요청 생성 시점에 BAD_PARAMETER로 보고됩니다.
"""

import locale
import os
import platform
from dataclasses import dataclass, field

SDK_VERSION = "2.0.0"


def default_attestation_header() -> str:
    """클라이언트 식별 헤더(KA) 생성.

    Returns:
        str: "sdk/<버전> sdk_type/python os/<os>-<release> lang/<locale>" 형식
    """
    lang = locale.getlocale()[0] or "en_US"
    system = platform.system().lower() or "unknown"
    release = platform.release() or "0"
    return (
        f"sdk/{SDK_VERSION} sdk_type/python "
        f"os/{system}-{release} lang/{lang.replace('_', '-')}"
    )


@dataclass
class AuthConfig:
    """인증 설정.

    Attributes:
        app_key: 앱 키 (client_id로 사용)
        redirect_uri: 리다이렉트 URI (None이면 kakao{app_key}://oauth)
        auth_host: 인증 서버 (authorize, token 엔드포인트)
        api_host: API 서버 (agt 엔드포인트)
        talk_auth_url: 동반 앱 인증 스킴 URL
        app_attestation_header: 클라이언트 식별 헤더
        client_secret: 클라이언트 시크릿 (선택)
    """

    app_key: str | None = None
    redirect_uri: str | None = None
    auth_host: str = "https://kauth.kakao.com"
    api_host: str = "https://kapi.kakao.com"
    talk_auth_url: str = "kakaokompassauth://authorize"
    app_attestation_header: str = field(default_factory=default_attestation_header)
    client_secret: str | None = None

    def __post_init__(self):
        if self.redirect_uri is None and self.app_key:
            self.redirect_uri = f"kakao{self.app_key}://oauth"

    @property
    def authorize_endpoint(self) -> str:
        return f"{self.auth_host.rstrip('/')}/oauth/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.auth_host.rstrip('/')}/oauth/token"

    @property
    def agt_endpoint(self) -> str:
        return f"{self.api_host.rstrip('/')}/v1/api/agt"

    @classmethod
    def from_env(cls, **overrides) -> "AuthConfig":
        """환경변수에서 설정 로드.

        명시적으로 전달한 값이 환경변수보다 우선합니다.
        """
        values = {
            "app_key": os.getenv("HANDOFF_AUTH_APP_KEY"),
            "redirect_uri": os.getenv("HANDOFF_AUTH_REDIRECT_URI"),
            "client_secret": os.getenv("HANDOFF_AUTH_CLIENT_SECRET"),
        }
        for name, env in (
            ("auth_host", "HANDOFF_AUTH_AUTH_HOST"),
            ("api_host", "HANDOFF_AUTH_API_HOST"),
            ("talk_auth_url", "HANDOFF_AUTH_TALK_AUTH_URL"),
        ):
            if os.getenv(env):
                values[name] = os.getenv(env)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

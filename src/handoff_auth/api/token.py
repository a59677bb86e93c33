"""OAuth 토큰 모델과 외부 협력자 인터페이스."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol


@dataclass
class OAuthToken:
    """토큰 교환 결과."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime | None = None
    refresh_token: str | None = None
    refresh_token_expires_at: datetime | None = None
    id_token: str | None = None
    scopes: list[str] = field(default_factory=list)

    def is_expired(self) -> bool:
        """액세스 토큰 만료 여부"""
        if self.expires_at is None:
            return False
        return datetime.now() >= self.expires_at

    @classmethod
    def from_response(cls, data: dict, now: datetime | None = None) -> "OAuthToken":
        """토큰 엔드포인트 응답(JSON)에서 생성.

        expires_in 계열 값은 수신 시각 기준 절대 시각으로 변환합니다.
        """
        now = now or datetime.now()
        refresh_expires_in = data.get("refresh_token_expires_in")
        scope = data.get("scope")
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "bearer"),
            expires_at=now + timedelta(seconds=data.get("expires_in", 3600)),
            refresh_token=data.get("refresh_token"),
            refresh_token_expires_at=(
                now + timedelta(seconds=refresh_expires_in)
                if refresh_expires_in is not None
                else None
            ),
            id_token=data.get("id_token"),
            scopes=scope.split() if scope else [],
        )


class TokenExchange(Protocol):
    """인증 코드 → 토큰 교환."""

    async def exchange_code_for_token(self, code: str) -> OAuthToken: ...


class IntermediateGrantFetcher(Protocol):
    """추가 동의용 agt 발급."""

    async def fetch_intermediate_grant(self) -> str: ...

"""Auth API

토큰 모델과 인증 서버 호출.
"""

from handoff_auth.api.auth_api import AuthApi
from handoff_auth.api.token import IntermediateGrantFetcher, OAuthToken, TokenExchange

__all__ = [
    "AuthApi",
    "OAuthToken",
    "TokenExchange",
    "IntermediateGrantFetcher",
]

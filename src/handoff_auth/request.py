"""Authorization Request Builder

인증 요청 파라미터 생성 및 URL 직렬화.
같은 옵션과 설정이면 항상 같은 URL을 생성합니다.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urlencode, urlparse

from handoff_auth.config import AuthConfig
from handoff_auth.exceptions import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)

RESPONSE_TYPE = "code"


@dataclass(frozen=True)
class AuthorizationRequest:
    """인증 요청 (생성 후 변경 불가)."""

    client_id: str
    redirect_uri: str
    app_attestation_header: str
    response_type: str = RESPONSE_TYPE
    intermediate_grant_token: str | None = None
    scopes: tuple[str, ...] | None = None
    channel_public_ids: tuple[str, ...] | None = None
    service_terms: tuple[str, ...] | None = None

    @property
    def prefers_ephemeral_session(self) -> bool:
        """agt가 있으면 기존 브라우저 세션을 재사용하지 않아야 함."""
        return self.intermediate_grant_token is not None


def _freeze(name: str, values: Sequence[str] | None) -> tuple[str, ...] | None:
    if values is None:
        return None
    if isinstance(values, str):
        raise AuthError(AuthErrorKind.BAD_PARAMETER, f"{name} must be a list of strings")
    try:
        frozen = tuple(values)
    except TypeError as e:
        raise AuthError(
            AuthErrorKind.BAD_PARAMETER, f"{name} must be a list of strings"
        ) from e
    if any(not isinstance(v, str) or not v for v in frozen):
        raise AuthError(AuthErrorKind.BAD_PARAMETER, f"{name} contains an empty value")
    return frozen


def build_authorization_request(
    config: AuthConfig,
    *,
    channel_public_ids: Sequence[str] | None = None,
    service_terms: Sequence[str] | None = None,
    scopes: Sequence[str] | None = None,
    intermediate_grant_token: str | None = None,
) -> AuthorizationRequest:
    """인증 요청 생성.

    Args:
        config: SDK 설정
        channel_public_ids: 채널 공개 ID 목록
        service_terms: 서비스 약관 태그 목록
        scopes: 추가 동의 scope 목록
        intermediate_grant_token: 사전 발급된 agt

    Returns:
        AuthorizationRequest: 인증 요청

    Raises:
        AuthError: 필수 설정 누락 또는 잘못된 파라미터 (BAD_PARAMETER)
    """
    if not config.app_key:
        logger.error("Bad Parameter: app key is not configured")
        raise AuthError(AuthErrorKind.BAD_PARAMETER, "App key is not configured.")
    try:
        scheme = urlparse(config.redirect_uri).scheme if config.redirect_uri else ""
    except ValueError as e:
        logger.error("Bad Parameter: malformed redirect uri %r", config.redirect_uri)
        raise AuthError(AuthErrorKind.BAD_PARAMETER, "Redirect URI is malformed.") from e
    if not scheme:
        logger.error("Bad Parameter: invalid redirect uri %r", config.redirect_uri)
        raise AuthError(AuthErrorKind.BAD_PARAMETER, "Redirect URI is not configured.")
    if intermediate_grant_token is not None and not intermediate_grant_token:
        raise AuthError(AuthErrorKind.BAD_PARAMETER, "Empty intermediate grant token.")

    return AuthorizationRequest(
        client_id=config.app_key,
        redirect_uri=config.redirect_uri,
        app_attestation_header=config.app_attestation_header,
        intermediate_grant_token=intermediate_grant_token,
        scopes=_freeze("scopes", scopes),
        channel_public_ids=_freeze("channel_public_ids", channel_public_ids),
        service_terms=_freeze("service_terms", service_terms),
    )


def _joined(values: tuple[str, ...] | None, separator: str = ",") -> str | None:
    return separator.join(values) if values else None


def _compose(base: str, params: dict) -> str:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{base}?{query}"


def companion_app_url(request: AuthorizationRequest, config: AuthConfig) -> str:
    """동반 앱 실행 URL 생성.

    식별 헤더와 확장 파라미터는 JSON 문자열로 전달합니다.
    """
    extra = {
        "channel_public_id": _joined(request.channel_public_ids),
        "service_terms": _joined(request.service_terms),
    }
    extra = {k: v for k, v in extra.items() if v is not None}

    params = {
        "client_id": request.client_id,
        "redirect_uri": request.redirect_uri,
        "response_type": request.response_type,
        "headers": json.dumps({"KA": request.app_attestation_header}, sort_keys=True),
        "params": json.dumps(extra, sort_keys=True) if extra else None,
    }
    return _compose(config.talk_auth_url, params)


def authorization_url(request: AuthorizationRequest, config: AuthConfig) -> str:
    """브라우저 인증 URL 생성."""
    params = {
        "client_id": request.client_id,
        "redirect_uri": request.redirect_uri,
        "response_type": request.response_type,
        "ka": request.app_attestation_header,
        "agt": request.intermediate_grant_token,
        "scope": _joined(request.scopes, " "),
        "channel_public_id": _joined(request.channel_public_ids),
        "service_terms": _joined(request.service_terms),
    }
    return _compose(config.authorize_endpoint, params)

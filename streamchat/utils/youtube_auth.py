"""
YouTube(Google) OAuth 유틸리티
인증 URL 생성, 인증 코드 → 토큰 교환, 토큰 갱신 결과 반영을 담당합니다.

참고: https://developers.google.com/identity/protocols/oauth2/web-server
"""

import secrets
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
YOUTUBE_READONLY_SCOPE = "https://www.googleapis.com/auth/youtube.readonly"


@dataclass
class YouTubeToken:
    """Google Access Token 정보 (인증한 채널 1개와 1:1, 갱신 시 제자리 수정)"""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: int = 3600  # 초 단위 (Google 기본 1시간)
    expires_at: Optional[datetime] = None  # 만료 시각 (UTC)
    scope: Optional[str] = None

    def __post_init__(self):
        """만료 시각 자동 계산"""
        if self.expires_at is None:
            self.expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)

    def is_expired(self) -> bool:
        """토큰 만료 여부 확인 (5분 여유)"""
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= (self.expires_at - timedelta(minutes=5))

    def apply_refresh(self, refreshed: "YouTubeToken") -> None:
        """
        갱신 결과를 현재 토큰에 반영.
        Google은 갱신 응답에 refresh_token을 생략하는 경우가 많으므로 있을 때만 교체.
        만료 시각은 뒤로 가지 않음.
        """
        self.access_token = refreshed.access_token
        self.token_type = refreshed.token_type or self.token_type
        self.expires_in = refreshed.expires_in
        if refreshed.refresh_token:
            self.refresh_token = refreshed.refresh_token
        if refreshed.scope:
            self.scope = refreshed.scope
        if self.expires_at is None or (
            refreshed.expires_at is not None and refreshed.expires_at >= self.expires_at
        ):
            self.expires_at = refreshed.expires_at

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "YouTubeToken":
        """토큰 엔드포인트 응답(JSON) → YouTubeToken"""
        access_token = body.get("access_token")
        if not access_token:
            raise ValueError(f"토큰 응답에 access_token 없음: {sorted(body.keys())}")
        return cls(
            access_token=access_token,
            refresh_token=body.get("refresh_token"),
            token_type=body.get("token_type", "Bearer"),
            expires_in=int(body.get("expires_in") or 3600),
            scope=body.get("scope"),
        )


class YouTubeAuth:
    """Google OAuth 인증 코드 흐름 (access_type=offline)"""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: Google Cloud OAuth Client ID
            client_secret: Google Cloud OAuth Client Secret
            redirect_uri: 등록한 리디렉션 URL (/api/auth/callback)
            transport: 테스트용 httpx 트랜스포트
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """
        인증 코드 요청 URL 생성

        Args:
            state: CSRF 방지를 위한 랜덤 문자열 (없으면 자동 생성)
        """
        if state is None:
            state = secrets.token_urlsafe(32)

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": YOUTUBE_READONLY_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> YouTubeToken:
        """
        인증 코드를 Access Token으로 교환

        Raises:
            httpx.HTTPStatusError: API 호출 실패 시
            ValueError: 응답에 access_token이 없는 경우
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(TOKEN_URL, data=data)
            response.raise_for_status()
            token = YouTubeToken.from_response(response.json())

        logger.info(
            "Access Token 발급 성공 (만료: %s, refresh_token: %s)",
            token.expires_at, "있음" if token.refresh_token else "없음",
        )
        return token

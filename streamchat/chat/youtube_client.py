"""
YouTube Data API v3 라이브 채팅 클라이언트 (httpx)
YouTube 라이브 채팅은 푸시 방식이 없으므로 pageToken 기반 폴링으로 수집합니다.

참고: https://developers.google.com/youtube/v3/live/docs/liveChatMessages/list
"""

import logging
from typing import Any, Optional

import httpx

from streamchat.utils.youtube_auth import TOKEN_URL, YouTubeToken
from .base_client import (
    ChannelIdentity,
    ChatItem,
    ChatPage,
    LiveSession,
    RemoteApiError,
    RemoteChatClient,
)

logger = logging.getLogger(__name__)

API_BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_TIMEOUT = 15.0


def _error_from_response(response: httpx.Response) -> RemoteApiError:
    """
    Google 오류 응답 → RemoteApiError
    API: {"error": {"code", "message", "status", "errors": [{"reason", "message"}]}}
    OAuth: {"error": "invalid_grant", "error_description": "..."}
    """
    reason = ""
    message = ""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            details = err.get("errors") or []
            if details and isinstance(details[0], dict):
                reason = details[0].get("reason") or ""
            reason = reason or err.get("status") or ""
            message = err.get("message") or ""
        elif isinstance(err, str):
            reason = err
            message = data.get("error_description") or ""

    if not message:
        message = (response.text or "")[:200] or response.reason_phrase
    return RemoteApiError(response.status_code, reason, message)


def _parse_item(raw: dict[str, Any]) -> ChatItem:
    """liveChatMessage 리소스 → ChatItem (누락 필드는 기본값)"""
    snippet = raw.get("snippet") or {}
    author = raw.get("authorDetails") or {}
    return ChatItem(
        id=str(raw.get("id") or ""),
        author_name=author.get("displayName") or "Someone",
        display_text=str(snippet.get("displayMessage") or ""),
        published_at=snippet.get("publishedAt"),
        is_owner=bool(author.get("isChatOwner")),
        is_moderator=bool(author.get("isChatModerator")),
        is_sponsor=bool(author.get("isChatSponsor")),
        super_chat=snippet.get("superChatDetails"),
        new_sponsor=snippet.get("newSponsorDetails"),
    )


class YouTubeChatClient(RemoteChatClient):
    """YouTube Data API v3 클라이언트

    하나의 httpx.AsyncClient를 재사용합니다. 모든 실패는 RemoteApiError로 변환됩니다.
    """

    @property
    def platform_name(self) -> str:
        """플랫폼 이름"""
        return "youtube"

    def __init__(
        self,
        client_id: str = "",
        client_secret: str = "",
        max_results: int = 200,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: 토큰 갱신용 OAuth Client ID
            client_secret: 토큰 갱신용 OAuth Client Secret
            max_results: 페이지당 최대 메시지 수 (YouTube 상한 2000)
            timeout: 원격 호출 타임아웃 (초)
            transport: 테스트용 httpx 트랜스포트
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.max_results = min(max_results, 2000)
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _get(self, credential: YouTubeToken, path: str, params: dict[str, Any]) -> dict[str, Any]:
        headers = {"Authorization": f"{credential.token_type or 'Bearer'} {credential.access_token}"}
        try:
            response = await self._http.get(f"{API_BASE_URL}/{path}", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteApiError(None, "transport", f"{type(e).__name__}: {e}") from e
        if response.is_error:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(response.status_code, "invalid_response", f"JSON이 아닌 응답: {e}") from e

    async def resolve_channel_identity(self, credential: YouTubeToken) -> ChannelIdentity:
        data = await self._get(credential, "channels", {"part": "snippet", "mine": "true", "maxResults": 5})
        items = data.get("items") or []
        if not items:
            raise RemoteApiError(404, "channelNotFound", "인증된 계정에 채널이 없습니다")
        ch = items[0]
        identity = ChannelIdentity(id=ch.get("id", ""), title=(ch.get("snippet") or {}).get("title", ""))
        logger.info(f"[{self.platform_name}] 인증 채널 확인: {identity.title} ({identity.id})")
        return identity

    async def resolve_active_live_session(self, credential: YouTubeToken) -> Optional[LiveSession]:
        # mine과 broadcastStatus는 동시에 쓸 수 없음. broadcastStatus만으로 인증 채널의 방송이 조회됨
        data = await self._get(
            credential,
            "liveBroadcasts",
            {"part": "snippet", "broadcastStatus": "active", "broadcastType": "all", "maxResults": 5},
        )
        for item in data.get("items") or []:
            snippet = item.get("snippet") or {}
            chat_id = snippet.get("liveChatId")
            if chat_id:
                return LiveSession(
                    broadcast_id=item.get("id", ""),
                    title=snippet.get("title", ""),
                    chat_session_id=chat_id,
                )
        return None

    async def fetch_chat_page(
        self,
        credential: YouTubeToken,
        chat_session_id: str,
        continuation_token: Optional[str],
    ) -> ChatPage:
        params: dict[str, Any] = {
            "liveChatId": chat_session_id,
            "part": "snippet,authorDetails",
            "maxResults": self.max_results,
        }
        if continuation_token:
            params["pageToken"] = continuation_token
        data = await self._get(credential, "liveChat/messages", params)
        interval = data.get("pollingIntervalMillis")
        return ChatPage(
            items=[_parse_item(raw) for raw in data.get("items") or []],
            next_token=data.get("nextPageToken"),
            suggested_interval_ms=int(interval) if interval is not None else None,
        )

    async def refresh_credential(self, credential: YouTubeToken) -> YouTubeToken:
        if not credential.refresh_token:
            raise RemoteApiError(None, "no_refresh_token", "Refresh Token이 없습니다")
        data = {
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            response = await self._http.post(TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            raise RemoteApiError(None, "transport", f"{type(e).__name__}: {e}") from e
        if response.is_error:
            raise _error_from_response(response)
        try:
            token = YouTubeToken.from_response(response.json())
        except ValueError as e:
            raise RemoteApiError(response.status_code, "invalid_token_response", str(e)) from e
        logger.info(f"[{self.platform_name}] Access Token 갱신 성공 (만료: {token.expires_at})")
        return token

    async def aclose(self) -> None:
        await self._http.aclose()

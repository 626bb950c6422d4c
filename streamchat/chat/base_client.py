"""
원격 채팅 API 클라이언트 추상 기본 클래스
폴링 엔진이 사용하는 네 가지 원격 호출(채널 확인, 라이브 확인, 채팅 페이지, 토큰 갱신)의 인터페이스
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from streamchat.utils.youtube_auth import YouTubeToken

logger = logging.getLogger(__name__)


class RemoteApiError(Exception):
    """원격 호출 실패. 엔진은 status / reason / message 세 필드만 사용"""

    def __init__(self, status: Optional[int], reason: str = "", message: str = ""):
        self.status = status
        self.reason = reason or ""
        self.message = message or ""
        super().__init__(self.message or self.reason or f"HTTP {status}")

    def __repr__(self) -> str:
        return f"RemoteApiError(status={self.status!r}, reason={self.reason!r}, message={self.message!r})"


@dataclass
class ChannelIdentity:
    """인증된 채널 (TTL 만료 시 다시 조회)"""
    id: str
    title: str
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class LiveSession:
    """현재 active 상태인 방송과 채팅 세션 ID"""
    broadcast_id: str
    title: str
    chat_session_id: str


@dataclass
class ChatItem:
    """채팅 페이지의 원시 항목 1개 (플랫폼 공통 최소 필드)"""
    id: str
    author_name: str = "Someone"
    display_text: str = ""
    published_at: Optional[str] = None
    is_owner: bool = False
    is_moderator: bool = False
    is_sponsor: bool = False
    super_chat: Optional[dict[str, Any]] = None  # {"amountDisplayString", "tier"}
    new_sponsor: Optional[dict[str, Any]] = None  # {"membershipLevelName"}


@dataclass
class ChatPage:
    """채팅 페이지 조회 결과"""
    items: list[ChatItem]
    next_token: Optional[str] = None
    suggested_interval_ms: Optional[int] = None


class RemoteChatClient(ABC):
    """원격 채팅 API 추상 클래스. 실패는 RemoteApiError로 전달"""

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """플랫폼 이름 반환 (예: 'youtube')"""
        pass

    @abstractmethod
    async def resolve_channel_identity(self, credential: YouTubeToken) -> ChannelIdentity:
        """인증된 채널 조회"""
        pass

    @abstractmethod
    async def resolve_active_live_session(self, credential: YouTubeToken) -> Optional[LiveSession]:
        """진행 중인 방송 조회. 없으면 None"""
        pass

    @abstractmethod
    async def fetch_chat_page(
        self,
        credential: YouTubeToken,
        chat_session_id: str,
        continuation_token: Optional[str],
    ) -> ChatPage:
        """continuation token 이후의 채팅 한 페이지 조회"""
        pass

    @abstractmethod
    async def refresh_credential(self, credential: YouTubeToken) -> YouTubeToken:
        """refresh_token으로 새 access token 발급 (입력 credential은 수정하지 않음)"""
        pass

    async def aclose(self) -> None:
        """보유한 연결 자원 정리"""
        return None

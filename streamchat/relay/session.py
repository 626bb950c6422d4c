"""세션 상태: 인증 토큰 1개 + 채널 캐시 + 라이브 세션 + 폴링 커서."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from streamchat.chat.base_client import ChannelIdentity, LiveSession
from streamchat.utils.youtube_auth import YouTubeToken


@dataclass
class PollCursor:
    """
    폴링 진행 위치.
    continuation_token만 다음 조회에 쓰이고, last_item_id는 진단 표시용.
    """
    last_item_id: Optional[str] = None
    continuation_token: Optional[str] = None
    next_wake_at: Optional[datetime] = None
    backoff_ms: int = 0

    def advance(self, next_token: Optional[str], newest_item_id: Optional[str]) -> None:
        # 응답에 토큰이 없으면 이전 토큰 유지 (뒤로 돌리지 않음)
        if next_token:
            self.continuation_token = next_token
        if newest_item_id:
            self.last_item_id = newest_item_id

    def reset(self) -> None:
        self.last_item_id = None
        self.continuation_token = None
        self.next_wake_at = None
        self.backoff_ms = 0


@dataclass
class SessionState:
    """인증 주체 1명의 폴링 세션 (한 번에 하나만 활성)"""
    credential: YouTubeToken
    channel_ttl: timedelta = timedelta(hours=6)
    channel: Optional[ChannelIdentity] = None
    channel_errored: bool = False
    live: Optional[LiveSession] = None
    cursor: PollCursor = field(default_factory=PollCursor)
    last_poll_at: Optional[datetime] = None

    def channel_is_stale(self, now: Optional[datetime] = None) -> bool:
        if self.channel is None or self.channel_errored:
            return True
        now = now or datetime.now(timezone.utc)
        return now - self.channel.resolved_at >= self.channel_ttl

    def set_channel(self, channel: ChannelIdentity) -> None:
        self.channel = channel
        self.channel_errored = False

    def invalidate_channel(self) -> None:
        self.channel_errored = True

    def reset_live(self) -> None:
        """방송 종료/채팅 닫힘/수동 중지 시: 라이브 세션과 커서를 비움"""
        self.live = None
        self.cursor.reset()

    def snapshot(self) -> dict[str, Any]:
        channel = self.channel
        live = self.live
        return {
            "authedChannel": {"id": channel.id, "title": channel.title} if channel else None,
            "activeBroadcast": {"id": live.broadcast_id, "title": live.title} if live else None,
            "activeLiveChatId": live.chat_session_id if live else None,
            "lastSeenMessageId": self.cursor.last_item_id,
            "continuationToken": self.cursor.continuation_token,
            "lastPollAt": self.last_poll_at.isoformat() if self.last_poll_at else None,
            "hasRefreshToken": bool(self.credential.refresh_token),
        }

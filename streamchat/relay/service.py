"""
애플리케이션이 소유하는 릴레이 객체.
인증 시 세션+스케줄러를 만들고, 로그아웃 시 정리한다. 팬아웃은 앱 수명 동안 유지.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from streamchat.chat.base_client import RemoteChatClient
from streamchat.chat.events import STATUS_WARN, StatusEvent
from streamchat.config import RelayConfig
from streamchat.utils.youtube_auth import YouTubeToken
from .fanout import Fanout, Sink
from .scheduler import PollScheduler
from .session import SessionState

logger = logging.getLogger(__name__)


class ChatRelay:
    """YouTube 채팅 폴링 → SSE 구독자 팬아웃"""

    def __init__(self, client: RemoteChatClient, config: Optional[RelayConfig] = None):
        self.client = client
        self.config = config or RelayConfig()
        self.fanout = Fanout()
        self.session: Optional[SessionState] = None
        self.scheduler: Optional[PollScheduler] = None
        # 운영자가 직접 끈 경우 구독자가 붙어도 자동 시작하지 않음
        self._manually_disabled = False

    @property
    def authed(self) -> bool:
        return self.session is not None

    def authorize(self, credential: YouTubeToken) -> None:
        """새 토큰으로 세션 생성 (기존 세션은 정리). 구독자가 있으면 바로 폴링"""
        self._teardown("새 인증으로 세션 교체")
        self.session = SessionState(
            credential=credential,
            channel_ttl=timedelta(seconds=self.config.channel_ttl_sec),
        )
        self.scheduler = PollScheduler(self.client, self.session, self.fanout, self.config)
        logger.info("세션 생성 (refresh_token: %s)", "있음" if credential.refresh_token else "없음")
        if self.fanout.subscriber_count > 0:
            self._auto_start()

    def logout(self) -> None:
        self._teardown("로그아웃: 폴링 중지")
        self._manually_disabled = False

    def enable(self) -> bool:
        """수동 시작. 세션이 없으면 False"""
        self._manually_disabled = False
        if self.scheduler is None:
            self.fanout.broadcast(StatusEvent(level=STATUS_WARN, message="인증되지 않아 폴링을 시작할 수 없습니다"))
            return False
        self.scheduler.enable()
        return True

    def disable(self) -> None:
        """수동 중지"""
        self._manually_disabled = True
        if self.scheduler is not None:
            self.scheduler.disable("수동 중지: 폴링 중지")

    def subscribe(self, sink: Sink) -> int:
        handle = self.fanout.subscribe(sink)
        self._auto_start()
        return handle

    def unsubscribe(self, handle: int) -> None:
        self.fanout.unsubscribe(handle)

    def snapshot(self) -> dict[str, Any]:
        """진단용 읽기 전용 상태"""
        data: dict[str, Any] = {
            "oauthConfigured": self.config.oauth_configured,
            "authed": self.authed,
            "hasRefreshToken": False,
            "pollMs": max(self.config.min_poll_ms, self.config.poll_ms),
            "enabled": False,
            "state": "disabled",
            "authedChannel": None,
            "activeBroadcast": None,
            "activeLiveChatId": None,
            "lastSeenMessageId": None,
            "continuationToken": None,
            "lastPollAt": None,
            "nextWakeAt": None,
            "backoffDeadline": None,
        }
        if self.scheduler is not None:
            data.update(self.scheduler.snapshot())
        data["sseClients"] = self.fanout.subscriber_count
        data["lastStatus"] = self.fanout.last_status.to_dict()
        return data

    async def aclose(self) -> None:
        self._teardown("서버 종료")
        await self.client.aclose()

    def _auto_start(self) -> None:
        if self.scheduler is None or self._manually_disabled or not self.config.auto_start:
            return
        self.scheduler.enable()

    def _teardown(self, message: str) -> None:
        if self.scheduler is not None:
            self.scheduler.disable(message)
        self.scheduler = None
        self.session = None

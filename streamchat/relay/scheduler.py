"""
라이브 채팅 폴링 스케줄러.

상태: disabled → idle-armed → in-flight → (idle-armed | backoff) → ...
매 사이클이 끝날 때 다음 대기 시간을 직접 계산해 타이머를 다시 건다 (고정 setInterval 아님).
한 번에 사이클 하나만 실행: 사이클 시작 시 타이머를 해제하고, 끝난 뒤에만 다시 건다.
disable()은 타이머와 진행 중인 사이클을 취소하고 세대(generation)를 올려서,
이전 세대의 사이클이 세션을 건드리거나 타이머를 다시 걸지 못하게 한다.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from streamchat.chat.base_client import ChatItem, RemoteChatClient
from streamchat.chat.classifier import classify_item
from streamchat.chat.events import STATUS_ERROR, STATUS_INFO, STATUS_WARN, StatusEvent
from streamchat.config import RelayConfig
from .errors import ErrorKind, classify_error, error_fields
from .fanout import Fanout
from .session import SessionState

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    STATUS_INFO: logging.INFO,
    STATUS_WARN: logging.WARNING,
    STATUS_ERROR: logging.ERROR,
}


class SchedulerState(str, Enum):
    DISABLED = "disabled"
    IDLE_ARMED = "idle-armed"
    IN_FLIGHT = "in-flight"
    BACKOFF = "backoff"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _published_key(item: ChatItem) -> Optional[datetime]:
    raw = item.published_at
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def chronological(items: list[ChatItem]) -> list[ChatItem]:
    """
    오래된 것부터 정렬.
    모든 항목에 publishedAt이 있으면 시각 기준 안정 정렬, 아니면 최신순 응답으로 보고 뒤집음.
    시각이 같은 항목은 페이지 순서를 따르되, 페이지가 최신순(비증가)이면 뒤집은 순서를 따름.
    """
    keys = [_published_key(item) for item in items]
    if not items or any(k is None for k in keys):
        return list(reversed(items))
    order = list(range(len(items)))
    if all(keys[i] >= keys[i + 1] for i in range(len(keys) - 1)):
        order.reverse()
    order.sort(key=lambda i: keys[i])
    return [items[i] for i in order]


class PollScheduler:
    """세션 1개의 폴링 주체"""

    def __init__(
        self,
        client: RemoteChatClient,
        session: SessionState,
        fanout: Fanout,
        config: Optional[RelayConfig] = None,
    ):
        self.client = client
        self.session = session
        self.fanout = fanout
        self.config = config or RelayConfig()

        self.enabled = False
        self.consecutive_quota_errors = 0
        self.backoff_deadline: Optional[datetime] = None
        self.last_delay_ms: Optional[int] = None

        self._generation = 0
        self._in_flight = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # 상태
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        if self._in_flight:
            return SchedulerState.IN_FLIGHT
        if not self.enabled:
            return SchedulerState.DISABLED
        if self.backoff_deadline is not None and self._timer is not None:
            return SchedulerState.BACKOFF
        return SchedulerState.IDLE_ARMED

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def next_wake_at(self) -> Optional[datetime]:
        return self.session.cursor.next_wake_at

    def snapshot(self) -> dict[str, Any]:
        data = self.session.snapshot()
        data.update({
            "enabled": self.enabled,
            "state": self.state.value,
            "nextWakeAt": self.next_wake_at.isoformat() if self.next_wake_at else None,
            "backoffDeadline": self.backoff_deadline.isoformat() if self.backoff_deadline else None,
            "backoffMs": self.session.cursor.backoff_ms,
            "consecutiveQuotaErrors": self.consecutive_quota_errors,
            "lastDelayMs": self.last_delay_ms,
        })
        return data

    # ------------------------------------------------------------------
    # 켜기 / 끄기
    # ------------------------------------------------------------------

    def enable(self) -> None:
        """폴링 시작 (이미 켜져 있으면 무시). 실행 중인 이벤트 루프 안에서 호출"""
        if self.enabled:
            return
        self.enabled = True
        self._status(STATUS_INFO, "폴링 시작")
        if not self._in_flight:
            self._arm(0)

    def disable(self, message: str = "폴링 중지") -> None:
        """타이머/진행 중 사이클 취소, 커서 초기화, 상태 알림 (이미 꺼져 있으면 무시)"""
        if not self.enabled and not self._in_flight and self._timer is None:
            return
        self.enabled = False
        self._generation += 1
        self._disarm()
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._in_flight = False
        self.backoff_deadline = None
        self.consecutive_quota_errors = 0
        self.session.reset_live()
        self._status(STATUS_INFO, message)

    # ------------------------------------------------------------------
    # 타이머
    # ------------------------------------------------------------------

    def _arm(self, delay_ms: int) -> None:
        self._disarm()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(0, delay_ms) / 1000, self._on_wake)
        self.session.cursor.next_wake_at = _utcnow() + timedelta(milliseconds=delay_ms)

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.session.cursor.next_wake_at = None

    def _on_wake(self) -> None:
        self._timer = None
        if not self.enabled or self._in_flight:
            return
        self._task = asyncio.get_running_loop().create_task(self.run_cycle())

    # ------------------------------------------------------------------
    # 사이클
    # ------------------------------------------------------------------

    async def run_cycle(self) -> Optional[int]:
        """
        폴링 1회 실행 후 다음 대기 시간(ms) 반환.
        이미 실행 중이면 아무것도 하지 않고 None.
        켜져 있으면 반환 전에 다음 타이머를 건다.
        """
        if self._in_flight:
            logger.debug("이전 사이클 진행 중 → wake 무시")
            return None
        gen = self._generation
        self._in_flight = True
        self._disarm()
        try:
            try:
                delay_ms = await self._poll_once(gen)
            except Exception as e:
                if gen != self._generation:
                    return None
                delay_ms = self._handle_error(e)
        finally:
            if gen == self._generation:
                self._in_flight = False

        if delay_ms is None or gen != self._generation:
            return None
        self.last_delay_ms = delay_ms
        if self.enabled:
            self._arm(delay_ms)
        return delay_ms

    async def _poll_once(self, gen: int) -> Optional[int]:
        session = self.session
        session.last_poll_at = _utcnow()

        # (a) 채널 확인 (+ 필요 시 토큰 갱신 1회)
        await self._ensure_channel(gen)
        if gen != self._generation:
            return None

        # (b) 채팅 세션 ID
        if session.live is None:
            live = await self.client.resolve_active_live_session(session.credential)
            if gen != self._generation:
                return None
            if live is None:
                self._reset_quota_backoff()
                self._status(STATUS_WARN, "진행 중인 라이브 방송을 찾을 수 없습니다 (liveBroadcasts.list)")
                return self.config.slow_retry_ms
            session.live = live
            self._status(STATUS_INFO, f"라이브 채팅 ID를 가져왔습니다: {live.title}")

        # (c) 페이지 조회
        page = await self.client.fetch_chat_page(
            session.credential,
            session.live.chat_session_id,
            session.cursor.continuation_token,
        )
        if gen != self._generation:
            return None

        # (d) 커서 전진 → (e) 오래된 것부터 분류·전송
        items = chronological(page.items)
        session.cursor.advance(page.next_token, items[-1].id if items else None)
        for item in items:
            for event in classify_item(item):
                self.fanout.broadcast(event)

        # (f) 완료 알림
        self._reset_quota_backoff()
        self._status(STATUS_INFO, f"조회 완료 (items={len(items)})")
        return self._success_delay(page.suggested_interval_ms)

    def _success_delay(self, suggested_ms: Optional[int]) -> int:
        # API 제안 간격은 하한으로만 사용
        return max(self.config.min_poll_ms, self.config.poll_ms, suggested_ms or 0)

    def _reset_quota_backoff(self) -> None:
        self.consecutive_quota_errors = 0
        self.backoff_deadline = None
        self.session.cursor.backoff_ms = 0

    async def _ensure_channel(self, gen: int) -> None:
        session = self.session
        credential = session.credential
        refreshed = False

        if credential.is_expired() and credential.refresh_token:
            refreshed = True
            await self._try_refresh()
            if gen != self._generation:
                return

        if not session.channel_is_stale():
            return

        try:
            channel = await self.client.resolve_channel_identity(credential)
        except Exception as e:
            if gen != self._generation:
                return
            if classify_error(e) is ErrorKind.QUOTA:
                raise
            session.invalidate_channel()
            if refreshed or not credential.refresh_token:
                self._status(STATUS_WARN, f"channels.list 실패: {e}")
                return
            if not await self._try_refresh() or gen != self._generation:
                return
            try:
                channel = await self.client.resolve_channel_identity(credential)
            except Exception as retry_error:
                if gen != self._generation:
                    return
                if classify_error(retry_error) is ErrorKind.QUOTA:
                    raise
                session.invalidate_channel()
                self._status(STATUS_WARN, f"토큰 갱신 후에도 channels.list 실패: {retry_error}")
                return
            if gen != self._generation:
                return

        session.set_channel(channel)
        self._status(STATUS_INFO, f"인증 채널: {channel.title}")

    async def _try_refresh(self) -> bool:
        credential = self.session.credential
        try:
            refreshed = await self.client.refresh_credential(credential)
        except Exception as e:
            self._status(STATUS_WARN, f"Access Token 갱신 실패: {e}")
            return False
        credential.apply_refresh(refreshed)
        self._status(STATUS_INFO, "Access Token을 갱신했습니다")
        return True

    def _handle_error(self, error: Exception) -> int:
        kind = classify_error(error)
        status, reason, _ = error_fields(error)

        if kind is ErrorKind.QUOTA:
            self.consecutive_quota_errors += 1
            backoff_ms = min(
                self.config.quota_backoff_base_ms * 2 ** (self.consecutive_quota_errors - 1),
                self.config.quota_backoff_max_ms,
            )
            self.session.cursor.backoff_ms = backoff_ms
            self.backoff_deadline = _utcnow() + timedelta(milliseconds=backoff_ms)
            self._status(
                STATUS_ERROR,
                f"API 할당량 초과 ({reason or status}). {backoff_ms // 1000}초 후 재시도",
            )
            return backoff_ms

        self.backoff_deadline = None
        self.session.cursor.backoff_ms = 0

        if kind is ErrorKind.CHAT_ENDED:
            self.session.reset_live()
            self._status(STATUS_WARN, f"라이브 채팅이 종료되었거나 없습니다 ({reason or status}). 방송을 다시 찾습니다")
            return self.config.slow_retry_ms

        if status == 401:
            # 다음 사이클에서 채널 확인 + 토큰 갱신 경로를 타도록
            self.session.invalidate_channel()
        logger.debug("폴링 오류 상세: %r", error, exc_info=error)
        self._status(STATUS_WARN, f"poll error: {error}")
        return self.config.slow_retry_ms

    def _status(self, level: str, message: str) -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), message)
        self.fanout.broadcast(StatusEvent(level=level, message=message))

"""
구독자 팬아웃. 연결된 모든 구독자에게 같은 SSE 페이로드를 순서대로 기록.
쓰기 실패한 구독자는 조용히 제거하고 나머지 전달은 계속함.
마지막 status 이벤트 1건을 보관 (늦게 붙은 디버그 UI용).
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Protocol

from streamchat.chat.events import ChatEvent, StatusEvent, STATUS_INFO, to_sse

logger = logging.getLogger(__name__)


class Sink(Protocol):
    """쓰기 가능한 구독자. 실패 시 예외를 던지면 됨"""

    def write(self, payload: str) -> None: ...


class QueueSink:
    """
    asyncio.Queue 기반 SSE 구독자.
    write()는 막히지 않음: 큐가 가득 찼거나 닫혔으면 예외 → Fanout이 제거.
    """

    def __init__(self, maxsize: int = 256):
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def write(self, payload: str) -> None:
        if self.closed:
            raise ConnectionError("subscriber closed")
        self.queue.put_nowait(payload)

    def close(self) -> None:
        self.closed = True

    async def get(self) -> str:
        return await self.queue.get()


class Fanout:
    """구독자 집합 + 마지막 상태"""

    def __init__(self):
        self._subscribers: dict[int, Sink] = {}
        self._ids = itertools.count(1)
        self._last_status: StatusEvent = StatusEvent(level=STATUS_INFO, message="idle")

    def subscribe(self, sink: Sink) -> int:
        handle = next(self._ids)
        self._subscribers[handle] = sink
        logger.info("구독자 추가 #%s (현재 %s)", handle, len(self._subscribers))
        return handle

    def unsubscribe(self, handle: int) -> None:
        if self._subscribers.pop(handle, None) is not None:
            logger.info("구독자 제거 #%s (현재 %s)", handle, len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def last_status(self) -> StatusEvent:
        return self._last_status

    def broadcast(self, event: ChatEvent) -> None:
        """모든 구독자에게 전달. 예외를 밖으로 던지지 않음"""
        if isinstance(event, StatusEvent):
            self._last_status = event
        payload = to_sse(event)
        # 순회 중 구독/해지가 일어나도 안전하도록 복사본 순회
        for handle, sink in list(self._subscribers.items()):
            if getattr(sink, "closed", False):
                self._drop(handle, "closed")
                continue
            try:
                sink.write(payload)
            except Exception as e:
                self._drop(handle, e)

    def _drop(self, handle: int, why: object) -> None:
        sink = self._subscribers.pop(handle, None)
        if sink is None:
            return
        logger.debug("구독자 #%s 쓰기 실패로 제거: %s", handle, why)
        close = getattr(sink, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logger.debug("구독자 #%s close 실패: %s", handle, e)

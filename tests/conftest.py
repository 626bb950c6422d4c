"""
공통 픽스처: 가짜 원격 클라이언트, 기록용 구독자, 작은 간격의 설정.
"""
import asyncio
import json
from typing import Optional

import pytest

from streamchat.chat.base_client import (
    ChannelIdentity,
    ChatPage,
    LiveSession,
    RemoteChatClient,
)
from streamchat.config import RelayConfig
from streamchat.relay.fanout import Fanout
from streamchat.relay.scheduler import PollScheduler
from streamchat.relay.session import SessionState
from streamchat.utils.youtube_auth import YouTubeToken


class FakeChatClient(RemoteChatClient):
    """호출 기록 + 미리 정한 응답/예외를 순서대로 돌려주는 클라이언트"""

    def __init__(self):
        self.channel = ChannelIdentity(id="UC123", title="Test Channel")
        self.live: object = LiveSession(broadcast_id="b1", title="Test Live", chat_session_id="chat-1")
        self.pages: list = []
        self.channel_errors: list = []
        self.refresh_result: object = None
        self.fetch_gate: Optional[asyncio.Event] = None
        self.calls: list[tuple] = []
        self.closed = False

    @property
    def platform_name(self) -> str:
        return "fake"

    async def resolve_channel_identity(self, credential):
        self.calls.append(("channel", credential.access_token))
        if self.channel_errors:
            raise self.channel_errors.pop(0)
        return ChannelIdentity(id=self.channel.id, title=self.channel.title)

    async def resolve_active_live_session(self, credential):
        self.calls.append(("live",))
        if isinstance(self.live, Exception):
            raise self.live
        return self.live

    async def fetch_chat_page(self, credential, chat_session_id, continuation_token):
        self.calls.append(("fetch", chat_session_id, continuation_token))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        result = self.pages.pop(0) if self.pages else ChatPage(items=[])
        if isinstance(result, Exception):
            raise result
        return result

    async def refresh_credential(self, credential):
        self.calls.append(("refresh", credential.refresh_token))
        if isinstance(self.refresh_result, Exception):
            raise self.refresh_result
        return self.refresh_result or YouTubeToken(access_token="refreshed-token")

    async def aclose(self):
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)


class RecordingSink:
    """받은 SSE 페이로드를 기록"""

    def __init__(self):
        self.payloads: list[str] = []
        self.closed = False

    def write(self, payload: str) -> None:
        self.payloads.append(payload)

    def close(self) -> None:
        self.closed = True

    def events(self) -> list[dict]:
        out = []
        for payload in self.payloads:
            for line in payload.splitlines():
                if line.startswith("data: "):
                    out.append(json.loads(line[len("data: "):]))
        return out

    def of_kind(self, kind: str) -> list[dict]:
        return [e for e in self.events() if e.get("kind") == kind]


@pytest.fixture
def fake_client():
    return FakeChatClient()


@pytest.fixture
def config():
    return RelayConfig(
        poll_ms=2500,
        min_poll_ms=1200,
        slow_retry_ms=15000,
        quota_backoff_base_ms=1000,
        quota_backoff_max_ms=5000,
    )


@pytest.fixture
def credential():
    return YouTubeToken(access_token="access-1", refresh_token="refresh-1", expires_in=3600)


@pytest.fixture
def fanout():
    return Fanout()


@pytest.fixture
def sink(fanout):
    s = RecordingSink()
    fanout.subscribe(s)
    return s


@pytest.fixture
def session(credential):
    return SessionState(credential=credential)


@pytest.fixture
def scheduler(fake_client, session, fanout, config):
    return PollScheduler(fake_client, session, fanout, config)

"""
구독자에게 내보내는 이벤트 데이터 클래스.
kind 필드로 구분: "chat"(채팅 원문) / "toast"(후원·멤버십 알림) / "status"(엔진 상태)
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

TOAST_MS = 9000

STATUS_INFO = "info"
STATUS_WARN = "warn"
STATUS_ERROR = "error"
STATUS_LEVELS = frozenset({STATUS_INFO, STATUS_WARN, STATUS_ERROR})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChatTranscriptEvent:
    """일반 채팅 메시지. role: owner / moderator / member / ''"""
    id: str
    name: str
    text: str
    role: str = ""
    published_at: Optional[str] = None
    kind: str = field(default="chat", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "name": self.name,
            "text": self.text,
            "role": self.role,
            "publishedAt": self.published_at,
        }


@dataclass(frozen=True)
class SuperChatEvent:
    """금액 표시 후원 (Super Chat)"""
    name: str
    amount: str
    tier: Optional[int] = None
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "toast",
            "type": "superchat",
            "title": "SUPER CHAT",
            "body": f"{self.name}：{self.amount}  {self.text}".strip(),
            "ms": TOAST_MS,
            "amount": self.amount,
            "tier": self.tier,
        }


@dataclass(frozen=True)
class MembershipEvent:
    """신규/업그레이드 멤버십. 선물 멤버십은 이 경로로 오지 않음"""
    name: str
    level: str = ""

    def to_dict(self) -> dict[str, Any]:
        suffix = f" ({self.level})" if self.level else ""
        return {
            "kind": "toast",
            "type": "membership",
            "title": "MEMBERSHIP",
            "body": f"{self.name}：멤버가 되었습니다{suffix}",
            "ms": TOAST_MS,
            "level": self.level,
        }


@dataclass(frozen=True)
class GiftEvent:
    """시스템 메시지 문구로 추정한 멤버십 선물 (best-effort)"""
    name: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "toast",
            "type": "gift",
            "title": "GIFT",
            "body": f"{self.name}：{self.message}",
            "ms": TOAST_MS,
            "message": self.message,
        }


@dataclass(frozen=True)
class StatusEvent:
    """엔진 상태 알림. 마지막 1건은 Fanout이 보관"""
    level: str
    message: str
    ts: str = field(default_factory=_now_iso)
    kind: str = field(default="status", init=False)

    def __post_init__(self):
        if self.level not in STATUS_LEVELS:
            object.__setattr__(self, "level", STATUS_INFO)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SpecialEvent = Union[SuperChatEvent, MembershipEvent, GiftEvent]
ChatEvent = Union[ChatTranscriptEvent, SuperChatEvent, MembershipEvent, GiftEvent, StatusEvent]


def to_sse(event: ChatEvent) -> str:
    """SSE 프레임 (event: yt). JSON 안의 U+2028/U+2029는 제거"""
    data = json.dumps(event.to_dict(), ensure_ascii=False)
    data = data.replace("\u2028", "").replace("\u2029", "")
    return f"event: yt\ndata: {data}\n\n"

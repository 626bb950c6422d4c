"""
채팅 항목 분류
원시 ChatItem → 일반 채팅 이벤트 + (있으면) 특수 이벤트 1개.
같은 입력에는 항상 같은 결과 (내부 상태 없음).
"""

import re
import logging
from typing import Optional

from .base_client import ChatItem
from .events import (
    ChatEvent,
    ChatTranscriptEvent,
    GiftEvent,
    MembershipEvent,
    SpecialEvent,
    SuperChatEvent,
)

logger = logging.getLogger(__name__)

ROLE_OWNER = "owner"
ROLE_MODERATOR = "moderator"
ROLE_MEMBER = "member"

# 멤버십 선물 시스템 메시지 추정 패턴 (순서대로 검사).
# 로케일/문구가 바뀌면 놓칠 수 있음. 일부러 너무 넓게 잡지 않음.
GIFT_PATTERNS = [
    # 영어
    re.compile(r"gift(ed)?\s+\d+\s+memberships?", re.IGNORECASE),
    re.compile(r"gift(ed)?\s+a\s+membership", re.IGNORECASE),
    re.compile(r"gave\s+\d+\s+memberships?", re.IGNORECASE),
    re.compile(r"sent\s+\d+\s+membership\s+gifts?", re.IGNORECASE),
    # 일본어
    re.compile(r"メンバーシップ\s*ギフト"),
    re.compile(r"メンバーシップを\s*\d+\s*件\s*ギフト"),
    re.compile(r"\d+\s*件のメンバーシップ(を)?\s*ギフト"),
    re.compile(r"メンバーシップをギフトしました"),
    re.compile(r"メンバーシップ\s*\d+\s*個\s*ギフト"),
]


def author_role(item: ChatItem) -> str:
    """작성자 역할 (owner > moderator > member, 없으면 빈 문자열)"""
    if item.is_owner:
        return ROLE_OWNER
    if item.is_moderator:
        return ROLE_MODERATOR
    if item.is_sponsor:
        return ROLE_MEMBER
    return ""


def match_gift_message(text: Optional[str]) -> bool:
    """선물 멤버십 문구 여부. 빈 문자열/None은 False"""
    msg = (text or "").strip()
    if not msg:
        return False
    return any(p.search(msg) for p in GIFT_PATTERNS)


def classify_special_event(item: ChatItem) -> Optional[SpecialEvent]:
    """
    특수 이벤트 분류 (우선순위: Super Chat > 신규 멤버십 > 선물 문구 추정)

    Returns:
        SuperChatEvent / MembershipEvent / GiftEvent 또는 None
    """
    text = (item.display_text or "").strip()

    if item.super_chat:
        tier = item.super_chat.get("tier")
        return SuperChatEvent(
            name=item.author_name,
            amount=str(item.super_chat.get("amountDisplayString") or ""),
            tier=int(tier) if isinstance(tier, (int, float)) else None,
            text=text,
        )

    if item.new_sponsor:
        return MembershipEvent(
            name=item.author_name,
            level=str(item.new_sponsor.get("membershipLevelName") or ""),
        )

    if match_gift_message(text):
        return GiftEvent(name=item.author_name, message=text)

    return None


def classify_item(item: ChatItem) -> list[ChatEvent]:
    """
    항목 1개 → 내보낼 이벤트 목록 (채팅 원문 먼저, 특수 이벤트 나중)
    텍스트가 비어 있으면 채팅 원문 이벤트는 생략.
    """
    events: list[ChatEvent] = []
    text = (item.display_text or "").strip()
    if text:
        events.append(ChatTranscriptEvent(
            id=item.id,
            name=item.author_name,
            text=text,
            role=author_role(item),
            published_at=item.published_at,
        ))
    special = classify_special_event(item)
    if special is not None:
        logger.debug("특수 이벤트: %s (%s)", type(special).__name__, item.id)
        events.append(special)
    return events

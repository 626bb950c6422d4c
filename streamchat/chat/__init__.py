"""
채팅 수집 모듈
원격 채팅 API 클라이언트와 채팅 항목 분류
"""

from .base_client import (
    ChannelIdentity,
    ChatItem,
    ChatPage,
    LiveSession,
    RemoteApiError,
    RemoteChatClient,
)
from .youtube_client import YouTubeChatClient
from .classifier import author_role, classify_item, classify_special_event

__all__ = [
    "ChannelIdentity",
    "ChatItem",
    "ChatPage",
    "LiveSession",
    "RemoteApiError",
    "RemoteChatClient",
    "YouTubeChatClient",
    "author_role",
    "classify_item",
    "classify_special_event",
]

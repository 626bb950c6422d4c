"""
원격 오류 분류. 예외 타입이 아니라 status / reason / message 값만 봄.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    QUOTA = "quota"
    CHAT_ENDED = "chat_ended"
    GENERIC = "generic"


_QUOTA_REASONS = ("quota", "ratelimit", "dailylimit")
_QUOTA_MESSAGES = ("quota", "rate limit")
_CHAT_ENDED_REASONS = ("notfound", "ended", "closed", "disabled")
_CHAT_ENDED_MESSAGES = ("no longer live", "not found", "has ended", "is closed")


def error_fields(error: BaseException) -> tuple[Optional[int], str, str]:
    """오류에서 (status, reason, message) 추출"""
    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "status_code", None)
    reason = str(getattr(error, "reason", "") or "")
    message = str(getattr(error, "message", "") or error or "")
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    return status, reason, message


def classify_error(error: BaseException) -> ErrorKind:
    """quota 소진 / 채팅 종료 / 그 외"""
    _, reason, message = error_fields(error)
    reason_key = reason.lower().replace("_", "").replace(" ", "")
    message_key = message.lower()

    if any(k in reason_key for k in _QUOTA_REASONS) or any(k in message_key for k in _QUOTA_MESSAGES):
        return ErrorKind.QUOTA
    if any(k in reason_key for k in _CHAT_ENDED_REASONS) or any(k in message_key for k in _CHAT_ENDED_MESSAGES):
        return ErrorKind.CHAT_ENDED
    return ErrorKind.GENERIC

"""
라이브 채팅 폴링 엔진
세션 상태 + 스케줄러 + 구독자 팬아웃
"""

from .errors import ErrorKind, classify_error
from .fanout import Fanout, QueueSink
from .scheduler import PollScheduler, SchedulerState
from .service import ChatRelay
from .session import PollCursor, SessionState

__all__ = [
    "ErrorKind",
    "classify_error",
    "Fanout",
    "QueueSink",
    "PollScheduler",
    "SchedulerState",
    "ChatRelay",
    "PollCursor",
    "SessionState",
]

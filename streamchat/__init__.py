"""YouTube 라이브 채팅 → SSE 릴레이"""

__version__ = "0.1.0"

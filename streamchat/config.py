"""
릴레이 설정. 환경 변수(.env) → RelayConfig.

.env 예시:
    YT_CLIENT_ID=...
    YT_CLIENT_SECRET=...
    YT_REDIRECT_URL=http://localhost:3000/api/auth/callback
    YT_POLL_MS=2500
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_POLL_MS = 2500
DEFAULT_MIN_POLL_MS = 1200
DEFAULT_SLOW_RETRY_MS = 15000
DEFAULT_QUOTA_BACKOFF_BASE_MS = 30000
DEFAULT_QUOTA_BACKOFF_MAX_MS = 600000
DEFAULT_CHANNEL_TTL_SEC = 6 * 60 * 60
DEFAULT_SSE_QUEUE_SIZE = 256


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        logger.warning("%s 값이 숫자가 아닙니다 (%r). 기본값 %s 사용", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in ("0", "false", "no", "off")


@dataclass
class RelayConfig:
    """폴링 간격·백오프·OAuth 설정 (단위: ms, 채널 TTL만 초)"""
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = ""
    poll_ms: int = DEFAULT_POLL_MS
    min_poll_ms: int = DEFAULT_MIN_POLL_MS
    slow_retry_ms: int = DEFAULT_SLOW_RETRY_MS
    quota_backoff_base_ms: int = DEFAULT_QUOTA_BACKOFF_BASE_MS
    quota_backoff_max_ms: int = DEFAULT_QUOTA_BACKOFF_MAX_MS
    channel_ttl_sec: int = DEFAULT_CHANNEL_TTL_SEC
    sse_queue_size: int = DEFAULT_SSE_QUEUE_SIZE
    auto_start: bool = True
    host: str = "0.0.0.0"
    port: int = 3000

    def __post_init__(self):
        # 최소 간격은 양수, 기본 간격은 최소 간격 이상
        self.min_poll_ms = max(1, self.min_poll_ms)
        self.poll_ms = max(self.min_poll_ms, self.poll_ms)
        # 느린 재시도는 항상 정상 최소 간격보다 길게
        self.slow_retry_ms = max(self.slow_retry_ms, self.min_poll_ms + 1)
        self.quota_backoff_base_ms = max(1, self.quota_backoff_base_ms)
        self.quota_backoff_max_ms = max(self.quota_backoff_base_ms, self.quota_backoff_max_ms)
        self.sse_queue_size = max(1, self.sse_queue_size)

    @property
    def oauth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_url)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "RelayConfig":
        """프로젝트 루트 .env 로드 후 환경 변수로 설정 생성"""
        load_dotenv(env_file or (_PROJECT_ROOT / ".env"))
        return cls(
            client_id=os.environ.get("YT_CLIENT_ID", ""),
            client_secret=os.environ.get("YT_CLIENT_SECRET", ""),
            redirect_url=os.environ.get("YT_REDIRECT_URL", ""),
            poll_ms=_env_int("YT_POLL_MS", DEFAULT_POLL_MS),
            min_poll_ms=_env_int("YT_MIN_POLL_MS", DEFAULT_MIN_POLL_MS),
            slow_retry_ms=_env_int("YT_SLOW_RETRY_MS", DEFAULT_SLOW_RETRY_MS),
            quota_backoff_base_ms=_env_int("YT_QUOTA_BACKOFF_BASE_MS", DEFAULT_QUOTA_BACKOFF_BASE_MS),
            quota_backoff_max_ms=_env_int("YT_QUOTA_BACKOFF_MAX_MS", DEFAULT_QUOTA_BACKOFF_MAX_MS),
            channel_ttl_sec=_env_int("YT_CHANNEL_TTL_SEC", DEFAULT_CHANNEL_TTL_SEC),
            sse_queue_size=_env_int("YT_SSE_QUEUE_SIZE", DEFAULT_SSE_QUEUE_SIZE),
            auto_start=_env_bool("YT_AUTO_START", True),
            host=os.environ.get("RELAY_HOST", "0.0.0.0"),
            port=_env_int("RELAY_PORT", _env_int("PORT", 3000)),
        )

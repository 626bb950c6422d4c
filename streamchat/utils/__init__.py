"""유틸리티 모듈"""
from .youtube_auth import YouTubeAuth, YouTubeToken
from .logging_config import setup_logging

__all__ = ["YouTubeAuth", "YouTubeToken", "setup_logging"]

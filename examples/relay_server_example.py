"""
YouTube 라이브 채팅 릴레이 서버 실행 예제

.env에 YT_CLIENT_ID, YT_CLIENT_SECRET, YT_REDIRECT_URL 설정 후 실행.
실행: python examples/relay_server_example.py  (프로젝트 루트에서)

- 브라우저에서 http://localhost:3000/api/auth/start 로 YouTube 계정 인증
- OBS/프리뷰 페이지는 EventSource('/api/events') 로 구독 (event: yt)
- 상태 확인: http://localhost:3000/api/yt/state
- 폴링 수동 on/off: POST /api/poll/enable, POST /api/poll/disable
"""

import sys
from pathlib import Path

# 프로젝트 루트를 path에 넣어서 'import streamchat' 가능하게 함
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn

from streamchat.config import RelayConfig
from streamchat.overlay.server import create_app
from streamchat.utils import setup_logging


def main():
    log_dir = setup_logging()
    config = RelayConfig.from_env(Path(__file__).resolve().parent.parent / ".env")
    if not config.oauth_configured:
        print("⚠️ .env에 YT_CLIENT_ID / YT_CLIENT_SECRET / YT_REDIRECT_URL이 없습니다. 인증 없이 서버만 시작합니다.")
    print(f"로그: {log_dir}")
    print(f"릴레이 서버: http://{config.host}:{config.port}/api/yt/state")
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="warning")


if __name__ == "__main__":
    main()

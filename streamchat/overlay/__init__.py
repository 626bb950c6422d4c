"""
릴레이 HTTP 서버: SSE 구독, 진단 상태, 폴링 on/off, OAuth 콜백.

- create_app(): FastAPI 앱 생성 (app.state.relay 에 엔진 보관)
- OBS 브라우저 소스/프리뷰 페이지는 /api/events 를 EventSource로 구독.
"""

from streamchat.overlay.server import create_app

__all__ = ["create_app"]

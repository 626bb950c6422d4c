"""
릴레이 HTTP 서버. /api/events SSE, /api/yt/state 진단 JSON, 폴링 on/off, OAuth 콜백.
create_app()으로 앱을 만들고 app.state.relay 가 엔진(ChatRelay)을 소유.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, StreamingResponse

from streamchat.chat.base_client import RemoteChatClient
from streamchat.chat.events import STATUS_INFO, StatusEvent, to_sse
from streamchat.chat.youtube_client import YouTubeChatClient
from streamchat.config import RelayConfig
from streamchat.relay.fanout import QueueSink
from streamchat.relay.service import ChatRelay
from streamchat.utils.youtube_auth import YouTubeAuth

logger = logging.getLogger(__name__)

KEEPALIVE_SEC = 15.0
MAX_PENDING_OAUTH_STATES = 32


async def _event_stream(request: Request, relay: ChatRelay, queue_size: int) -> AsyncIterator[str]:
    """구독자 1명의 SSE 스트림. 연결이 끊기거나 팬아웃에서 제거되면 종료"""
    sink = QueueSink(maxsize=queue_size)
    yield to_sse(StatusEvent(level=STATUS_INFO, message="connected"))
    handle = relay.subscribe(sink)
    try:
        # 팬아웃에서 제거돼도 이미 큐에 쌓인 항목은 보낸 뒤 종료
        while not sink.closed or not sink.queue.empty():
            try:
                payload = await asyncio.wait_for(sink.get(), timeout=KEEPALIVE_SEC)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    break
                yield ": keep-alive\n\n"
                continue
            yield payload
    finally:
        sink.close()
        relay.unsubscribe(handle)


def create_app(
    config: Optional[RelayConfig] = None,
    client: Optional[RemoteChatClient] = None,
    auth: Optional[YouTubeAuth] = None,
) -> FastAPI:
    """
    릴레이 앱 생성

    Args:
        config: 설정 (None이면 환경 변수에서 로드)
        client: 원격 채팅 API 클라이언트 (None이면 YouTubeChatClient)
        auth: OAuth 인증 코드 교환기 (None이면 config로 생성)
    """
    config = config or RelayConfig.from_env()
    client = client or YouTubeChatClient(config.client_id, config.client_secret)
    auth = auth or YouTubeAuth(config.client_id, config.client_secret, config.redirect_url)
    relay = ChatRelay(client, config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await relay.aclose()

    app = FastAPI(title="StreamChat Relay", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
    )
    app.state.relay = relay
    app.state.config = config
    app.state.auth = auth
    app.state.oauth_states = []

    @app.get("/api/events")
    async def events(request: Request):
        """SSE 구독. 첫 구독자가 붙으면 (수동 중지 상태가 아니면) 폴링 자동 시작"""
        return StreamingResponse(
            _event_stream(request, relay, config.sse_queue_size),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache, no-transform", "Connection": "keep-alive"},
        )

    @app.get("/api/yt/state")
    async def get_state():
        """프리뷰/디버그 UI용 상태 스냅샷"""
        return JSONResponse(relay.snapshot())

    @app.post("/api/poll/enable")
    async def enable_polling():
        ok = relay.enable()
        logger.info("Relay API: enable (ok=%s)", ok)
        if not ok:
            return JSONResponse({"ok": False, "error": "not authorized"}, status_code=409)
        return JSONResponse({"ok": True, "enabled": True})

    @app.post("/api/poll/disable")
    async def disable_polling():
        relay.disable()
        logger.info("Relay API: disable")
        return JSONResponse({"ok": True, "enabled": False})

    @app.get("/api/auth/status")
    async def auth_status():
        return JSONResponse({
            "oauthConfigured": config.oauth_configured,
            "authed": relay.authed,
            "redirectUrl": bool(config.redirect_url),
        })

    @app.get("/api/auth/start")
    async def auth_start():
        if not config.oauth_configured:
            return PlainTextResponse(
                "OAuth env vars are not configured. Please set YT_CLIENT_ID / YT_CLIENT_SECRET / YT_REDIRECT_URL.",
                status_code=500,
            )
        state = secrets.token_urlsafe(32)
        states: list[str] = app.state.oauth_states
        states.append(state)
        del states[:-MAX_PENDING_OAUTH_STATES]
        return RedirectResponse(auth.get_authorization_url(state), status_code=302)

    @app.get("/api/auth/callback")
    async def auth_callback(code: Optional[str] = None, state: Optional[str] = None):
        if not config.oauth_configured:
            return PlainTextResponse("OAuth env vars are not configured.", status_code=500)
        if not code:
            return PlainTextResponse("Missing code", status_code=400)
        states: list[str] = app.state.oauth_states
        if state not in states:
            return PlainTextResponse("Invalid state", status_code=400)
        states.remove(state)
        try:
            token = await auth.exchange_code_for_token(code)
        except Exception as e:
            logger.error("OAuth 토큰 교환 실패: %s", e)
            return PlainTextResponse("Token exchange failed", status_code=502)
        relay.authorize(token)
        return RedirectResponse("/", status_code=302)

    @app.get("/api/auth/logout")
    async def auth_logout():
        relay.logout()
        return RedirectResponse("/", status_code=302)

    return app

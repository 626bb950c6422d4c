"""YouTubeChatClient 테스트 (httpx.MockTransport로 API 응답 흉내)"""
import httpx
import pytest

from streamchat.chat.base_client import RemoteApiError
from streamchat.chat.youtube_client import YouTubeChatClient
from streamchat.relay.errors import ErrorKind, classify_error
from streamchat.utils.youtube_auth import YouTubeToken


def _client(handler):
    return YouTubeChatClient("cid", "secret", transport=httpx.MockTransport(handler))


@pytest.fixture
def token():
    return YouTubeToken(access_token="tok", refresh_token="ref")


@pytest.mark.asyncio
async def test_fetch_chat_page_parses_items_and_threads_token(token):
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={
            "nextPageToken": "next-1",
            "pollingIntervalMillis": 5000,
            "items": [{
                "id": "msg-1",
                "snippet": {
                    "displayMessage": "hello",
                    "publishedAt": "2024-05-01T10:00:00Z",
                    "superChatDetails": {"amountDisplayString": "$5.00", "tier": 1},
                },
                "authorDetails": {"displayName": "Alice", "isChatModerator": True},
            }, {
                "id": "msg-2",
                "snippet": {},
                "authorDetails": {},
            }],
        })

    client = _client(handler)
    page = await client.fetch_chat_page(token, "chat-1", "prev-token")
    await client.aclose()

    assert seen["path"] == "/youtube/v3/liveChat/messages"
    assert seen["params"]["liveChatId"] == "chat-1"
    assert seen["params"]["pageToken"] == "prev-token"
    assert seen["params"]["part"] == "snippet,authorDetails"
    assert seen["auth"] == "Bearer tok"
    assert page.next_token == "next-1"
    assert page.suggested_interval_ms == 5000
    first, second = page.items
    assert first.author_name == "Alice"
    assert first.is_moderator and not first.is_owner
    assert first.super_chat == {"amountDisplayString": "$5.00", "tier": 1}
    assert second.author_name == "Someone"
    assert second.display_text == ""


@pytest.mark.asyncio
async def test_first_fetch_omits_page_token(token):
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json={"items": []})

    client = _client(handler)
    page = await client.fetch_chat_page(token, "chat-1", None)
    assert "pageToken" not in seen
    assert page.items == [] and page.next_token is None and page.suggested_interval_ms is None


@pytest.mark.asyncio
async def test_resolve_active_live_session(token):
    def handler(request):
        assert request.url.params["broadcastStatus"] == "active"
        assert "mine" not in request.url.params
        return httpx.Response(200, json={"items": [
            {"id": "b1", "snippet": {"title": "My Live", "liveChatId": "chat-xyz"}},
        ]})

    live = await _client(handler).resolve_active_live_session(token)
    assert live.broadcast_id == "b1"
    assert live.title == "My Live"
    assert live.chat_session_id == "chat-xyz"


@pytest.mark.asyncio
async def test_no_active_broadcast_returns_none(token):
    live = await _client(lambda r: httpx.Response(200, json={"items": []})).resolve_active_live_session(token)
    assert live is None


@pytest.mark.asyncio
async def test_resolve_channel_identity(token):
    def handler(request):
        assert request.url.params["mine"] == "true"
        return httpx.Response(200, json={"items": [{"id": "UC1", "snippet": {"title": "Chan"}}]})

    channel = await _client(handler).resolve_channel_identity(token)
    assert (channel.id, channel.title) == ("UC1", "Chan")


@pytest.mark.asyncio
async def test_quota_error_is_mapped_to_remote_api_error(token):
    def handler(request):
        return httpx.Response(403, json={"error": {
            "code": 403,
            "message": "The request cannot be completed because you have exceeded your quota.",
            "errors": [{"reason": "quotaExceeded", "domain": "youtube.quota"}],
        }})

    with pytest.raises(RemoteApiError) as exc_info:
        await _client(handler).fetch_chat_page(token, "chat-1", None)
    err = exc_info.value
    assert err.status == 403
    assert err.reason == "quotaExceeded"
    assert classify_error(err) is ErrorKind.QUOTA


@pytest.mark.asyncio
async def test_chat_ended_error(token):
    def handler(request):
        return httpx.Response(403, json={"error": {
            "code": 403,
            "message": "The live chat is no longer live.",
            "errors": [{"reason": "liveChatEnded"}],
        }})

    with pytest.raises(RemoteApiError) as exc_info:
        await _client(handler).fetch_chat_page(token, "chat-1", "t")
    assert classify_error(exc_info.value) is ErrorKind.CHAT_ENDED


@pytest.mark.asyncio
async def test_non_json_error_body(token):
    with pytest.raises(RemoteApiError) as exc_info:
        await _client(lambda r: httpx.Response(502, text="Bad Gateway")).fetch_chat_page(token, "c", None)
    assert exc_info.value.status == 502
    assert exc_info.value.message == "Bad Gateway"


@pytest.mark.asyncio
async def test_transport_failure_becomes_remote_api_error(token):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteApiError) as exc_info:
        await _client(handler).fetch_chat_page(token, "c", None)
    assert exc_info.value.status is None
    assert exc_info.value.reason == "transport"


@pytest.mark.asyncio
async def test_refresh_credential_posts_refresh_grant(token):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"access_token": "new-tok", "expires_in": 3599, "token_type": "Bearer"})

    refreshed = await _client(handler).refresh_credential(token)
    assert seen["url"] == "https://oauth2.googleapis.com/token"
    assert "grant_type=refresh_token" in seen["body"]
    assert "refresh_token=ref" in seen["body"]
    assert refreshed.access_token == "new-tok"
    assert refreshed.refresh_token is None
    # 입력 토큰은 수정하지 않음
    assert token.access_token == "tok"


@pytest.mark.asyncio
async def test_refresh_error_uses_oauth_error_fields(token):
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."})

    with pytest.raises(RemoteApiError) as exc_info:
        await _client(handler).refresh_credential(token)
    assert exc_info.value.reason == "invalid_grant"
    assert exc_info.value.message == "Token has been expired or revoked."


@pytest.mark.asyncio
async def test_refresh_without_refresh_token_fails_fast():
    client = _client(lambda r: httpx.Response(200, json={}))
    with pytest.raises(RemoteApiError):
        await client.refresh_credential(YouTubeToken(access_token="tok"))


@pytest.mark.asyncio
async def test_non_json_success_body_becomes_remote_api_error(token):
    client = _client(lambda r: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(RemoteApiError) as exc_info:
        await client.fetch_chat_page(token, "c", None)
    assert exc_info.value.status == 200
    assert exc_info.value.reason == "invalid_response"
    assert classify_error(exc_info.value) is ErrorKind.GENERIC

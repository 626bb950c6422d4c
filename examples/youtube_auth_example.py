"""
YouTube Access Token 발급 예제 (서버 없이 터미널에서)

사용 방법:
1. 프로젝트 루트에 .env 파일 생성 후 YT_CLIENT_ID, YT_CLIENT_SECRET, YT_REDIRECT_URL 입력
2. 이 스크립트 실행하여 인증 URL 생성
3. 브라우저에서 인증 URL 열기
4. 로그인 후 리디렉션 URL에서 code 추출
5. 터미널에 code 입력 → 토큰 발급 → 채널/라이브 확인
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio

from streamchat.chat import YouTubeChatClient
from streamchat.config import RelayConfig
from streamchat.utils.youtube_auth import YouTubeAuth


async def main():
    config = RelayConfig.from_env(Path(__file__).resolve().parent.parent / ".env")
    if not config.oauth_configured:
        print("❌ .env 파일에 YT_CLIENT_ID, YT_CLIENT_SECRET, YT_REDIRECT_URL을 설정해주세요.")
        return

    auth = YouTubeAuth(config.client_id, config.client_secret, config.redirect_url)

    print("=" * 60)
    print("1. 아래 URL을 브라우저에서 열어주세요:")
    print("=" * 60)
    print(auth.get_authorization_url())
    print("=" * 60)
    print("\n2. 로그인 후 리디렉션 URL에서 code를 복사하세요.\n")

    code = input("인증 코드 (code): ").strip()

    client = YouTubeChatClient(config.client_id, config.client_secret)
    try:
        token = await auth.exchange_code_for_token(code)
        print("\n✅ Access Token 발급 성공!")
        print(f"   만료 시각: {token.expires_at}")
        print(f"   Refresh Token: {'있음' if token.refresh_token else '없음'}")

        channel = await client.resolve_channel_identity(token)
        print(f"\n3. 인증 채널: {channel.title} ({channel.id})")

        live = await client.resolve_active_live_session(token)
        if live:
            print(f"4. 진행 중인 방송: {live.title} (liveChatId={live.chat_session_id})")
        else:
            print("4. 진행 중인 방송이 없습니다.")
    except Exception as e:
        print(f"\n❌ 오류 발생: {e}")
    finally:
        await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())

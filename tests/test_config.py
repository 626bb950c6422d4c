"""환경 변수 → RelayConfig 테스트"""
import pytest

from streamchat.config import DEFAULT_POLL_MS, RelayConfig

_KEYS = [
    "YT_CLIENT_ID", "YT_CLIENT_SECRET", "YT_REDIRECT_URL", "YT_POLL_MS", "YT_MIN_POLL_MS",
    "YT_SLOW_RETRY_MS", "YT_QUOTA_BACKOFF_BASE_MS", "YT_QUOTA_BACKOFF_MAX_MS",
    "YT_CHANNEL_TTL_SEC", "YT_SSE_QUEUE_SIZE", "YT_AUTO_START", "RELAY_HOST", "RELAY_PORT", "PORT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "missing.env"


def test_defaults(clean_env):
    config = RelayConfig.from_env(clean_env)
    assert config.poll_ms == 2500
    assert config.min_poll_ms == 1200
    assert config.slow_retry_ms == 15000
    assert config.quota_backoff_base_ms == 30000
    assert config.quota_backoff_max_ms == 600000
    assert config.channel_ttl_sec == 21600
    assert config.auto_start is True
    assert config.port == 3000
    assert not config.oauth_configured


def test_env_values(clean_env, monkeypatch):
    monkeypatch.setenv("YT_CLIENT_ID", "cid")
    monkeypatch.setenv("YT_CLIENT_SECRET", "secret")
    monkeypatch.setenv("YT_REDIRECT_URL", "http://localhost:3000/api/auth/callback")
    monkeypatch.setenv("YT_POLL_MS", "4000")
    monkeypatch.setenv("YT_AUTO_START", "false")
    monkeypatch.setenv("PORT", "8080")
    config = RelayConfig.from_env(clean_env)
    assert config.oauth_configured
    assert config.poll_ms == 4000
    assert config.auto_start is False
    assert config.port == 8080


def test_env_file_is_loaded(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("YT_SLOW_RETRY_MS=20000\nRELAY_PORT=3100\n", encoding="utf-8")
    config = RelayConfig.from_env(env_file)
    assert config.slow_retry_ms == 20000
    assert config.port == 3100


def test_invalid_number_falls_back_to_default(clean_env, monkeypatch):
    monkeypatch.setenv("YT_POLL_MS", "fast")
    assert RelayConfig.from_env(clean_env).poll_ms == DEFAULT_POLL_MS


def test_intervals_are_clamped():
    config = RelayConfig(poll_ms=500, min_poll_ms=1200, slow_retry_ms=100,
                         quota_backoff_base_ms=5000, quota_backoff_max_ms=10)
    assert config.poll_ms == 1200
    assert config.slow_retry_ms > config.min_poll_ms
    assert config.quota_backoff_max_ms == 5000


@pytest.mark.parametrize("raw", ["inf", "1e400", "nan"])
def test_non_finite_number_falls_back_to_default(clean_env, monkeypatch, raw):
    monkeypatch.setenv("YT_POLL_MS", raw)
    assert RelayConfig.from_env(clean_env).poll_ms == DEFAULT_POLL_MS

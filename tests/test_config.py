"""Tests for settings defaults and environment overrides."""

from visitor_quota.core.config import RateLimitSettings, VisitorSettings


def test_rate_limit_defaults_match_deployed_policy(monkeypatch) -> None:
    for name in ("RATE_LIMIT_LIMIT_KEY", "RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_MS"):
        monkeypatch.delenv(name, raising=False)

    cfg = RateLimitSettings()

    # Records already in the store are keyed by this name.
    assert cfg.limit_key == "algebraTutorRateLimit"
    assert cfg.max_requests == 5
    assert cfg.window_ms == 86_400_000


def test_rate_limit_env_override(monkeypatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_LIMIT_KEY", "geometry_tutor")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "3")

    cfg = RateLimitSettings()

    assert cfg.limit_key == "geometry_tutor"
    assert cfg.max_requests == 3


def test_client_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("VISITOR_SERVICE_URL", "https://quota.example.com")
    monkeypatch.setenv("VISITOR_REQUEST_TIMEOUT_SECONDS", "2.5")

    cfg = VisitorSettings()

    assert cfg.service_url == "https://quota.example.com"
    assert cfg.request_timeout_seconds == 2.5

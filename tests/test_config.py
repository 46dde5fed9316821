import pytest
from pydantic import ValidationError

from capacity_scheduler.config import Settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.cache_ttl_seconds == 300
    assert settings.default_capacity == 50
    assert settings.default_duration_minutes == 60
    assert settings.enforce_status_transitions is False
    assert settings.store_base_url is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCHEDULER_STORE_BASE_URL", "https://store.example.com/api")
    monkeypatch.setenv("SCHEDULER_CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("SCHEDULER_FALLBACK_TIMEZONE", "Asia/Singapore")
    monkeypatch.setenv("SCHEDULER_ENFORCE_STATUS_TRANSITIONS", "true")

    settings = Settings()

    assert str(settings.store_base_url).startswith("https://store.example.com/api")
    assert settings.cache_ttl_seconds == 30
    assert settings.fallback_timezone == "Asia/Singapore"
    assert settings.enforce_status_transitions is True


def test_cors_origins_accept_comma_separated_string() -> None:
    settings = Settings(cors_origins="https://a.example, https://b.example")

    assert settings.cors_origins == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_ttl_seconds": 0},
        {"default_capacity": 0},
        {"default_duration_minutes": -5},
        {"fallback_timezone": "Nowhere/Special"},
    ],
)
def test_invalid_values_are_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)

"""Settings for the RoomieConnect matching service."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    redis_url: str = _env_field("redis://localhost:6379/0", "REDIS_URL")

    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("roomie-api", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")
    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
    cors_allow_origins: Any = _env_field((), "CORS_ALLOW_ORIGINS")

    # Ranking output is capped to bound downstream rendering cost
    match_limit: int = _env_field(50, "MATCH_LIMIT")
    # Neutral score used when two profiles share no comparable questions
    compatibility_default: float = 50.0
    placeholder_match_count: int = _env_field(3, "PLACEHOLDER_MATCH_COUNT")
    # Candidates scored at once; distance lookups may wait on the geocoder
    rank_concurrency: int = _env_field(8, "RANK_CONCURRENCY")

    geocoding_enabled: bool = _env_field(False, "GEOCODING_ENABLED")
    geocoding_url: str = _env_field("https://nominatim.openstreetmap.org/search", "GEOCODING_URL")
    geocoding_user_agent: str = _env_field("roomie-connect/1.0", "GEOCODING_USER_AGENT")
    geocoding_timeout_seconds: float = _env_field(3.0, "GEOCODING_TIMEOUT_SECONDS")
    geocoding_cache_size: int = 512

    # A user counts as online only if their last heartbeat is inside this window
    presence_online_window_seconds: float = 30.0
    presence_activity_throttle_seconds: float = 2.0
    presence_refresh_interval_seconds: float = 10.0
    presence_status_ttl_seconds: int = 86400
    typing_idle_seconds: float = 2.0

    # Full re-pull of subscribed collections, heals missed pub/sub notifications
    profile_resync_interval_seconds: float = _env_field(30.0, "PROFILE_RESYNC_INTERVAL_SECONDS")

    unread_state_path: str = _env_field(".roomie/last_read.json", "UNREAD_STATE_PATH")
    # Per-viewer unread trackers kept in memory; watermarks reload from the store
    unread_tracker_cache_size: int = _env_field(1024, "UNREAD_TRACKER_CACHE_SIZE")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment helpers
    def is_prod(self) -> bool:
        return self.environment.lower() in ("prod", "production", "live")

    def is_dev(self) -> bool:
        return self.environment.lower() in ("dev", "development", "test")

    @field_validator("cors_allow_origins", mode="before")
    def _split_cors(cls, value):  # type: ignore[override]
        if value in (None, ""):
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if isinstance(value, (list, tuple, set)):
            return tuple(str(item).strip() for item in value if str(item).strip())
        return ()


def _normalise_level(level: str) -> str:
    return level.upper()


settings = Settings()
settings.obs_log_level = _normalise_level(settings.obs_log_level)

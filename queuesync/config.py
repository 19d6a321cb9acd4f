"""Client configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Queue sync client settings."""

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Server endpoints
    base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the queue server",
    )
    events_path: str = Field(
        default="/api/queues/events",
        description="Server-push (SSE) endpoint streaming full queue lists",
    )
    queues_path: str = Field(
        default="/api/queues",
        description="Poll endpoint returning the full queue list; commands live below it",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Total timeout for poll and command requests",
    )
    connect_timeout_seconds: float = Field(
        default=5.0,
        description="Connection timeout for all requests, including the stream",
    )

    # Heartbeat
    heartbeat_timeout_seconds: float = Field(
        default=30.0,
        description="Silence on the push channel after which it is considered dead",
    )
    heartbeat_check_interval_seconds: float = Field(
        default=10.0,
        description="How often the heartbeat age is checked",
    )

    # Reconnect (capped exponential backoff)
    reconnect_base_delay_seconds: float = 2.0
    reconnect_max_delay_seconds: float = 30.0
    max_reconnect_attempts: int = Field(
        default=5,
        description="Reconnects scheduled before the stream is given up until restart",
    )
    fallback_failure_threshold: int = Field(
        default=2,
        description="Consecutive stream failures after which polling starts immediately",
    )

    # Polling fallback
    poll_interval_seconds: float = 10.0

    # Pending operation guard
    debounce_seconds: float = Field(
        default=0.5,
        description="Minimum spacing between two actions on the same queue",
    )
    guard_release_delay_seconds: float = Field(
        default=0.5,
        description="Grace delay before a settled join/leave releases its queue",
    )

    @field_validator(
        "request_timeout_seconds",
        "connect_timeout_seconds",
        "heartbeat_timeout_seconds",
        "heartbeat_check_interval_seconds",
        "reconnect_base_delay_seconds",
        "reconnect_max_delay_seconds",
        "poll_interval_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Intervals and timeouts must be strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("max_reconnect_attempts", "fallback_failure_threshold")
    @classmethod
    def validate_counts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_backoff(self) -> "Settings":
        """Validate backoff bounds and production-only constraints."""
        if self.reconnect_base_delay_seconds > self.reconnect_max_delay_seconds:
            raise ValueError(
                "reconnect_base_delay_seconds must not exceed reconnect_max_delay_seconds"
            )

        if self.app_env == "production" and self.log_level.upper() == "DEBUG":
            # Warn only
            import warnings
            warnings.warn(
                "DEBUG log level in production may flood logs with stream frames"
            )

        return self

    @property
    def events_url(self) -> str:
        return f"{self.base_url}{self.events_path}"

    @property
    def queues_url(self) -> str:
        return f"{self.base_url}{self.queues_path}"

    model_config = SettingsConfigDict(
        env_prefix="QUEUESYNC_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

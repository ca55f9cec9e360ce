from enum import Enum

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    PRODUCTION = "production"
    STAGING = "staging"
    TESTING = "testing"
    DEVELOPMENT = "development"

    @classmethod
    def wants_text_logs(cls, env: str) -> bool:
        """Local and test runs log readable lines instead of JSON."""
        return env.lower() in (cls.DEVELOPMENT.value, cls.TESTING.value)


class LoggingSettings(BaseSettings):
    """Logging knobs, read from ``APP_*`` environment variables."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "authorization",
        "cookie",
    ]
    app_environment: str = Environment.PRODUCTION.value


class GenerationParams(BaseModel):
    """Constants of the synthetic metric model."""

    base_revenue: float = 50_000
    revenue_growth: float = 0.15  # 15% monthly growth
    revenue_volatility: float = 0.1
    base_users: float = 10_000
    users_growth: float = 0.2  # 20% monthly growth
    users_volatility: float = 0.15
    base_engagement: float = 65.0  # percent
    engagement_volatility: float = 0.05
    weekend_boost: float = 1.2
    seasonal_amplitude: float = 0.3


class Settings(LoggingSettings):
    service_name: str = "neuralmetrics"

    # Synthetic data
    generation: GenerationParams = GenerationParams()

    # History endpoint
    history_default_time_range: str = "30d"
    history_cache_control: str = "public, s-maxage=60, stale-while-revalidate=30"

    # Push transport (seconds)
    stream_update_interval_seconds: float = 5.0
    stream_heartbeat_interval_seconds: float = 30.0

    # Stream consumer
    stream_reconnect_interval_ms: int = 3000
    stream_max_reconnect_attempts: int = 5
    stream_window_size: int = 50

    # History client
    api_base_url: str = "http://localhost:8000"
    history_fetch_retries: int = 3
    history_fetch_timeout_seconds: float = 10.0


settings = Settings()

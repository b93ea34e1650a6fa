from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # NASA APOD upstream
    api_key: str = "DEMO_KEY"
    apod_base_url: str = "https://api.nasa.gov/planetary/apod"
    apod_timeout: float = 60.0  # Fixed per-request timeout for upstream calls

    # How many upstream requests may be in flight at once
    concurrent_requests: int = 5

    # Local view of the upstream quota until the first response header arrives
    rate_limit_default_requests: int = 1000
    rate_limit_reset_seconds: int = 3600

    # Persistent cache
    database_url: str = "sqlite+aiosqlite:///./apod.db"

    # Connection pool settings (PostgreSQL only)
    db_pool_size: int = 10
    db_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 300
    db_pool_pre_ping: bool = True

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10

    # Server binding
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("concurrent_requests")
    @classmethod
    def validate_concurrent_requests(cls, v: int) -> int:
        """Validate the concurrency gate capacity is positive."""
        if v < 1:
            raise ValueError("concurrent_requests must be at least 1")
        return v

    @field_validator("apod_timeout", "httpx_connect_timeout", "httpx_pool_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("rate_limit_default_requests")
    @classmethod
    def validate_default_requests(cls, v: int) -> int:
        if v < 0:
            raise ValueError("rate_limit_default_requests cannot be negative")
        return v

    @field_validator("rate_limit_reset_seconds")
    @classmethod
    def validate_reset_period(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rate_limit_reset_seconds must be positive")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()

"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


LIVE_CHANNEL_PATH = "/ws/complaints"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Complaint REST API (fetch + write collaborators)
    api_base_url: str = "http://localhost:5000/api"
    api_token: Optional[str] = None  # Issued upstream, only forwarded here
    request_timeout_seconds: float = 30.0

    # Live channel
    live_channel_url: str = ""  # Empty -> derived from api_base_url
    ws_connect_timeout_seconds: float = 10.0
    ws_ping_interval_seconds: Optional[float] = 20.0
    ws_backoff_base_seconds: float = 1.0
    ws_backoff_cap_seconds: float = 15.0
    ws_backoff_max_jitter_seconds: float = 0.3

    # Snapshot
    snapshot_max_size: int = 200
    stale_refresh_interval_seconds: int = 60  # 0 disables the refresher

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    log_to_file: bool = True

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def live_channel_endpoint(self) -> str:
        """
        Live channel URL.

        Uses LIVE_CHANNEL_URL when set, otherwise derives it from the REST
        base URL (http -> ws, https -> wss). The access token, if any, is
        passed as the ``token`` query parameter.
        """
        url = self.live_channel_url.strip()
        if not url:
            parts = urlsplit(self.api_base_url)
            scheme = "wss" if parts.scheme == "https" else "ws"
            url = urlunsplit((scheme, parts.netloc, LIVE_CHANNEL_PATH, "", ""))

        if self.api_token:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode({'token': self.api_token})}"
        return url

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

from functools import lru_cache
import re
from typing import Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below

    The instance is frozen: components receive it through their constructors
    and never mutate it.
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Analytics Tracker"
    app_version: str = "1.0.0"
    secret_key: str = "your-secret-key-here-change-in-production"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    base_url: str = "http://127.0.0.1:8000"  # Canonical site URL
    trust_forwarded_for: bool = False  # Only enable behind a proxy that sets X-Forwarded-For

    # Measurement endpoint (GA4 Measurement Protocol)
    google_analytics_measurement_id: str = ""
    google_analytics_measurement_api_secret: str = ""
    measurement_endpoint: str = "https://www.google-analytics.com/mp/collect"
    transport_backend: str = "measurement_protocol"  # Options: "measurement_protocol", "memory", "null"
    transport_connect_timeout: float = 2.0
    transport_read_timeout: float = 5.0
    dispatch_budget_seconds: float = 10.0  # Upper bound for one end-of-request flush

    # Tracking behaviour
    strip_query_string: bool = True
    auto_send_page_view: bool = True
    require_ga_cookie_client_id: bool = True
    create_client_id_cookie: bool = True
    create_gclid_cookie: bool = True
    session_duration: int = 30  # Minutes, as set in GA4 admin
    persist_campaign_params: bool = True
    site_name: Optional[str] = None  # Sent as affiliation when set

    # Exclusions
    send_analytics_data: bool = True
    send_analytics_in_dev_mode: bool = True
    filter_bot_user_agents: bool = True
    admin_exclude: bool = False
    log_excluded_analytics: bool = True
    group_excludes: List[str] = []
    server_excludes: Dict[str, List[str]] = {
        "REMOTE_ADDR": [
            r"^localhost$|^127(?:\.[0-9]+){0,2}\.[0-9]+$|^(?:0*\:)*?:?0*1$",
        ],
    }

    # Commerce
    auto_send_purchase_complete: bool = True
    auto_send_add_to_cart: bool = True
    auto_send_remove_from_cart: bool = True

    # Session settings
    session_backend: str = "memory"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    session_cookie_name: str = "ia_session"

    # Routing
    tracking_route_prefix: str = "/track"
    sign_tracking_urls: bool = True
    verify_tracking_signatures: bool = False  # Old unsigned links keep working
    cp_path_prefix: str = "/admin"
    live_preview_params: List[str] = ["x-craft-live-preview", "x-craft-preview"]

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("server_excludes")
    @classmethod
    def _compile_server_excludes(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        for attribute, patterns in value.items():
            for pattern in patterns:
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid server exclude pattern for {attribute}: {pattern!r} ({e})")
        return value

    @property
    def is_dev_mode(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def session_ttl(self) -> int:
        """Session lifetime in seconds"""
        return self.session_duration * 60


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    return Settings()

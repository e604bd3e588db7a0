"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Literal, Optional
from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Cache key versioning. Bump SCREENSHOT_VERSION whenever the render
    # settings or generation logic change; the deploy tag is set by the
    # deploy tooling whenever a deploy could affect card rendering.
    screenshot_version: int = Field(default=8, alias="SCREENSHOT_VERSION")
    last_deploy_affecting_rendering: str = Field(
        default="deploy-unknown", alias="LAST_DEPLOY_AFFECTING_RENDERING"
    )

    # Render Settings
    screenshot_width: int = Field(default=1330, alias="SCREENSHOT_WIDTH")
    screenshot_height: int = Field(default=768, alias="SCREENSHOT_HEIGHT")
    basic_card_url_template: str = Field(
        default="http://localhost:8081/basic-card/{card_id}",
        alias="BASIC_CARD_URL_TEMPLATE",
    )
    inject_card_function: str = Field(default="injectFetchedCard", alias="INJECT_CARD_FUNCTION")
    card_rendered_variable: str = Field(default="basicCardRendered", alias="CARD_RENDERED_VARIABLE")
    render_settle_ms: int = Field(default=1000, alias="RENDER_SETTLE_MS")
    render_timeout_ms: int = Field(default=30000, alias="RENDER_TIMEOUT_MS")
    network_idle_max_inflight: int = Field(default=2, alias="NETWORK_IDLE_MAX_INFLIGHT")
    network_idle_quiet_ms: int = Field(default=500, alias="NETWORK_IDLE_QUIET_MS")
    browser_args: list[str] = Field(
        default_factory=lambda: ["--no-sandbox"], alias="BROWSER_ARGS"
    )

    # Cache Settings
    dev_mode: bool = Field(default=False, alias="DEV_MODE")
    disable_screenshot_cache_in_dev: bool = Field(
        default=True, alias="DISABLE_SCREENSHOT_CACHE_IN_DEV"
    )
    # Shouldn't be left on in production
    disable_screenshot_cache_in_prod: bool = Field(
        default=False, alias="DISABLE_SCREENSHOT_CACHE_IN_PROD"
    )
    single_flight_renders: bool = Field(default=True, alias="SINGLE_FLIGHT_RENDERS")

    # Storage Settings
    screenshot_store: Literal["gcs", "local", "memory"] = Field(
        default="local", alias="SCREENSHOT_STORE"
    )
    screenshot_bucket: Optional[str] = Field(default=None, alias="SCREENSHOT_BUCKET")
    local_store_dir: Path = Field(default=Path("screenshot-cache"), alias="LOCAL_STORE_DIR")

    # Card data API
    card_api_base_url: Optional[str] = Field(default=None, alias="CARD_API_BASE_URL")
    card_api_timeout_seconds: float = Field(default=10.0, alias="CARD_API_TIMEOUT_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    gcp_project_id: Optional[str] = Field(default=None, alias="GCP_PROJECT_ID")

    @property
    def screenshot_cache_disabled(self) -> bool:
        """True when cached screenshots should be ignored (they are still written)."""
        if self.dev_mode:
            return self.disable_screenshot_cache_in_dev
        return self.disable_screenshot_cache_in_prod

    def basic_card_url(self, card_id: str) -> str:
        """URL of the rendering host page for a card."""
        return self.basic_card_url_template.format(card_id=quote(card_id, safe=""))


# Global settings instance
settings = Settings()

"""
Runtime configuration using Pydantic Settings.

Values come from JUSTCALL_* environment variables or a local .env file.
User-editable preferences (targets, keybinds) live in the settings document
managed by ConfigurationStore, not here.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeConfig(BaseSettings):
    """Process-level configuration loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="JUSTCALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Logging
    # ===========================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    DEBUG: bool = False

    # ===========================================
    # Conferencing service
    # ===========================================
    # Host of the external conferencing service; rooms are opened at
    # https://<CONFERENCE_HOST>/<room_id>
    CONFERENCE_HOST: str = "meet.jit.si"

    # How meetings are opened:
    # - browser: hand the URL to the default browser
    # - window: embedded pywebview window that reports joined/left events
    LAUNCH_MODE: Literal["browser", "window"] = "browser"

    # Name shown to the remote party unless a target overrides it
    DISPLAY_NAME: str = "You"

    # ===========================================
    # Settings document
    # ===========================================
    # Empty means the platform default per-user config path
    SETTINGS_PATH: str = ""

    # ===========================================
    # Conference window
    # ===========================================
    WINDOW_WIDTH: int = Field(default=1024, ge=640)
    WINDOW_HEIGHT: int = Field(default=768, ge=480)

    @property
    def uses_window(self) -> bool:
        """Check if meetings open in the embedded conference window."""
        return self.LAUNCH_MODE == "window"


@lru_cache()
def get_config() -> RuntimeConfig:
    """
    Get cached runtime configuration.

    Using lru_cache ensures the environment is read only once.
    """
    return RuntimeConfig()

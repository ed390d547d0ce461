"""Configuration management for the LiteQA flow engine."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MOBILE_CAPABILITIES: Dict[str, Any] = {
    "platformName": "Android",
    "appium:automationName": "UiAutomator2",
    "appium:deviceName": "Android Emulator",
    "appium:newCommandTimeout": 300,
}


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="LITEQA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Execution Configuration
    default_timeout: int = Field(
        default=30000, ge=0, description="Default step timeout (ms)"
    )
    retries: int = Field(
        default=0, ge=0, description="Step retry count (reserved, not applied)"
    )

    # Self-Healing Configuration
    self_heal: bool = Field(
        default=True, description="Enable the self-healing locator cascade"
    )
    self_heal_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum text-similarity score"
    )

    # Browser Configuration
    headless: bool = Field(
        default=True, description="Run browser in headless mode"
    )
    browser: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium", description="Playwright browser engine"
    )
    slow_mo: int = Field(
        default=0, ge=0, description="Delay between browser operations (ms)"
    )
    viewport_width: int = Field(
        default=1280, ge=1, description="Browser viewport width"
    )
    viewport_height: int = Field(
        default=720, ge=1, description="Browser viewport height"
    )

    # Mobile / Desktop Configuration
    appium_url: str = Field(
        default="http://127.0.0.1:4723", description="Appium server URL"
    )
    mobile_capabilities: Dict[str, Any] = Field(
        default_factory=lambda: dict(DEFAULT_MOBILE_CAPABILITIES),
        description="W3C capabilities sent when creating a mobile session",
    )
    desktop_bridge_command: Optional[List[str]] = Field(
        default=None,
        description="Command line of the desktop automation bridge process",
    )

    # Storage Configuration
    artifacts_dir: Path = Field(
        default=Path("artifacts"), description="Artifacts output directory"
    )
    screenshots_dir: Path = Field(
        default=Path("artifacts/screenshots"), description="Screenshots directory"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError(f"Invalid log format: {v}")
        return v

    def create_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.artifacts_dir, self.screenshots_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)


class Viewport(BaseModel):
    """Browser viewport size in CSS pixels."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(1280, ge=1)
    height: int = Field(720, ge=1)


class RunConfig(BaseModel):
    """Immutable configuration snapshot shared by one flow or suite run."""

    model_config = ConfigDict(frozen=True)

    default_timeout: int = Field(30000, ge=0)
    self_heal: bool = True
    self_heal_threshold: float = Field(0.6, ge=0.0, le=1.0)
    headless: bool = True
    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    slow_mo: int = Field(0, ge=0)
    retries: int = Field(0, ge=0)
    viewport: Viewport = Field(default_factory=Viewport)
    artifacts_dir: Path = Path("artifacts")
    screenshots_dir: Path = Path("artifacts/screenshots")
    appium_url: str = "http://127.0.0.1:4723"
    mobile_capabilities: Dict[str, Any] = Field(
        default_factory=lambda: dict(DEFAULT_MOBILE_CAPABILITIES)
    )
    desktop_bridge_command: Optional[List[str]] = None

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, **overrides: Any
    ) -> "RunConfig":
        """
        Merge settings defaults with caller overrides.

        Args:
            settings: Settings to start from (defaults to the cached settings)
            **overrides: Field values that take precedence over settings

        Returns:
            Frozen run configuration
        """
        settings = settings or get_settings()
        values: Dict[str, Any] = {
            "default_timeout": settings.default_timeout,
            "self_heal": settings.self_heal,
            "self_heal_threshold": settings.self_heal_threshold,
            "headless": settings.headless,
            "browser": settings.browser,
            "slow_mo": settings.slow_mo,
            "retries": settings.retries,
            "viewport": Viewport(
                width=settings.viewport_width, height=settings.viewport_height
            ),
            "artifacts_dir": settings.artifacts_dir,
            "screenshots_dir": settings.screenshots_dir,
            "appium_url": settings.appium_url,
            "mobile_capabilities": settings.mobile_capabilities,
            "desktop_bridge_command": settings.desktop_bridge_command,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    # Load .env file if it exists
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    settings = Settings()
    settings.create_directories()
    return settings

"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import UserSession
from .services.scheduler import CONFIRMATION_SCREEN, DEFAULT_ERROR_MESSAGE, DEFAULT_ERROR_TITLE

AVATAR_PLACEHOLDER = "https://attatchments-gobarber.s3.us-east-2.amazonaws.com/avatar.png"


class ApiConfig(BaseModel):
    """Booking backend connection settings."""
    base_url: str = "http://localhost:3333"
    token: str | None = None  # Sent as a bearer token when set
    timeout_seconds: float = 30

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got {value!r}")
        return value.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class BookingConfig(BaseModel):
    """Behaviour of the booking screen."""
    timezone: str = "UTC"
    confirmation_screen: str = CONFIRMATION_SCREEN
    modal_date_picker: bool = False
    fence_availability: bool = True
    avatar_placeholder: str = AVATAR_PLACEHOLDER
    error_title: str = DEFAULT_ERROR_TITLE
    error_message: str = DEFAULT_ERROR_MESSAGE

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class UserConfig(BaseModel):
    """The signed-in user shown in the screen header."""
    name: str = ""
    avatar_url: str | None = None

    def to_session(self) -> UserSession:
        return UserSession(name=self.name, avatar_url=self.avatar_url)


class AppConfig(BaseModel):
    """Application configuration."""
    api: ApiConfig = Field(default_factory=ApiConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    user: UserConfig = Field(default_factory=UserConfig)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotbooker/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path

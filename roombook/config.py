"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import SECONDS_PER_DAY


class RoomHoursConfig(BaseModel):
    """Operating hours applied to rooms whose records omit them."""
    start_time: int = 28800  # 08:00
    end_time: int = 64800  # 18:00

    @field_validator("start_time")
    @classmethod
    def validate_start(cls, value: int) -> int:
        if not 0 <= value < SECONDS_PER_DAY:
            raise ValueError(f"start_time must be between 0 and 86399, got {value}")
        return value

    @field_validator("end_time")
    @classmethod
    def validate_end(cls, value: int) -> int:
        if not 0 <= value <= SECONDS_PER_DAY:
            raise ValueError(f"end_time must be between 0 and 86400, got {value}")
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "RoomHoursConfig":
        """Ensure the window is not empty."""
        if self.start_time == self.end_time:
            raise ValueError("start_time and end_time must differ")
        return self


class RateLimitConfig(BaseModel):
    """Request budget per identifier."""
    max_requests: int = 10
    window_seconds: int = 60

    @field_validator("max_requests", "window_seconds")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("rate limit values must be greater than zero")
        return value

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    max_meeting_hours: int = 8
    default_room_hours: RoomHoursConfig = Field(default_factory=RoomHoursConfig)
    booking_rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    update_rate_limit: RateLimitConfig = Field(
        default_factory=lambda: RateLimitConfig(max_requests=20, window_seconds=60)
    )
    data_file: Optional[Path] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA identifier."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("max_meeting_hours")
    @classmethod
    def validate_max_meeting_hours(cls, value: int) -> int:
        if not 1 <= value <= 24:
            raise ValueError(f"max_meeting_hours must be between 1 and 24, got {value}")
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative ``data_file`` paths are resolved against the config file's
        directory.

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

        config = cls(**data)
        if config.data_file is not None and not config.data_file.is_absolute():
            config = config.model_copy(
                update={"data_file": config_path.parent / config.data_file}
            )
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of roombook/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load the given config file, or defaults when no file is present."""
    path = config_path or get_default_config_path()
    if config_path is None and not path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(path)

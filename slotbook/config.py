"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path

import pendulum
import yaml
from pendulum.tz.exceptions import InvalidTimezone
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import BusinessHours


class BusinessHoursSettings(BaseModel):
    """Opening hours and booking rules."""
    opening: time = time(9, 0)
    closing: time = time(18, 0)
    slot_interval_minutes: int = 15
    minimum_notice_minutes: int = 0

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure the slot grid advances."""
        if value <= 0:
            raise ValueError("slot_interval_minutes must be greater than zero")
        return value

    @field_validator("minimum_notice_minutes")
    @classmethod
    def validate_notice(cls, value: int) -> int:
        if value < 0:
            raise ValueError("minimum_notice_minutes cannot be negative")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessHoursSettings":
        """Ensure the business opens before it closes."""
        if self.closing <= self.opening:
            raise ValueError("closing must be later than opening")
        return self

    def to_business_hours(self, timezone: str) -> BusinessHours:
        return BusinessHours(
            opening_time=self.opening,
            closing_time=self.closing,
            slot_interval_minutes=self.slot_interval_minutes,
            minimum_notice_minutes=self.minimum_notice_minutes,
            timezone=timezone,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    owner_id: str
    timezone: str = "UTC"
    store_path: Path = Path("slotbook.db")
    business_hours: BusinessHoursSettings = Field(default_factory=BusinessHoursSettings)

    @field_validator("owner_id")
    @classmethod
    def validate_owner_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("owner_id cannot be blank")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except InvalidTimezone as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def get_business_hours(self) -> BusinessHours:
        """Build the domain business hours in the configured timezone."""
        return self.business_hours.to_business_hours(self.timezone)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``store_path`` is resolved against the config file's
        directory.

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

        config = cls(**data)
        if not config.store_path.is_absolute():
            config.store_path = config_path.parent / config.store_path
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path

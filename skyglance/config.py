"""Service configuration pulled from environment variables via pydantic-settings.

Each refresh cycle works from its own frozen `Settings` snapshot
(`load_settings()`), so nothing in the aggregation path can mutate the
configuration another cycle is reading.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """User-facing toggles and identifiers plus service knobs."""
    model_config = SettingsConfigDict(env_prefix="SKYGLANCE_", extra="ignore", frozen=True)

    # Display / feature toggles
    temp_unit: str = "F"  # F or C
    show_aqi: bool = True
    show_uv: bool = True
    show_wind: bool = True
    show_tide: bool = True
    show_sunrise: bool = True
    invert: bool = False

    # Tide (NOAA CO-OPS station id, default San Francisco)
    tide_station: str = "9414290"

    # Transit (511.org stop monitoring)
    muni_enabled: bool = False
    muni_api_key: str = ""
    muni_agency: str = "SF"
    muni_stop_code: str = ""
    muni_route: str = ""
    muni_direction: str = "IB"

    # Pollen (Google Pollen API)
    pollen_enabled: bool = False
    pollen_api_key: str = ""

    # Static position used when the display does not report one
    latitude: float | None = None
    longitude: float | None = None

    # Service knobs
    http_timeout_seconds: float = 15.0
    cache_name: str = ".cache"
    cache_expire_seconds: int = 600
    refresh_interval_seconds: int = 1800
    alert_window_hours: int = 24
    position_redis_url: str | None = None
    webhook_url: str | None = None
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator(
        "tide_station",
        "muni_api_key",
        "muni_agency",
        "muni_stop_code",
        "muni_route",
        "muni_direction",
        "pollen_api_key",
        mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v):
        """Trim pasted identifiers and keys; a blank value disables its source."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("temp_unit", mode="after")
    @classmethod
    def validate_temp_unit(cls, v: str) -> str:
        """Accept F or C (any case)."""
        unit = v.strip().upper()
        if unit not in ("F", "C"):
            raise ValueError(f"temp_unit must be 'F' or 'C', got {v!r}")
        return unit

    @property
    def open_meteo_temperature_unit(self) -> str:
        return "celsius" if self.temp_unit == "C" else "fahrenheit"


def load_settings() -> Settings:
    """Build a fresh snapshot from the current environment."""
    return Settings()


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    secrets = {"muni_api_key", "pollen_api_key", "api_key"}
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude=secrets)}")

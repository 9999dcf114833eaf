"""Domain vocabulary for one aggregation cycle.

Normalized per-source records, the tagged Present/Absent wrapper the adapters
return, the alert types, and the fixed payload schema consumed by the display.
No fetching or classification logic lives here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


def round_half_up(value: float) -> int:
    """Round .5 toward +infinity, the way the display firmware expects."""
    return int(math.floor(value + 0.5))


class _RecordModel(BaseModel):
    """Immutable, strict base for normalized records."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class SourceKind(str, Enum):
    """The five independent telemetry sources."""
    WEATHER = "weather"
    AIR_QUALITY = "air_quality"
    TIDE = "tide"
    TRANSIT = "transit"
    POLLEN = "pollen"


class TideKind(str, Enum):
    """NOAA hi/lo prediction type."""
    HIGH = "H"
    LOW = "L"


class PositionFix(_RecordModel):
    """A single geolocation fix shared by every adapter in a cycle."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    timestamp: AwareDatetime


class WeatherCurrent(_RecordModel):
    temperature: float
    wind_speed: float
    uv_index: float = 0.0
    weather_code: int = 0


class WeatherDaily(_RecordModel):
    temp_max: float
    temp_min: float
    sunrise: datetime
    sunset: datetime
    wind_max: float
    weather_code_tomorrow: int | None = None


class WeatherSlot(_RecordModel):
    """One hour of the forecast window."""
    time: datetime
    weather_code: int = 0
    precipitation_probability: float = Field(default=0.0, ge=0.0, le=100.0)
    wind_gust: float = 0.0
    uv_index: float = 0.0


class WeatherRecord(_RecordModel):
    """Forecast snapshot: current conditions, today's daily block, and up to 24 future hours."""
    timezone: str = "UTC"
    current: WeatherCurrent
    daily: WeatherDaily
    hourly: List[WeatherSlot] = Field(default_factory=list)


class AirQualityRecord(_RecordModel):
    aqi: int = Field(ge=0)


class TideRecord(_RecordModel):
    """The next hi/lo tide event after now."""
    time: datetime
    kind: TideKind
    height: float


class TransitRecord(_RecordModel):
    """Next two arrivals in whole minutes; -1 in the second slot means only one match."""
    next_arrival_minutes: int = Field(ge=0)
    second_arrival_minutes: int = Field(default=-1, ge=-1)


class PollenRecord(_RecordModel):
    """Universal pollen index (0-5) per category."""
    tree: int = Field(default=0, ge=0, le=5)
    grass: int = Field(default=0, ge=0, le=5)
    weed: int = Field(default=0, ge=0, le=5)


T = TypeVar("T")


@dataclass(frozen=True)
class SourceRecord(Generic[T]):
    """Tagged result of one adapter: Present(value) or Absent (value is None)."""
    kind: SourceKind
    value: Optional[T] = None

    @property
    def present(self) -> bool:
        return self.value is not None

    @classmethod
    def of(cls, kind: SourceKind, value: Optional[T]) -> "SourceRecord[T]":
        return cls(kind=kind, value=value)

    @classmethod
    def absent(cls, kind: SourceKind) -> "SourceRecord[T]":
        return cls(kind=kind, value=None)


@dataclass(frozen=True)
class CollectedSources:
    """All five records of one cycle; kinds that were never reported read as Absent."""
    records: Dict[SourceKind, SourceRecord] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[SourceRecord]) -> "CollectedSources":
        by_kind = {kind: SourceRecord.absent(kind) for kind in SourceKind}
        for record in records:
            by_kind[record.kind] = record
        return cls(records=by_kind)

    def get(self, kind: SourceKind) -> Any:
        record = self.records.get(kind)
        return record.value if record else None

    @property
    def weather(self) -> WeatherRecord | None:
        return self.get(SourceKind.WEATHER)

    @property
    def air_quality(self) -> AirQualityRecord | None:
        return self.get(SourceKind.AIR_QUALITY)

    @property
    def tide(self) -> TideRecord | None:
        return self.get(SourceKind.TIDE)

    @property
    def transit(self) -> TransitRecord | None:
        return self.get(SourceKind.TRANSIT)

    @property
    def pollen(self) -> PollenRecord | None:
        return self.get(SourceKind.POLLEN)

    def absent_kinds(self) -> List[SourceKind]:
        return [kind for kind in SourceKind if not self.records[kind].present]


@dataclass(frozen=True)
class ClassifiedAlert:
    """A single candidate condition before ranking (lower priority = more severe)."""
    priority: float
    text: str
    time_slot: datetime


class AlertResult(_RecordModel):
    """The one condition surfaced to the display, with its active time range."""
    active: bool = False
    text: str = ""

    @model_validator(mode="after")
    def _text_iff_active(self) -> "AlertResult":
        if self.active != bool(self.text):
            raise ValueError("alert text must be non-empty exactly when the alert is active")
        return self

    @classmethod
    def inactive(cls) -> "AlertResult":
        return cls(active=False, text="")


class OutputPayload(BaseModel):
    """Flat message for the display. Defaults are the documented absence sentinels."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=str.upper,
        populate_by_name=True,
    )

    temperature: int = 0
    wind_speed: int = 0
    uv_index: int = 0
    weather_code: int = 0
    temp_max: int = 0
    temp_min: int = 0
    sunrise: int = 0
    sunset: int = 0
    wind_max: int = 0
    weather_code_tomorrow: int = 0
    aqi: int = 0
    tide_next_time: int = 0
    tide_next_type: int = 0  # 1 = high, 0 = low
    tide_next_height: float = 0.0
    alert_active: int = 0
    alert_text: str = ""
    location_name: str = ""
    config_temp_unit: int = 0  # 0 = F, 1 = C
    config_show_aqi: int = 0
    config_show_uv: int = 0
    config_show_wind: int = 0
    config_show_tide: int = 0
    config_show_sunrise: int = 0
    config_invert: int = 0
    muni_next_1: int = -1
    muni_next_2: int = -1
    pollen_tree: int = -1
    pollen_grass: int = -1
    pollen_weed: int = -1

    def to_message(self) -> Dict[str, Any]:
        """Serialize with the display's upper-case keys."""
        return self.model_dump(by_alias=True)

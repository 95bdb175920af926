"""Domain types shared by the fetcher, scheduler and storage sinks."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum


class Overlay(str, Enum):
    """Particulate overlays of the nullschool map; values are the `overlay=` tokens."""
    PM1 = "pm1"
    PM2_5 = "pm2.5"
    PM10 = "pm10"


@dataclass(frozen=True)
class Location:
    """Fixed sampling point for a run."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Sample:
    """A complete observation for one hour; partial samples are never built."""
    timestamp: dt.datetime  # timezone-aware, UTC
    coords: str
    wind_direction: int  # degrees
    wind_speed: int
    pm1: float
    pm25: float
    pm10: float

    def as_row(self) -> dict:
        """Column mapping for the air_quality_data table."""
        return {
            "timestamp": self.timestamp,
            "coords": self.coords,
            "wind_direction": self.wind_direction,
            "wind_speed": self.wind_speed,
            "pm1": self.pm1,
            "pm25": self.pm25,
            "pm10": self.pm10,
        }

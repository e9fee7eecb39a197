# solar_watchdog/models/events.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Hashable


class EventKind(str, Enum):
    ALERT = "alert"
    RECOVERY = "recovery"


class Signal(str, Enum):
    ENERGY = "energy"
    POWER = "power"


@dataclass(frozen=True)
class TrackerEvent:
    """Raw transition emitted by a single stagnation tracker."""

    kind: EventKind
    tracker: str
    value: Hashable
    elapsed: timedelta
    at: datetime


@dataclass(frozen=True)
class DetectorEvent:
    """Tracker transition enriched with the sample it was observed in."""

    kind: EventKind
    signal: Signal
    elapsed: timedelta
    power_kw: float
    daily_energy_kwh: float
    at: datetime

    @property
    def is_alert(self) -> bool:
        return self.kind is EventKind.ALERT

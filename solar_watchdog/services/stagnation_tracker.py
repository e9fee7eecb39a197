# solar_watchdog/services/stagnation_tracker.py

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Hashable, Optional, Union

from solar_watchdog.models.events import EventKind, TrackerEvent


@dataclass(frozen=True)
class Baseline:
    """No observation since the last reset."""


@dataclass(frozen=True)
class Tracking:
    value: Hashable
    since: datetime
    count: int = 0


@dataclass(frozen=True)
class AlertOpen:
    value: Hashable
    since: datetime
    count: int


TrackerState = Union[Baseline, Tracking, AlertOpen]


def required_readings(threshold_minutes: float, poll_interval_minutes: float) -> int:
    """
    Number of consecutive unchanged readings that spans the threshold.

    Rounds up so an alert never fires before the threshold has elapsed.
    """
    if poll_interval_minutes <= 0:
        raise ValueError("poll interval must be positive")
    # round() absorbs float noise such as 1.1 / 0.1 == 11.000000000000002
    ratio = round(threshold_minutes / poll_interval_minutes, 9)
    return max(1, math.ceil(ratio))


class StagnationTracker:
    """
    Detects a value that stops changing across consecutive polls.

    Baseline --first value--> Tracking --unchanged x required--> AlertOpen
    AlertOpen --value changes--> Tracking (recovery emitted)
    reset() returns any state to Baseline without emitting anything.
    """

    def __init__(
        self,
        name: str,
        required: int,
        *,
        alert_when: Optional[Callable[[Hashable], bool]] = None,
    ):
        if required < 1:
            raise ValueError("required readings must be at least 1")
        self.name = name
        self.required = required
        self._alert_when = alert_when or (lambda value: True)
        self._state: TrackerState = Baseline()

    # ------------------------------------------------------------------
    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def last_value(self) -> Optional[Hashable]:
        return getattr(self._state, "value", None)

    @property
    def last_change(self) -> Optional[datetime]:
        return getattr(self._state, "since", None)

    @property
    def stagnant_count(self) -> int:
        return getattr(self._state, "count", 0)

    @property
    def alert_active(self) -> bool:
        return isinstance(self._state, AlertOpen)

    def reset(self) -> None:
        self._state = Baseline()

    # ------------------------------------------------------------------
    def observe(self, value: Hashable, now: datetime) -> Optional[TrackerEvent]:
        state = self._state

        if isinstance(state, Baseline):
            self._state = Tracking(value=value, since=now)
            return None

        if value == state.value:
            count = state.count + 1
            if (
                isinstance(state, Tracking)
                and count >= self.required
                and self._alert_when(value)
            ):
                self._state = AlertOpen(value=value, since=state.since, count=count)
                return TrackerEvent(
                    kind=EventKind.ALERT,
                    tracker=self.name,
                    value=value,
                    elapsed=now - state.since,
                    at=now,
                )
            self._state = replace(state, count=count)
            return None

        event = None
        if isinstance(state, AlertOpen):
            event = TrackerEvent(
                kind=EventKind.RECOVERY,
                tracker=self.name,
                value=value,
                elapsed=now - state.since,
                at=now,
            )
        self._state = Tracking(value=value, since=now)
        return event

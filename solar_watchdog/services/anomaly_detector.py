# solar_watchdog/services/anomaly_detector.py

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from solar_watchdog.config import MonitoringConfig
from solar_watchdog.models.events import DetectorEvent, Signal, TrackerEvent
from solar_watchdog.models.sample import Sample
from solar_watchdog.services.stagnation_tracker import (
    StagnationTracker,
    TrackerState,
    required_readings,
)


class PowerLevel(str, Enum):
    ZERO = "zero"
    PRODUCING = "producing"


class AnomalyDetector:
    """
    Runs the energy-stagnation and power-loss trackers over each sample.

    The energy tracker watches the raw cumulative daily energy. The power
    tracker watches the ZERO/PRODUCING category, so fluctuating non-zero
    output counts as unchanged and only a stuck ZERO category alerts.
    """

    def __init__(self, cfg: MonitoringConfig, log):
        self.cfg = cfg
        self.log = log
        self.energy: Optional[StagnationTracker] = None
        self.power: Optional[StagnationTracker] = None

        if cfg.energy_check_enabled:
            self.energy = StagnationTracker(
                Signal.ENERGY.value,
                required_readings(cfg.energy_alert_minutes, cfg.poll_interval_minutes),
            )
        if cfg.power_check_enabled:
            self.power = StagnationTracker(
                Signal.POWER.value,
                required_readings(cfg.power_alert_minutes, cfg.poll_interval_minutes),
                alert_when=lambda level: level is PowerLevel.ZERO,
            )

    # ------------------------------------------------------------------
    def classify_power(self, power_kw: float) -> PowerLevel:
        if power_kw < self.cfg.power_epsilon_kw:
            return PowerLevel.ZERO
        return PowerLevel.PRODUCING

    def trackers(self) -> Dict[Signal, StagnationTracker]:
        out: Dict[Signal, StagnationTracker] = {}
        if self.energy is not None:
            out[Signal.ENERGY] = self.energy
        if self.power is not None:
            out[Signal.POWER] = self.power
        return out

    def snapshot(self) -> Dict[Signal, TrackerState]:
        return {signal: tracker.state for signal, tracker in self.trackers().items()}

    def reset(self) -> None:
        for tracker in self.trackers().values():
            tracker.reset()

    # ------------------------------------------------------------------
    def _enrich(self, signal: Signal, event: TrackerEvent, sample: Sample) -> DetectorEvent:
        return DetectorEvent(
            kind=event.kind,
            signal=signal,
            elapsed=event.elapsed,
            power_kw=sample.power_kw,
            daily_energy_kwh=sample.daily_energy_kwh,
            at=event.at,
        )

    def _log_observation(self, signal: Signal, tracker: StagnationTracker, sample: Sample) -> None:
        level = logging.INFO if signal is Signal.ENERGY else logging.DEBUG
        if tracker.stagnant_count == 0:
            self.log.log(
                level,
                "%s updated - daily energy: %s kWh, power: %s kW",
                signal.value.capitalize(),
                sample.daily_energy_kwh,
                sample.power_kw,
            )
        else:
            self.log.log(
                level,
                "%s unchanged - daily energy: %s kWh, power: %s kW - #%d/%d",
                signal.value.capitalize(),
                sample.daily_energy_kwh,
                sample.power_kw,
                tracker.stagnant_count,
                tracker.required,
            )

    def evaluate(self, sample: Sample, now: datetime) -> List[DetectorEvent]:
        events: List[DetectorEvent] = []

        observations = []
        if self.energy is not None:
            observations.append((Signal.ENERGY, self.energy, sample.daily_energy_kwh))
        if self.power is not None:
            observations.append((Signal.POWER, self.power, self.classify_power(sample.power_kw)))

        for signal, tracker, value in observations:
            event = tracker.observe(value, now)
            self._log_observation(signal, tracker, sample)
            if event is None:
                continue
            self.log.warning(
                "%s tracker emitted %s after %s",
                signal.value,
                event.kind.value,
                event.elapsed,
            )
            events.append(self._enrich(signal, event, sample))

        return events

# solar_watchdog/services/monitor.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from solar_watchdog.config import AppConfig
from solar_watchdog.errors import FetchError
from solar_watchdog.logging import CycleLogEntry, StructuredLog
from solar_watchdog.models.events import DetectorEvent, Signal
from solar_watchdog.models.sample import Sample
from solar_watchdog.services.alert_gate import AlertGates
from solar_watchdog.services.anomaly_detector import AnomalyDetector
from solar_watchdog.services.daylight_window import DaylightWindow
from solar_watchdog.services.notification_manager import NotificationManager
from solar_watchdog.services.notifiers.healthchecks import HealthchecksNotifier
from solar_watchdog.services.notifiers.telegram import TelegramNotifier
from solar_watchdog.services.telemetry_client import TelemetryClient


@dataclass
class CycleResult:
    timestamp: datetime
    window_active: bool
    next_window_start: Optional[datetime] = None
    sample: Optional[Sample] = None
    events: List[DetectorEvent] = field(default_factory=list)
    notified: List[DetectorEvent] = field(default_factory=list)
    fetch_error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SolarMonitor:
    """One monitoring cycle: heartbeat, daylight check, fetch, detect, notify."""

    def __init__(
        self,
        *,
        window: DaylightWindow,
        telemetry: TelemetryClient,
        detector: AnomalyDetector,
        notifications: NotificationManager,
        heartbeat: HealthchecksNotifier,
        log,
        structured_log: Optional[StructuredLog] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.window = window
        self.telemetry = telemetry
        self.detector = detector
        self.notifications = notifications
        self.heartbeat = heartbeat
        self.log = log
        self.structured_log = structured_log
        self.clock = clock
        self._fetch_failing = False
        self._paused = False

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        log,
        structured_log: Optional[StructuredLog] = None,
    ) -> "SolarMonitor":
        window = DaylightWindow(cfg.daylight, log)
        gates = AlertGates(
            cfg.monitoring.alert_cooldown,
            [s.value for s in Signal],
            shared=cfg.monitoring.shared_cooldown,
        )
        notifications = NotificationManager(
            TelegramNotifier(cfg.telegram, log),
            gates,
            window.timezone,
            log,
        )
        return cls(
            window=window,
            telemetry=TelemetryClient(cfg.plant, log),
            detector=AnomalyDetector(cfg.monitoring, log),
            notifications=notifications,
            heartbeat=HealthchecksNotifier(cfg.healthchecks, log),
            log=log,
            structured_log=structured_log,
        )

    # ------------------------------------------------------------------
    def _pause(self, next_start: Optional[datetime]) -> None:
        self.detector.reset()
        self._fetch_failing = False
        if self._paused:
            self.log.debug("Outside daylight window; monitoring still paused")
            return
        self._paused = True
        if next_start is not None:
            self.log.info(
                "Monitoring paused until next window opens: %s",
                next_start.strftime("%Y-%m-%d %H:%M %Z"),
            )
        else:
            self.log.info("Monitoring paused; no daylight window found in the coming year")

    def _fetch(self) -> Sample:
        try:
            sample = self.telemetry.fetch()
        except FetchError:
            if not self._fetch_failing:
                self.notifications.send_fetch_error()
            self._fetch_failing = True
            raise
        if self._fetch_failing:
            self.log.info("Plant data fetch recovered")
        self._fetch_failing = False
        return sample

    def _record(self, result: CycleResult) -> None:
        if self.structured_log is None or not self.structured_log.enabled:
            return
        self.structured_log.write(
            CycleLogEntry(
                timestamp=result.timestamp,
                window_active=result.window_active,
                next_window_start=result.next_window_start,
                sample=result.sample,
                events=result.events,
                notified=result.notified,
                fetch_error=result.fetch_error,
                trackers=self.detector.snapshot(),
            )
        )

    # ------------------------------------------------------------------
    def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        now = now or self.clock()

        self.heartbeat.ping()

        info = self.window.get_info(now)
        result = CycleResult(timestamp=now, window_active=info.is_active)
        if not info.is_active:
            result.next_window_start = info.next_window_start
            self._pause(info.next_window_start)
            self._record(result)
            return result
        if self._paused:
            self.log.info("Daylight window open; monitoring resumed")
        self._paused = False

        try:
            result.sample = self._fetch()
        except FetchError as exc:
            self.log.error("Solar data fetch error: %s", exc)
            result.fetch_error = str(exc)
            self._record(result)
            return result

        result.events = self.detector.evaluate(result.sample, now)
        if result.events:
            result.notified = self.notifications.dispatch(result.events, now)
        self._record(result)
        return result

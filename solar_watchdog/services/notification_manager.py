# solar_watchdog/services/notification_manager.py

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List
from zoneinfo import ZoneInfo

from solar_watchdog.models.events import DetectorEvent
from solar_watchdog.services.alert_gate import AlertGates
from solar_watchdog.services.message_formatter import FETCH_ERROR_TEXT, format_event
from solar_watchdog.services.notifiers.telegram import TelegramNotifier


class NotificationManager:
    """Routes detector events to Telegram: alerts through the cooldown gates, recoveries directly."""

    def __init__(self, notifier: TelegramNotifier, gates: AlertGates, tz: ZoneInfo, log):
        self.notifier = notifier
        self.gates = gates
        self.tz = tz
        self.log = log

    # ------------------------------------------------------------------
    def _send_alert(self, event: DetectorEvent, now: datetime) -> bool:
        gate = self.gates.for_category(event.signal.value)
        if not gate.try_alert(now):
            self.log.info(
                "%s alert suppressed by cooldown (%s remaining)",
                event.signal.value,
                gate.remaining(now),
            )
            return False

        text = format_event(event, self.tz)
        if not text.strip():
            self.log.warning("Empty %s alert text; not sending", event.signal.value)
            return False

        self.notifier.send(text, html=True)
        # The attempt consumes the cooldown, whatever the per-chat outcome.
        gate.record_sent(now)
        return True

    def dispatch(self, events: Iterable[DetectorEvent], now: datetime) -> List[DetectorEvent]:
        """Send notifications for ``events``; return the events that were handed to the notifier."""
        sent: List[DetectorEvent] = []
        for event in events:
            if event.is_alert:
                if self._send_alert(event, now):
                    sent.append(event)
                continue
            self.notifier.send(format_event(event, self.tz), html=True)
            sent.append(event)
        return sent

    # ------------------------------------------------------------------
    def send_fetch_error(self) -> None:
        self.notifier.send(FETCH_ERROR_TEXT, html=True)

    def send_test(self, now: datetime) -> int:
        self.log.info("Sending test notification via Telegram...")
        return self.notifier.send_test(now.astimezone(self.tz))

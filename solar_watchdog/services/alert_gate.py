# solar_watchdog/services/alert_gate.py

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional


class AlertGate:
    """
    Cooldown between alert-severity notifications.

    Callers ask try_alert(now) first and, once the message has been handed to
    the notifier, call record_sent(now). Recoveries never go through a gate.
    """

    def __init__(self, cooldown: timedelta, name: str = "alerts"):
        self.cooldown = cooldown
        self.name = name
        self.last_alert: Optional[datetime] = None

    def try_alert(self, now: datetime) -> bool:
        if self.last_alert is None:
            return True
        return now - self.last_alert >= self.cooldown

    def record_sent(self, now: datetime) -> None:
        self.last_alert = now

    def remaining(self, now: datetime) -> timedelta:
        if self.last_alert is None:
            return timedelta(0)
        return max(timedelta(0), self.cooldown - (now - self.last_alert))


class AlertGates:
    """One gate per alert category, or a single gate shared by all of them."""

    def __init__(self, cooldown: timedelta, categories: Iterable[str], *, shared: bool = False):
        if shared:
            gate = AlertGate(cooldown, name="shared")
            self._gates: Dict[str, AlertGate] = {c: gate for c in categories}
        else:
            self._gates = {c: AlertGate(cooldown, name=c) for c in categories}

    def for_category(self, category: str) -> AlertGate:
        return self._gates[category]

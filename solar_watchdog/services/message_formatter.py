# solar_watchdog/services/message_formatter.py

from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from solar_watchdog.models.events import DetectorEvent, EventKind, Signal

ALERT_HEADER = "🔴 <b>Solar System Alert</b>"
FETCH_ERROR_TEXT = "⚠️ Unable to fetch solar plant data"


def _hours(elapsed: timedelta) -> str:
    return f"{elapsed.total_seconds() / 3600:.1f}"


def _readings(event: DetectorEvent) -> str:
    return (
        f"Daily energy: {event.daily_energy_kwh} kWh\n"
        f"Current power: {event.power_kw} kW"
    )


def format_timestamp(when: datetime, tz: ZoneInfo) -> str:
    return when.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z")


def alert_body(event: DetectorEvent) -> str:
    if event.signal is Signal.POWER:
        headline = (
            f"⚠️ Solar system possibly down. Power output near zero "
            f"for {_hours(event.elapsed)} hours."
        )
    else:
        headline = (
            f"⚠️ Solar system possibly down. Daily energy unchanged "
            f"for {_hours(event.elapsed)} hours."
        )
    return f"{headline}\n\n{_readings(event)}"


def recovery_body(event: DetectorEvent) -> str:
    if event.signal is Signal.POWER:
        headline = f"✅ Power output restored after {_hours(event.elapsed)} hours."
    else:
        headline = f"✅ Energy production restored after {_hours(event.elapsed)} hours."
    return f"{headline}\n\n{_readings(event)}"


def format_alert(body: str, when: datetime, tz: ZoneInfo) -> str:
    """Wrap an alert body with the alert header and a local timestamp (Telegram HTML)."""
    return f"{ALERT_HEADER}\n\n{body}\n\nDate: {format_timestamp(when, tz)}"


def format_event(event: DetectorEvent, tz: ZoneInfo) -> str:
    if event.kind is EventKind.ALERT:
        return format_alert(alert_body(event), event.at, tz)
    return recovery_body(event)

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from solar_watchdog.logging import ConsoleLog, get_logger
from solar_watchdog.models.events import DetectorEvent, EventKind, Signal
from solar_watchdog.services.alert_gate import AlertGates
from solar_watchdog.services.message_formatter import (
    ALERT_HEADER,
    FETCH_ERROR_TEXT,
    format_event,
)
from solar_watchdog.services.notification_manager import NotificationManager
from solar_watchdog.tests.fakes import RecordingNotifier


ConsoleLog(level="INFO", quiet=True).setup()
LOG = get_logger("notification-test")

MADRID = ZoneInfo("Europe/Madrid")
T0 = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
COOLDOWN = timedelta(hours=4)


def _event(kind=EventKind.ALERT, signal=Signal.ENERGY, at=T0):
    return DetectorEvent(
        kind=kind,
        signal=signal,
        elapsed=timedelta(minutes=90),
        power_kw=0.0,
        daily_energy_kwh=5.0,
        at=at,
    )


def _manager(shared=False, delivered=1):
    notifier = RecordingNotifier(delivered=delivered)
    gates = AlertGates(COOLDOWN, ["energy", "power"], shared=shared)
    return NotificationManager(notifier, gates, MADRID, LOG), notifier


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def test_energy_alert_text():
    text = format_event(_event(), MADRID)
    assert text.startswith(ALERT_HEADER)
    assert "Daily energy unchanged for 1.5 hours" in text
    assert "Daily energy: 5.0 kWh" in text
    assert "Current power: 0.0 kW" in text
    # 10:00 UTC rendered in Madrid summer time
    assert "Date: 2024-06-01 12:00:00 CEST" in text


def test_power_alert_text():
    text = format_event(_event(signal=Signal.POWER), MADRID)
    assert "Power output near zero for 1.5 hours" in text


def test_recovery_text_has_no_alert_header():
    text = format_event(_event(kind=EventKind.RECOVERY), MADRID)
    assert not text.startswith(ALERT_HEADER)
    assert text.startswith("✅ Energy production restored after 1.5 hours.")


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

def test_alert_within_cooldown_suppressed():
    manager, notifier = _manager()
    first = manager.dispatch([_event()], T0)
    second = manager.dispatch([_event(at=T0 + timedelta(hours=1))], T0 + timedelta(hours=1))
    third = manager.dispatch([_event(at=T0 + COOLDOWN)], T0 + COOLDOWN)

    assert len(first) == 1
    assert second == []
    assert len(third) == 1
    assert len(notifier.messages) == 2


def test_recovery_bypasses_cooldown():
    manager, notifier = _manager()
    manager.dispatch([_event()], T0)
    sent = manager.dispatch([_event(kind=EventKind.RECOVERY)], T0 + timedelta(minutes=10))
    assert len(sent) == 1
    assert manager.gates.for_category("energy").last_alert == T0
    assert len(notifier.messages) == 2


def test_failed_delivery_still_consumes_cooldown():
    manager, notifier = _manager(delivered=0)
    manager.dispatch([_event()], T0)
    assert manager.gates.for_category("energy").last_alert == T0
    assert manager.dispatch([_event()], T0 + timedelta(minutes=30)) == []


def test_categories_have_independent_cooldowns():
    manager, notifier = _manager()
    sent = manager.dispatch([_event(), _event(signal=Signal.POWER)], T0)
    assert len(sent) == 2


def test_shared_cooldown_suppresses_second_category():
    manager, notifier = _manager(shared=True)
    sent = manager.dispatch([_event(), _event(signal=Signal.POWER)], T0)
    assert [e.signal for e in sent] == [Signal.ENERGY]
    assert len(notifier.messages) == 1


def test_fetch_error_message():
    manager, notifier = _manager()
    manager.send_fetch_error()
    assert notifier.messages == [FETCH_ERROR_TEXT]

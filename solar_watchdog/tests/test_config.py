from datetime import timedelta

import pytest

from solar_watchdog.config import Config
from solar_watchdog.errors import ConfigError

CONF = """
[telegram]
token = 123:ABC
chat_ids = ["1001", 1002]

[plant]
plant_id = PLANT-42
api_url = https://plant.test/api/realtime

[daylight]
timezone = Europe/Madrid
latitude = 40.4168
longitude = -3.7038
sunrise_buffer_minutes = 20

[monitoring]
poll_interval_minutes = 10
alert_cooldown_minutes = 120
energy_alert_minutes = 60
power_check_enabled = false
shared_cooldown = true

[healthchecks]
ping_url = https://hc.test/ping/abc

[logging]
console_level = DEBUG
debug_modules = solar_watchdog.services, urllib3
"""

FULL_ENV = {
    "TELEGRAM_TOKEN": "env-token",
    "TELEGRAM_CHAT_IDS": '["42"]',
    "PLANT_ID": "ENV-PLANT",
    "API_URL": "https://env.test/api",
    "LATITUDE": "37.39",
    "LONGITUDE": "-5.98",
    "TZ": "Europe/Madrid",
}


def _write(tmp_path, text):
    path = tmp_path / "solar_watchdog.conf"
    path.write_text(text)
    return str(path)


def test_load_full_config(tmp_path):
    cfg = Config.load(_write(tmp_path, CONF), environ={})

    assert cfg.telegram.token == "123:ABC"
    assert cfg.telegram.chat_ids == ("1001", "1002")
    assert cfg.plant.plant_id == "PLANT-42"
    assert cfg.daylight.latitude == pytest.approx(40.4168)
    assert cfg.daylight.sunrise_buffer_minutes == 20
    assert cfg.daylight.sunset_buffer_minutes == 30
    assert cfg.monitoring.poll_interval == timedelta(minutes=10)
    assert cfg.monitoring.alert_cooldown == timedelta(hours=2)
    assert cfg.monitoring.energy_check_enabled is True
    assert cfg.monitoring.power_check_enabled is False
    assert cfg.monitoring.shared_cooldown is True
    assert cfg.healthchecks.enabled
    assert cfg.logging.console_level == "DEBUG"
    assert cfg.logging.debug_modules == ("solar_watchdog.services", "urllib3")


def test_environment_only(tmp_path):
    cfg = Config.load(None, environ=FULL_ENV)
    assert cfg.telegram.token == "env-token"
    assert cfg.telegram.chat_ids == ("42",)
    assert cfg.plant.api_url == "https://env.test/api"
    assert cfg.healthchecks.enabled is False
    assert cfg.monitoring.poll_interval_minutes == 30
    assert cfg.monitoring.alert_cooldown_minutes == 240
    assert cfg.monitoring.energy_alert_minutes == 60


def test_comma_separated_chat_ids():
    env = dict(FULL_ENV, TELEGRAM_CHAT_IDS="1, 2 ,3")
    assert Config.load(None, environ=env).telegram.chat_ids == ("1", "2", "3")


def test_file_value_wins_over_environment(tmp_path):
    cfg = Config.load(_write(tmp_path, CONF), environ=FULL_ENV)
    assert cfg.telegram.token == "123:ABC"


def test_missing_file_is_config_error(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        Config.load(str(tmp_path / "nope.conf"), environ={})


def test_missing_required_values_listed():
    with pytest.raises(ConfigError) as excinfo:
        Config.load(None, environ={})
    problems = " ".join(excinfo.value.problems)
    for key in ("token", "chat_ids", "plant_id", "api_url", "timezone", "latitude", "longitude"):
        assert key in problems


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"TELEGRAM_CHAT_IDS": "[]"}, "at least one chat"),
        ({"TELEGRAM_CHAT_IDS": "[1, 2"}, "not a valid list"),
        ({"LATITUDE": "north"}, "must be a number"),
        ({"LATITUDE": "95"}, "latitude must be within"),
        ({"LONGITUDE": "-200"}, "longitude must be within"),
        ({"TZ": "Mars/Olympus_Mons"}, "unknown timezone"),
    ],
)
def test_invalid_values(overrides, message):
    env = dict(FULL_ENV, **overrides)
    with pytest.raises(ConfigError, match=message):
        Config.load(None, environ=env)


def test_invalid_monitoring_section(tmp_path):
    text = """
[monitoring]
poll_interval_minutes = 0
energy_check_enabled = false
power_check_enabled = false
shared_cooldown = maybe
"""
    with pytest.raises(ConfigError) as excinfo:
        Config.load(_write(tmp_path, text), environ=FULL_ENV)
    problems = excinfo.value.problems
    assert any("poll_interval_minutes must be positive" in p for p in problems)
    assert any("at least one of" in p for p in problems)
    assert any("shared_cooldown must be true/false" in p for p in problems)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_percent_encoded_values_are_read_verbatim(tmp_path):
    text = """
[plant]
api_url = https://plant.test/api?station=north%20roof
"""
    cfg = Config.load(_write(tmp_path, text), environ=FULL_ENV)
    assert cfg.plant.api_url == "https://plant.test/api?station=north%20roof"


def test_malformed_file_is_config_error(tmp_path):
    with pytest.raises(ConfigError, match="malformed"):
        Config.load(_write(tmp_path, "token = outside any section\n"), environ=FULL_ENV)


@pytest.mark.parametrize("key", ["poll_interval_minutes", "energy_alert_minutes", "alert_cooldown_minutes"])
@pytest.mark.parametrize("raw", ["inf", "nan", "-inf"])
def test_non_finite_numbers_rejected(tmp_path, key, raw):
    with pytest.raises(ConfigError, match=f"{key} must be a finite number"):
        Config.load(_write(tmp_path, f"[monitoring]\n{key} = {raw}\n"), environ=FULL_ENV)

# solar_watchdog/config.py
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import configparser
import json
import math
import os

from solar_watchdog.errors import ConfigError


@dataclass(frozen=True)
class TelegramConfig:
    token: str
    chat_ids: tuple[str, ...]
    api_url: str = "https://api.telegram.org/bot"
    timeout: float = 10.0


@dataclass(frozen=True)
class PlantConfig:
    plant_id: str
    api_url: str
    timeout: float = 15.0


@dataclass(frozen=True)
class DaylightConfig:
    timezone: str
    latitude: float
    longitude: float
    sunrise_buffer_minutes: int = 30
    sunset_buffer_minutes: int = 30


@dataclass(frozen=True)
class MonitoringConfig:
    poll_interval_minutes: float = 30.0
    alert_cooldown_minutes: float = 240.0
    energy_alert_minutes: float = 60.0
    power_alert_minutes: float = 60.0
    power_epsilon_kw: float = 0.01
    energy_check_enabled: bool = True
    power_check_enabled: bool = True
    shared_cooldown: bool = False

    @property
    def poll_interval(self) -> timedelta:
        return timedelta(minutes=self.poll_interval_minutes)

    @property
    def alert_cooldown(self) -> timedelta:
        return timedelta(minutes=self.alert_cooldown_minutes)


@dataclass(frozen=True)
class HealthchecksConfig:
    ping_url: str | None = None
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.ping_url)


@dataclass(frozen=True)
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: tuple[str, ...] = field(default_factory=tuple)
    structured_enabled: bool = False
    structured_path: str | None = None


@dataclass(frozen=True)
class AppConfig:
    telegram: TelegramConfig
    plant: PlantConfig
    daylight: DaylightConfig
    monitoring: MonitoringConfig
    healthchecks: HealthchecksConfig
    logging: LoggingConfig


# (section, key) -> environment variable consulted when the file leaves it unset
ENV_FALLBACKS = {
    ("telegram", "token"): "TELEGRAM_TOKEN",
    ("telegram", "chat_ids"): "TELEGRAM_CHAT_IDS",
    ("plant", "plant_id"): "PLANT_ID",
    ("plant", "api_url"): "API_URL",
    ("daylight", "latitude"): "LATITUDE",
    ("daylight", "longitude"): "LONGITUDE",
    ("daylight", "timezone"): "TZ",
    ("healthchecks", "ping_url"): "HEALTHCHECK_URL",
}


def _parse_chat_ids(raw: str) -> tuple[str, ...]:
    text = raw.strip()
    if text.startswith("["):
        values = json.loads(text)
        if not isinstance(values, list):
            raise ValueError("chat_ids must be a list")
        return tuple(str(v).strip() for v in values if str(v).strip())
    return tuple(x.strip() for x in text.split(",") if x.strip())


class Config:
    def __init__(self, path: str | None, environ: Mapping[str, str] | None = None):
        self.path = Path(path) if path else None
        self.environ = os.environ if environ is None else environ
        # URLs in values may carry percent-encoding; no interpolation.
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",), interpolation=None)
        self.problems: list[str] = []
        if self.path is not None:
            try:
                read = self.parser.read(self.path)
            except configparser.Error as exc:
                raise ConfigError(f"Config file {self.path} is malformed: {exc}") from exc
            if not read:
                raise ConfigError(f"Config file not found: {self.path}")

    # ------------------------------------------------------------------
    def _raw(self, section: str, key: str) -> str | None:
        value = None
        if section in self.parser and key in self.parser[section]:
            value = self.parser[section][key]
        if value is None or not value.strip():
            env_name = ENV_FALLBACKS.get((section, key))
            if env_name:
                value = self.environ.get(env_name)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def _required(self, section: str, key: str) -> str | None:
        value = self._raw(section, key)
        if value is None:
            env_name = ENV_FALLBACKS.get((section, key))
            hint = f" (or ${env_name})" if env_name else ""
            self.problems.append(f"[{section}] {key}{hint} is required")
        return value

    def _float(self, section: str, key: str, default=None, *, required=False):
        raw = self._required(section, key) if required else self._raw(section, key)
        if raw is None:
            return default
        try:
            value = float(raw)
        except ValueError:
            self.problems.append(f"[{section}] {key} must be a number, got {raw!r}")
            return default
        if not math.isfinite(value):
            self.problems.append(f"[{section}] {key} must be a finite number, got {raw!r}")
            return default
        return value

    def _int(self, section: str, key: str, default: int) -> int:
        raw = self._raw(section, key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            self.problems.append(f"[{section}] {key} must be an integer, got {raw!r}")
            return default

    def _bool(self, section: str, key: str, default: bool) -> bool:
        raw = self._raw(section, key)
        if raw is None:
            return default
        lowered = raw.lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        self.problems.append(f"[{section}] {key} must be true/false, got {raw!r}")
        return default

    def _check(self, condition: bool, message: str) -> None:
        if not condition:
            self.problems.append(message)

    # ------------------------------------------------------------------
    @classmethod
    def load(cls, path: str | None, environ: Mapping[str, str] | None = None) -> AppConfig:
        cfg = cls(path, environ)

        # --- Telegram ---
        token = cfg._required("telegram", "token")
        chat_ids: tuple[str, ...] = ()
        raw_chat_ids = cfg._required("telegram", "chat_ids")
        if raw_chat_ids is not None:
            try:
                chat_ids = _parse_chat_ids(raw_chat_ids)
            except ValueError:
                cfg.problems.append(f"[telegram] chat_ids is not a valid list: {raw_chat_ids!r}")
            else:
                cfg._check(bool(chat_ids), "[telegram] chat_ids must list at least one chat")
        telegram_kwargs = {}
        if (api_url := cfg._raw("telegram", "api_url")) is not None:
            telegram_kwargs["api_url"] = api_url
        if (timeout := cfg._float("telegram", "timeout")) is not None:
            cfg._check(timeout > 0, "[telegram] timeout must be positive")
            telegram_kwargs["timeout"] = timeout
        telegram = TelegramConfig(token=token or "", chat_ids=chat_ids, **telegram_kwargs)

        # --- Plant ---
        plant_id = cfg._required("plant", "plant_id")
        plant_url = cfg._required("plant", "api_url")
        plant_kwargs = {}
        if (timeout := cfg._float("plant", "timeout")) is not None:
            cfg._check(timeout > 0, "[plant] timeout must be positive")
            plant_kwargs["timeout"] = timeout
        plant = PlantConfig(plant_id=plant_id or "", api_url=plant_url or "", **plant_kwargs)

        # --- Daylight ---
        timezone = cfg._required("daylight", "timezone")
        if timezone is not None:
            try:
                ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError, OSError):
                cfg.problems.append(f"[daylight] unknown timezone {timezone!r}")
        latitude = cfg._float("daylight", "latitude", required=True)
        longitude = cfg._float("daylight", "longitude", required=True)
        if latitude is not None:
            cfg._check(-90.0 <= latitude <= 90.0, "[daylight] latitude must be within [-90, 90]")
        if longitude is not None:
            cfg._check(-180.0 <= longitude <= 180.0, "[daylight] longitude must be within [-180, 180]")
        sunrise_buffer = cfg._int("daylight", "sunrise_buffer_minutes", 30)
        sunset_buffer = cfg._int("daylight", "sunset_buffer_minutes", 30)
        cfg._check(sunrise_buffer >= 0, "[daylight] sunrise_buffer_minutes must not be negative")
        cfg._check(sunset_buffer >= 0, "[daylight] sunset_buffer_minutes must not be negative")
        daylight = DaylightConfig(
            timezone=timezone or "UTC",
            latitude=latitude if latitude is not None else 0.0,
            longitude=longitude if longitude is not None else 0.0,
            sunrise_buffer_minutes=sunrise_buffer,
            sunset_buffer_minutes=sunset_buffer,
        )

        # --- Monitoring ---
        defaults = MonitoringConfig()
        monitoring = MonitoringConfig(
            poll_interval_minutes=cfg._float("monitoring", "poll_interval_minutes", defaults.poll_interval_minutes),
            alert_cooldown_minutes=cfg._float("monitoring", "alert_cooldown_minutes", defaults.alert_cooldown_minutes),
            energy_alert_minutes=cfg._float("monitoring", "energy_alert_minutes", defaults.energy_alert_minutes),
            power_alert_minutes=cfg._float("monitoring", "power_alert_minutes", defaults.power_alert_minutes),
            power_epsilon_kw=cfg._float("monitoring", "power_epsilon_kw", defaults.power_epsilon_kw),
            energy_check_enabled=cfg._bool("monitoring", "energy_check_enabled", defaults.energy_check_enabled),
            power_check_enabled=cfg._bool("monitoring", "power_check_enabled", defaults.power_check_enabled),
            shared_cooldown=cfg._bool("monitoring", "shared_cooldown", defaults.shared_cooldown),
        )
        cfg._check(monitoring.poll_interval_minutes > 0, "[monitoring] poll_interval_minutes must be positive")
        cfg._check(monitoring.alert_cooldown_minutes >= 0, "[monitoring] alert_cooldown_minutes must not be negative")
        cfg._check(monitoring.energy_alert_minutes > 0, "[monitoring] energy_alert_minutes must be positive")
        cfg._check(monitoring.power_alert_minutes > 0, "[monitoring] power_alert_minutes must be positive")
        cfg._check(monitoring.power_epsilon_kw > 0, "[monitoring] power_epsilon_kw must be positive")
        cfg._check(
            monitoring.energy_check_enabled or monitoring.power_check_enabled,
            "[monitoring] at least one of energy_check_enabled/power_check_enabled must be true",
        )

        # --- Healthchecks ---
        healthchecks_kwargs = {}
        if (timeout := cfg._float("healthchecks", "timeout")) is not None:
            cfg._check(timeout > 0, "[healthchecks] timeout must be positive")
            healthchecks_kwargs["timeout"] = timeout
        healthchecks = HealthchecksConfig(ping_url=cfg._raw("healthchecks", "ping_url"), **healthchecks_kwargs)

        # --- Logging ---
        logging_kwargs = {}
        if (level := cfg._raw("logging", "console_level")) is not None:
            logging_kwargs["console_level"] = level
        logging_kwargs["console_quiet"] = cfg._bool("logging", "console_quiet", False)
        if (raw := cfg._raw("logging", "debug_modules")) is not None:
            logging_kwargs["debug_modules"] = tuple(x.strip() for x in raw.split(",") if x.strip())
        logging_kwargs["structured_enabled"] = cfg._bool("logging", "structured_enabled", False)
        if (structured_path := cfg._raw("logging", "structured_path")) is not None:
            logging_kwargs["structured_path"] = structured_path
        logging_cfg = LoggingConfig(**logging_kwargs)

        if cfg.problems:
            raise ConfigError(cfg.problems)

        return AppConfig(
            telegram=telegram,
            plant=plant,
            daylight=daylight,
            monitoring=monitoring,
            healthchecks=healthchecks,
            logging=logging_cfg,
        )

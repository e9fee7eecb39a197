from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from astral import Observer
from astral.sun import elevation, sunrise, sunset

from solar_watchdog.config import DaylightConfig
from solar_watchdog.models.daylight import DaylightInfo

# Apparent sun altitude at sunrise/sunset: refraction plus solar semi-diameter.
HORIZON_ELEVATION = -0.833
SCAN_STEP = timedelta(minutes=1)


class DaylightWindow:
    """Sunrise/sunset window, shrunk by configurable buffers, during which monitoring runs."""

    # Polar night can last months; stop looking for the next window after a year.
    MAX_LOOKAHEAD_DAYS = 370

    def __init__(self, cfg: DaylightConfig, log):
        self.cfg = cfg
        self.log = log
        self._tz = ZoneInfo(cfg.timezone)
        self._observer = Observer(latitude=cfg.latitude, longitude=cfg.longitude)
        self._start_buffer = timedelta(minutes=cfg.sunrise_buffer_minutes)
        self._end_buffer = timedelta(minutes=cfg.sunset_buffer_minutes)

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    # ------------------------------------------------------------------
    def _event(self, fn, local_date: date) -> datetime | None:
        try:
            return fn(self._observer, date=local_date, tzinfo=self._tz)
        except ValueError:
            # astral raises when it cannot place the crossing on this date
            return None

    def _sun_up(self, when: datetime) -> bool:
        return elevation(self._observer, when) >= HORIZON_ELEVATION

    def _first_crossing(self, start: datetime, end: datetime, up: bool) -> datetime | None:
        """First scan step in [start, end) at which the sun is up (or down)."""
        when = start
        while when < end:
            if self._sun_up(when) == up:
                return when
            when += SCAN_STEP
        return None

    def _sun_times(self, local_date: date) -> tuple[datetime | None, datetime | None]:
        midnight = datetime.combine(local_date, time(0, 0), tzinfo=self._tz)
        next_midnight = midnight + timedelta(days=1)
        rise = self._event(sunrise, local_date)
        set_ = self._event(sunset, local_date)

        if rise is None and set_ is None:
            # Polar day or polar night.
            if self._sun_up(midnight.replace(hour=12)):
                return midnight, next_midnight
            return None, None

        # Transition days: astral returns only one event, locate the other from elevation.
        if rise is None:
            rise = self._first_crossing(midnight, set_, up=True)
            if rise is None:
                return None, None
        if set_ is None:
            set_ = self._first_crossing(rise + SCAN_STEP, next_midnight, up=False) or next_midnight

        if set_ <= rise:
            set_ += timedelta(days=1)
        return rise, set_

    def window_for(self, local_date: date) -> tuple[datetime | None, datetime | None]:
        """Return (start, end) of the monitoring window, or (None, None) when it is empty."""
        rise, set_ = self._sun_times(local_date)
        if rise is None or set_ is None:
            return None, None
        start = rise + self._start_buffer
        end = set_ - self._end_buffer
        if end <= start:
            return None, None
        return start, end

    def _localize(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            self.log.warning(
                "DaylightWindow received naive datetime; assuming %s timezone",
                self.cfg.timezone,
            )
            return now.replace(tzinfo=self._tz)
        return now.astimezone(self._tz)

    def _next_start(self, local_now: datetime, today_start: datetime | None) -> datetime | None:
        if today_start is not None and local_now <= today_start:
            return today_start
        day = local_now.date()
        for offset in range(1, self.MAX_LOOKAHEAD_DAYS + 1):
            start, _ = self.window_for(day + timedelta(days=offset))
            if start is not None:
                return start
        return None

    # ------------------------------------------------------------------
    def get_info(self, now: datetime) -> DaylightInfo:
        local_now = self._localize(now)
        rise, set_ = self._sun_times(local_now.date())
        start, end = self.window_for(local_now.date())

        is_active = start is not None and end is not None and start < local_now < end
        next_start = None if is_active else self._next_start(local_now, start)

        self.log.debug(
            "Daylight window: active=%s, start=%s, end=%s",
            is_active,
            start,
            end,
        )

        return DaylightInfo(
            is_active=is_active,
            sunrise=rise,
            sunset=set_,
            window_start=start,
            window_end=end,
            next_window_start=next_start,
        )

    def is_active(self, now: datetime) -> bool:
        return self.get_info(now).is_active

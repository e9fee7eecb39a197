from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DaylightInfo:
    is_active: bool
    sunrise: datetime | None
    sunset: datetime | None
    window_start: datetime | None  # sunrise + buffer; None when the day has no window
    window_end: datetime | None    # sunset - buffer
    next_window_start: datetime | None  # only set while inactive

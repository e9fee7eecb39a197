# solar_watchdog/models/sample.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Sample:
    power_kw: float          # instantaneous AC output
    daily_energy_kwh: float  # cumulative production since local midnight

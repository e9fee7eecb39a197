# solar_watchdog/services/notifiers/healthchecks.py

from __future__ import annotations

from typing import Optional

import requests

from solar_watchdog.config import HealthchecksConfig
from solar_watchdog.errors import PingError


class HealthchecksNotifier:
    """Best-effort liveness ping (Healthchecks.io style URL)."""

    def __init__(self, cfg: HealthchecksConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()
        self._url = (cfg.ping_url or "").rstrip("/")

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled

    # ------------------------------------------------------------------
    def _hit(self) -> None:
        try:
            resp = self.session.get(self._url, timeout=self.cfg.timeout)
        except requests.RequestException as exc:
            raise PingError(str(exc)) from exc
        if not 200 <= resp.status_code < 300:
            raise PingError(f"HTTP {resp.status_code}")

    def ping(self) -> bool:
        if not self.enabled:
            self.log.debug("[Healthchecks] Disabled; skipping ping")
            return False
        try:
            self._hit()
        except PingError as exc:
            self.log.warning("[Healthchecks] Ping failed: %s", exc)
            return False
        self.log.debug("[Healthchecks] Ping sent")
        return True

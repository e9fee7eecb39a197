from __future__ import annotations

import html
import json
import math
from typing import Any, Optional

import requests

from solar_watchdog.config import PlantConfig
from solar_watchdog.errors import FetchError
from solar_watchdog.models.sample import Sample


class TelemetryClient:
    """
    Client for the plant monitoring endpoint.

    The endpoint answers ``{"success": true, "data": "<html-escaped json>"}``;
    the decoded payload carries ``realKpi.realTimePower`` (kW) and
    ``realKpi.dailyEnergy`` (kWh).
    """

    def __init__(self, cfg: PlantConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    @staticmethod
    def _number(kpi: dict, key: str) -> float:
        if key not in kpi or kpi[key] is None:
            raise FetchError(f"payload is missing realKpi.{key}")
        try:
            value = float(kpi[key])
        except (TypeError, ValueError):
            raise FetchError(f"realKpi.{key} is not numeric: {kpi[key]!r}") from None
        if not math.isfinite(value) or value < 0:
            raise FetchError(f"realKpi.{key} is out of range: {value!r}")
        return value

    def _decode_payload(self, data: Any) -> dict:
        if isinstance(data, dict):
            return data
        if not isinstance(data, str):
            raise FetchError(f"unexpected data field type {type(data).__name__}")
        try:
            payload = json.loads(html.unescape(data))
        except ValueError as exc:
            raise FetchError(f"data field is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise FetchError("decoded data is not an object")
        return payload

    def parse(self, envelope: Any) -> Sample:
        if not isinstance(envelope, dict):
            raise FetchError("response is not a JSON object")
        if not envelope.get("success"):
            raise FetchError("API response indicates failure")

        payload = self._decode_payload(envelope.get("data"))
        kpi = payload.get("realKpi")
        if not isinstance(kpi, dict):
            raise FetchError("payload is missing realKpi")

        return Sample(
            power_kw=self._number(kpi, "realTimePower"),
            daily_energy_kwh=self._number(kpi, "dailyEnergy"),
        )

    # ------------------------------------------------------------------
    def fetch(self) -> Sample:
        try:
            resp = self.session.get(
                self.cfg.api_url,
                params={"kk": self.cfg.plant_id},
                timeout=self.cfg.timeout,
            )
        except requests.RequestException as exc:
            raise FetchError(f"request failed: {exc}") from exc

        if resp.status_code != 200:
            raise FetchError(f"HTTP {resp.status_code}")

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise FetchError("response is not JSON") from exc

        sample = self.parse(envelope)
        self.log.debug(
            "Fetched plant data: power=%s kW, daily energy=%s kWh",
            sample.power_kw,
            sample.daily_energy_kwh,
        )
        return sample

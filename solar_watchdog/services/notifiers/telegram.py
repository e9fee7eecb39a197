# solar_watchdog/services/notifiers/telegram.py

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

import requests

from solar_watchdog.config import TelegramConfig
from solar_watchdog.errors import SendError


class TelegramNotifier:
    """Telegram Bot API client; delivers each message to every configured chat."""

    def __init__(self, cfg: TelegramConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()
        self._url = f"{cfg.api_url}{cfg.token}/sendMessage"

    # ------------------------------------------------------------------
    def _post(self, chat_id: str, text: str, html: bool) -> None:
        body = {"chat_id": chat_id, "text": text}
        if html:
            body["parse_mode"] = "HTML"

        try:
            resp = self.session.post(self._url, json=body, timeout=self.cfg.timeout)
        except requests.RequestException as exc:
            raise SendError(chat_id, str(exc)) from exc

        if 200 <= resp.status_code < 300:
            return

        try:
            description = resp.json().get("description")
        except (ValueError, AttributeError):
            description = None
        if not description:
            description = f"HTTP {resp.status_code} with unreadable error body"
        raise SendError(chat_id, f"Telegram API error: {description}")

    def _deliver(self, chat_id: str, text: str, html: bool) -> bool:
        try:
            self._post(chat_id, text, html)
        except SendError as exc:
            self.log.warning("[Telegram] Failed to send message to %s: %s", chat_id, exc.reason)
            return False
        self.log.info("[Telegram] Message sent to %s", chat_id)
        return True

    # ------------------------------------------------------------------
    def send(self, text: str, *, html: bool = False) -> int:
        """Send ``text`` to all chats concurrently; return how many accepted it."""
        chat_ids = list(self.cfg.chat_ids)
        if not chat_ids:
            self.log.debug("[Telegram] No chat ids configured; skipping message")
            return 0

        with ThreadPoolExecutor(max_workers=len(chat_ids)) as pool:
            results = list(pool.map(lambda chat_id: self._deliver(chat_id, text, html), chat_ids))

        delivered = sum(results)
        if delivered < len(chat_ids):
            self.log.warning("[Telegram] Delivered to %d of %d chats", delivered, len(chat_ids))
        return delivered

    # ------------------------------------------------------------------
    def send_test(self, now: datetime) -> int:
        msg = f"Test message from solar watchdog at {now:%Y-%m-%d %H:%M:%S}"
        return self.send(msg)

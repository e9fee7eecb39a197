from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass, fields, is_dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, TextIO

APP_LOGGER = "solar_watchdog"

# Third-party loggers that are chatty at DEBUG (one line per HTTP connection).
NOISY_LOGGERS = ("urllib3", "requests")


class ConsoleLog:
    """Configure console logging for the watchdog process."""

    def __init__(
        self,
        level: str = "INFO",
        quiet: bool = False,
        debug_modules: Iterable[str] | None = None,
        stream: TextIO | None = None,
    ):
        self.level = level.upper()
        self.quiet = quiet
        self.debug_modules = [m for m in (debug_modules or []) if m]
        self.stream = stream

    def _formatter(self) -> logging.Formatter:
        if self.level == "DEBUG":
            fmt = "%(asctime)s %(levelname)-7s [%(name)s:%(lineno)d] %(message)s"
        else:
            fmt = "%(asctime)s %(levelname)-7s %(message)s"
        return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def setup(self) -> logging.Logger:
        # The root logger passes everything; the handler level decides what is shown.
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.DEBUG)

        if not self.quiet:
            handler = logging.StreamHandler(self.stream or sys.stdout)
            handler.setLevel(getattr(logging, self.level, logging.INFO))
            handler.setFormatter(self._formatter())
            root.addHandler(handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        for name in self.debug_modules:
            logging.getLogger(name).setLevel(logging.DEBUG)

        return logging.getLogger(APP_LOGGER)


@dataclass
class CycleLogEntry:
    """One line of the structured cycle log."""

    timestamp: datetime
    window_active: bool
    next_window_start: Optional[datetime] = None
    sample: Any = None
    events: Sequence[Any] = ()
    notified: Sequence[Any] = ()
    fetch_error: Optional[str] = None
    trackers: Mapping[Any, Any] | None = None


def _to_jsonable(obj: Any) -> Any:
    if obj is None or isinstance(obj, bool):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (str, int, float)):
        return obj
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Path):
        return str(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        # Tag with the class name so tracker states stay distinguishable.
        return {"type": type(obj).__name__, **_to_jsonable(asdict(obj))}
    if isinstance(obj, Mapping):
        return {str(_to_jsonable(k)): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_to_jsonable(x) for x in obj]
    return str(obj)


class StructuredLog:
    """Append-only JSONL file with one record per monitoring cycle."""

    def __init__(self, path: str | None, enabled: bool = False):
        self.path = Path(path).expanduser() if path else None
        self.enabled = bool(enabled and self.path)
        if self.enabled:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, entry: CycleLogEntry) -> None:
        if not self.enabled:
            return
        record = {f.name: _to_jsonable(getattr(entry, f.name)) for f in fields(entry)}
        line = json.dumps(record, ensure_ascii=False)
        try:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError as exc:
            logging.getLogger(APP_LOGGER).warning("Structured log write skipped: %s", exc)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

# solar_watchdog/errors.py


class WatchdogError(Exception):
    """Base class for errors raised by the watchdog services."""


class ConfigError(WatchdogError, ValueError):
    """Configuration is missing or invalid; raised only at startup."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class FetchError(WatchdogError):
    """Telemetry could not be fetched or decoded."""


class SendError(WatchdogError):
    """A single notification destination rejected or failed a message."""

    def __init__(self, destination: str, reason: str):
        self.destination = destination
        self.reason = reason
        super().__init__(f"{destination}: {reason}")


class PingError(WatchdogError):
    """Heartbeat ping failed."""

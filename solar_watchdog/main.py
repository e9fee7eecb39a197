# solar_watchdog/main.py

from datetime import datetime, timezone
import logging
import sys

from .cli import build_parser
from .config import AppConfig, Config
from .errors import ConfigError
from .logging import APP_LOGGER, ConsoleLog, StructuredLog

from .services.monitor import SolarMonitor
from .services.scheduler import Scheduler


def log_startup(app_cfg: AppConfig, log) -> None:
    mon = app_cfg.monitoring
    log.info("Starting solar system monitoring...")
    log.info("Configured chat ids: %s", ", ".join(app_cfg.telegram.chat_ids))
    log.info(
        "Poll every %s min; energy check=%s (%s min), power check=%s (%s min); cooldown %s min%s",
        mon.poll_interval_minutes,
        mon.energy_check_enabled,
        mon.energy_alert_minutes,
        mon.power_check_enabled,
        mon.power_alert_minutes,
        mon.alert_cooldown_minutes,
        " (shared)" if mon.shared_cooldown else "",
    )


def run_check(monitor: SolarMonitor, log) -> None:
    result = monitor.run_cycle()
    if not result.window_active:
        log.info("Outside daylight window; nothing checked.")
    elif result.fetch_error:
        log.info("Fetch failed: %s", result.fetch_error)
    else:
        log.info(
            "Sample: power=%s kW, daily energy=%s kWh; %d event(s)",
            result.sample.power_kw,
            result.sample.daily_energy_kwh,
            len(result.events),
        )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_cfg = Config.load(args.config or None)
    except ConfigError as exc:
        ConsoleLog(level="INFO").setup()
        log = logging.getLogger(APP_LOGGER)
        for problem in exc.problems:
            log.error("Startup error: %s", problem)
        sys.exit(1)

    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    log = console_logger.setup()
    structured_logger = StructuredLog(
        app_cfg.logging.structured_path,
        app_cfg.logging.structured_enabled,
    )

    monitor = SolarMonitor.from_config(app_cfg, log, structured_logger)

    if args.command == "run":
        log_startup(app_cfg, log)
        scheduler = Scheduler(app_cfg.monitoring.poll_interval, monitor.run_cycle, log)
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            log.info("Interrupted; stopping monitor.")
    elif args.command == "check":
        run_check(monitor, log)
    elif args.command == "notify-test":
        delivered = monitor.notifications.send_test(datetime.now(timezone.utc))
        if delivered == 0:
            sys.exit(2)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    main()

# solar_watchdog/cli.py
import argparse

def build_parser():
    parser = argparse.ArgumentParser(
        prog="solar-watchdog",
        description="Solar inverter production watchdog"
    )

    parser.add_argument(
        "--config",
        default="solar_watchdog.conf",
        help="Path to configuration file (use '' to read the environment only)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console output"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # Long-running monitor
    sub.add_parser("run", help="Poll the plant forever on the configured interval")

    # One-shot cycle
    sub.add_parser("check", help="Run a single monitoring cycle and exit")

    # Notification test helper
    sub.add_parser(
        "notify-test",
        help="Send a test message to every configured chat",
    )

    return parser

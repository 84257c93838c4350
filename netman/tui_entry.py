from __future__ import annotations

import argparse
import atexit
import logging
import os
import signal
import sys
from typing import Sequence

from netman.core import ConfigError, load_settings
from netman.dialogs import DialogService
from netman.navigation import NavigationController
from netman.runner import ProcessRunner
from netman.screen import QuickExit, Screen

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="netman",
        description="Vim-style terminal menu for Wi-Fi (iwctl) and Bluetooth (bluetoothctl).",
    )
    return parser.parse_args(argv)


def _configure_logging() -> None:
    logger = logging.getLogger("netman")
    logger.propagate = False
    path = os.getenv("NETMAN_LOG_FILE")
    if not path:
        logger.addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(os.getenv("NETMAN_LOG_LEVEL", "INFO").upper())


def _terminate(signum, frame) -> None:
    raise SystemExit(128 + signum)


def _print_exiting_notice() -> None:
    try:
        sys.stdout.write("Exiting...\n")
        sys.stdout.flush()
    except OSError:
        pass


def main(argv: Sequence[str] | None = None) -> int:
    _parse_args(argv)
    if os.getenv("NETMAN_ALLOW_NON_ROOT") != "1" and os.geteuid() != 0:
        print(
            "Error: This program requires superuser privileges. Please run with sudo.",
            file=sys.stderr,
        )
        return 1
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    _configure_logging()

    screen = Screen()
    atexit.register(screen.teardown)
    signal.signal(signal.SIGTERM, _terminate)
    try:
        with screen:
            runner = ProcessRunner(
                screen,
                capture_limit=settings.runner.capture_limit,
                poll_interval=settings.runner.poll_interval,
                kill_grace=settings.runner.kill_grace,
            )
            controller = NavigationController(screen, DialogService(screen), runner, settings)
            return controller.run()
    except (QuickExit, KeyboardInterrupt):
        _print_exiting_notice()
        return 130
    finally:
        atexit.unregister(screen.teardown)


if __name__ == "__main__":
    raise SystemExit(main())

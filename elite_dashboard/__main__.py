"""Command-line entry point: ``python -m elite_dashboard``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from .dashboard import DashboardApp
from .logging_utils import configure_logging, get_logger, install_exception_logging
from .preferences import PreferencesManager
from .version import DASHBOARD_NAME, DASHBOARD_VERSION, display_version


_log = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="elite-dashboard", description=DASHBOARD_NAME)
    parser.add_argument("--config", help="Path to a JSON settings file.")
    parser.add_argument("--journal-dir", dest="journal_dir", help="Directory containing the game journals.")
    parser.add_argument("--host", help="Interface to listen on.")
    parser.add_argument("--port", type=int, help="Port to listen on.")
    parser.add_argument("--static-dir", dest="static_dir", help="Directory of browser assets to serve at /.")
    parser.add_argument("--obs", dest="obs_enabled", action="store_const", const=True, help="Follow OBS recording state.")
    parser.add_argument("--obs-host", dest="obs_host")
    parser.add_argument("--obs-port", dest="obs_port", type=int)
    parser.add_argument("--obs-password", dest="obs_password")
    parser.add_argument("--log-level", dest="log_level", help="Logging level name, e.g. DEBUG.")
    parser.add_argument("--debug", action="store_true", help="Shortcut for --log-level DEBUG.")
    parser.add_argument("--version", action="version", version=display_version(DASHBOARD_VERSION))
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    preferences = PreferencesManager()
    settings = preferences.load(args.config)
    overrides: Dict[str, Any] = {
        key: value
        for key, value in vars(args).items()
        if key not in {"config", "debug"} and value is not None
    }
    if args.debug:
        overrides["log_level"] = logging.DEBUG
    preferences.apply(settings, overrides)

    configure_logging(settings.log_level)
    install_exception_logging()

    if not settings.journal_dir.is_dir():
        _log.critical("Journal directory does not exist: %s", settings.journal_dir)
        return 1

    try:
        DashboardApp(settings).run()
    except FileNotFoundError as exc:
        _log.critical("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Mod Update Checker - Update Check Script
Registers the components listed in a config file, checks them for
updates and logs the result. Optionally repeats on an interval.

Config format:
    {
        "settings": {"log_level": "INFO", "request_timeout": 10},
        "components": [
            {"id": "mod.a", "version": "1.0.0",
             "check_url": "https://raw.githubusercontent.com/u/r/main/version.json"}
        ]
    }
"""

import sys
import os

# Add src to path
src_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, src_dir)

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

import schedule

from fetchers import HttpFetcher
from updatecheck import CheckerSettings, LogNotifier, Registry, load_settings
from updatecheck.config import CORE_VERSION, load_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path.home() / ".config" / "modupdate" / "components.json"
DEFAULT_LOG_FILE = Path.home() / ".cache" / "modupdate" / "check.log"


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Configure root logging to stderr and, optionally, a file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"Cannot write log file {log_file}: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_registry(config_path: Path, settings: CheckerSettings) -> Registry:
    """Create a registry and register every component in the config."""
    fetcher = HttpFetcher(timeout=settings.request_timeout, user_agent=settings.user_agent)
    registry = Registry(fetcher, settings)
    registry.on_update_available.subscribe(LogNotifier())

    for entry in load_config(config_path).get("components", []):
        if "id" not in entry or "version" not in entry:
            logger.warning(f"Skipping component entry without id/version: {entry}")
            continue
        registry.register_with_update_source(
            entry["id"],
            entry["version"],
            check_url=entry.get("check_url"),
            download_url=entry.get("download_url"),
            changelog=entry.get("changelog", ""),
            required_core_version=entry.get("required_core_version", CORE_VERSION),
        )
    return registry


def report_updates(registry: Registry) -> int:
    """Log the cached verdicts that found an update."""
    updates = registry.get_available_updates()
    if updates:
        logger.info(f"Found {len(updates)} updates available")
        for verdict in updates:
            logger.info(f"  {verdict.component_id}: {verdict.display_version}")
    else:
        logger.info("No updates available")
    return len(updates)


def run_checks(registry: Registry, timeout: Optional[float] = None) -> int:
    """Check all components once and log what was found."""
    logger.info("Checking for updates...")
    registry.check_all()
    registry.wait_all(timeout=timeout)
    return report_updates(registry)


def main(argv: Optional[list[str]] = None) -> int:
    """Check for updates; return a process exit code."""
    parser = argparse.ArgumentParser(description="Check registered mods for updates")
    parser.add_argument("config", nargs="?", type=Path, default=DEFAULT_CONFIG,
                        help="JSON file with settings and components")
    parser.add_argument("--interval", type=int, default=0,
                        help="Repeat the check every N seconds (0 = run once)")
    parser.add_argument("--log-file", type=Path, default=DEFAULT_LOG_FILE)
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    setup_logging(settings.log_level, args.log_file)

    try:
        registry = build_registry(args.config, settings)
    except Exception as e:
        logger.error(f"Update check failed: {e}")
        return 1

    with registry:
        # Registration already scheduled the first round of checks.
        registry.wait_all()
        report_updates(registry)

        if args.interval <= 0:
            return 0

        schedule.every(args.interval).seconds.do(run_checks, registry)
        logger.info(f"Checking every {args.interval}s, press Ctrl+C to stop")
        try:
            while True:
                schedule.run_pending()
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Stopped")
        finally:
            schedule.clear()
    return 0


if __name__ == "__main__":
    sys.exit(main())

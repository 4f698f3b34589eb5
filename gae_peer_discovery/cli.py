"""Argument parsing, configuration loading, and discovery loop bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import AppConfig, config_from_env, load_config
from .exceptions import ConfigError
from .logging_config import configure_logging
from .membership.reconciler import build_reconciler
from .scheduler import DiscoveryScheduler

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gae-peer-discovery",
        description="Peer discovery for process meshes on Google App Engine",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to the YAML configuration file (default: read the App Engine environment)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single discovery cycle and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config: AppConfig = load_config(args.config) if args.config else config_from_env()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    scheduler = DiscoveryScheduler(config, build_reconciler(config.membership))

    if args.once:
        logger.info("Running single discovery cycle (--once)")
        try:
            summary = scheduler.run_once()
        finally:
            scheduler.close()
        return 1 if summary.aborted else 0

    scheduler.install_signal_handlers()
    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0

"""Main entry point for Ntuity Exporter.

This module handles:
- Loading configuration from command-line flags and environment variables
- Scheduling the fixed-interval poll with APScheduler
- Wiring the API client, collector and Prometheus exporter together
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import List, Optional, Tuple

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from ntuity_exporter.client import NtuityClient
from ntuity_exporter.collector import EnergyFlowCollector, POLL_INTERVAL, run_poll
from ntuity_exporter.exporter import NtuityExporter

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = ":8080"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Validated exporter configuration.

    Attributes:
        site_id: Ntuity site identifier
        api_key: Ntuity API bearer token
        host: Address the metrics server binds to
        port: Port the metrics server listens on
    """
    site_id: str
    api_key: str
    host: str = "0.0.0.0"
    port: int = 8080


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split a host:port listen address.

    An empty host (":8080") listens on all interfaces.

    Raises:
        ValueError: If the address has no valid port
    """
    host, sep, port_str = address.rpartition(":")
    if not sep or not port_str.isdigit():
        raise ValueError(f"Invalid listen address: {address!r}")

    port = int(port_str)
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range in listen address: {address!r}")

    # [::1]:8080
    host = host.strip("[]")
    return host or "0.0.0.0", port


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line flags.

    Flags fall back to environment variables, so the exporter can also be
    configured entirely through the environment (or a .env file).
    """
    parser = argparse.ArgumentParser(
        prog="ntuity-exporter",
        description="Prometheus exporter for the Ntuity energy-flow API",
    )
    parser.add_argument(
        "--site-id",
        default=os.getenv("NTUITY_SITE_ID", ""),
        help="The ID of the site to collect metrics for (env: NTUITY_SITE_ID)",
    )
    parser.add_argument(
        "--listen-address",
        default=os.getenv("LISTEN_ADDRESS", DEFAULT_LISTEN_ADDRESS),
        help="The address to listen on for HTTP requests (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: %(default)s)",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Optional[Config]:
    """Build and validate the configuration.

    Required:
        --site-id / NTUITY_SITE_ID: Site to collect metrics for
        NTUITY_API_KEY: Ntuity API token

    Optional:
        --listen-address / LISTEN_ADDRESS: Metrics listen address (default: :8080)

    Returns:
        Config if all required values are present and valid, None otherwise
    """
    api_key = os.getenv("NTUITY_API_KEY", "")

    missing = []
    if not args.site_id:
        missing.append("--site-id")
    if not api_key:
        missing.append("NTUITY_API_KEY")

    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        return None

    try:
        host, port = parse_listen_address(args.listen_address)
    except ValueError as e:
        logger.error(str(e))
        return None

    logger.info(f"Configuration loaded: site={args.site_id}, listen_address={host}:{port}")
    return Config(site_id=args.site_id, api_key=api_key, host=host, port=port)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    1. Load .env file with python-dotenv
    2. Parse flags and configure logging
    3. Validate configuration
    4. Register gauges and start the Prometheus HTTP server
    5. Run the first poll immediately
    6. Poll every POLL_INTERVAL seconds until a poll fails

    Returns:
        Exit code: 1 after a failure, 0 on keyboard interrupt
    """
    load_dotenv()
    args = parse_args(argv)

    # Choices are not checked against the LOG_LEVEL fallback
    log_level = args.log_level.upper()
    valid_log_level = log_level in LOG_LEVELS

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, log_level) if valid_log_level else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logger.info("Ntuity Exporter starting")

    if not valid_log_level:
        logger.error(f"Invalid log level {args.log_level!r}, expected one of: {', '.join(LOG_LEVELS)}")
        return 1

    config = load_config(args)
    if config is None:
        logger.error("Configuration failed, exiting")
        return 1

    exporter = NtuityExporter(site_id=config.site_id)
    client = NtuityClient(site_id=config.site_id, api_key=config.api_key)
    collector = EnergyFlowCollector(client, exporter)

    try:
        exporter.start(host=config.host, port=config.port)
    except OSError as e:
        logger.error(f"Failed to start metrics server on {config.host}:{config.port}: {e}")
        return 1
    logger.info(f"Prometheus metrics available at http://{config.host}:{config.port}/metrics")

    # First poll runs at startup, not after the first interval
    if not run_poll(collector):
        return 1

    scheduler = BlockingScheduler()

    def poll_job() -> None:
        if not run_poll(collector):
            scheduler.shutdown(wait=False)

    scheduler.add_job(
        poll_job,
        trigger=IntervalTrigger(seconds=POLL_INTERVAL),
        id="energy_flow_poll",
        name=f"Energy flow poll every {POLL_INTERVAL}s",
        max_instances=1,
    )

    logger.info(f"Polling site {config.site_id} every {POLL_INTERVAL}s")
    try:
        scheduler.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt, exiting")
        return 0

    logger.error("Poll failed, exiting")
    return 1


if __name__ == "__main__":
    sys.exit(main())

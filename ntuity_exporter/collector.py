"""Poll cycle module.

This module handles:
- Fetching one energy-flow snapshot per cycle
- Copying the snapshot into the exporter's gauges
- Reporting whether the cycle succeeded
"""

import logging
import time

from ntuity_exporter.client import NtuityClient, NtuityError
from ntuity_exporter.exporter import NtuityExporter
from ntuity_exporter.models import EnergyFlow

# Configure module logger
logger = logging.getLogger(__name__)

# Seconds between poll cycles
POLL_INTERVAL = 60


class EnergyFlowCollector:
    """Runs poll cycles for one site.

    Attributes:
        client: API client for the site
        exporter: Exporter whose gauges are updated
    """

    def __init__(self, client: NtuityClient, exporter: NtuityExporter):
        self.client = client
        self.exporter = exporter

    def collect(self) -> EnergyFlow:
        """Fetch the latest snapshot and publish it.

        The gauges are only touched once the snapshot has been fully
        decoded.

        Returns:
            The published snapshot

        Raises:
            NtuityError: If the fetch or decode fails
        """
        flow = self.client.fetch_energy_flow()
        self.exporter.update_metrics(flow)
        return flow


def run_poll(collector: EnergyFlowCollector) -> bool:
    """Execute one poll cycle.

    Returns:
        True if the cycle succeeded, False otherwise
    """
    start_time = time.time()

    try:
        collector.collect()
    except NtuityError as e:
        logger.error(f"Failed to collect metrics: {e}")
        return False
    except Exception:
        logger.exception("Failed to collect metrics (unexpected error)")
        return False

    logger.info(f"Poll completed in {time.time() - start_time:.2f}s")
    return True

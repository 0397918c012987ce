"""Prometheus metrics exporter module.

This module handles:
- Defining the Prometheus gauges for a site's energy flow
- Exposing the metrics HTTP server on a configurable address
- Updating the gauges from a decoded EnergyFlow snapshot
"""

import logging
from typing import Optional

from prometheus_client import Gauge, start_http_server, CollectorRegistry

from ntuity_exporter.models import EnergyFlow

# Configure module logger
logger = logging.getLogger(__name__)

NAMESPACE = "ntuity"

# (EnergyFlow field, help text) for every published gauge.
# power_consumption and the device counters are decoded but not published.
GAUGE_FIELDS = (
    ("power_consumption_calc", "Calculated power of all consumers, e.g. Appliances, CPs, HPs"),
    ("power_production", "Power of all producers, e.g. PVs"),
    ("power_storage", "Power from + (=discharging) or to - (=charging) the storages"),
    ("power_grid", "Power from + or to - the grid"),
    ("power_charging_stations", "Power of all charging stations"),
    ("power_heating", "Power of all heating devices"),
    ("power_appliances", "Power of all appliances (difference between total consumption and sum of all other sub-consumer)"),
    ("state_of_charge", "State of charge of all storages"),
    ("self_sufficiency", "A performance or fitness value about the current energy flow (based on power)"),
)


class NtuityExporter:
    """Prometheus exporter for one Ntuity site.

    Exposes one gauge per entry in GAUGE_FIELDS, named ntuity_<field> and
    labelled with the site identifier. The site child of every gauge is
    created up front, so the gauges read 0 until the first update.

    Attributes:
        site_id: Value of the site label
        registry: Registry holding the gauges
    """

    def __init__(self, site_id: str, registry: Optional[CollectorRegistry] = None):
        """Initialize the exporter.

        Args:
            site_id: Site identifier used as the label value
            registry: Optional registry. If None, a fresh CollectorRegistry is created.
        """
        self.site_id = site_id
        self.registry = registry if registry is not None else CollectorRegistry()
        self._server_started = False

        self._gauges = {}
        for field_name, documentation in GAUGE_FIELDS:
            gauge = Gauge(
                field_name,
                documentation,
                ['site'],
                namespace=NAMESPACE,
                registry=self.registry
            )
            gauge.labels(site=site_id).set(0)
            self._gauges[field_name] = gauge

    def update_metrics(self, flow: EnergyFlow) -> None:
        """Set every gauge from an energy-flow snapshot.

        Absent readings set the gauge to 0, replacing any earlier value.

        Args:
            flow: Decoded snapshot from the API
        """
        for field_name, gauge in self._gauges.items():
            metric = getattr(flow, field_name)
            gauge.labels(site=self.site_id).set(metric.value_or_zero())

        logger.debug(f"Metrics updated for site {self.site_id}")

    def start(self, host: str = "0.0.0.0", port: int = 8080) -> None:
        """Start the HTTP server to expose metrics.

        The server runs in a daemon thread and exposes metrics at:
        http://{host}:{port}/metrics
        """
        if self._server_started:
            logger.warning("Prometheus server already started")
            return

        logger.info(f"Starting Prometheus HTTP server on {host}:{port}")
        start_http_server(port, addr=host, registry=self.registry)
        self._server_started = True

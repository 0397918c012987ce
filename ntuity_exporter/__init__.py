"""Ntuity Prometheus Exporter package.

A small exporter that polls the Ntuity API for a site's latest energy flow
every minute and exposes the readings as Prometheus gauges.
"""

__version__ = "0.1.0"

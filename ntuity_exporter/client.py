"""Ntuity API client module.

This module handles:
- Building the site-scoped energy-flow URL
- Issuing the authenticated GET request with a bearer token
- Decoding the JSON response into an EnergyFlow snapshot
"""

import json
import logging
from typing import Optional

import requests

from ntuity_exporter.models import EnergyFlow, EnergyFlowParseError, parse_energy_flow

# Configure module logger
logger = logging.getLogger(__name__)


class NtuityError(Exception):
    """Base exception for Ntuity client errors."""
    pass


class NtuityTransportError(NtuityError):
    """Exception raised when the request could not be completed."""
    pass


class NtuityDecodeError(NtuityError):
    """Exception raised when the response body cannot be decoded."""
    pass


def _reject_constant(name: str):
    """Reject the NaN and Infinity literals json accepts by default."""
    raise ValueError(f"Invalid JSON constant {name}")


class NtuityClient:
    """Client for the Ntuity energy-flow API.

    Each call to fetch_energy_flow() performs exactly one GET request. The
    HTTP status code is not inspected: error responses are handed to the JSON
    decoder like any other body and usually fail there.

    Attributes:
        site_id: Ntuity site identifier
        api_key: Bearer token for the API
    """

    BASE_URL = "https://api.ntuity.io"
    ENERGY_FLOW_PATH = "/v1/sites/{site_id}/energy-flow/latest"

    def __init__(self, site_id: str, api_key: str, session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            site_id: Site identifier used to build the request path
            api_key: Bearer token for the Authorization header
            session: Optional requests session, mainly for testing
        """
        if not site_id:
            raise ValueError("site_id must not be empty")
        if not api_key:
            raise ValueError("api_key must not be empty")

        self.site_id = site_id
        self.api_key = api_key
        self.session = session if session is not None else requests.Session()

        self.session.headers.update({
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
        })

    @property
    def energy_flow_url(self) -> str:
        return self.BASE_URL + self.ENERGY_FLOW_PATH.format(site_id=self.site_id)

    def fetch_energy_flow(self) -> EnergyFlow:
        """Fetch the latest energy flow for the site.

        No timeout is passed, so the request waits as long as the
        underlying connection does.

        Returns:
            Decoded EnergyFlow snapshot

        Raises:
            NtuityTransportError: On connection, DNS, TLS or timeout errors
            NtuityDecodeError: If the body is not valid JSON of the right shape
        """
        url = self.energy_flow_url
        logger.debug(f"Fetching energy flow: {url}")

        try:
            response = self.session.get(url)
            body = response.content
        except requests.RequestException as e:
            raise NtuityTransportError(f"Request to {url} failed: {e}") from e

        logger.debug(f"Received status {response.status_code}, {len(body)} bytes")

        try:
            payload = json.loads(body, parse_constant=_reject_constant)
        except ValueError as e:
            raise NtuityDecodeError(f"Invalid JSON in response (status {response.status_code}): {e}") from e

        try:
            return parse_energy_flow(payload)
        except EnergyFlowParseError as e:
            raise NtuityDecodeError(f"Unexpected energy-flow payload: {e}") from e

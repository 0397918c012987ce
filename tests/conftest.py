"""Shared test fixtures for the Ntuity exporter tests."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from prometheus_client import CollectorRegistry

from ntuity_exporter.client import NtuityClient
from ntuity_exporter.exporter import NtuityExporter

SITE_ID = "X"
API_KEY = "test-api-key"

_ALL_ENV_VARS = (
    "NTUITY_API_KEY",
    "NTUITY_SITE_ID",
    "LISTEN_ADDRESS",
    "LOG_LEVEL",
)

SAMPLE_PAYLOAD = {
    "power_consumption": {"value": 1500.0, "time": "2024-01-01T00:00:00Z"},
    "power_consumption_calc": {"value": 1480.5, "time": "2024-01-01T00:00:00Z"},
    "power_production": {"value": 5.2, "time": "2024-01-01T00:00:00Z"},
    "power_storage": {"value": None, "time": "2024-01-01T00:00:00Z"},
    "power_grid": {"value": -3200, "time": "2024-01-01T00:00:00Z"},
    "power_charging_stations": {"value": 0, "time": "2024-01-01T00:00:00Z"},
    "power_heating": {"value": 800.25, "time": "2024-01-01T00:00:00Z"},
    "power_appliances": {"value": 680.25, "time": "2024-01-01T00:00:00Z"},
    "state_of_charge": {"value": 87.5, "time": "2024-01-01T00:00:00Z"},
    "self_sufficiency": {"value": 100, "time": "2024-01-01T00:00:00Z"},
    "consumers_total_count": 4,
    "consumers_online_count": 3,
    "producers_total_count": 1,
    "producers_online_count": 1,
    "storages_total_count": 1,
    "storages_online_count": 0,
    "heatings_total_count": 1,
    "heatings_online_count": 1,
    "charging_points_total_count": 2,
    "charging_points_online_count": 2,
    "grids_total_count": 1,
    "grids_online_count": 1,
    "unknown_extra_field": {"nested": True},
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Remove exporter env vars and move away from any .env file."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def make_response(body, status_code: int = 200) -> MagicMock:
    """Create a mock requests.Response with the given body.

    Dicts and lists are JSON-encoded, strings are sent as-is.
    """
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.content = body.encode("utf-8")
    return response


def make_session(*responses) -> MagicMock:
    """Create a mock session whose get() returns responses in order.

    Exceptions in responses are raised instead of returned.
    """
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


@pytest.fixture()
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture()
def exporter(registry: CollectorRegistry) -> NtuityExporter:
    return NtuityExporter(site_id=SITE_ID, registry=registry)


@pytest.fixture()
def payload() -> dict:
    return json.loads(json.dumps(SAMPLE_PAYLOAD))


def make_client(*responses) -> NtuityClient:
    return NtuityClient(site_id=SITE_ID, api_key=API_KEY, session=make_session(*responses))


def gauge_value(exporter: NtuityExporter, field_name: str):
    """Read the current value of the site's gauge for field_name."""
    return exporter.registry.get_sample_value(
        f"ntuity_{field_name}", {"site": exporter.site_id}
    )

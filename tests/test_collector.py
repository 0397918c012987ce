"""Tests for the poll cycle."""

import logging

import requests

from ntuity_exporter.collector import EnergyFlowCollector, run_poll
from tests.conftest import gauge_value, make_client, make_response


def test_collect_updates_gauges(exporter, payload):
    collector = EnergyFlowCollector(make_client(make_response(payload)), exporter)

    flow = collector.collect()

    assert flow.power_production.value == 5.2
    assert gauge_value(exporter, "power_production") == 5.2
    assert gauge_value(exporter, "power_storage") == 0.0


def test_run_poll_success(exporter, payload):
    collector = EnergyFlowCollector(make_client(make_response(payload)), exporter)
    assert run_poll(collector) is True


def test_malformed_json_leaves_gauges_untouched(exporter, payload, caplog):
    collector = EnergyFlowCollector(
        make_client(make_response(payload), make_response("{oops")),
        exporter,
    )
    assert run_poll(collector) is True

    with caplog.at_level(logging.ERROR):
        assert run_poll(collector) is False

    assert "Failed to collect metrics" in caplog.text
    assert "Invalid JSON" in caplog.text
    assert gauge_value(exporter, "power_production") == 5.2
    assert gauge_value(exporter, "state_of_charge") == 87.5


def test_transport_error_fails_cycle(exporter, caplog):
    collector = EnergyFlowCollector(make_client(requests.ConnectionError("refused")), exporter)

    with caplog.at_level(logging.ERROR):
        assert run_poll(collector) is False

    assert "refused" in caplog.text
    assert gauge_value(exporter, "power_production") == 0.0


def test_api_key_not_logged(exporter, payload, caplog):
    collector = EnergyFlowCollector(make_client(make_response(payload)), exporter)

    with caplog.at_level(logging.DEBUG):
        run_poll(collector)

    assert "test-api-key" not in caplog.text

"""Energy-flow payload model module.

This module handles:
- Describing the energy-flow snapshot returned by the Ntuity API
- Decoding the JSON payload into immutable records
- Rejecting payloads whose shape does not match the schema

Payload shape (simplified):
- <metric>: {"value": <number|null>, "time": <RFC 3339 string>}
- <counter>: <integer>
Unknown keys are ignored, missing keys are treated as absent.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


# Metric fields present in the payload, in schema order
METRIC_FIELDS = (
    "power_consumption",
    "power_consumption_calc",
    "power_production",
    "power_storage",
    "power_grid",
    "power_charging_stations",
    "power_heating",
    "power_appliances",
    "state_of_charge",
    "self_sufficiency",
)

# Full date-time with offset, fromisoformat alone also takes dates and basic format
RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)

COUNTER_FIELDS = (
    "consumers_total_count",
    "consumers_online_count",
    "producers_total_count",
    "producers_online_count",
    "storages_total_count",
    "storages_online_count",
    "heatings_total_count",
    "heatings_online_count",
    "charging_points_total_count",
    "charging_points_online_count",
    "grids_total_count",
    "grids_online_count",
)


class EnergyFlowParseError(Exception):
    """Exception raised when an energy-flow payload has the wrong shape."""
    pass


@dataclass(frozen=True)
class MetricValue:
    """A single upstream measurement.

    Attributes:
        value: Measured value, None when no reading is available
        time: Time of the upstream measurement (not republished)
    """
    value: Optional[float] = None
    time: Optional[datetime] = None

    def value_or_zero(self) -> float:
        """Return the value, or 0.0 if the reading is absent."""
        return self.value if self.value is not None else 0.0


@dataclass(frozen=True)
class EnergyFlow:
    """Latest energy flow of a site.

    Power values are in watts, state_of_charge and self_sufficiency are
    percentages. The counters are decoded but not exported.
    """
    power_consumption: MetricValue = MetricValue()
    power_consumption_calc: MetricValue = MetricValue()
    power_production: MetricValue = MetricValue()
    power_storage: MetricValue = MetricValue()
    power_grid: MetricValue = MetricValue()
    power_charging_stations: MetricValue = MetricValue()
    power_heating: MetricValue = MetricValue()
    power_appliances: MetricValue = MetricValue()
    state_of_charge: MetricValue = MetricValue()
    self_sufficiency: MetricValue = MetricValue()
    consumers_total_count: int = 0
    consumers_online_count: int = 0
    producers_total_count: int = 0
    producers_online_count: int = 0
    storages_total_count: int = 0
    storages_online_count: int = 0
    heatings_total_count: int = 0
    heatings_online_count: int = 0
    charging_points_total_count: int = 0
    charging_points_online_count: int = 0
    grids_total_count: int = 0
    grids_online_count: int = 0


def parse_timestamp(raw: Any, name: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp.

    Args:
        raw: Raw JSON value (string or None)
        name: Field name used in error messages

    Returns:
        Timezone-aware datetime, or None if raw is None

    Raises:
        EnergyFlowParseError: If raw is not a valid timestamp string
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise EnergyFlowParseError(f"{name}.time: expected string, got {type(raw).__name__}")
    if not RFC3339_PATTERN.match(raw):
        raise EnergyFlowParseError(f"{name}.time: invalid timestamp {raw!r}")

    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise EnergyFlowParseError(f"{name}.time: invalid timestamp {raw!r}")


def parse_metric_value(raw: Any, name: str) -> MetricValue:
    """Parse one {"value": ..., "time": ...} entry.

    A null entry is treated like a missing one.

    Raises:
        EnergyFlowParseError: If the entry or its value has the wrong type
    """
    if raw is None:
        return MetricValue()
    if not isinstance(raw, dict):
        raise EnergyFlowParseError(f"{name}: expected object, got {type(raw).__name__}")

    value = raw.get("value")
    # bool is a subclass of int, but true/false is not a reading
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
        raise EnergyFlowParseError(f"{name}.value: expected number, got {type(value).__name__}")

    if value is not None:
        try:
            value = float(value)
        except OverflowError:
            raise EnergyFlowParseError(f"{name}.value: out of range")
        # 1e400 decodes to inf
        if not math.isfinite(value):
            raise EnergyFlowParseError(f"{name}.value: not a finite number")

    return MetricValue(
        value=value,
        time=parse_timestamp(raw.get("time"), name),
    )


def parse_counter(raw: Any, name: str) -> int:
    """Parse an integer counter, null counts as 0."""
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise EnergyFlowParseError(f"{name}: expected integer, got {type(raw).__name__}")
    return raw


def parse_energy_flow(payload: Any) -> EnergyFlow:
    """Decode a JSON energy-flow payload into an EnergyFlow.

    Args:
        payload: Result of json.loads() on the response body

    Returns:
        EnergyFlow with absent readings for missing fields

    Raises:
        EnergyFlowParseError: If the payload does not match the schema

    Example:
        >>> flow = parse_energy_flow({"power_production": {"value": 5.2}})
        >>> flow.power_production.value
        5.2
        >>> flow.power_storage.value is None
        True
    """
    if not isinstance(payload, dict):
        raise EnergyFlowParseError(f"Expected JSON object, got {type(payload).__name__}")

    fields: Dict[str, Any] = {}
    for name in METRIC_FIELDS:
        fields[name] = parse_metric_value(payload.get(name), name)
    for name in COUNTER_FIELDS:
        fields[name] = parse_counter(payload.get(name), name)

    return EnergyFlow(**fields)

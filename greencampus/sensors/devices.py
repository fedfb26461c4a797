"""Campus layout — device→zone lookup and the simulated sensor fleet from sensors.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from greencampus.contracts.enums import UNKNOWN_ZONE, Category

log = logging.getLogger(__name__)

# Physical metering points installed on campus.
ZONE_MAP: dict[str, str] = {
    "ROOM1": "Block A",
    "ROOM2": "Block A",
    "ROOM3": "Block B",
    "ROOM4": "Block B",
    "HOSTEL1": "Hostel Zone",
    "HOSTEL2": "Hostel Zone",
    "LAB1": "CSE Dept",
    "LAB2": "CSE Dept",
    "LIBRARY": "Main Campus",
    "CAFETERIA": "Main Campus",
}

_DEFAULT_UNITS: dict[str, str] = {
    "energy": "W",
    "water": "L/min",
    "waste": "%",
    "transport": "vehicles",
}


def resolve_zone(device_id: Any) -> str:
    """Return the zone for *device_id*, or ``Unknown Zone``. Never raises."""
    if not isinstance(device_id, str):
        return UNKNOWN_ZONE
    return ZONE_MAP.get(device_id, UNKNOWN_ZONE)


@dataclass(slots=True)
class SensorSpec:
    """Baseline for one simulated sensor."""
    id: str
    category: str           # energy | water | waste | transport
    zone: str
    base_value: float
    unit: str
    voltage: float | None = None
    current: float | None = None
    occupancy: int | None = None

    @property
    def is_energy(self) -> bool:
        return self.category == Category.ENERGY.value


def build_sensor_index(sensors_cfg: dict[str, Any]) -> dict[str, SensorSpec]:
    """Parse the ``sensors`` list and return specs keyed by sensor id.

    Entries with an unknown category are skipped with a warning.
    """
    index: dict[str, SensorSpec] = {}
    for entry in sensors_cfg.get("sensors", []) or []:
        category = str(entry.get("category", "")).lower()
        if category not in Category.values():
            log.warning("Sensor %s has unknown category '%s' — skipped",
                        entry.get("id", "?"), category)
            continue
        spec = SensorSpec(
            id=str(entry["id"]),
            category=category,
            zone=str(entry.get("zone", UNKNOWN_ZONE)),
            base_value=float(entry.get("base_value", 0.0)),
            unit=str(entry.get("unit", _DEFAULT_UNITS[category])),
        )
        if spec.is_energy:
            spec.voltage = float(entry.get("voltage", 230.0))
            spec.current = float(entry.get("current", spec.base_value / spec.voltage))
            spec.occupancy = int(entry.get("occupancy", 1))
        index[spec.id] = spec
    log.info("Sensor index built: %d sensors", len(index))
    return index

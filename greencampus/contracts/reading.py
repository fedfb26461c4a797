"""Моделі живих показників: сирі дані пристроїв і все, що з них обчислюється."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any


def iso_utc(dt: datetime) -> str:
    """Format an aware datetime as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


@dataclass(frozen=True, slots=True)
class DeviceReading:
    """One sample from a metering device (ESP32 + PZEM-004T + DHT11 + PIR)."""

    device_id: str
    timestamp: int          # Unix seconds
    power: float            # W, instantaneous
    voltage: float | None = None
    current: float | None = None
    energy: float | None = None       # kWh, cumulative
    temperature: float | None = None  # °C
    humidity: float | None = None     # %
    occupancy: int | None = None      # 0 = empty, 1 = occupied

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> DeviceReading:
        """Build a reading from the camelCase wire payload.

        Presence of ``deviceId``/``timestamp``/``power`` is checked by the
        ingest boundary, not here.
        """
        occupancy = payload.get("occupancy")
        return cls(
            device_id=str(payload["deviceId"]),
            timestamp=int(payload["timestamp"]),
            power=float(payload["power"]),
            voltage=_opt_float(payload.get("voltage")),
            current=_opt_float(payload.get("current")),
            energy=_opt_float(payload.get("energy")),
            temperature=_opt_float(payload.get("temperature")),
            humidity=_opt_float(payload.get("humidity")),
            occupancy=None if occupancy is None else int(occupancy),
        )

    @property
    def observed_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=UTC)


# Wire names for the optional NormalizedReading fields.
_OPTIONAL_WIRE_FIELDS: dict[str, str] = {
    "voltage": "voltage",
    "current": "current",
    "power": "power",
    "energy": "energy",
    "occupancy": "occupancy",
    "temperature": "temperature",
    "humidity": "humidity",
    "carbon_rate": "carbonRate",
}


@dataclass(slots=True)
class NormalizedReading:
    """The engine's view of one device after processing its latest sample."""

    sensor_id: str
    timestamp: datetime
    value: float            # power in W for energy sensors
    unit: str
    category: str           # energy | water | waste | transport
    zone: str
    status: str             # normal | high | low | offline

    voltage: float | None = None
    current: float | None = None
    power: float | None = None
    energy: float | None = None
    occupancy: int | None = None
    temperature: float | None = None
    humidity: float | None = None
    carbon_rate: float | None = None  # kg CO₂ per hour

    def to_dict(self) -> dict[str, Any]:
        """camelCase representation used in HTTP responses.

        Optional fields that were never set are omitted.
        """
        out: dict[str, Any] = {
            "sensorId": self.sensor_id,
            "timestamp": iso_utc(self.timestamp),
            "value": self.value,
            "unit": self.unit,
            "category": self.category,
            "zone": self.zone,
            "status": self.status,
        }
        for attr, wire in _OPTIONAL_WIRE_FIELDS.items():
            v = getattr(self, attr)
            if v is not None:
                out[wire] = v
        return out

    def to_record(self) -> dict[str, Any]:
        """Flat snake_case row for the ``sensor_readings`` store."""
        return {
            "device_id": self.sensor_id,
            "timestamp": iso_utc(self.timestamp),
            "voltage": self.voltage,
            "current": self.current,
            "power": self.power,
            "energy": self.energy,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "occupancy": self.occupancy,
            "carbon_rate": self.carbon_rate,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_record(), ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True, slots=True)
class EnergyHistoryEntry:
    timestamp: datetime
    energy: float


@dataclass(slots=True)
class WastageAlert:
    """Оповіщення про перевитрату: пристрій споживає енергію в порожньому приміщенні."""

    sensor_id: str
    zone: str
    power_w: float
    duration_min: float
    occupancy: int
    estimated_waste_kwh: float
    carbon_wasted_kg: float
    cost_wasted_inr: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class EnergyCalculations:
    """Display bundle for one power value over a duration."""

    power_w: float
    power_kw: float
    energy_kwh: float
    carbon_kg: float
    carbon_rate_kg_per_hr: float
    cost_inr: float
    duration_hours: float


@dataclass(slots=True)
class AggregatedData:
    """Roll-up of all devices in one category.

    ``trend`` is a smooth placeholder series derived from ``current``, not
    from recorded history.
    """

    category: str
    current: float
    average: float
    peak: float
    trend: list[float]
    last_updated: datetime

    # energy category only
    energy_consumed: float | None = None   # kWh over 24 h
    carbon_emitted: float | None = None    # kg CO₂
    cost: float | None = None              # INR
    wastage_detected: bool | None = None
    green_score: int | None = None         # 0..100

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["last_updated"] = iso_utc(self.last_updated)
        return {k: v for k, v in out.items() if v is not None}


@dataclass(frozen=True, slots=True)
class PowerSnapshot:
    total_power_w: float
    total_power_kw: float
    carbon_rate_kg_per_hr: float


@dataclass(frozen=True, slots=True)
class EnergyProjection:
    energy_kwh: float
    carbon_kg: float
    cost_inr: float


@dataclass(slots=True)
class CampusTotals:
    """Campus-wide power now plus daily and monthly projections."""

    real_time: PowerSnapshot
    daily: EnergyProjection
    monthly: EnergyProjection
    wastage_alerts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""Shared fixtures for greencampus tests."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from greencampus.contracts.dataset import CSVRow
from greencampus.contracts.reading import DeviceReading
from greencampus.sensors.engine import SensorEngine
from greencampus.sensors.ticker import ManualTicker
from greencampus.shared.config_loader import load_yaml

SENSORS_YAML = Path(__file__).resolve().parents[1] / "config" / "sensors.yaml"

BASE_TS = 1_771_581_600  # 2026-02-20T10:00:00Z

# ── Helper: DeviceReading with sensible defaults ─────────────────────────


def make_reading(
    *,
    device_id: str = "ROOM1",
    timestamp: int = BASE_TS,
    power: float = 1000.0,
    voltage: float | None = 230.0,
    current: float | None = 4.35,
    energy: float | None = 1.5,
    temperature: float | None = 26.0,
    humidity: float | None = 55.0,
    occupancy: int | None = 1,
) -> DeviceReading:
    return DeviceReading(
        device_id=device_id,
        timestamp=timestamp,
        power=power,
        voltage=voltage,
        current=current,
        energy=energy,
        temperature=temperature,
        humidity=humidity,
        occupancy=occupancy,
    )


def make_packet(**overrides) -> dict:
    """camelCase ingest payload as sent by a metering device."""
    packet = {
        "deviceId": "ROOM1",
        "timestamp": BASE_TS,
        "voltage": 230.0,
        "current": 4.35,
        "power": 1000.0,
        "energy": 1.5,
        "temperature": 26.0,
        "humidity": 55.0,
        "occupancy": 1,
    }
    packet.update(overrides)
    return packet


# ── Helper: CSVRow / CSV text ────────────────────────────────────────────


def make_row(
    *,
    line_no: int = 2,
    timestamp: str = "2026-02-20T10:00:00Z",
    zone: str = "Block A",
    category: str = "energy",
    value: float | None = 1000.0,
    source: str = "meter",
    **optional: float | None,
) -> CSVRow:
    return CSVRow(
        line_no=line_no,
        timestamp=timestamp,
        zone=zone,
        category=category,
        value=value,
        source=source,
        **optional,
    )


DEFAULT_HEADER = ["timestamp", "zone", "category", "value", "source"]


def csv_text(rows: list[list[object]], header: list[str] | None = None) -> str:
    """Join *rows* under *header* into upload text (no quoting)."""
    lines = [",".join(header or DEFAULT_HEADER)]
    lines.extend(",".join(str(c) for c in row) for row in rows)
    return "\n".join(lines) + "\n"


def ts_offset(base: str = "2026-02-20T10:00:00Z", minutes: int = 0) -> str:
    """Return an ISO-8601 timestamp offset from *base* by *minutes*."""
    dt = datetime.fromisoformat(base.replace("Z", "+00:00"))
    dt += timedelta(minutes=minutes)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Clock ────────────────────────────────────────────────────────────────


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 2, 20, 10, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ── Engine fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def engine(ticker: ManualTicker, clock: FixedClock) -> SensorEngine:
    """Engine with no configured sensors, manual ticks and a seeded RNG."""
    return SensorEngine(ticker=ticker, rng=random.Random(7), clock=clock)


@pytest.fixture
def sensors_cfg() -> dict:
    return load_yaml(SENSORS_YAML)


@pytest.fixture
def fleet_engine(sensors_cfg: dict, ticker: ManualTicker, clock: FixedClock) -> SensorEngine:
    """Engine loaded with the nine sensors from config/sensors.yaml."""
    return SensorEngine.from_config(
        sensors_cfg, ticker=ticker, rng=random.Random(7), clock=clock
    )

"""Ingest boundary: validate device packets, run them through the engine, persist.

The HTTP layer maps ``handle_packet`` return values straight onto a
response. A failed persistence write is logged and does not turn a
processed reading into an error: devices must keep sending.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from greencampus.contracts.enums import Status
from greencampus.contracts.errors import PacketError, ReadingError
from greencampus.contracts.reading import DeviceReading, NormalizedReading
from greencampus.sensors.engine import SensorEngine

log = logging.getLogger(__name__)

REQUIRED_PACKET_FIELDS: tuple[str, ...] = ("deviceId", "timestamp", "power")


class ReadingSink(Protocol):
    """Persistence target; implementations signal write failures with OSError."""

    def write(self, reading: NormalizedReading) -> None: ...


class JsonlReadingSink:
    """Append-only JSONL store of processed readings (one record per line)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.written = 0

    def write(self, reading: NormalizedReading) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(reading.to_json() + "\n")
        self.written += 1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_packet(payload: Any) -> DeviceReading:
    """Validate a decoded JSON packet and build a DeviceReading.

    ``deviceId`` and ``timestamp`` must be truthy, ``power`` must be present.

    Raises:
        PacketError: On any structural problem; nothing is processed.
    """
    if not isinstance(payload, dict):
        raise PacketError("Invalid packet structure: expected a JSON object")

    missing = [
        name for name in REQUIRED_PACKET_FIELDS
        if (payload.get(name) is None if name == "power" else not payload.get(name))
    ]
    if missing:
        raise PacketError(
            f"Invalid packet structure: missing {', '.join(missing)}", missing=missing
        )

    power = payload["power"]
    if not _is_number(power) or not math.isfinite(power):
        raise PacketError(f"Invalid packet structure: power must be a finite number, got {power!r}")
    if not _is_number(payload["timestamp"]):
        raise PacketError("Invalid packet structure: timestamp must be Unix seconds")
    try:
        datetime.fromtimestamp(payload["timestamp"], tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise PacketError(
            f"Invalid packet structure: timestamp out of range, got {payload['timestamp']!r}"
        ) from exc

    occupancy = payload.get("occupancy")
    if occupancy is not None and occupancy not in (0, 1):
        raise PacketError(f"Invalid packet structure: occupancy must be 0 or 1, got {occupancy!r}")

    try:
        return DeviceReading.from_dict(payload)
    except (TypeError, ValueError) as exc:
        raise PacketError(f"Invalid packet structure: {exc}") from exc


def handle_packet(
    engine: SensorEngine,
    payload: Any,
    sink: ReadingSink | None = None,
) -> tuple[int, dict[str, Any]]:
    """Process one ingest request; return ``(http_status, body)``."""
    try:
        reading = parse_packet(payload)
    except PacketError as exc:
        log.warning("Rejected packet: %s", exc)
        return 400, {"success": False, "message": str(exc)}

    try:
        normalized = engine.ingest(reading)
    except ReadingError as exc:
        log.warning("Rejected reading: %s", exc)
        return 400, {"success": False, "message": str(exc)}

    if sink is not None:
        try:
            sink.write(normalized)
        except OSError as exc:
            log.error("Failed to persist reading from %s: %s", reading.device_id, exc)

    log.info("Processed reading from %s - Power: %sW", reading.device_id, reading.power)
    return 200, {"success": True, "reading": normalized.to_dict()}


def campus_snapshot(engine: SensorEngine) -> dict[str, Any]:
    """Body of the read endpoint: campus totals plus every sensor's status."""
    return {
        "success": True,
        "campusMetrics": engine.campus_totals().to_dict(),
        "allSensors": engine.sensors_status(),
    }


def _record_timestamp(ts: Any) -> datetime:
    try:
        if isinstance(ts, (int, float)) and not isinstance(ts, bool):
            return datetime.fromtimestamp(ts, tz=UTC)
        if isinstance(ts, str) and ts:
            parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    except (OverflowError, OSError, ValueError):
        log.warning("Unparseable timestamp %r in external record, using current time", ts)
    return datetime.now(tz=UTC)


def normalize_external_record(raw: dict[str, Any], category: str) -> NormalizedReading:
    """Map a third-party feed record (REST/MQTT bridge) onto a NormalizedReading.

    Accepts ``id``/``sensor_id``, ``value``/``reading``, ``zone``/``location``
    and an epoch-seconds or ISO-8601 ``timestamp``; missing pieces fall back to
    neutral defaults. A missing or unparseable timestamp becomes the current
    time.
    """
    timestamp = _record_timestamp(raw.get("timestamp"))

    raw_value = raw.get("value", raw.get("reading", 0))
    try:
        value = float(raw_value or 0)
    except (TypeError, ValueError):
        value = 0.0

    return NormalizedReading(
        sensor_id=str(raw.get("id") or raw.get("sensor_id") or "unknown"),
        timestamp=timestamp,
        value=value,
        unit=str(raw.get("unit") or "units"),
        category=category,
        zone=str(raw.get("zone") or raw.get("location") or "Unknown"),
        status=str(raw.get("status") or Status.NORMAL.value),
    )


def load_packets(path: str | Path) -> list[Any]:
    """Read a JSONL file of packets; blank lines are skipped."""
    packets: list[Any] = []
    with open(path, encoding="utf-8") as fh:
        for line in fh:
            if line.strip():
                packets.append(json.loads(line))
    log.info("Loaded %d packets from %s", len(packets), path)
    return packets

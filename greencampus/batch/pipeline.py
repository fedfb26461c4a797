"""Пакетний конвеєр: CSV -> валідований датасет -> статистика та лідерборд."""

from __future__ import annotations

import logging
import math
import random
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

from greencampus.batch import scoring
from greencampus.batch.parser import parse_csv, parse_timestamp, validate_row
from greencampus.contracts.dataset import (
    OPTIONAL_NUMERIC_COLUMNS,
    REQUIRED_COLUMNS,
    CSVRow,
    Leaderboard,
    ProcessedResult,
    RowError,
)
from greencampus.contracts.enums import Category
from greencampus.contracts.errors import ReadingError
from greencampus.contracts.reading import DeviceReading
from greencampus.sensors.engine import NOMINAL_VOLTAGE, SensorEngine
from greencampus.shared.events import EventChannel

log = logging.getLogger(__name__)

CSV_DEVICE_PREFIX = "CSV_"

# Fallbacks for cells missing (or zero) in an uploaded energy row; occupancy
# falls back only when the column is absent, an explicit 0 is kept.
DEFAULT_ENERGY_KWH = 0.0
DEFAULT_TEMPERATURE_C = 25.0
DEFAULT_HUMIDITY_PCT = 50.0
DEFAULT_OCCUPANCY = 1

_WHITESPACE = re.compile(r"\s+")


def csv_device_id(zone: str) -> str:
    return CSV_DEVICE_PREFIX + _WHITESPACE.sub("_", zone)


def row_to_device_reading(row: CSVRow, observed_at: datetime) -> DeviceReading:
    """Синтезує показник пристрою, який відповідає енергетичному рядку."""
    power = float(row.power or 0.0)
    return DeviceReading(
        device_id=csv_device_id(row.zone),
        timestamp=math.floor(observed_at.timestamp()),
        power=power,
        voltage=row.voltage or NOMINAL_VOLTAGE,
        current=row.current or power / NOMINAL_VOLTAGE,
        energy=row.energy or DEFAULT_ENERGY_KWH,
        temperature=row.temperature or DEFAULT_TEMPERATURE_C,
        humidity=row.humidity or DEFAULT_HUMIDITY_PCT,
        occupancy=int(row.occupancy) if row.occupancy is not None else DEFAULT_OCCUPANCY,
    )


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


class BatchPipeline:
    """Holds the current uploaded dataset.

    Each ``ingest`` replaces the dataset wholesale; ``clear`` empties it.
    When an engine is given, energy rows carrying a ``power`` value are
    also pushed into it as live readings.
    """

    def __init__(
        self,
        engine: SensorEngine | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.engine = engine
        self._rng = rng or random.Random()
        self._rows: list[CSVRow] = []
        self._channel: EventChannel[list[CSVRow]] = EventChannel("dataset")

    # ── Lifecycle ────────────────────────────────────────────────────────

    def ingest(self, text: str) -> ProcessedResult:
        """Parse, validate and load an uploaded CSV payload.

        Raises:
            CSVStructureError: Header problems or no data rows. The current
                dataset is left untouched.
        """
        rows = parse_csv(text)
        result = ProcessedResult(total_rows=len(rows))

        accepted: list[CSVRow] = []
        zones: dict[str, None] = {}
        start: datetime | None = None
        end: datetime | None = None

        for row in rows:
            outcome = validate_row(row)
            if isinstance(outcome, RowError):
                result.errors.append(outcome.message)
                continue

            observed_at = parse_timestamp(outcome.timestamp)
            if self.engine is not None and self._is_routable(outcome):
                try:
                    self.engine.ingest(row_to_device_reading(outcome, observed_at))
                except ReadingError as exc:
                    result.errors.append(RowError(outcome.line_no, str(exc)).message)
                    continue

            accepted.append(outcome)
            key = outcome.category_key
            if key in result.categories:
                result.categories[key] += 1
            zones.setdefault(outcome.zone, None)
            start = observed_at if start is None else min(start, observed_at)
            end = observed_at if end is None else max(end, observed_at)

        result.valid_rows = len(accepted)
        result.invalid_rows = result.total_rows - result.valid_rows
        result.zones = list(zones)
        if start is not None and end is not None:
            result.date_range = (start, end)

        self._rows = accepted
        log.info(
            "Ingested dataset: %d rows, %d valid, %d invalid",
            result.total_rows,
            result.valid_rows,
            result.invalid_rows,
        )
        if result.errors:
            log.debug("Row errors: %s", result.errors)
        self._channel.publish(list(accepted))
        return result

    def clear(self) -> None:
        self._rows = []
        log.info("Dataset cleared")
        self._channel.publish([])

    def subscribe(self, callback: Callable[[list[CSVRow]], None]) -> Callable[[], None]:
        """Notify *callback* with the new row list after every ingest / clear."""
        return self._channel.subscribe(callback)

    @staticmethod
    def _is_routable(row: CSVRow) -> bool:
        return row.category_key == Category.ENERGY.value and row.power is not None

    # ── Queries ──────────────────────────────────────────────────────────

    def rows(self) -> list[CSVRow]:
        return list(self._rows)

    def rows_by_category(self, category: str) -> list[CSVRow]:
        key = category.strip().lower()
        return [r for r in self._rows if r.category_key == key]

    def rows_by_zone(self, zone: str) -> list[CSVRow]:
        return [r for r in self._rows if r.zone == zone]

    def statistics(self) -> dict[str, Any]:
        return scoring.dataset_statistics(self._rows)

    def leaderboard(self) -> Leaderboard:
        return scoring.build_leaderboard(self._rows, self._rng)

    def green_index(self) -> int:
        return scoring.green_index(self.leaderboard())

    def category_scores(self) -> dict[str, int] | None:
        return scoring.category_scores(self.leaderboard())

    def export_csv(self) -> str:
        """Render the dataset back to CSV text ("" when empty).

        Optional columns are written only when some row carries them.
        """
        if not self._rows:
            return ""
        columns = REQUIRED_COLUMNS + [
            col for col in OPTIONAL_NUMERIC_COLUMNS
            if any(r.cell(col) is not None for r in self._rows)
        ]
        lines = [",".join(columns)]
        for row in self._rows:
            lines.append(",".join(_format_cell(row.cell(col)) for col in columns))
        return "\n".join(lines) + "\n"

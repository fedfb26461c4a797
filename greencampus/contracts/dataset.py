"""Batch-upload data-classes: parsed CSV rows, row errors and leaderboard entries."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

# Column order for re-export; matches the upload template.
REQUIRED_COLUMNS: list[str] = ["timestamp", "zone", "category", "value", "source"]
OPTIONAL_NUMERIC_COLUMNS: list[str] = [
    "voltage",
    "current",
    "power",
    "energy",
    "temperature",
    "humidity",
    "occupancy",
]
NUMERIC_COLUMNS: frozenset[str] = frozenset(["value", *OPTIONAL_NUMERIC_COLUMNS])


@dataclass(slots=True)
class CSVRow:
    """One parsed line of an uploaded dataset.

    Optional numeric fields are ``None`` when the column is absent from the
    header and ``0.0`` when the column exists but the cell did not parse.
    """

    line_no: int            # 1-based line in the uploaded text (header = 1)
    timestamp: str
    zone: str
    category: str
    value: float | None     # None only for a blank / absent cell
    source: str

    voltage: float | None = None
    current: float | None = None
    power: float | None = None
    energy: float | None = None
    temperature: float | None = None
    humidity: float | None = None
    occupancy: float | None = None

    @property
    def category_key(self) -> str:
        return self.category.strip().lower()

    def cell(self, column: str) -> Any:
        return getattr(self, column)


@dataclass(frozen=True, slots=True)
class RowError:
    """A row rejected during validation."""

    line_no: int
    reason: str

    @property
    def message(self) -> str:
        return f"Row {self.line_no}: {self.reason}"


@dataclass(slots=True)
class ProcessedResult:
    """Summary returned by ``BatchPipeline.ingest``."""

    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    categories: dict[str, int] = field(
        default_factory=lambda: {"energy": 0, "water": 0, "waste": 0, "transport": 0}
    )
    zones: list[str] = field(default_factory=list)
    date_range: tuple[datetime, datetime] | None = None
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        if self.date_range is not None:
            start, end = self.date_range
            out["date_range"] = {"start": start.isoformat(), "end": end.isoformat()}
        return out


@dataclass(frozen=True, slots=True)
class ZoneScore:
    """Per-zone sub-scores derived from the uploaded dataset."""

    zone: str
    score: int
    energy_score: int
    water_score: int
    waste_score: int
    transport_score: int
    data_points: int


@dataclass(slots=True)
class LeaderboardEntry:
    rank: int
    name: str
    score: int
    change: float               # synthetic, not derived from history
    badge: str | None
    trend: str                  # up | down
    category_scores: dict[str, int]


@dataclass(slots=True)
class Leaderboard:
    departments: list[LeaderboardEntry] = field(default_factory=list)
    hostels: list[LeaderboardEntry] = field(default_factory=list)
    blocks: list[LeaderboardEntry] = field(default_factory=list)

    def all_entries(self) -> list[LeaderboardEntry]:
        return [*self.departments, *self.hostels, *self.blocks]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

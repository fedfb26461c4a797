"""Data contracts — canonical data structures shared by all modules."""

from greencampus.contracts.dataset import (
    CSVRow,
    Leaderboard,
    LeaderboardEntry,
    ProcessedResult,
    RowError,
    ZoneScore,
)
from greencampus.contracts.enums import UNKNOWN_ZONE, Category, Status
from greencampus.contracts.errors import (
    CSVStructureError,
    GreenCampusError,
    PacketError,
    ReadingError,
)
from greencampus.contracts.reading import (
    AggregatedData,
    CampusTotals,
    DeviceReading,
    EnergyCalculations,
    EnergyHistoryEntry,
    NormalizedReading,
    WastageAlert,
)

__all__ = [
    "UNKNOWN_ZONE",
    "AggregatedData",
    "CSVRow",
    "CSVStructureError",
    "CampusTotals",
    "Category",
    "DeviceReading",
    "EnergyCalculations",
    "EnergyHistoryEntry",
    "GreenCampusError",
    "Leaderboard",
    "LeaderboardEntry",
    "NormalizedReading",
    "PacketError",
    "ProcessedResult",
    "ReadingError",
    "RowError",
    "Status",
    "WastageAlert",
    "ZoneScore",
]

"""Canonical enumerations shared by the sensor engine and the batch pipeline."""

from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    ENERGY = "energy"
    WATER = "water"
    WASTE = "waste"
    TRANSPORT = "transport"

    @classmethod
    def values(cls) -> list[str]:
        return [c.value for c in cls]


class Status(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"
    OFFLINE = "offline"


UNKNOWN_ZONE = "Unknown Zone"

"""Exception hierarchy.

Structural errors (a packet without a device id, a CSV header without a
``zone`` column) abort the whole operation. Row-level problems are not
exceptions: they are collected as ``RowError`` values.
"""

from __future__ import annotations


class GreenCampusError(Exception):
    """Base class for all errors raised by this package."""


class ReadingError(GreenCampusError, ValueError):
    """A device reading carries a value the engine cannot process."""


class PacketError(GreenCampusError, ValueError):
    """An ingest payload is structurally invalid (HTTP 400 equivalent)."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class CSVStructureError(GreenCampusError, ValueError):
    """The uploaded CSV cannot be parsed at all."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []

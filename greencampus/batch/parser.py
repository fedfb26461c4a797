"""CSV parser: uploaded text → CSVRow list, and per-row validation.

Format
──────
  * first non-blank line is the header; tokens are trimmed and lower-cased
  * ``timestamp, zone, category, value, source`` are required
  * ``voltage, current, power, energy, temperature, humidity, occupancy``
    are optional numeric columns; any other column is ignored
  * cells are split on ``,`` positionally — there is no quoting, so a
    value containing a comma misaligns the row

Numeric cells go through a lenient float parse that keeps the leading
number (``"231.4V"`` → 231.4) and falls back to 0.0. This coercion is
silent: a garbled number does not reject the row. A blank ``value`` cell
is treated as missing.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime

from greencampus.contracts.dataset import (
    NUMERIC_COLUMNS,
    OPTIONAL_NUMERIC_COLUMNS,
    REQUIRED_COLUMNS,
    CSVRow,
    RowError,
)
from greencampus.contracts.errors import CSVStructureError

log = logging.getLogger(__name__)

_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_TEXT_COLUMNS = frozenset(["timestamp", "zone", "category", "source"])


def coerce_float(cell: str | None) -> float:
    """Parse the leading number of *cell*; 0.0 when there is none."""
    if not cell:
        return 0.0
    m = _FLOAT_PREFIX.match(cell.strip())
    if not m:
        return 0.0
    return float(m.group(0))


def parse_timestamp(raw: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Returns None when *raw* is not a valid date.
    """
    try:
        dt = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def parse_header(line: str) -> list[str]:
    """Normalise header tokens and check the required columns.

    Raises:
        CSVStructureError: Listing every missing required column.
    """
    header = [h.strip().lower() for h in line.split(",")]
    missing = [col for col in REQUIRED_COLUMNS if col not in header]
    if missing:
        raise CSVStructureError(
            f"Missing required columns: {', '.join(missing)}", missing=missing
        )
    return header


def _parse_row(line_no: int, line: str, header: list[str]) -> CSVRow:
    cells = [v.strip() for v in line.split(",")]
    text: dict[str, str] = {}
    numbers: dict[str, float | None] = {}

    for idx, column in enumerate(header):
        cell = cells[idx] if idx < len(cells) else ""
        if column == "value":
            numbers["value"] = coerce_float(cell) if cell else None
        elif column in NUMERIC_COLUMNS:
            numbers[column] = coerce_float(cell)
        elif column in _TEXT_COLUMNS:
            text[column] = cell

    return CSVRow(
        line_no=line_no,
        timestamp=text.get("timestamp", ""),
        zone=text.get("zone", ""),
        category=text.get("category", ""),
        value=numbers.get("value"),
        source=text.get("source", ""),
        **{column: numbers.get(column) for column in OPTIONAL_NUMERIC_COLUMNS},
    )


def parse_csv(text: str) -> list[CSVRow]:
    """Split an uploaded CSV payload into rows.

    Blank lines are skipped but still counted for ``line_no``.

    Raises:
        CSVStructureError: No data rows, or required header columns missing.
            Raised before any row is parsed.
    """
    lines = text.splitlines()
    numbered = [(no, line) for no, line in enumerate(lines, 1) if line.strip()]
    if len(numbered) < 2:
        raise CSVStructureError("CSV file must have at least a header row and one data row")

    _header_no, header_line = numbered[0]
    header = parse_header(header_line)

    rows = [_parse_row(no, line.strip(), header) for no, line in numbered[1:]]
    log.debug("Parsed %d rows (%d columns)", len(rows), len(header))
    return rows


def validate_row(row: CSVRow) -> CSVRow | RowError:
    """Check one parsed row.

    Returns:
        CSVRow — the row itself when valid
        RowError — missing required field or unparseable timestamp
    """
    if not row.timestamp or not row.zone or not row.category or row.value is None:
        return RowError(row.line_no, "Missing required fields")
    if parse_timestamp(row.timestamp) is None:
        return RowError(row.line_no, "Invalid timestamp format")
    return row

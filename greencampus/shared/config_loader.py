"""Завантаження YAML конфігурацій."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML file and return its top-level mapping.

    Args:
        path: Path to the file.

    Returns:
        File contents as a dict (empty dict for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    log.debug("Loaded config %s (%d top-level keys)", p.name, len(data or {}))
    return data or {}


def simulation_settings(cfg: dict[str, Any]) -> dict[str, Any]:
    """Повертає секцію ``simulation`` із заповненими значеннями за замовчуванням."""
    sim = dict(cfg.get("simulation") or {})
    sim.setdefault("interval_sec", 5.0)
    sim.setdefault("seed", 42)
    sim.setdefault("track_unoccupied_duration", False)
    return sim

"""Derived-metric formulas for power readings.

Formulas
────────
  Energy       E(kWh)      = P(W) × t(h) / 1000
  Carbon       CO₂(kg)     = E(kWh) × 0.82          (India grid factor)
  Carbon rate  CO₂(kg/h)   = P(kW) × 0.82
  Cost         INR         = E(kWh) × 8.50
  Wastage      occupancy == 0  AND  P > 150 W  AND  duration > 10 min
  Green score  100 − E_used / E_max_expected × 100, clamped to [0, 100]

The metric functions are pure and never round; rounding is a
presentation concern applied by callers (see ``energy_calculations`` and
``round_half_up``). Negative inputs are not rejected.
"""

from __future__ import annotations

import math

from greencampus.contracts.reading import EnergyCalculations

EMISSION_FACTOR_KG_PER_KWH = 0.82
ELECTRICITY_RATE_INR = 8.50
WATER_RATE_INR_PER_L = 0.24
WASTE_DISPOSAL_RATE_INR_PER_KG = 4.5
FUEL_RATE_INR_PER_L = 90.0

WASTAGE_THRESHOLD_W = 150.0
WASTAGE_DURATION_MIN = 10.0


def energy_kwh(power_w: float, time_hours: float) -> float:
    return power_w * time_hours / 1000


def carbon_kg(energy: float) -> float:
    return energy * EMISSION_FACTOR_KG_PER_KWH


def carbon_rate(power_kw: float) -> float:
    """Instantaneous emission rate (kg CO₂/h) implied by the current draw."""
    return power_kw * EMISSION_FACTOR_KG_PER_KWH


def cost_inr(energy: float) -> float:
    return energy * ELECTRICITY_RATE_INR


def is_wastage(occupancy: int | None, power_w: float, duration_min: float) -> bool:
    """True when an empty room has drawn more than 150 W for over 10 minutes."""
    return (
        occupancy == 0
        and power_w > WASTAGE_THRESHOLD_W
        and duration_min > WASTAGE_DURATION_MIN
    )


def green_score(energy_used: float, max_expected: float) -> float:
    if max_expected == 0:
        return 100.0
    score = 100 - (energy_used / max_expected) * 100
    return max(0.0, min(100.0, score))


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(x + 0.5)


def energy_calculations(power_w: float, duration_hours: float = 1.0) -> EnergyCalculations:
    """Bundle every energy metric for *power_w* held over *duration_hours*."""
    power_kw = power_w / 1000
    energy = energy_kwh(power_w, duration_hours)
    return EnergyCalculations(
        power_w=power_w,
        power_kw=power_kw,
        energy_kwh=round(energy, 3),
        carbon_kg=round(carbon_kg(energy), 3),
        carbon_rate_kg_per_hr=round(carbon_rate(power_kw), 3),
        cost_inr=round(cost_inr(energy), 2),
        duration_hours=duration_hours,
    )

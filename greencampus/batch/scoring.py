"""Scoring engine — dataset statistics and the zone leaderboard.

Zone sub-scores (0..100, clamped)
─────────────────────────────────
  energy      100 − avg / 200
  water       100 − avg / 150
  waste       100 − avg / 100
  transport   avg × 5                (more sustainable trips score higher)

  A category with no rows in a zone has avg = 0.

Overall score
─────────────
  0.30·energy + 0.25·water + 0.25·waste + 0.20·transport, rounded and
  clamped to [0, 100]. Zones are sorted by it, highest first.

Buckets
───────
  departments   zone name contains Dept | CSE | Lab | Library
  hostels       zone name contains Hostel | Quarters
  blocks        zone name contains Block | Campus

  Buckets are matched independently; a zone matching none of them is
  left out of the leaderboard.

This model is separate from the live engine's baseline category score and
the two give different numbers for the same category.
"""

from __future__ import annotations

import logging
import random as _random_mod
from typing import Any

import pandas as pd

from greencampus.contracts.dataset import CSVRow, Leaderboard, LeaderboardEntry, ZoneScore
from greencampus.contracts.enums import Category
from greencampus.sensors.formulas import round_half_up

log = logging.getLogger(__name__)

CATEGORIES: list[str] = Category.values()

CATEGORY_WEIGHTS: dict[str, float] = {
    "energy": 0.30,
    "water": 0.25,
    "waste": 0.25,
    "transport": 0.20,
}

INVERSE_DIVISORS: dict[str, float] = {
    "energy": 200.0,
    "water": 150.0,
    "waste": 100.0,
}
TRANSPORT_MULTIPLIER = 5.0

BUCKET_PATTERNS: dict[str, tuple[str, ...]] = {
    "departments": ("Dept", "CSE", "Lab", "Library"),
    "hostels": ("Hostel", "Quarters"),
    "blocks": ("Block", "Campus"),
}

DEFAULT_GREEN_INDEX = 73
MOST_IMPROVED = "Most Improved"
TREND_UP_ABOVE = 70


def _clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def rows_frame(rows: list[CSVRow]) -> pd.DataFrame:
    """zone / category (lower-cased) / value frame of accepted rows."""
    return pd.DataFrame(
        {
            "zone": [r.zone for r in rows],
            "category": [r.category_key for r in rows],
            "value": [float(r.value or 0.0) for r in rows],
        },
        columns=["zone", "category", "value"],
    )


def category_sub_score(category: str, average: float) -> float:
    """Unrounded 0..100 score for one category average."""
    if category == Category.TRANSPORT.value:
        return _clamp(average * TRANSPORT_MULTIPLIER)
    return _clamp(100 - average / INVERSE_DIVISORS[category])


def overall_score(sub_scores: dict[str, float]) -> int:
    weighted = sum(sub_scores[c] * w for c, w in CATEGORY_WEIGHTS.items())
    return int(_clamp(round_half_up(weighted)))


# ═══════════════════════════════════════════════════════════════════════════
#  Statistics
# ═══════════════════════════════════════════════════════════════════════════


def dataset_statistics(rows: list[CSVRow]) -> dict[str, Any]:
    """Counts per category and zone plus the mean value per category."""
    by_category = {c: 0 for c in CATEGORIES}
    averages = {c: 0.0 for c in CATEGORIES}
    by_zone: dict[str, int] = {}

    frame = rows_frame(rows)
    if not frame.empty:
        known = frame[frame["category"].isin(CATEGORIES)]
        grouped = known.groupby("category")["value"]
        for category, count in grouped.size().items():
            by_category[str(category)] = int(count)
        for category, mean in grouped.mean().items():
            averages[str(category)] = round(float(mean), 2)
        for zone, count in frame.groupby("zone", sort=False).size().items():
            by_zone[str(zone)] = int(count)

    return {
        "total": len(rows),
        "by_category": by_category,
        "by_zone": by_zone,
        "average_value_per_category": averages,
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Leaderboard
# ═══════════════════════════════════════════════════════════════════════════


def zone_averages(rows: list[CSVRow]) -> pd.DataFrame:
    """Mean value per zone × category; zones in first-appearance order.

    Zones whose rows all have unknown categories still appear, with zeros.
    """
    frame = rows_frame(rows)
    zones = list(dict.fromkeys(frame["zone"]))
    known = frame[frame["category"].isin(CATEGORIES)]
    if known.empty:
        return pd.DataFrame(0.0, index=zones, columns=CATEGORIES)
    means = (
        known.groupby(["zone", "category"], sort=False)["value"]
        .mean()
        .unstack("category")
    )
    return means.reindex(index=zones, columns=CATEGORIES).fillna(0.0)


def zone_scores(rows: list[CSVRow]) -> list[ZoneScore]:
    """Score every zone and sort by overall score, highest first (stable)."""
    if not rows:
        return []

    averages = zone_averages(rows)
    frame = rows_frame(rows)
    points = (
        frame[frame["category"].isin(CATEGORIES)]
        .groupby("zone", sort=False)
        .size()
    )

    scores: list[ZoneScore] = []
    for zone in averages.index:
        subs = {c: category_sub_score(c, float(averages.at[zone, c])) for c in CATEGORIES}
        scores.append(
            ZoneScore(
                zone=str(zone),
                score=overall_score(subs),
                energy_score=round_half_up(subs["energy"]),
                water_score=round_half_up(subs["water"]),
                waste_score=round_half_up(subs["waste"]),
                transport_score=round_half_up(subs["transport"]),
                data_points=int(points.get(zone, 0)),
            )
        )

    scores.sort(key=lambda z: z.score, reverse=True)
    return scores


def buckets_for(zone: str) -> list[str]:
    """Names of every leaderboard bucket *zone* belongs to."""
    return [
        bucket for bucket, patterns in BUCKET_PATTERNS.items()
        if any(p in zone for p in patterns)
    ]


def _entry(index: int, zone: ZoneScore, rng: _random_mod.Random) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=index + 1,
        name=zone.zone,
        score=zone.score,
        # Placeholder until period-over-period comparison exists.
        change=round_half_up((rng.random() - 0.3) * 5 * 10) / 10,
        badge=MOST_IMPROVED if index == 0 else None,
        trend="up" if zone.score > TREND_UP_ABOVE else "down",
        category_scores={
            "energy": zone.energy_score,
            "water": zone.water_score,
            "waste": zone.waste_score,
            "transport": zone.transport_score,
        },
    )


def build_leaderboard(rows: list[CSVRow], rng: _random_mod.Random) -> Leaderboard:
    """Rank zones and split them into departments / hostels / blocks."""
    scores = zone_scores(rows)
    members: dict[str, list[ZoneScore]] = {bucket: [] for bucket in BUCKET_PATTERNS}
    dropped = 0
    for zone in scores:
        names = buckets_for(zone.zone)
        if not names:
            dropped += 1
        for name in names:
            members[name].append(zone)

    if dropped:
        log.debug("Leaderboard: %d zone(s) match no bucket", dropped)

    return Leaderboard(
        **{
            bucket: [_entry(i, z, rng) for i, z in enumerate(zs)]
            for bucket, zs in members.items()
        }
    )


def green_index(board: Leaderboard) -> int:
    """Mean overall score across every bucket entry (73 with no data)."""
    entries = board.all_entries()
    if not entries:
        return DEFAULT_GREEN_INDEX
    return round_half_up(sum(e.score for e in entries) / len(entries))


def category_scores(board: Leaderboard) -> dict[str, int] | None:
    """Mean sub-score per category across every bucket entry."""
    entries = board.all_entries()
    if not entries:
        return None
    return {
        c: round_half_up(sum(e.category_scores[c] for e in entries) / len(entries))
        for c in CATEGORIES
    }

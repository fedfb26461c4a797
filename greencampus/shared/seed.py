"""Deterministic seed initialisation for reproducible simulation runs."""

from __future__ import annotations

import logging
import random

log = logging.getLogger(__name__)


def init_seed(seed: int) -> random.Random:
    """Seed the global ``random`` module and return a dedicated Random.

    The engine and the leaderboard take the returned instance; seeding the
    global module as well keeps any stray ``random.random()`` call stable.
    """
    random.seed(seed)
    rng = random.Random(seed)
    log.info("Random seed initialised: %d", seed)
    return rng

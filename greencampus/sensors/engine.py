"""Сенсорний рушій: стан пристроїв, похідні метрики, перевитрати та зведення по кампусу."""

from __future__ import annotations

import dataclasses
import logging
import math
import random as _random_mod
import threading
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from greencampus.contracts.enums import Category, Status
from greencampus.contracts.errors import ReadingError
from greencampus.contracts.reading import (
    AggregatedData,
    CampusTotals,
    DeviceReading,
    EnergyCalculations,
    EnergyHistoryEntry,
    EnergyProjection,
    NormalizedReading,
    PowerSnapshot,
    WastageAlert,
    iso_utc,
)
from greencampus.sensors.devices import SensorSpec, build_sensor_index, resolve_zone
from greencampus.sensors.formulas import (
    carbon_kg,
    carbon_rate,
    cost_inr,
    energy_calculations,
    energy_kwh,
    green_score,
    is_wastage,
    round_half_up,
)
from greencampus.sensors.ticker import ThreadTicker, Ticker
from greencampus.shared.config_loader import simulation_settings
from greencampus.shared.events import EventChannel

log = logging.getLogger(__name__)

HISTORY_LIMIT = 100
ALERT_LIMIT = 10

# Unoccupied duration assumed for every reading unless real tracking is on.
ASSUMED_UNOCCUPIED_MIN = 15.0

HIGH_POWER_W = 15000.0
LOW_POWER_W = 100.0
NOMINAL_VOLTAGE = 230.0

JITTER_FRACTION = 0.1          # ±5 %
OCCUPANCY_FLIP_CHANCE = 0.1
OFFLINE_CHANCE = 0.02
TREND_POINTS = 7

BASELINE_SCORES: dict[str, int] = {
    "energy": 68,
    "water": 74,
    "waste": 61,
    "transport": 79,
}


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _finite_or_none(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return value


def classify_status(power_w: float) -> Status:
    """Абсолютні пороги потужності, спільні для ingest і симуляції."""
    if power_w > HIGH_POWER_W:
        return Status.HIGH
    if power_w < LOW_POWER_W:
        return Status.LOW
    return Status.NORMAL


def _check_category(category: str) -> str:
    if category not in Category.values():
        raise ValueError(f"Unknown category '{category}'")
    return category


class SensorEngine:
    """Owns the live device map and answers aggregate queries.

    Collaborators are injected: the *ticker* drives the simulation loop,
    *clock* stamps simulated readings, *rng* drives jitter/occupancy/offline
    draws. A re-entrant lock serialises ingest and simulation ticks;
    subscribers are notified after it is released.
    """

    def __init__(
        self,
        sensors: dict[str, SensorSpec] | None = None,
        *,
        ticker: Ticker | None = None,
        rng: _random_mod.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        interval_sec: float = 5.0,
        track_unoccupied_duration: bool = False,
    ) -> None:
        self.ticker: Ticker = ticker if ticker is not None else ThreadTicker()
        self.rng = rng if rng is not None else _random_mod.Random()
        self.clock = clock if clock is not None else _utcnow
        self.interval_sec = interval_sec
        self.track_unoccupied_duration = track_unoccupied_duration

        self._lock = threading.RLock()
        self._readings: dict[str, NormalizedReading] = {}
        self._history: dict[str, deque[EnergyHistoryEntry]] = {}
        self._alerts: deque[WastageAlert] = deque(maxlen=ALERT_LIMIT)
        self._unoccupied_since: dict[str, datetime] = {}
        self._channel: EventChannel[NormalizedReading] = EventChannel("sensor-readings")

        for spec in (sensors or {}).values():
            self._seed_sensor(spec)

        log.info(
            "Engine init: sensors=%d, interval=%.1fs, tracked_wastage=%s",
            len(self._readings),
            self.interval_sec,
            self.track_unoccupied_duration,
        )

    @classmethod
    def from_config(
        cls,
        cfg: dict[str, Any],
        *,
        ticker: Ticker | None = None,
        rng: _random_mod.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> SensorEngine:
        """Build an engine from a parsed ``sensors.yaml``."""
        sim = simulation_settings(cfg)
        return cls(
            build_sensor_index(cfg),
            ticker=ticker,
            rng=rng if rng is not None else _random_mod.Random(sim["seed"]),
            clock=clock,
            interval_sec=float(sim["interval_sec"]),
            track_unoccupied_duration=bool(sim["track_unoccupied_duration"]),
        )

    def _seed_sensor(self, spec: SensorSpec) -> None:
        reading = NormalizedReading(
            sensor_id=spec.id,
            timestamp=self.clock(),
            value=spec.base_value,
            unit=spec.unit,
            category=spec.category,
            zone=spec.zone,
            status=Status.NORMAL.value,
        )
        if spec.is_energy:
            reading.voltage = spec.voltage
            reading.current = spec.current
            reading.power = spec.base_value
            reading.energy = 0.0
            reading.carbon_rate = carbon_rate(spec.base_value / 1000)
            reading.occupancy = spec.occupancy
        self._readings[spec.id] = reading
        self._history[spec.id] = deque(maxlen=HISTORY_LIMIT)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[NormalizedReading], None]) -> Callable[[], None]:
        """Register *callback* for every processed reading; returns unsubscribe."""
        return self._channel.subscribe(callback)

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(self, reading: DeviceReading) -> NormalizedReading:
        """Process one device reading and store it as the device's latest state.

        Last write wins; timestamps are not compared.

        Raises:
            ReadingError: If ``power`` is not a finite number or the
                timestamp is outside the platform range.
        """
        power = reading.power
        if not math.isfinite(power):
            raise ReadingError(f"Non-finite power for device '{reading.device_id}': {power!r}")

        try:
            observed = reading.observed_at
        except (OverflowError, OSError, ValueError) as exc:
            raise ReadingError(
                f"Timestamp out of range for device '{reading.device_id}': {reading.timestamp!r}"
            ) from exc
        zone = resolve_zone(reading.device_id)

        with self._lock:
            self._check_wastage(reading.device_id, zone, power, reading.occupancy, observed)

            normalized = NormalizedReading(
                sensor_id=reading.device_id,
                timestamp=observed,
                value=power,
                unit="W",
                category=Category.ENERGY.value,
                zone=zone,
                status=classify_status(power).value,
                voltage=_finite_or_none(reading.voltage),
                current=_finite_or_none(reading.current),
                power=power,
                energy=_finite_or_none(reading.energy),
                occupancy=reading.occupancy,
                temperature=_finite_or_none(reading.temperature),
                humidity=_finite_or_none(reading.humidity),
                carbon_rate=round(carbon_rate(power / 1000), 3),
            )
            self._readings[reading.device_id] = normalized
            self._append_history(reading.device_id, observed, normalized.energy or 0.0)

            log.debug(
                "Ingested %s (%s): %.1f W, status=%s",
                normalized.sensor_id,
                zone,
                power,
                normalized.status,
            )
        # Subscribers run outside the lock; they may call back into the engine.
        self._channel.publish(normalized)
        return normalized

    def _append_history(self, sensor_id: str, at: datetime, energy: float) -> None:
        history = self._history.get(sensor_id)
        if history is None:
            history = self._history[sensor_id] = deque(maxlen=HISTORY_LIMIT)
        history.append(EnergyHistoryEntry(timestamp=at, energy=energy))

    # ------------------------------------------------------------------
    # Wastage
    # ------------------------------------------------------------------

    def _unoccupied_minutes(self, sensor_id: str, occupancy: int | None, at: datetime) -> float:
        if not self.track_unoccupied_duration:
            return ASSUMED_UNOCCUPIED_MIN
        if occupancy != 0:
            self._unoccupied_since.pop(sensor_id, None)
            return 0.0
        since = self._unoccupied_since.setdefault(sensor_id, at)
        return max(0.0, (at - since).total_seconds() / 60)

    def _check_wastage(
        self,
        sensor_id: str,
        zone: str,
        power_w: float,
        occupancy: int | None,
        at: datetime,
    ) -> WastageAlert | None:
        duration = self._unoccupied_minutes(sensor_id, occupancy, at)
        if not is_wastage(occupancy, power_w, duration):
            return None

        wasted = energy_kwh(power_w, duration / 60)
        alert = WastageAlert(
            sensor_id=sensor_id,
            zone=zone,
            power_w=power_w,
            duration_min=duration,
            occupancy=0,
            estimated_waste_kwh=round(wasted, 3),
            carbon_wasted_kg=round(carbon_kg(wasted), 3),
            cost_wasted_inr=round(cost_inr(wasted), 2),
        )
        self._alerts.append(alert)
        log.warning(
            "Wastage: %s (%s) drawing %.0f W unoccupied for %.0f min (~%.3f kWh)",
            sensor_id,
            zone,
            power_w,
            duration,
            alert.estimated_waste_kwh,
        )
        return alert

    def wastage_alerts(self) -> list[WastageAlert]:
        """Most recent alerts, oldest first, at most ``ALERT_LIMIT``."""
        with self._lock:
            return list(self._alerts)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    @property
    def simulating(self) -> bool:
        return self.ticker.running

    def start_simulation(self, interval_sec: float | None = None) -> None:
        """Start the periodic simulation; no-op when already running."""
        if self.ticker.running:
            log.debug("Simulation already running — start ignored")
            return
        if interval_sec is not None:
            self.interval_sec = interval_sec
        self.ticker.start(self.interval_sec, self.tick)
        log.info("Simulation started (interval=%.1fs, sensors=%d)",
                 self.interval_sec, len(self._readings))

    def stop_simulation(self) -> None:
        """Stop future ticks; no-op when not running."""
        if not self.ticker.running:
            return
        self.ticker.stop()
        log.info("Simulation stopped")

    def tick(self) -> int:
        """Advance every tracked device by one simulation step.

        Returns the number of readings emitted.
        """
        with self._lock:
            now = self.clock()
            hours = self.interval_sec / 3600
            emitted: list[NormalizedReading] = []
            for sensor_id, reading in list(self._readings.items()):
                if reading.category == Category.ENERGY.value:
                    updated = self._simulate_energy(reading, now, hours)
                else:
                    updated = self._simulate_other(reading, now)
                self._readings[sensor_id] = updated
                emitted.append(updated)
        for updated in emitted:
            self._channel.publish(updated)
        log.debug("Simulation tick: %d readings", len(emitted))
        return len(emitted)

    def _jitter(self, base: float) -> float:
        variation = (self.rng.random() - 0.5) * JITTER_FRACTION * base
        return max(0.0, base + variation)

    def _maybe_offline(self, status: Status) -> str:
        if self.rng.random() < OFFLINE_CHANCE:
            return Status.OFFLINE.value
        return status.value

    def _simulate_energy(
        self,
        reading: NormalizedReading,
        now: datetime,
        hours: float,
    ) -> NormalizedReading:
        power = self._jitter(reading.value)
        previous = 1 if reading.occupancy is None else reading.occupancy
        if self.rng.random() < OCCUPANCY_FLIP_CHANCE:
            occupancy = 0 if previous == 1 else 1
        else:
            occupancy = previous
        cumulative = (reading.energy or 0.0) + energy_kwh(power, hours)

        self._check_wastage(reading.sensor_id, reading.zone, power, occupancy, now)
        status = self._maybe_offline(classify_status(power))
        self._append_history(reading.sensor_id, now, cumulative)

        return dataclasses.replace(
            reading,
            timestamp=now,
            value=round(power, 2),
            status=status,
            power=round(power, 2),
            energy=round(cumulative, 3),
            carbon_rate=round(carbon_rate(power / 1000), 3),
            occupancy=occupancy,
            current=round(power / (reading.voltage or NOMINAL_VOLTAGE), 2),
        )

    def _simulate_other(self, reading: NormalizedReading, now: datetime) -> NormalizedReading:
        base = reading.value
        value = self._jitter(base)
        status = Status.NORMAL
        if reading.category == Category.WATER.value and value > base * 1.15:
            status = Status.HIGH
        if value < base * 0.3:
            status = Status.LOW
        return dataclasses.replace(
            reading,
            timestamp=now,
            value=round(value, 2),
            status=self._maybe_offline(status),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def category_readings(self, category: str = "all") -> list[NormalizedReading]:
        with self._lock:
            readings = list(self._readings.values())
        if category == "all":
            return readings
        _check_category(category)
        return [r for r in readings if r.category == category]

    def reading(self, sensor_id: str) -> NormalizedReading | None:
        with self._lock:
            return self._readings.get(sensor_id)

    def energy_history(self, sensor_id: str) -> list[EnergyHistoryEntry]:
        with self._lock:
            return list(self._history.get(sensor_id, ()))

    def aggregate(self, category: str) -> AggregatedData:
        """Current/average/peak for one category, plus 24 h projections for energy."""
        readings = self.category_readings(_check_category(category))
        now = self.clock()
        values = [r.value for r in readings]

        if values:
            current = sum(values) / len(values)
            peak = max(values)
        else:
            current = peak = 0.0

        data = AggregatedData(
            category=category,
            current=round(current, 2),
            average=round(current * 0.95, 2),
            peak=round(peak, 2),
            # Placeholder series until persisted history is wired in.
            trend=[round(current + math.sin(i * 0.5) * 5, 1) for i in range(TREND_POINTS)],
            last_updated=now,
        )

        if category == Category.ENERGY.value:
            daily = energy_kwh(sum(values), 24)
            data.energy_consumed = round(daily, 2)
            data.carbon_emitted = round(carbon_kg(daily), 2)
            data.cost = round(cost_inr(daily), 2)
            data.wastage_detected = len(self.wastage_alerts()) > 0
            data.green_score = round_half_up(green_score(current, data.average * 1.5))

        return data

    def category_score(self, category: str) -> int:
        """Baseline score adjusted by the average/current ratio, 0..100.

        This model is independent of the batch leaderboard scores.
        """
        data = self.aggregate(category)
        base = BASELINE_SCORES[category]
        if data.current == 0:
            return base
        adjustment = (data.average / data.current - 1) * 20
        return max(0, min(100, round_half_up(base + adjustment)))

    def campus_totals(self) -> CampusTotals:
        energy = self.category_readings(Category.ENERGY.value)
        total_w = sum(r.power or r.value for r in energy)
        total_kw = total_w / 1000

        daily_kwh = energy_kwh(total_w, 24)
        daily_carbon = carbon_kg(daily_kwh)
        daily_cost = cost_inr(daily_kwh)

        return CampusTotals(
            real_time=PowerSnapshot(
                total_power_w=round(total_w, 2),
                total_power_kw=round(total_kw, 2),
                carbon_rate_kg_per_hr=round(carbon_rate(total_kw), 3),
            ),
            daily=EnergyProjection(
                energy_kwh=round(daily_kwh, 2),
                carbon_kg=round(daily_carbon, 2),
                cost_inr=round(daily_cost, 2),
            ),
            monthly=EnergyProjection(
                energy_kwh=round(daily_kwh * 30, 2),
                carbon_kg=round(daily_carbon * 30, 2),
                cost_inr=round(daily_cost * 30, 2),
            ),
            wastage_alerts=len(self.wastage_alerts()),
        )

    def sensors_status(self) -> list[dict[str, Any]]:
        """Flat status rows for every tracked device."""
        rows: list[dict[str, Any]] = []
        for r in self.category_readings("all"):
            row: dict[str, Any] = {
                "id": r.sensor_id,
                "category": r.category,
                "zone": r.zone,
                "value": r.value,
                "unit": r.unit,
                "status": r.status,
                "lastUpdate": iso_utc(r.timestamp),
            }
            if r.category == Category.ENERGY.value:
                row.update(
                    voltage=r.voltage,
                    current=r.current,
                    power=r.power,
                    powerKW=r.power / 1000 if r.power else 0,
                    energy=r.energy,
                    carbonRate=r.carbon_rate,
                    occupancy=r.occupancy,
                )
            rows.append(row)
        return rows

    def sensor_energy_calculations(
        self,
        sensor_id: str,
        duration_hours: float = 1.0,
    ) -> EnergyCalculations | None:
        reading = self.reading(sensor_id)
        if reading is None or reading.category != Category.ENERGY.value:
            return None
        return energy_calculations(reading.power or reading.value, duration_hours)

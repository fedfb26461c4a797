"""Командний інтерфейс сенсорного рушія GreenCampus."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from greencampus.sensors.boundary import (
    JsonlReadingSink,
    campus_snapshot,
    handle_packet,
    load_packets,
)
from greencampus.sensors.engine import SensorEngine
from greencampus.sensors.ticker import ManualTicker, ThreadTicker
from greencampus.shared.config_loader import load_yaml, simulation_settings
from greencampus.shared.logger import setup_logging
from greencampus.shared.seed import init_seed


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="greencampus-sensors",
        description="Run the campus sensor engine: replay device packets and/or "
        "simulate the configured sensor fleet.",
    )
    p.add_argument(
        "--config",
        type=str,
        default="config/sensors.yaml",
        help="Path to sensors.yaml (default: config/sensors.yaml).",
    )
    p.add_argument(
        "--packets",
        type=str,
        default=None,
        help="JSONL file of device packets to ingest before simulating.",
    )
    p.add_argument(
        "--out",
        type=str,
        default=None,
        help="Append every processed reading to this JSONL file.",
    )
    p.add_argument(
        "--ticks",
        type=int,
        default=0,
        help="Run this many simulation ticks back-to-back (no waiting).",
    )
    p.add_argument(
        "--duration-sec",
        type=float,
        default=0.0,
        help="Run the real-time simulation for this many seconds "
        "(0 = until Ctrl+C when --live is set).",
    )
    p.add_argument(
        "--live",
        action="store_true",
        default=False,
        help="Run the real-time simulation on a background timer.",
    )
    p.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Simulation interval in ms. Overrides sensors.yaml interval_sec.",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed. Overrides sensors.yaml seed.",
    )
    p.add_argument(
        "--track-unoccupied",
        action="store_true",
        default=False,
        help="Measure real unoccupied time for wastage instead of assuming 15 min.",
    )
    p.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )
    p.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write log records to this file.",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    cfg = load_yaml(args.config)
    sim = simulation_settings(cfg)
    if args.seed is not None:
        sim["seed"] = args.seed
    if args.interval_ms is not None:
        sim["interval_sec"] = args.interval_ms / 1000.0
    if args.track_unoccupied:
        sim["track_unoccupied_duration"] = True
    cfg["simulation"] = sim

    ticker = ThreadTicker() if args.live else ManualTicker()
    engine = SensorEngine.from_config(cfg, ticker=ticker, rng=init_seed(sim["seed"]))

    sink = JsonlReadingSink(Path(args.out)) if args.out else None

    if args.packets:
        rejected = 0
        for packet in load_packets(args.packets):
            status, _body = handle_packet(engine, packet, sink)
            if status != 200:
                rejected += 1
        print(f"Replayed packets from {args.packets} (rejected: {rejected})")

    if sink is not None:
        # Packets were persisted by handle_packet; simulated readings go here.
        engine.subscribe(sink.write)

    if args.live:
        print(f"Sensor simulation live: interval {sim['interval_sec']}s")
        print("  Press Ctrl+C to stop.")
        engine.start_simulation()
        try:
            if args.duration_sec > 0:
                time.sleep(args.duration_sec)
            else:
                while True:
                    time.sleep(1.0)
        except KeyboardInterrupt:
            print("\nSensor simulation stopped by user.")
        finally:
            engine.stop_simulation()
    elif args.ticks > 0:
        engine.start_simulation()
        ticker.advance(args.ticks)
        engine.stop_simulation()
        print(f"Ran {args.ticks} simulation ticks")

    print(json.dumps(campus_snapshot(engine)["campusMetrics"], indent=2))
    if sink is not None:
        print(f"Readings written: {sink.written} -> {sink.path}")


if __name__ == "__main__":
    main()

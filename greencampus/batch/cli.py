"""Командний інтерфейс пакетного конвеєра GreenCampus."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from greencampus.batch.pipeline import BatchPipeline
from greencampus.batch.reporter import write_errors_csv, write_json, write_text
from greencampus.contracts.errors import CSVStructureError
from greencampus.sensors.engine import SensorEngine
from greencampus.sensors.ticker import ManualTicker
from greencampus.shared.config_loader import load_yaml
from greencampus.shared.logger import setup_logging
from greencampus.shared.seed import init_seed

log = logging.getLogger(__name__)

EXIT_STRUCTURE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="greencampus-batch",
        description="Ingest a campus sustainability CSV and write statistics "
        "and the zone leaderboard.",
    )
    p.add_argument(
        "--input",
        required=True,
        help="CSV file to ingest (columns: timestamp, zone, category, value, source, ...)",
    )
    p.add_argument(
        "--sensors-config",
        default=None,
        help="sensors.yaml; when given, energy rows with a power column are "
        "also fed into a live sensor engine.",
    )
    p.add_argument(
        "--result",
        default="out/processed.json",
        help="Processed-result JSON path (default: out/processed.json)",
    )
    p.add_argument(
        "--stats",
        default="out/statistics.json",
        help="Statistics JSON path (default: out/statistics.json)",
    )
    p.add_argument(
        "--leaderboard",
        default="out/leaderboard.json",
        help="Leaderboard JSON path (default: out/leaderboard.json)",
    )
    p.add_argument(
        "--errors",
        default=None,
        help="Write rejected-row messages to this CSV.",
    )
    p.add_argument(
        "--export",
        default=None,
        help="Re-export the accepted rows as CSV to this path.",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for the leaderboard change column (default: 42)",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Also write log records to this file.",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    engine = None
    if args.sensors_config:
        engine = SensorEngine.from_config(
            load_yaml(args.sensors_config),
            ticker=ManualTicker(),
            rng=init_seed(args.seed),
        )

    pipeline = BatchPipeline(engine=engine, rng=init_seed(args.seed))
    text = Path(args.input).read_text(encoding="utf-8")
    try:
        result = pipeline.ingest(text)
    except CSVStructureError as exc:
        log.error("Cannot process %s: %s", args.input, exc)
        sys.exit(EXIT_STRUCTURE_ERROR)

    board = pipeline.leaderboard()
    summary = {
        **pipeline.statistics(),
        "green_index": pipeline.green_index(),
        "category_scores": pipeline.category_scores(),
    }

    write_json(result.to_dict(), args.result)
    write_json(summary, args.stats)
    write_json(board.to_dict(), args.leaderboard)
    if args.errors:
        write_errors_csv(result.errors, args.errors)
    if args.export:
        write_text(pipeline.export_csv(), args.export)

    print(
        f"Rows: {result.total_rows} total, {result.valid_rows} valid, "
        f"{result.invalid_rows} invalid"
    )
    print(f"Zones: {', '.join(result.zones) or '-'}")
    print(f"Green index: {summary['green_index']}")
    if engine is not None:
        totals = engine.campus_totals()
        print(f"Engine real-time load: {totals.real_time.total_power_kw} kW")


if __name__ == "__main__":
    main()

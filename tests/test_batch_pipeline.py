"""Tests for greencampus.batch.pipeline — dataset lifecycle and routing to the engine."""

from __future__ import annotations

import random
from datetime import UTC, datetime

import pytest

from greencampus.batch.pipeline import BatchPipeline, csv_device_id, row_to_device_reading
from greencampus.contracts.enums import UNKNOWN_ZONE
from greencampus.contracts.errors import CSVStructureError
from tests.conftest import csv_text, make_row, ts_offset

ENERGY_HEADER = ["timestamp", "zone", "category", "value", "source", "power", "occupancy"]


@pytest.fixture
def sample_csv() -> str:
    return csv_text(
        [
            [ts_offset(minutes=0), "Block A", "energy", "1200", "meter"],
            [ts_offset(minutes=30), "Block B", "water", "340.5", "flow"],
            ["", "Block A", "energy", "900", "meter"],
            ["yesterday", "Block B", "waste", "12", "bin"],
            [ts_offset(minutes=90), "Boys Hostel A", "Transport", "8", "gate"],
            [ts_offset(minutes=60), "CSE Dept", "noise", "44", "mic"],
        ]
    )


@pytest.fixture
def pipeline() -> BatchPipeline:
    return BatchPipeline(rng=random.Random(3))


class TestIngest:
    def test_counts(self, pipeline, sample_csv):
        result = pipeline.ingest(sample_csv)
        assert result.total_rows == 6
        assert result.valid_rows == 4
        assert result.invalid_rows == 2
        assert result.categories == {"energy": 1, "water": 1, "waste": 0, "transport": 1}

    def test_errors_name_line_numbers(self, pipeline, sample_csv):
        result = pipeline.ingest(sample_csv)
        assert result.errors == [
            "Row 4: Missing required fields",
            "Row 5: Invalid timestamp format",
        ]

    def test_zones_in_first_appearance_order(self, pipeline, sample_csv):
        result = pipeline.ingest(sample_csv)
        assert result.zones == ["Block A", "Block B", "Boys Hostel A", "CSE Dept"]

    def test_date_range(self, pipeline, sample_csv):
        result = pipeline.ingest(sample_csv)
        start, end = result.date_range
        assert start == datetime(2026, 2, 20, 10, 0, tzinfo=UTC)
        assert end == datetime(2026, 2, 20, 11, 30, tzinfo=UTC)

    def test_no_valid_rows(self, pipeline):
        result = pipeline.ingest(csv_text([["bad", "Block A", "energy", "1", "m"]]))
        assert result.valid_rows == 0
        assert result.date_range is None
        assert pipeline.rows() == []

    def test_missing_column_aborts_and_keeps_dataset(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        with pytest.raises(CSVStructureError) as exc:
            pipeline.ingest("timestamp,category,value,source\n2026-02-20T10:00:00Z,energy,1,m\n")
        assert exc.value.missing == ["zone"]
        assert len(pipeline.rows()) == 4

    def test_second_ingest_replaces_dataset(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        pipeline.ingest(csv_text([[ts_offset(), "Main Campus", "waste", "3", "bin"]]))
        assert [r.zone for r in pipeline.rows()] == ["Main Campus"]


class TestQueries:
    def test_rows_by_category_case_insensitive(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        assert [r.zone for r in pipeline.rows_by_category("TRANSPORT")] == ["Boys Hostel A"]

    def test_rows_by_zone(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        assert len(pipeline.rows_by_zone("Block A")) == 1
        assert pipeline.rows_by_zone("Nowhere") == []

    def test_rows_returns_copy(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        pipeline.rows().clear()
        assert len(pipeline.rows()) == 4

    def test_statistics_idempotent(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        assert pipeline.statistics() == pipeline.statistics()
        assert pipeline.statistics()["total"] == 4

    def test_leaderboard_from_dataset(self, pipeline, sample_csv):
        pipeline.ingest(sample_csv)
        board = pipeline.leaderboard()
        assert [e.name for e in board.blocks] == ["Block B", "Block A"]
        assert [e.name for e in board.hostels] == ["Boys Hostel A"]
        assert [e.name for e in board.departments] == ["CSE Dept"]

    def test_indexes_without_data(self, pipeline):
        assert pipeline.green_index() == 73
        assert pipeline.category_scores() is None


class TestSubscribeAndClear:
    def test_subscriber_gets_rows(self, pipeline, sample_csv):
        seen = []
        pipeline.subscribe(seen.append)
        pipeline.ingest(sample_csv)
        assert len(seen) == 1
        assert len(seen[0]) == 4

    def test_clear_empties_and_notifies(self, pipeline, sample_csv):
        seen = []
        pipeline.ingest(sample_csv)
        pipeline.subscribe(seen.append)
        pipeline.clear()
        assert pipeline.rows() == []
        assert seen == [[]]
        assert pipeline.statistics()["total"] == 0

    def test_failing_subscriber_does_not_break_ingest(self, pipeline, sample_csv):
        def broken(_rows):
            raise RuntimeError("boom")

        pipeline.subscribe(broken)
        assert pipeline.ingest(sample_csv).valid_rows == 4


class TestExport:
    def test_empty_dataset(self, pipeline):
        assert pipeline.export_csv() == ""

    def test_round_trip_valid_count(self, pipeline, sample_csv):
        first = pipeline.ingest(sample_csv)
        again = BatchPipeline().ingest(pipeline.export_csv())
        assert again.valid_rows == first.valid_rows
        assert again.invalid_rows == 0

    def test_only_present_optional_columns(self, pipeline):
        pipeline.ingest(
            csv_text(
                [[ts_offset(), "Block A", "energy", "1200", "m", "1200.5", "1"]],
                header=ENERGY_HEADER,
            )
        )
        lines = pipeline.export_csv().splitlines()
        assert lines[0] == "timestamp,zone,category,value,source,power,occupancy"
        assert lines[1] == "2026-02-20T10:00:00Z,Block A,energy,1200,m,1200.5,1"


class TestEngineRouting:
    def test_device_id_from_zone(self):
        assert csv_device_id("Boys  Hostel A") == "CSV_Boys_Hostel_A"

    def test_synthesised_reading_defaults(self):
        row = make_row(power=460.0)
        reading = row_to_device_reading(row, datetime(2026, 2, 20, 10, 0, 0, tzinfo=UTC))
        assert reading.device_id == "CSV_Block_A"
        assert reading.timestamp == 1_771_581_600
        assert reading.voltage == 230.0
        assert reading.current == pytest.approx(2.0)
        assert reading.energy == 0.0
        assert reading.temperature == 25.0
        assert reading.humidity == 50.0
        assert reading.occupancy == 1

    def test_explicit_zero_occupancy_kept(self):
        row = make_row(power=460.0, occupancy=0.0)
        reading = row_to_device_reading(row, datetime(2026, 2, 20, 10, 0, 0, tzinfo=UTC))
        assert reading.occupancy == 0

    def test_energy_rows_with_power_reach_engine(self, engine):
        pipeline = BatchPipeline(engine=engine, rng=random.Random(1))
        text = csv_text(
            [
                [ts_offset(), "Block A", "energy", "1200", "m", "1200", "1"],
                [ts_offset(), "Block B", "water", "300", "m", "999", "1"],
            ],
            header=ENERGY_HEADER,
        )
        pipeline.ingest(text)
        readings = engine.category_readings()
        assert [r.sensor_id for r in readings] == ["CSV_Block_A"]
        assert readings[0].zone == UNKNOWN_ZONE
        assert readings[0].power == 1200

    def test_energy_rows_without_power_column_not_routed(self, engine, sample_csv):
        BatchPipeline(engine=engine).ingest(sample_csv)
        assert engine.category_readings() == []

    def test_non_finite_power_becomes_row_error(self, engine):
        pipeline = BatchPipeline(engine=engine)
        text = csv_text(
            [
                [ts_offset(), "Block A", "energy", "5", "m", "1e999", "1"],
                [ts_offset(), "Block B", "energy", "5", "m", "800", "1"],
            ],
            header=ENERGY_HEADER,
        )
        result = pipeline.ingest(text)
        assert result.valid_rows == 1
        assert result.invalid_rows == 1
        assert result.errors[0].startswith("Row 2: Non-finite power")

    def test_unoccupied_high_power_row_raises_wastage_alert(self, engine):
        pipeline = BatchPipeline(engine=engine)
        pipeline.ingest(
            csv_text([[ts_offset(), "Block A", "energy", "500", "m", "500", "0"]], header=ENERGY_HEADER)
        )
        assert engine.reading("CSV_Block_A").occupancy == 0
        alerts = engine.wastage_alerts()
        assert len(alerts) == 1
        assert alerts[0].sensor_id == "CSV_Block_A"

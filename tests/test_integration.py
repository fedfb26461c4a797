"""End-to-end tests: CLIs, upload → engine → campus totals."""

from __future__ import annotations

import json
import random

import pytest

from greencampus.batch import cli as batch_cli
from greencampus.batch.pipeline import BatchPipeline
from greencampus.sensors import cli as sensors_cli
from greencampus.sensors.boundary import campus_snapshot, handle_packet
from tests.conftest import SENSORS_YAML, csv_text, make_packet, ts_offset

UPLOAD_HEADER = ["timestamp", "zone", "category", "value", "source", "power", "occupancy"]


@pytest.fixture
def upload(tmp_path):
    path = tmp_path / "campus.csv"
    path.write_text(
        csv_text(
            [
                [ts_offset(minutes=0), "Block A", "energy", "2000", "meter", "2000", "1"],
                [ts_offset(minutes=15), "Block B", "energy", "8000", "meter", "8000", "1"],
                [ts_offset(minutes=30), "Boys Hostel A", "water", "450", "flow", "", ""],
                [ts_offset(minutes=45), "CSE Dept", "waste", "35", "bin", "", ""],
                ["oops", "Parking", "transport", "12", "gate", "", ""],
            ],
            header=UPLOAD_HEADER,
        ),
        encoding="utf-8",
    )
    return path


class TestUploadFeedsEngine:
    def test_uploaded_power_counts_in_campus_totals(self, fleet_engine):
        before = fleet_engine.campus_totals().real_time.total_power_w
        pipeline = BatchPipeline(engine=fleet_engine, rng=random.Random(1))
        pipeline.ingest(
            csv_text(
                [[ts_offset(), "Block A", "energy", "2000", "m", "2000", "1"]],
                header=UPLOAD_HEADER,
            )
        )
        after = fleet_engine.campus_totals().real_time.total_power_w
        assert after == pytest.approx(before + 2000)

    def test_packets_and_simulation_share_state(self, fleet_engine, ticker):
        status, _ = handle_packet(fleet_engine, make_packet(deviceId="LAB1", power=3000))
        assert status == 200
        fleet_engine.start_simulation()
        ticker.advance(2)
        snapshot = campus_snapshot(fleet_engine)
        ids = {row["id"] for row in snapshot["allSensors"]}
        assert "LAB1" in ids
        assert len(ids) == 10


class TestBatchCli:
    def test_writes_outputs(self, upload, tmp_path, capsys):
        out = tmp_path / "out"
        batch_cli.main(
            [
                "--input", str(upload),
                "--result", str(out / "processed.json"),
                "--stats", str(out / "stats.json"),
                "--leaderboard", str(out / "board.json"),
                "--errors", str(out / "errors.csv"),
                "--export", str(out / "export.csv"),
                "--log-level", "WARNING",
            ]
        )
        result = json.loads((out / "processed.json").read_text(encoding="utf-8"))
        assert result["valid_rows"] == 4
        assert result["invalid_rows"] == 1

        stats = json.loads((out / "stats.json").read_text(encoding="utf-8"))
        assert stats["total"] == 4
        assert stats["by_category"]["energy"] == 2

        board = json.loads((out / "board.json").read_text(encoding="utf-8"))
        assert [e["name"] for e in board["blocks"]] == ["Block A", "Block B"]

        errors = (out / "errors.csv").read_text(encoding="utf-8").splitlines()
        assert errors == ['"error"', '"Row 6: Invalid timestamp format"']

        exported = (out / "export.csv").read_text(encoding="utf-8")
        assert exported.splitlines()[0].startswith("timestamp,zone,category,value,source")

        assert "4 valid" in capsys.readouterr().out

    def test_with_sensor_engine(self, upload, tmp_path, capsys):
        out = tmp_path / "out"
        batch_cli.main(
            [
                "--input", str(upload),
                "--sensors-config", str(SENSORS_YAML),
                "--result", str(out / "p.json"),
                "--stats", str(out / "s.json"),
                "--leaderboard", str(out / "b.json"),
                "--log-level", "WARNING",
            ]
        )
        # 55.5 kW configured fleet + 10 kW from the upload
        assert "65.5 kW" in capsys.readouterr().out

    def test_structural_error_exit_code(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("timestamp,category,value,source\n2026-02-20T10:00:00Z,energy,1,m\n",
                        encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            batch_cli.main(["--input", str(path), "--log-level", "ERROR"])
        assert exc.value.code == 2


class TestSensorsCli:
    def test_ticks_stream_to_sink(self, tmp_path, capsys):
        packets = tmp_path / "packets.jsonl"
        packets.write_text(
            "\n".join(
                [
                    json.dumps(make_packet()),
                    json.dumps(make_packet(deviceId="HOSTEL1", power=900, occupancy=0)),
                    json.dumps({"deviceId": "ROOM2"}),
                ]
            )
            + "\n",
            encoding="utf-8",
        )
        out = tmp_path / "readings.jsonl"
        sensors_cli.main(
            [
                "--config", str(SENSORS_YAML),
                "--packets", str(packets),
                "--out", str(out),
                "--ticks", "2",
                "--seed", "1",
                "--log-level", "ERROR",
            ]
        )
        printed = capsys.readouterr().out
        assert "rejected: 1" in printed
        assert "Ran 2 simulation ticks" in printed

        lines = out.read_text(encoding="utf-8").splitlines()
        # 2 accepted packets + 2 ticks over 9 configured and 2 ingested devices
        assert len(lines) == 2 + 2 * 11

    def test_totals_printed_as_json(self, capsys):
        sensors_cli.main(["--config", str(SENSORS_YAML), "--log-level", "ERROR"])
        printed = capsys.readouterr().out
        totals = json.loads(printed)
        assert totals["real_time"]["total_power_w"] == pytest.approx(55500)
        assert totals["wastage_alerts"] == 0

"""Tests for the CLI (build_parser, build_config, _format_results, main).

Parsing tests check argparse defaults and flags; the end-to-end test runs
``main`` against a small capture under ``tmp_path``.
"""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from cs2logs.cli import _format_results, build_config, build_parser, main
from cs2logs.db import Database
from cs2logs.repository import EventRepository


class TestBuildParser:
    """Tests for CLI argument parsing."""

    def test_default_args(self):
        args = build_parser().parse_args(["server.log"])
        assert args.logfiles == ["server.log"]
        assert args.data_dir == "data"
        assert args.accolade_threshold is None
        assert args.keep_bot_events is False
        assert args.verbose is False

    def test_requires_logfile(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_all_flags_combined(self):
        args = build_parser().parse_args([
            "--data-dir", "/opt/data",
            "--accolade-threshold", "4",
            "--keep-bot-events",
            "--verbose",
            "a.log", "b.log.gz",
        ])
        assert args.data_dir == "/opt/data"
        assert args.accolade_threshold == 4
        assert args.keep_bot_events is True
        assert args.verbose is True
        assert args.logfiles == ["a.log", "b.log.gz"]


class TestBuildConfig:
    """Tests for applying CLI overrides to ParserConfig."""

    def test_defaults(self):
        config = build_config(build_parser().parse_args(["x.log"]))
        assert config.accolade_threshold == 6
        assert config.skip_bot_only_events is True
        assert config.db_path == "data/cs2logs.db"

    def test_overrides(self):
        args = build_parser().parse_args(
            ["--data-dir", "/tmp/d", "--accolade-threshold", "3", "--keep-bot-events", "x.log"]
        )
        config = build_config(args)
        assert config.data_dir == "/tmp/d"
        assert config.db_path == "/tmp/d/cs2logs.db"
        assert config.accolade_threshold == 3
        assert config.skip_bot_only_events is False


class TestFormatResults:
    """Tests for the end-of-run summary."""

    def test_summary_totals(self):
        results = {
            "files": [
                {"games": 1, "skipped_bot_events": 2, "events": {"GAME_OVER": 1, "KILL": 5}},
                {"games": 2, "skipped_bot_events": 0, "events": {"GAME_OVER": 2, "KILL": 1}},
            ]
        }
        text = _format_results(results, 1.25, "run.log")
        assert "Files:       2" in text
        assert "Games:       3 stored" in text
        assert "Events:      9 emitted, 2 bot-only skipped" in text
        assert "KILL" in text
        assert "run.log" in text
        assert "Halted" not in text

    def test_halted(self):
        text = _format_results({"files": [], "halted": True, "halt_reason": "shutdown requested"}, 0, "x")
        assert "Halted:      shutdown requested" in text

    def test_store_totals(self):
        text = _format_results({"files": [], "store": {"events": 40, "accolades": 6}}, 0, "x")
        assert "Store:       40 events, 6 accolades in total" in text


def make_capture() -> str:
    bodies = ['World triggered "Round_Start"'] * 2
    bodies += [
        f"ACCOLADE, FINAL: {{award{i}}},\tKhanjer<0>,\tVALUE: 1.000000,\tPOS: {i},\tSCORE: 40.000000"
        for i in range(6)
    ]
    bodies.append("Game Over: competitive mg_active de_nuke score 1:1 after 5 min")
    base = datetime(2025, 8, 1, 17, 0, 0, tzinfo=timezone.utc)
    return "\n".join(
        json.dumps({
            "log": "L 08/01/2025 - 17:00:00: " + body + "\n",
            "time": (base + timedelta(seconds=i)).isoformat(),
        })
        for i, body in enumerate(bodies)
    )


class TestMain:
    """End-to-end runs of the console entry point."""

    @pytest.fixture(autouse=True)
    def _reset_logging(self):
        yield
        logging.getLogger().handlers.clear()

    def test_ingests_file(self, tmp_path):
        log = tmp_path / "server.log"
        log.write_text(make_capture(), encoding="utf-8")
        data_dir = tmp_path / "data"

        assert main(["--data-dir", str(data_dir), str(log)]) == 0

        assert list((data_dir / "logs").glob("ingest-*.log"))
        with Database(data_dir / "cs2logs.db") as db:
            repo = EventRepository(db.conn)
            assert repo.count_events("GAME_OVER") == 1
            assert repo.count_events("ROUND_START") == 2
            assert repo.count_accolades() == 6

    def test_missing_file_returns_error(self, tmp_path):
        assert main(["--data-dir", str(tmp_path / "data"), str(tmp_path / "nope.log")]) == 1

    def test_incomplete_schema_returns_error(self, tmp_path):
        log = tmp_path / "server.log"
        log.write_text(make_capture(), encoding="utf-8")
        with patch("cs2logs.cli.Database", lambda path: Database(path, migrations_dir=tmp_path / "empty")):
            assert main(["--data-dir", str(tmp_path / "data"), str(log)]) == 1

    def test_summary_includes_store_totals(self, tmp_path):
        log = tmp_path / "server.log"
        log.write_text(make_capture(), encoding="utf-8")
        data_dir = tmp_path / "data"
        main(["--data-dir", str(data_dir), str(log)])

        run_log = next((data_dir / "logs").glob("ingest-*.log"))
        assert re.search(r"Store: +\d+ events, 6 accolades in total", run_log.read_text(encoding="utf-8"))

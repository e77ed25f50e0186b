from datetime import timedelta

import pytest

from statepulse.config.constants import US_STATES
from statepulse.ingestion.checkpoint import CheckpointStore
from statepulse.ingestion.orchestrator import Completed, RunReport
from statepulse.models.checkpoint import RunCheckpoint
from statepulse.pipelines import check_progress, daily_update
from statepulse.pipelines.update_state_bills import resolve_states


class TestDailyUpdate:

    def test_sources_run_in_order(self):
        assert daily_update.select_sources() == [
            "executive-orders",
            "congress-bills",
            "openstates-bills",
            "openstates-votes",
            "openstates-people",
        ]

    def test_only_and_skip(self):
        assert daily_update.select_sources(only=["openstates-votes", "congress-bills"]) == [
            "congress-bills",
            "openstates-votes",
        ]
        assert "openstates-people" not in daily_update.select_sources(skip=["openstates-people"])

    def test_unknown_source_is_rejected(self, capsys):
        assert daily_update.main(["--only", "myspace"]) == 1
        assert "Unknown sources: myspace" in capsys.readouterr().out

    def test_invalid_from_date(self, capsys):
        assert daily_update.main(["--from-date", "yesterday"]) == 1

    def test_dry_run(self, capsys):
        assert daily_update.main(["--dry-run", "--skip", "openstates-people"]) == 0
        out = capsys.readouterr().out
        assert "Dry run complete" in out
        assert "openstates-people" not in out

    def test_report_shows_saved_watermark(self, capsys):
        report = RunReport(
            since="2026-01-01",
            results={"congress-bills": Completed(stats={"processed": 3})},
            watermark_advanced=True,
            watermark="2026-03-01",
        )

        daily_update.print_report(report, {"openstates-people": "no API key"}, timedelta(seconds=5))

        out = capsys.readouterr().out
        assert "Watermark advanced to 2026-03-01" in out
        assert "Successful: 1/2 sources" in out


class TestResolveStates:

    def test_all_states(self):
        assert resolve_states([], None) == (None, False)

    def test_named_states_respect_progress(self):
        assert resolve_states(["CA", "NY"], None) == (["CA", "NY"], False)

    def test_start_from_ignores_progress(self):
        states, ignore_completed = resolve_states([], "WV")
        assert states == ["WV", "WI", "WY"]
        assert ignore_completed


class TestCheckProgress:

    def test_outstanding_states(self):
        checkpoint = RunCheckpoint(source_id="openstates-bills", completed_partitions=["AL", "AK"])

        remaining = check_progress.outstanding_states(checkpoint)

        assert "AL" not in remaining
        assert len(remaining) == len(US_STATES) - 2

    def test_no_progress_file(self, tmp_path, capsys):
        assert check_progress.main(["--data-dir", str(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert "No progress file found" in out
        assert "Last daily run" in out

    def test_reports_every_checkpoint(self, tmp_path, capsys):
        store = CheckpointStore(tmp_path)
        store.save(RunCheckpoint(source_id="openstates-bills", completed_partitions=["AL"], current_partition="AK"))
        store.save(RunCheckpoint(source_id="congress-historical", current_partition=118, cursor_position=750))

        assert check_progress.main(["--data-dir", str(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert f"Completed: 1/{len(US_STATES)} states" in out
        assert "In progress: AK" in out
        assert "congress-historical: at 118 / 750" in out

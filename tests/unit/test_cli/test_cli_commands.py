"""Tests for the perfscore CLI commands."""

import hashlib
import json
from collections.abc import Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from perfscore.cli import main as cli_main
from perfscore.cli.main import cli
from perfscore.features.annotate.factory import create_annotation_client
from perfscore.features.annotate.metrics import AnnotationMetrics
from perfscore.settings import AppSettings
from perfscore.store import EntryStore, NewEntry, StoreMetrics
from tests.helpers.images import make_png_bytes
from tests.helpers.time import ticking_clock
from tests.helpers.upstream import (
    EXAMPLE_ANNOTATION,
    ScriptedUpstream,
    annotation_response,
)


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Start every test with fresh metrics."""
    AnnotationMetrics.reset()
    StoreMetrics.reset()
    yield
    AnnotationMetrics.reset()
    StoreMetrics.reset()


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


def _settings(tmp_path: Path, api_key: str | None = None) -> AppSettings:
    return AppSettings(
        inference_api_key=api_key,
        db_path=tmp_path / "perfscore.sqlite",
        _env_file=None,
    )


def _invoke(runner: CliRunner, settings: AppSettings, args: list[str]) -> Any:
    return runner.invoke(cli, ["--no-json-logs", *args], obj={"settings": settings})


def _seed(db_path: Path, rows: list[tuple[int, str]]) -> None:
    with EntryStore(db_path, clock=ticking_clock()) as store:
        for i, (score, description) in enumerate(rows):
            store.insert_entry(
                NewEntry(
                    image_data_url=f"data:image/png;base64,row{i}",
                    image_hash=hashlib.sha256(f"row-{i}".encode()).hexdigest(),
                    result_json=json.dumps({"description": description}),
                    score=score,
                    matched_keywords=("tote bag",) if score >= 3 else (),
                )
            )


class TestScoreCommand:
    """Tests for the score command."""

    def test_scores_bare_annotation(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should score an annotation file without any upstream."""
        path = tmp_path / "annotation.json"
        path.write_text(json.dumps(EXAMPLE_ANNOTATION), encoding="utf-8")

        result = _invoke(runner, _settings(tmp_path), ["score", str(path)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["score"] == 5
        assert data["matched"] == ["iced coffee", "stanley tumbler"]
        assert data["eligible"] is True
        assert "reason" not in data

    def test_accepts_saved_annotate_output(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """Should unwrap the result of a saved annotate response."""
        path = tmp_path / "saved.json"
        saved = {"success": True, "result": {"description": "A tote bag on a chair"}}
        path.write_text(json.dumps(saved), encoding="utf-8")

        result = _invoke(runner, _settings(tmp_path), ["score", str(path)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["score"] == 4
        assert data["eligible"] is False
        assert "male keyword" in data["reason"]

    def test_invalid_json_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should exit 1 with a FIX_INPUT error for unreadable JSON."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = _invoke(runner, _settings(tmp_path), ["score", str(path)])

        assert result.exit_code == 1
        assert "FIX_INPUT" in result.output

    def test_non_object_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should reject JSON that is not an object."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        result = _invoke(runner, _settings(tmp_path), ["score", str(path)])

        assert result.exit_code == 1
        assert "must be a JSON object" in result.output


class TestAnnotateCommand:
    """Tests for the annotate command."""

    def test_rejects_non_image(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should fail on input validation before needing credentials."""
        path = tmp_path / "fake.png"
        path.write_text("definitely not pixels", encoding="utf-8")

        result = _invoke(runner, _settings(tmp_path), ["annotate", str(path)])

        assert result.exit_code == 1
        assert "FIX_INPUT" in result.output

    def test_missing_key(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should report a server misconfiguration without an API key."""
        path = tmp_path / "photo.png"
        path.write_bytes(make_png_bytes())

        result = _invoke(runner, _settings(tmp_path), ["annotate", str(path)])

        assert result.exit_code == 1
        assert "SERVER_MISCONFIGURED" in result.output
        assert "INFERENCE_API_KEY" in result.output


class TestSubmitCommand:
    """Tests for the submit command."""

    def test_missing_key_stores_nothing(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """Should fail before touching the store without an API key."""
        path = tmp_path / "photo.png"
        path.write_bytes(make_png_bytes())
        settings = _settings(tmp_path)

        result = _invoke(runner, settings, ["submit", str(path)])

        assert result.exit_code == 1
        assert "SERVER_MISCONFIGURED" in result.output
        assert not settings.db_path.exists()

    def test_submit_and_resubmit(
        self,
        runner: CliRunner,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Should store a new photo and reject the same photo again."""
        upstream = ScriptedUpstream(annotation_response())

        def fake_factory(settings: AppSettings) -> Any:
            transport: httpx.AsyncBaseTransport = upstream.transport()
            return create_annotation_client(settings, transport=transport)

        monkeypatch.setattr(cli_main, "create_annotation_client", fake_factory)
        path = tmp_path / "photo.png"
        path.write_bytes(make_png_bytes())
        settings = _settings(tmp_path, api_key="test-key")

        first = _invoke(runner, settings, ["submit", str(path)])
        second = _invoke(runner, settings, ["submit", str(path)])

        assert first.exit_code == 0, first.output
        body = json.loads(first.stdout)
        assert body["score"] == 5
        assert body["eligible"] is True
        assert body["placement"]["message"] == "You made the leaderboard at #1."
        assert second.exit_code == 1
        assert "ALREADY_SUBMITTED" in second.output
        assert upstream.call_count == 1


class TestLeaderboardCommand:
    """Tests for the leaderboard command."""

    def test_empty_store(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should say so when nothing qualifies."""
        result = _invoke(runner, _settings(tmp_path), ["leaderboard"])

        assert result.exit_code == 0, result.output
        assert "No entries." in result.stdout

    def test_default_listing(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should list male-subject entries at or above 3, best first."""
        settings = _settings(tmp_path)
        _seed(
            settings.db_path,
            [
                (4, "A man with a tote bag"),
                (9, "A guy with a tote bag"),
                (8, "A woman with a tote bag"),
                (2, "A man on a bench"),
            ],
        )

        result = _invoke(runner, settings, ["leaderboard", "--json"])

        assert result.exit_code == 0, result.output
        entries = json.loads(result.stdout)["entries"]
        assert [e["score"] for e in entries] == [9, 4]

    def test_all_subjects_and_min_score(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """Should include every subject and honor --min-score."""
        settings = _settings(tmp_path)
        _seed(
            settings.db_path,
            [(8, "A woman with a tote bag"), (2, "A man on a bench")],
        )

        result = _invoke(
            runner,
            settings,
            ["leaderboard", "--json", "--all-subjects", "--min-score", "0"],
        )

        assert result.exit_code == 0, result.output
        entries = json.loads(result.stdout)["entries"]
        assert [e["score"] for e in entries] == [8, 2]

    def test_plain_output(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should print one numbered line per entry."""
        settings = _settings(tmp_path)
        _seed(settings.db_path, [(5, "A man with a tote bag")])

        result = _invoke(runner, settings, ["leaderboard", "--podium"])

        assert result.exit_code == 0, result.output
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        assert len(lines) == 1
        assert lines[0].startswith("  1.   5/10")
        assert "tote bag" in lines[0]

    def test_unopenable_state_reports_server_error(
        self, runner: CliRunner, tmp_path: Path
    ) -> None:
        """Should exit with an error body when the state file is not SQLite."""
        state = tmp_path / "garbage.sqlite"
        state.write_bytes(b"not a database" * 128)

        result = _invoke(
            runner, _settings(tmp_path), ["leaderboard", "--state", str(state)]
        )

        assert result.exit_code == 1
        assert "SERVER_ERROR" in result.output
        assert isinstance(result.exception, SystemExit)

"""Unit tests for the analysis pipeline and CLI options."""

import json
import os
import tempfile

import pytest
from typer.testing import CliRunner

from auditscore.cli import app
from auditscore.core.pipeline import AnalysisResult, run_analysis
from auditscore.errors import MalformedFindings
from auditscore.history.storage import MemoryStorage
from auditscore.history.store import HistoryStore
from auditscore.models import CRITICAL, MEDIUM

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _document(severities: list[str] | None = None, complexity: float = 0) -> dict:
    return {
        "vulnerabilities": [
            {
                "severity": severity,
                "description": "Reentrancy in withdraw()",
                "location": {"start": 120, "end": 180},
                "recommendation": "Use checks-effects-interactions",
                "category": "Reentrancy",
            }
            for severity in (severities or [])
        ],
        "warnings": [
            {"category": "Style", "message": "Missing NatSpec", "line_number": 3}
        ],
        "gas_usage": {
            "estimated_deployment_cost": 500_000,
            "estimated_function_costs": [["withdraw", 30_000], ["deposit", 22_000]],
        },
        "complexity_score": complexity,
        "function_complexities": {"withdraw": 6, "deposit": 2},
        "summary": {"code_quality_score": 64, "gas_efficiency_score": 90},
    }


def _write_tmp(payload, name: str = "findings.json") -> str:
    """Write *payload* as JSON into a fresh temporary directory."""
    tmpdir = tempfile.mkdtemp(prefix="auditscore_pipe_")
    path = os.path.join(tmpdir, name)
    with open(path, "w") as fh:
        if isinstance(payload, str):
            fh.write(payload)
        else:
            json.dump(payload, fh)
    return path


def _history_path() -> str:
    return os.path.join(tempfile.mkdtemp(prefix="auditscore_hist_"), "history.json")


# ---------------------------------------------------------------------------
# Pipeline tests
# ---------------------------------------------------------------------------


class TestPipeline:
    """Tests for run_analysis."""

    def test_scores_and_records(self) -> None:
        """run_analysis should score, aggregate and record one entry."""
        store = HistoryStore(MemoryStorage(), clock=lambda: 1_000)
        result = run_analysis(
            _document([CRITICAL, CRITICAL, MEDIUM], complexity=10),
            label="Vault",
            store=store,
        )

        assert isinstance(result, AnalysisResult)
        assert result.report.security_score == 19
        assert result.report.grade == "D"
        assert result.aggregates.function_gas_costs[0] == ("withdraw", 30_000)
        assert result.entry.contract_label == "Vault"
        assert [e.contract_label for e in result.history] == ["Vault"]
        assert store.load()[0].score == result.report

    def test_without_store(self) -> None:
        """Skipping the store still produces a report."""
        result = run_analysis(_document())
        assert result.report.security_score == 99
        assert result.entry is None
        assert result.history is None

    def test_failed_analysis_not_recorded(self) -> None:
        """A document with an error short-circuits and leaves history alone."""
        store = HistoryStore(MemoryStorage())
        result = run_analysis({"error": "Failed to audit contract"}, store=store)

        assert result.failed
        assert result.report is None
        assert result.to_dict() == {"error": "Failed to audit contract"}
        assert store.load() == []

    def test_malformed_raises(self) -> None:
        store = HistoryStore(MemoryStorage())
        with pytest.raises(MalformedFindings):
            run_analysis(_document(complexity=-1), store=store)
        assert store.load() == []

    def test_to_dict_passes_summary_through(self) -> None:
        """Analyzer-supplied summary scores are passed through untouched."""
        data = run_analysis(_document()).to_dict()
        assert data["summary"]["code_quality_score"] == 64
        assert data["report"]["grade"] == "A+"


# ---------------------------------------------------------------------------
# CLI score tests
# ---------------------------------------------------------------------------


class TestScoreCommand:
    """Tests for the score command."""

    def test_json_output_is_valid(self) -> None:
        """--json flag should produce valid, parseable JSON."""
        findings = _write_tmp(_document([CRITICAL]))
        result = runner.invoke(
            app, ["score", findings, "--json", "--history-file", _history_path()]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["report"]["security_score"] == 74
        assert data["report"]["severity_counts"][CRITICAL] == 1
        assert data["contract_label"] == "Contract 1"
        assert "aggregates" in data

    def test_rich_output(self) -> None:
        """Default output should render the grade and vulnerabilities."""
        findings = _write_tmp(_document([MEDIUM]))
        result = runner.invoke(
            app, ["score", findings, "--history-file", _history_path()]
        )
        assert result.exit_code == 0
        assert "Security Score" in result.stdout
        assert "Reentrancy" in result.stdout

    def test_records_history(self) -> None:
        """Each scored file should be appended to the history file."""
        history_file = _history_path()
        findings = _write_tmp(_document())
        for label in ("Token", "Vault"):
            runner.invoke(
                app,
                ["score", findings, "--label", label, "--history-file", history_file],
            )

        with open(history_file) as fh:
            stored = json.load(fh)
        assert [entry["contract_label"] for entry in stored] == ["Vault", "Token"]

    def test_no_history(self) -> None:
        """--no-history should leave the history file untouched."""
        history_file = _history_path()
        findings = _write_tmp(_document())
        result = runner.invoke(
            app, ["score", findings, "--no-history", "--history-file", history_file]
        )
        assert result.exit_code == 0
        assert not os.path.exists(history_file)

    def test_history_file_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """AUDITSCORE_HISTORY_FILE should pick the history location."""
        history_file = _history_path()
        monkeypatch.setenv("AUDITSCORE_HISTORY_FILE", history_file)
        result = runner.invoke(app, ["score", _write_tmp(_document()), "--json"])
        assert result.exit_code == 0
        assert os.path.exists(history_file)

    def test_analyzer_error_exits_1(self) -> None:
        findings = _write_tmp({"error": "Failed to audit contract"})
        result = runner.invoke(
            app, ["score", findings, "--json", "--history-file", _history_path()]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"error": "Failed to audit contract"}

    def test_malformed_exits_1(self) -> None:
        findings = _write_tmp(_document(complexity=-4))
        result = runner.invoke(
            app, ["score", findings, "--history-file", _history_path()]
        )
        assert result.exit_code == 1
        assert "Malformed findings" in result.stdout

    def test_invalid_json_exits_1(self) -> None:
        findings = _write_tmp("{ nope")
        result = runner.invoke(
            app, ["score", findings, "--history-file", _history_path()]
        )
        assert result.exit_code == 1

    def test_missing_file_exits_1(self) -> None:
        result = runner.invoke(
            app, ["score", "/definitely/not/here.json", "--history-file", _history_path()]
        )
        assert result.exit_code == 1
        assert "does not exist" in result.stdout

    def test_reads_stdin(self) -> None:
        result = runner.invoke(
            app,
            ["score", "-", "--json", "--no-history"],
            input=json.dumps(_document()),
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["report"]["security_score"] == 99


# ---------------------------------------------------------------------------
# CLI --fail-under tests
# ---------------------------------------------------------------------------


class TestFailUnder:
    """Tests for the --fail-under option."""

    def test_fails_below_threshold(self) -> None:
        findings = _write_tmp(_document([CRITICAL]))
        result = runner.invoke(
            app, ["score", findings, "--no-history", "--fail-under", "80"]
        )
        assert result.exit_code == 1

    def test_passes_at_threshold(self) -> None:
        findings = _write_tmp(_document([CRITICAL]))
        result = runner.invoke(
            app, ["score", findings, "--no-history", "--fail-under", "74"]
        )
        assert result.exit_code == 0

    def test_rejects_out_of_range(self) -> None:
        findings = _write_tmp(_document())
        result = runner.invoke(
            app, ["score", findings, "--no-history", "--fail-under", "101"]
        )
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# CLI history tests
# ---------------------------------------------------------------------------


class TestHistoryCommand:
    """Tests for the history command."""

    def _populate(self, count: int) -> str:
        history_file = _history_path()
        findings = _write_tmp(_document([MEDIUM]))
        for idx in range(count):
            runner.invoke(
                app,
                ["score", findings, "--label", f"C{idx}", "--history-file", history_file],
            )
        return history_file

    def test_lists_newest_first_capped(self) -> None:
        """Only the ten newest analyses are listed."""
        history_file = self._populate(12)
        result = runner.invoke(app, ["history", "--json", "--history-file", history_file])

        assert result.exit_code == 0
        labels = [entry["contract_label"] for entry in json.loads(result.stdout)]
        assert labels == [f"C{idx}" for idx in range(11, 1, -1)]

    def test_empty_history(self) -> None:
        result = runner.invoke(app, ["history", "--history-file", _history_path()])
        assert result.exit_code == 0
        assert "No analyses recorded yet" in result.stdout

    def test_show_entry(self) -> None:
        history_file = self._populate(2)
        result = runner.invoke(
            app, ["history", "--show", "2", "--json", "--history-file", history_file]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["contract_label"] == "C0"
        assert data["report"]["security_score"] == 89

    def test_out_of_range_timestamp_listed_raw(self) -> None:
        """A stored timestamp beyond the date range is shown as-is."""
        history_file = _history_path()
        entry = {
            "timestamp": 10**15,
            "contract_label": "Far Future",
            "report": {
                "findings": _document(),
                "score": {"security_score": 99, "grade": "A+"},
            },
        }
        with open(history_file, "w") as fh:
            json.dump([entry], fh)

        result = runner.invoke(app, ["history", "--history-file", history_file])
        assert result.exit_code == 0
        assert "Far Future" in result.stdout
        assert str(10**15) in result.stdout

        shown = runner.invoke(app, ["history", "--show", "1", "--history-file", history_file])
        assert shown.exit_code == 0

    def test_show_out_of_range(self) -> None:
        history_file = self._populate(1)
        result = runner.invoke(
            app, ["history", "--show", "3", "--history-file", history_file]
        )
        assert result.exit_code == 1

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "auditscore" in result.stdout

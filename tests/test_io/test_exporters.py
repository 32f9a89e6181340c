"""Tests for idealization and evaluation export."""

import csv
import json
from pathlib import Path

import numpy as np
import pytest

from ionchannel.io.exporters import (
    ExportFormat,
    export_evaluation,
    read_idealizations,
    write_idealizations,
)
from ionchannel.models.evaluation import EvaluationSummary, TraceEvaluation


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def summary() -> EvaluationSummary:
    """Summary of two evaluated traces and one failure."""
    return EvaluationSummary.from_traces([
        TraceEvaluation(name="trace_01.txt", mean_squared_error=2.5, accuracy=0.98, num_transitions=12),
        TraceEvaluation(name="trace_02.txt", mean_squared_error=1.5, accuracy=0.96, num_transitions=8),
        TraceEvaluation.failure("trace_03.txt", ValueError("empty trace")),
    ])


# ============================================================================
# Idealizations
# ============================================================================


class TestIdealizations:
    """Tests for write_idealizations and read_idealizations."""

    def test_format(self, tmp_path: Path) -> None:
        """Each trace is a name line followed by comma-joined labels."""
        path = write_idealizations(
            {"a.txt": np.array([0, 0, 1], dtype=np.int8), "b.txt": np.array([1, 0])},
            tmp_path / "idealized.txt",
        )

        assert path.read_text() == "a.txt\n0,0,1\nb.txt\n1,0\n"

    def test_read_back(self, tmp_path: Path) -> None:
        labels = {"a.txt": np.array([0, 1, 1, 0], dtype=np.int8)}
        path = write_idealizations(labels, tmp_path / "idealized.txt")

        read = read_idealizations(path)

        assert list(read) == ["a.txt"]
        assert np.array_equal(read["a.txt"], labels["a.txt"])
        assert read["a.txt"].dtype == np.int8

    def test_creates_directory(self, tmp_path: Path) -> None:
        path = write_idealizations({"a": np.array([0])}, tmp_path / "out" / "idealized.txt")
        assert path.exists()

    def test_read_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_idealizations(tmp_path / "missing.txt")


# ============================================================================
# Evaluation
# ============================================================================


class TestExportEvaluation:
    """Tests for export_evaluation function."""

    def test_csv(self, tmp_path: Path, summary: EvaluationSummary) -> None:
        path = export_evaluation(summary, tmp_path / "evaluation")

        assert path.suffix == ".csv"
        with open(path, newline="") as f:
            rows = list(csv.reader(f))

        assert rows[0] == ["name", "mean_squared_error", "accuracy", "num_transitions", "error"]
        assert len(rows) == 4
        assert rows[1][0] == "trace_01.txt"
        assert float(rows[1][2]) == pytest.approx(0.98)
        assert rows[1][3] == "12"
        assert rows[3][4] == "ValueError: empty trace"

    def test_json(self, tmp_path: Path, summary: EvaluationSummary) -> None:
        """NaN metrics of failed traces are written as null."""
        path = export_evaluation(summary, tmp_path / "evaluation", ExportFormat.JSON)

        assert path.suffix == ".json"
        data = json.loads(path.read_text())

        assert data["mean_squared_error"] == pytest.approx(2.0)
        assert data["mean_accuracy"] == pytest.approx(0.97)
        assert len(data["traces"]) == 3
        assert data["traces"][2]["accuracy"] is None
        assert data["traces"][2]["error"] == "ValueError: empty trace"

    def test_all_failed_json(self, tmp_path: Path) -> None:
        summary = EvaluationSummary.from_traces([TraceEvaluation.failure("a", ValueError("x"))])
        data = json.loads(export_evaluation(summary, tmp_path / "e", ExportFormat.JSON).read_text())

        assert data["mean_accuracy"] is None

"""Tests for the plain-text trace reader."""

from pathlib import Path

import numpy as np
import pytest

from ionchannel.errors import InvalidInputError
from ionchannel.io.text_reader import (
    load_record,
    normalize_trace,
    read_data,
    read_dwell_times,
    read_initial_states,
    read_trace,
    truncate_record,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


@pytest.fixture
def record_files(tmp_path: Path):
    """Trace, dwell and initial state files for one trace."""
    trace = _write(tmp_path / "trace_01.txt", "0.1\n0.0\n\n1.1\n0.9\n")
    dwells = _write(tmp_path / "dwell_01.txt", "0.0002\n0.0002\n")
    states = _write(tmp_path / "states.txt", "trace_01.txt,1\ntrace_02.txt, 0\n")
    return trace, dwells, states


class TestReadColumns:
    """Tests for read_trace, read_dwell_times and read_data."""

    def test_read_trace(self, record_files):
        trace, _, _ = record_files
        values = read_trace(trace)

        assert values.dtype == np.float32
        assert np.allclose(values, [0.1, 0.0, 1.1, 0.9])

    def test_read_dwell_times(self, record_files):
        _, dwells, _ = record_files
        values = read_dwell_times(dwells)

        assert values.dtype == np.float64
        assert list(values) == [0.0002, 0.0002]

    def test_read_data(self, record_files):
        trace, dwells, _ = record_files
        values, dwell_times = read_data(trace, dwells)

        assert len(values) == 4
        assert len(dwell_times) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_trace(tmp_path / "missing.txt")

    def test_bad_number(self, tmp_path):
        """The error names the file and line."""
        path = _write(tmp_path / "bad.txt", "0.1\nabc\n")
        with pytest.raises(InvalidInputError, match="bad.txt:2"):
            read_trace(path)


class TestReadInitialStates:
    """Tests for read_initial_states function."""

    def test_mapping(self, record_files):
        _, _, states = record_files
        assert read_initial_states(states) == {"trace_01.txt": 1, "trace_02.txt": 0}

    def test_comma_in_name(self, tmp_path):
        """Only the last comma separates the state."""
        path = _write(tmp_path / "states.txt", "a,b.txt,0\n")
        assert read_initial_states(path) == {"a,b.txt": 0}

    @pytest.mark.parametrize("line", ["trace.txt", "trace.txt,2", "trace.txt,x", ",1"])
    def test_malformed(self, tmp_path, line):
        path = _write(tmp_path / "states.txt", f"{line}\n")
        with pytest.raises(InvalidInputError):
            read_initial_states(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_initial_states(tmp_path / "missing.txt")


class TestLoadRecord:
    """Tests for load_record function."""

    def test_named_after_trace_file(self, record_files):
        trace, dwells, states = record_files
        record = load_record(trace, dwells, read_initial_states(states))

        assert record.name == "trace_01.txt"
        assert record.initial_state == 1
        assert record.num_samples == 4

    def test_explicit_name(self, record_files):
        trace, dwells, _ = record_files
        record = load_record(trace, dwells, {"other": 0}, name="other")
        assert record.initial_state == 0

    def test_unknown_trace(self, record_files):
        trace, dwells, _ = record_files
        with pytest.raises(InvalidInputError):
            load_record(trace, dwells, {})


class TestNormalizeTrace:
    """Tests for normalize_trace function."""

    def test_z_score(self, rng):
        trace = normalize_trace(rng.normal(3.0, 2.0, 1000).astype(np.float32))

        assert trace.dtype == np.float32
        assert np.mean(trace) == pytest.approx(0.0, abs=1e-5)
        assert np.std(trace) == pytest.approx(1.0, abs=1e-4)

    def test_constant(self):
        """A constant trace is only centred."""
        assert list(normalize_trace(np.full(4, 2.0))) == [0.0, 0.0, 0.0, 0.0]


class TestTruncateRecord:
    """Tests for truncate_record function."""

    def test_keep_all(self):
        trace = np.zeros(10, dtype=np.float32)
        dwells = np.array([0.4, 0.6])

        kept_trace, kept_dwells = truncate_record(trace, dwells, 0.1, 0)

        assert len(kept_trace) == 10
        assert kept_dwells is dwells

    def test_cut_inside_dwell(self):
        """The dwell across the cut is shortened to end at the cut."""
        trace = np.zeros(10, dtype=np.float32)
        kept_trace, kept_dwells = truncate_record(trace, np.array([0.3, 0.4, 0.3]), 0.1, 5)

        assert len(kept_trace) == 5
        assert np.allclose(kept_dwells, [0.3, 0.2])

    def test_cut_inside_first_dwell(self):
        trace = np.zeros(10, dtype=np.float32)
        _, kept_dwells = truncate_record(trace, np.array([0.6, 0.4]), 0.1, 2)
        assert np.allclose(kept_dwells, [0.2])

    def test_data_size_beyond_trace(self):
        trace = np.zeros(10, dtype=np.float32)
        kept_trace, _ = truncate_record(trace, np.array([1.0]), 0.1, 50)
        assert len(kept_trace) == 10

"""Export of idealizations and evaluation results.

Idealized label sequences are written in a plain-text format of a
``filename`` line followed by a line of comma-joined integer labels, one pair
of lines per trace. Evaluation summaries can be exported to CSV or JSON.
"""

from __future__ import annotations

import csv
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Mapping

import numpy as np
from numpy.typing import NDArray

from ionchannel.models.evaluation import EvaluationSummary

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""

    CSV = "csv"
    JSON = "json"


def _get_extension(fmt: ExportFormat) -> str:
    """Get the file extension for a format."""
    return f".{fmt.value}"


def _ensure_directory(path: Path) -> None:
    """Ensure the parent directory exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


def write_idealizations(idealizations: Mapping[str, NDArray[np.integer]], path: Path) -> Path:
    """Write idealized label sequences.

    Args:
        idealizations: Mapping from trace file name to per-sample labels.
        path: Output file.

    Returns:
        Path to the written file.
    """
    path = Path(path)
    _ensure_directory(path)

    with open(path, "w") as f:
        for name, labels in idealizations.items():
            f.write(f"{name}\n")
            f.write(",".join(str(int(v)) for v in labels))
            f.write("\n")

    logger.info(f"Exported {len(idealizations)} idealizations to {path}")
    return path


def read_idealizations(path: Path) -> dict[str, NDArray[np.int8]]:
    """Read label sequences written by write_idealizations."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, "r") as f:
        lines = [line.rstrip("\n") for line in f]

    result: dict[str, NDArray[np.int8]] = {}
    for name, labels in zip(lines[0::2], lines[1::2]):
        values = [int(v) for v in labels.split(",")] if labels else []
        result[name] = np.array(values, dtype=np.int8)
    return result


def export_evaluation(
    summary: EvaluationSummary,
    output_path: Path,
    fmt: ExportFormat = ExportFormat.CSV,
) -> Path:
    """Export a batch evaluation.

    Args:
        summary: Batch evaluation result.
        output_path: Path to output file (without extension).
        fmt: Export format.

    Returns:
        Path to the exported file.
    """
    output_file = Path(output_path).with_suffix(_get_extension(fmt))
    _ensure_directory(output_file)

    if fmt == ExportFormat.CSV:
        _export_evaluation_csv(output_file, summary)
    elif fmt == ExportFormat.JSON:
        _export_evaluation_json(output_file, summary)
    else:
        raise ValueError(f"Unsupported format: {fmt}")

    logger.info(f"Exported evaluation of {len(summary.traces)} traces to {output_file}")
    return output_file


def _export_evaluation_csv(path: Path, summary: EvaluationSummary) -> None:
    """Export per-trace evaluation rows to CSV."""
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "mean_squared_error", "accuracy", "num_transitions", "error"])
        for trace in summary.traces:
            writer.writerow([
                trace.name,
                f"{trace.mean_squared_error:.6g}",
                f"{trace.accuracy:.6f}",
                trace.num_transitions,
                trace.error or "",
            ])


def _json_float(value: float) -> float | None:
    return None if np.isnan(value) else value


def _export_evaluation_json(path: Path, summary: EvaluationSummary) -> None:
    """Export the summary and per-trace results to JSON."""
    data = {
        "mean_squared_error": _json_float(summary.mean_squared_error),
        "mean_accuracy": _json_float(summary.mean_accuracy),
        "traces": [
            {
                "name": t.name,
                "mean_squared_error": _json_float(t.mean_squared_error),
                "accuracy": _json_float(t.accuracy),
                "num_transitions": t.num_transitions,
                "error": t.error,
            }
            for t in summary.traces
        ],
    }
    with open(path, "w") as f:
        json.dump(data, f, indent=2)

"""Reading traces and annotations, exporting idealizations and evaluations."""

from ionchannel.io.exporters import (
    ExportFormat,
    export_evaluation,
    read_idealizations,
    write_idealizations,
)
from ionchannel.io.text_reader import (
    load_record,
    normalize_trace,
    read_data,
    read_dwell_times,
    read_initial_states,
    read_trace,
    truncate_record,
)

__all__ = [
    # Readers
    "read_trace",
    "read_dwell_times",
    "read_data",
    "read_initial_states",
    "load_record",
    # Preprocessing
    "normalize_trace",
    "truncate_record",
    # Exporters
    "ExportFormat",
    "export_evaluation",
    "read_idealizations",
    "write_idealizations",
]

"""Analysis algorithms: histograms, peak analysis, segmentation, optimization, evaluation."""

from ionchannel.analysis.evaluation import (
    accuracy,
    batch_evaluate,
    evaluate_trace,
    evaluate_with_settings,
    prepare_record,
    reconstruct_ground_truth,
)
from ionchannel.analysis.histograms import (
    amplitude_histogram,
    build_histogram,
    freedman_diaconis_bins,
    to_probability,
)
from ionchannel.analysis.mdl import (
    accept_breakpoints,
    detect_breaks,
    detect_double_breakpoint,
    detect_single_breakpoint,
    filter_by_jump,
    find_breakpoints,
    mdl_method,
    mdl_score,
)
from ionchannel.analysis.methods import (
    METHODS,
    classifier_method,
    mean_deviation_method,
    naive_method,
    run_method,
    threshold_band_method,
)
from ionchannel.analysis.noise import (
    compute_noise,
    fit_mse,
    fit_normal_to_noise,
    mean_squared_error,
    noise_normality_score,
)
from ionchannel.analysis.optimizer import run_threshold_optimizer
from ionchannel.analysis.peaks import analyze_peaks, threshold_band
from ionchannel.analysis.threshold import (
    dwell_times_from_breakpoints,
    extract_transitions,
    initial_state,
    sample_times,
    segment_by_threshold,
    states_from_breakpoints,
)

__all__ = [
    # Histograms
    "amplitude_histogram",
    "build_histogram",
    "freedman_diaconis_bins",
    "to_probability",
    # Peaks
    "analyze_peaks",
    "threshold_band",
    # Threshold crossing
    "segment_by_threshold",
    "dwell_times_from_breakpoints",
    "extract_transitions",
    "initial_state",
    "sample_times",
    "states_from_breakpoints",
    # Noise
    "compute_noise",
    "noise_normality_score",
    "mean_squared_error",
    "fit_normal_to_noise",
    "fit_mse",
    # Optimizer
    "run_threshold_optimizer",
    # MDL
    "mdl_score",
    "accept_breakpoints",
    "detect_single_breakpoint",
    "detect_double_breakpoint",
    "detect_breaks",
    "find_breakpoints",
    "filter_by_jump",
    "mdl_method",
    # Methods
    "METHODS",
    "run_method",
    "naive_method",
    "threshold_band_method",
    "classifier_method",
    "mean_deviation_method",
    # Evaluation
    "reconstruct_ground_truth",
    "accuracy",
    "prepare_record",
    "evaluate_trace",
    "batch_evaluate",
    "evaluate_with_settings",
]

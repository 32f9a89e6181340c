"""Data models for histograms, bands, noise, method configurations, results and evaluations."""

from ionchannel.models.evaluation import EvaluationSummary, TraceEvaluation, TraceRecord
from ionchannel.models.histogram import Histogram, PeakAnalysis, ThresholdBand
from ionchannel.models.method import (
    ExternalClassifierConfig,
    MDLConfig,
    MDLResult,
    MeanDeviationConfig,
    MethodResult,
    NaiveConfig,
    ThresholdBandConfig,
    ThresholdBandResult,
)
from ionchannel.models.noise import Noise

__all__ = [
    "EvaluationSummary",
    "ExternalClassifierConfig",
    "Histogram",
    "MDLConfig",
    "MDLResult",
    "MeanDeviationConfig",
    "MethodResult",
    "NaiveConfig",
    "Noise",
    "PeakAnalysis",
    "ThresholdBand",
    "ThresholdBandConfig",
    "ThresholdBandResult",
    "TraceEvaluation",
    "TraceRecord",
]

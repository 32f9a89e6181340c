"""Analysis configuration and settings.

Provides persistent settings storage with JSON serialization. Settings hold
the default parameters of every idealization method and of batch evaluation,
and are converted to method configurations with ``Settings.method_config``.

Platform-specific config locations:
- macOS: ~/Library/Application Support/IonChannel/settings.json
- Windows: %APPDATA%\\IonChannel\\settings.json
- Linux: ~/.config/ionchannel/settings.json (XDG Base Directory spec)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from ionchannel.errors import ConfigurationError
from ionchannel.models.method import (
    MDLConfig,
    MeanDeviationConfig,
    NaiveConfig,
    ThresholdBandConfig,
)

logger = logging.getLogger(__name__)


def _get_config_dir() -> Path:
    """Get the platform-specific configuration directory.

    Returns:
        Path to the configuration directory for the current platform.
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "IonChannel"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "IonChannel"
        return Path.home() / "AppData" / "Roaming" / "IonChannel"
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "ionchannel"
        return Path.home() / ".config" / "ionchannel"


# Default config file location
DEFAULT_CONFIG_PATH = _get_config_dir() / "settings.json"


@dataclass
class HistogramSettings:
    """Settings for amplitude histograms.

    Attributes:
        bins: Number of bins, 0 for the Freedman-Diaconis rule.
    """

    bins: int = 100


@dataclass
class ThresholdSettings:
    """Settings for the optimized threshold band method.

    Attributes:
        epsilon_step: Step of the band-width sweep.
        epsilon_max: Largest band width tried.
        noise_batch_size: Residual batch size for the normality score.
    """

    epsilon_step: float = 0.01
    epsilon_max: float = 0.20
    noise_batch_size: int = 50


@dataclass
class MDLSettings:
    """Settings for MDL segmentation.

    Attributes:
        min_seg: Minimum segment length in samples.
        jump_threshold: Minimum step between neighbouring segment means.
    """

    min_seg: int = 300
    jump_threshold: float = 0.8


@dataclass
class MeanDeviationSettings:
    """Settings for the running-mean deviation method.

    Attributes:
        delta: Offset subtracted from the deviation.
        lam: Deviation above which the state flips.
    """

    delta: float = 0.0
    lam: float = 0.5


@dataclass
class EvaluationSettings:
    """Settings for batch evaluation.

    Attributes:
        dt: Sample interval in seconds.
        dwell_bins: Bins of the dwell-time histograms.
        data_size: Number of leading samples per trace, 0 for all.
        normalize: Whether to z-score traces before analysis.
        max_workers: Worker processes, None for CPU count - 1.
    """

    dt: float = 1e-4
    dwell_bins: int = 100
    data_size: int = 0
    normalize: bool = True
    max_workers: Optional[int] = None


@dataclass
class Settings:
    """Analysis settings container.

    All settings are grouped into logical categories:
    - histogram: Amplitude histogram binning
    - threshold: Optimized threshold band method
    - mdl: MDL segmentation
    - mean_deviation: Running-mean deviation method
    - evaluation: Batch evaluation

    Settings are persisted to JSON.
    """

    histogram: HistogramSettings = field(default_factory=HistogramSettings)
    threshold: ThresholdSettings = field(default_factory=ThresholdSettings)
    mdl: MDLSettings = field(default_factory=MDLSettings)
    mean_deviation: MeanDeviationSettings = field(default_factory=MeanDeviationSettings)
    evaluation: EvaluationSettings = field(default_factory=EvaluationSettings)

    def to_dict(self) -> dict:
        """Convert settings to a dictionary for serialization.

        Returns:
            Dictionary representation of all settings.
        """
        return {
            "histogram": asdict(self.histogram),
            "threshold": asdict(self.threshold),
            "mdl": asdict(self.mdl),
            "mean_deviation": asdict(self.mean_deviation),
            "evaluation": asdict(self.evaluation),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        """Create Settings from a dictionary.

        Missing groups or keys keep their defaults.

        Args:
            data: Dictionary with settings data.

        Returns:
            Settings instance populated from the dictionary.
        """
        settings = cls()

        if "histogram" in data:
            hist = data["histogram"]
            settings.histogram = HistogramSettings(bins=hist.get("bins", 100))

        if "threshold" in data:
            thr = data["threshold"]
            settings.threshold = ThresholdSettings(
                epsilon_step=thr.get("epsilon_step", 0.01),
                epsilon_max=thr.get("epsilon_max", 0.20),
                noise_batch_size=thr.get("noise_batch_size", 50),
            )

        if "mdl" in data:
            mdl = data["mdl"]
            settings.mdl = MDLSettings(
                min_seg=mdl.get("min_seg", 300),
                jump_threshold=mdl.get("jump_threshold", 0.8),
            )

        if "mean_deviation" in data:
            md = data["mean_deviation"]
            settings.mean_deviation = MeanDeviationSettings(
                delta=md.get("delta", 0.0),
                lam=md.get("lam", 0.5),
            )

        if "evaluation" in data:
            ev = data["evaluation"]
            settings.evaluation = EvaluationSettings(
                dt=ev.get("dt", 1e-4),
                dwell_bins=ev.get("dwell_bins", 100),
                data_size=ev.get("data_size", 0),
                normalize=ev.get("normalize", True),
                max_workers=ev.get("max_workers"),
            )

        return settings

    def method_config(self, kind: str):
        """Build a method configuration from these settings.

        Args:
            kind: One of ``"naive"``, ``"threshold"``, ``"mdl"`` or
                ``"mean_deviation"``.

        Returns:
            The matching configuration dataclass.

        Raises:
            ConfigurationError: If kind is unknown or a value is invalid.
        """
        bins = self.histogram.bins if self.histogram.bins > 0 else None

        if kind == "naive":
            return NaiveConfig(bins=bins)
        if kind == "threshold":
            return ThresholdBandConfig(
                bins=bins,
                epsilon_step=self.threshold.epsilon_step,
                epsilon_max=self.threshold.epsilon_max,
                batch_size=self.threshold.noise_batch_size,
            )
        if kind == "mdl":
            return MDLConfig(
                min_seg=self.mdl.min_seg,
                jump_threshold=self.mdl.jump_threshold,
                bins=bins,
            )
        if kind == "mean_deviation":
            return MeanDeviationConfig(
                delta=self.mean_deviation.delta,
                lam=self.mean_deviation.lam,
            )
        raise ConfigurationError(f"Unknown method kind: {kind}")

    def save(self, path: Optional[Path] = None) -> None:
        """Save settings to a JSON file.

        Args:
            path: Path to save settings. Defaults to DEFAULT_CONFIG_PATH.
        """
        if path is None:
            path = DEFAULT_CONFIG_PATH

        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Settings saved to {path}")
        except OSError as e:
            logger.error(f"Failed to save settings to {path}: {e}")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Settings:
        """Load settings from a JSON file.

        Args:
            path: Path to load settings from. Defaults to DEFAULT_CONFIG_PATH.

        Returns:
            Settings instance. Returns defaults if file doesn't exist or is invalid.
        """
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if not path.exists():
            logger.info(f"No settings file at {path}, using defaults")
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
            settings = cls.from_dict(data)
            logger.info(f"Settings loaded from {path}")
            return settings
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load settings from {path}: {e}, using defaults")
            return cls()

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self.histogram = HistogramSettings()
        self.threshold = ThresholdSettings()
        self.mdl = MDLSettings()
        self.mean_deviation = MeanDeviationSettings()
        self.evaluation = EvaluationSettings()


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Loads from disk on first access.

    Returns:
        The global Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def save_settings() -> None:
    """Save the global settings to disk."""
    if _settings is not None:
        _settings.save()

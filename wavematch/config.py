"""Configuration management using Pydantic and YAML."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FingerprintConfig(BaseModel):
    """Fingerprint format properties.

    Built once at startup and handed to every component. Instances are
    frozen so a shared config cannot drift between comparisons.
    """

    model_config = ConfigDict(frozen=True)

    sample_rate: int = Field(gt=0, default=8000)
    sample_size_per_frame: int = Field(ge=2, default=1024)
    overlap_factor: int = Field(ge=1, default=4)
    num_filter_banks: int = Field(ge=1, default=4)
    num_robust_points_per_frame: int = Field(ge=1, default=4)
    pair_neighbor_radius: int = Field(ge=0, le=255, default=3)
    top_offset_count: int = Field(ge=1, default=60)
    score_threshold: float = Field(ge=0, default=9.0)

    @model_validator(mode="after")
    def _check_frame_layout(self) -> FingerprintConfig:
        if self.overlap_factor > self.sample_size_per_frame:
            raise ValueError("overlap_factor cannot exceed sample_size_per_frame")
        if self.num_filter_banks > self.sample_size_per_frame // 2:
            raise ValueError("num_filter_banks exceeds the number of frequency bins")
        return self

    @property
    def hop_length(self) -> int:
        """Samples between the starts of two consecutive frames."""
        return self.sample_size_per_frame // self.overlap_factor

    @property
    def frames_per_second(self) -> float:
        return self.sample_rate / self.hop_length

    @property
    def num_frequency_bins(self) -> int:
        return self.sample_size_per_frame // 2


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


class WavematchConfig(BaseModel):
    """Main application configuration."""

    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


DEFAULT_CONFIG_PATHS = [
    Path(__file__).parent.parent / "config" / "config.yaml",
    Path.home() / ".config" / "wavematch" / "config.yaml",
]


def load_config(config_path: Path | None = None) -> WavematchConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, the default locations are
            searched and built-in defaults are used when none exists.

    Returns:
        WavematchConfig instance

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If config file is invalid
    """
    if config_path is None:
        for path in DEFAULT_CONFIG_PATHS:
            if path.exists():
                config_path = path
                break
        else:
            return WavematchConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return WavematchConfig(**data)

"""Configuration models for running trays."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TrayConfig(BaseModel):
    """
    Configuration for a tray assembled from files.

    Attributes:
        source: Frame file to read from; when omitted the tray runs on an
            infinite source of empty frames
        sink: Frame file every frame is written to after processing
        append: Open the sink in append mode instead of truncating it
        max_frames: Upper bound on frames to process (required without a
            source)
        log_level: Level applied to icetray loggers for the run
    """

    source: str | None = None
    sink: str | None = None
    append: bool = False
    max_frames: int | None = Field(default=None, ge=0)
    log_level: str = "INFO"

    model_config = ConfigDict(extra="forbid")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise the level name and reject unknown ones."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_bounded(self) -> TrayConfig:
        """An infinite source needs an explicit frame bound, and the sink must not be the source."""
        if self.source is None and self.max_frames is None:
            raise ValueError("max_frames is required when no source file is configured")
        if self.append and self.sink is None:
            raise ValueError("append requires a sink")
        if (
            self.source is not None
            and self.sink is not None
            and Path(self.source).resolve() == Path(self.sink).resolve()
        ):
            raise ValueError(f"sink must be a different file from source: {self.source}")
        return self


def load_tray_config(path: str | Path) -> TrayConfig:
    """
    Load a tray configuration from a YAML file.

    Args:
        path: Path to the YAML document

    Returns:
        Validated TrayConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping or fails validation
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        config_dict: Any = yaml.safe_load(f)

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return TrayConfig(**config_dict)

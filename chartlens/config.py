"""
Engine configuration.

Every tunable threshold used by the analysis engine lives on ``EngineSettings``.
Values can be overridden through ``CHARTLENS_*`` environment variables or a
``.env`` file. Callers that need per-session overrides build their own
``EngineSettings`` and pass it to the public operations.
"""

import logging
import os
from functools import lru_cache
from logging import Handler
from logging.handlers import RotatingFileHandler
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Opt-in logging setup for applications embedding the engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file (creates directory if needed)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove all existing handlers to prevent duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        try:
            file_handler: Handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)8s] %(name)s: %(message)s "
                    "[%(filename)s:%(lineno)d in %(funcName)s()]"
                )
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning("Could not set up file logging to %s: %s", log_file, e)

    # Console only shows warnings and errors
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialized: level=%s, file=%s", log_level, log_file or "-")


class EngineSettings(BaseSettings):
    """Tunable thresholds for classification, chart shaping and statistics."""

    # === CHART SHAPING ===
    MAX_DATA_POINTS: int = 500
    MAX_BAR_CATEGORIES: int = 10
    MAX_TREND_CATEGORIES: int = 10
    MAX_STACK_CATEGORIES: int = 10
    MAX_PIE_SLICES: int = 15  # includes the collapsed "Other" slice
    OTHER_SLICE_LABEL: str = "Other"
    MAX_RADAR_CATEGORIES: int = 12
    SCATTER_MIN_NUMERIC_RATIO: float = 0.2

    # === COLUMN CLASSIFICATION ===
    CATEGORICAL_MIN_UNIQUE: int = 15
    CATEGORICAL_UNIQUE_RATIO: float = 0.1
    VISUALIZATION_MAX_UNIQUE_RATIO: float = 0.9
    ANALYSIS_WORKERS: int = 1

    # === STATISTICS ===
    SHAPE_MIN_SAMPLES: int = 4
    NORMALITY_MIN_SAMPLES: int = 8
    CONFIDENCE_Z: float = 1.96
    SIGNIFICANCE_LEVEL: float = 0.05

    # === REGRESSION ===
    LOGISTIC_ITERATIONS: int = 1000
    LOGISTIC_LEARNING_RATE: float = 0.1
    SINGULAR_PIVOT_TOLERANCE: float = 1e-10

    # === LOGGING ===
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="CHARTLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator(
        "MAX_DATA_POINTS",
        "MAX_BAR_CATEGORIES",
        "MAX_TREND_CATEGORIES",
        "MAX_STACK_CATEGORIES",
        "MAX_RADAR_CATEGORIES",
        "ANALYSIS_WORKERS",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("MAX_PIE_SLICES")
    @classmethod
    def validate_pie_slices(cls, v: int) -> int:
        # One named slice plus "Other" is the smallest useful pie
        if v < 2:
            raise ValueError("MAX_PIE_SLICES must be at least 2")
        return v

    @field_validator("SCATTER_MIN_NUMERIC_RATIO", "CATEGORICAL_UNIQUE_RATIO", "VISUALIZATION_MAX_UNIQUE_RATIO", "SIGNIFICANCE_LEVEL")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("ratio must be between 0 and 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    def setup_logging(self) -> None:
        setup_logging(self.LOG_LEVEL, self.LOG_FILE)


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get engine settings.
    Uses lru_cache so every call without explicit settings shares one instance.
    """
    return EngineSettings()


def resolve_settings(settings: Optional[EngineSettings]) -> EngineSettings:
    return settings if settings is not None else get_settings()

"""Configuration Management for Chainplace

This module provides centralized configuration for the placement scoring
engine. Scoring constants that must stay stable for the lifetime of a
scheduler process are held in an immutable Pydantic settings object; the
operational knobs are plain validated dataclasses.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class ScoringConfig(BaseSettings):
    """Immutable scoring configuration, read from ``CHAINPLACE_*`` variables."""

    min_node_score: int = Field(default=0, description="Lower bound of the normalized range")
    max_node_score: int = Field(default=100, description="Upper bound of the normalized range")
    slo_request_offset: float = Field(
        default=100.0, description="Constant added to the request rate in the SLO cost term"
    )
    default_namespace: str = Field(default="default", description="Namespace used when none is given")

    # Host-side weighting, only used by the offline cycle driver
    network_weight: float = Field(default=1.0, description="Weight of the NetworkAware signal")
    slo_weight: float = Field(default=1.0, description="Weight of the NetworkSloAware signal")
    balance_weight: float = Field(default=1.0, description="Weight of the balance signal")

    @field_validator("max_node_score")
    @classmethod
    def validate_score_range(cls, v, info: ValidationInfo):
        lowest = info.data.get("min_node_score")
        if lowest is not None and v <= lowest:
            raise ValueError("max_node_score must be greater than min_node_score")
        return v

    @field_validator("slo_request_offset")
    @classmethod
    def validate_offset(cls, v):
        if v < 0:
            raise ValueError("slo_request_offset must be non-negative")
        return v

    @field_validator("network_weight", "slo_weight", "balance_weight")
    @classmethod
    def validate_weight(cls, v):
        if v < 0:
            raise ValueError("plugin weights must be non-negative")
        return v

    model_config = {"frozen": True, "env_prefix": "CHAINPLACE_"}


@dataclass
class ExecutionConfig:
    """Configuration for per-node scoring fan-out and cluster reads."""

    max_parallelism: int = 16
    read_timeout_seconds: float = 10.0

    def __post_init__(self):
        """Validate execution configuration."""
        if self.max_parallelism < 1:
            raise ValueError("max_parallelism must be at least 1")

        if self.read_timeout_seconds <= 0:
            raise ValueError("read_timeout_seconds must be positive")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    log_level: str = "INFO"
    log_format: str = "console"

    def __post_init__(self):
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.log_level}")

        valid_formats = ["console", "json"]
        if self.log_format not in valid_formats:
            raise ValueError(f"Invalid log format: {self.log_format}")


@dataclass
class ChainplaceConfig:
    """Main configuration class for Chainplace."""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    debug: bool = False

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ChainplaceConfig":
        """Load configuration from environment variables."""
        if env_file:
            cls._load_env_file(env_file)

        scoring = ScoringConfig()

        execution = ExecutionConfig(
            max_parallelism=cls._get_int_env("MAX_PARALLELISM", 16),
            read_timeout_seconds=cls._get_float_env("READ_TIMEOUT_SECONDS", 10.0),
        )

        logging = LoggingConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "console"),
        )

        debug = cls._get_bool_env("DEBUG", False)

        return cls(scoring=scoring, execution=execution, logging=logging, debug=debug)

    @staticmethod
    def _load_env_file(env_file: str):
        """Load environment variables from file."""
        env_path = Path(env_file)
        if not env_path.exists():
            return

        with open(env_path, "r") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    os.environ[key.strip()] = value.strip()

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        """Get boolean environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    @staticmethod
    def _get_int_env(key: str, default: int) -> int:
        """Get integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def _get_float_env(key: str, default: float) -> float:
        """Get float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    def validate(self) -> List[str]:
        """Validate the entire configuration and return any errors."""
        errors = []

        try:
            ScoringConfig(**self.scoring.model_dump())
        except ValueError as e:
            errors.append(f"Scoring configuration error: {e}")

        if self.execution.max_parallelism > 256:
            errors.append("max_parallelism > 256 may exhaust the cluster API rate limits")

        total_weight = (
            self.scoring.network_weight + self.scoring.slo_weight + self.scoring.balance_weight
        )
        if total_weight == 0:
            errors.append("At least one plugin weight must be positive")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "scoring": self.scoring.model_dump(),
            "execution": {
                "max_parallelism": self.execution.max_parallelism,
                "read_timeout_seconds": self.execution.read_timeout_seconds,
            },
            "logging": {
                "log_level": self.logging.log_level,
                "log_format": self.logging.log_format,
            },
            "debug": self.debug,
        }

    def __str__(self) -> str:
        """String representation of configuration."""
        return (
            f"ChainplaceConfig(range=[{self.scoring.min_node_score}, "
            f"{self.scoring.max_node_score}], parallelism={self.execution.max_parallelism})"
        )


# Global configuration instance
_global_config: Optional[ChainplaceConfig] = None


def get_config() -> ChainplaceConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = ChainplaceConfig.from_env()
    return _global_config


def set_config(config: ChainplaceConfig):
    """Set the global configuration instance."""
    global _global_config

    errors = config.validate()
    if errors:
        raise ValueError(f"Configuration validation failed: {errors}")

    _global_config = config


def reset_config():
    """Reset the global configuration to default."""
    global _global_config
    _global_config = None

"""
Global Configuration System for FPL Squad Optimizer

Centralized configuration management for optimizer defaults, job lifecycle
limits and data loading. Provides type-safe configuration with validation and
environment variable support.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field, model_validator


class OptimizationConfig(BaseModel):
    """Squad Optimization Defaults"""

    # Prediction window
    start_gw: int = Field(default=1, description="First gameweek of the window", ge=1, le=38)
    end_gw: int = Field(
        default=3, description="Last gameweek of the window (inclusive)", ge=1, le=38
    )
    season_length: int = Field(
        default=38, description="Number of gameweeks in a season", ge=1, le=60
    )

    # Search width
    complexity: int = Field(
        default=20,
        description="Top-N combinations kept per ranking criterion and position",
        ge=1,
        le=500,
    )
    top_players_by_points: int = Field(
        default=200, description="Players kept by window points before combining", ge=1
    )
    top_players_by_value: int = Field(
        default=200, description="Players kept by points/price before combining", ge=1
    )

    # Squad constraints
    max_players_per_club: int = Field(
        default=3, description="Maximum squad players from one club", ge=1, le=15
    )
    min_team_price: float = Field(
        default=99.0, description="Minimum total squad price", ge=0.0
    )
    max_team_price: float = Field(
        default=100.0, description="Maximum total squad price", ge=0.0
    )

    # Scoring
    calculate_bench_boost: bool = Field(
        default=False, description="Add the best bench week to each squad total"
    )
    top_teams: int = Field(default=5, description="Squads returned per job", ge=1, le=100)
    scoring_workers: int = Field(
        default=1, description="Threads used to score assembled squads", ge=1, le=32
    )
    progress_interval_seconds: float = Field(
        default=2.0, description="Minimum wall time between scoring progress messages", ge=0.0
    )

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.start_gw > self.end_gw:
            raise ValueError("start_gw must be less than or equal to end_gw")
        if self.min_team_price > self.max_team_price:
            raise ValueError("min_team_price must not exceed max_team_price")
        return self


class JobsConfig(BaseModel):
    """Optimization Job Lifecycle Configuration"""

    max_concurrent_jobs: int = Field(
        default=2, description="Worker threads running optimization jobs", ge=1, le=64
    )
    job_ttl_seconds: float = Field(
        default=3600.0,
        description="Finished jobs older than this are evicted",
        gt=0.0,
    )
    max_jobs: int = Field(
        default=100, description="Upper bound on jobs kept in memory", ge=1
    )


class DataConfig(BaseModel):
    """Player Data Loading Configuration"""

    player_data_path: str = Field(
        default="data/player-data.json",
        description="JSON or CSV file with mapped player predictions",
    )
    prediction_column_prefix: str = Field(
        default="gw", description="CSV column prefix for per-gameweek predictions"
    )
    debug: bool = Field(default=False, description="Enable debug logging")


class FPLConfig(BaseModel):
    """Master FPL Configuration Container"""

    optimization: OptimizationConfig = Field(
        default_factory=OptimizationConfig, description="Optimization Configuration"
    )
    jobs: JobsConfig = Field(
        default_factory=JobsConfig, description="Job Lifecycle Configuration"
    )
    data: DataConfig = Field(
        default_factory=DataConfig, description="Data Loading Configuration"
    )

    @model_validator(mode="after")
    def validate_config_consistency(self):
        """Validate cross-field consistency"""
        if self.optimization.end_gw > self.optimization.season_length:
            raise ValueError("optimization.end_gw must not exceed season_length")
        return self


def load_config(
    config_path: Optional[Path] = None, config_data: Optional[Dict] = None
) -> FPLConfig:
    """
    Load configuration with environment variable overrides and optional config file

    Args:
        config_path: Optional path to JSON configuration file
        config_data: Optional dictionary of configuration data

    Environment variables can override any config value using the pattern:
    FPL_{SECTION}_{FIELD} = value

    Example: FPL_OPTIMIZATION_COMPLEXITY=40
    """
    config_dict = {}

    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                if config_path.suffix.lower() == ".json":
                    config_dict = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {config_path}: {e}")

    if config_data:
        for section, fields in config_data.items():
            if isinstance(fields, dict):
                config_dict.setdefault(section, {}).update(fields)
            else:
                config_dict[section] = fields

    env_overrides = {}
    for env_var, value in os.environ.items():
        if env_var.startswith("FPL_"):
            # FPL_SECTION_FIELD
            parts = env_var.split("_")[1:]
            if len(parts) >= 2:
                section = parts[0].lower()
                field = "_".join(parts[1:]).lower()
                env_overrides.setdefault(section, {})[field] = _coerce_env_value(value)

    for section, fields in env_overrides.items():
        if section not in FPLConfig.model_fields:
            continue
        config_dict.setdefault(section, {}).update(fields)

    try:
        return FPLConfig(**config_dict)
    except ValueError as e:
        logger.warning(f"Configuration validation failed: {e}")
        logger.warning("Using default configuration...")
        return FPLConfig()


def _coerce_env_value(value: str):
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value) if "." in value else value
    except ValueError:
        return value


# Global configuration instance
config = load_config()

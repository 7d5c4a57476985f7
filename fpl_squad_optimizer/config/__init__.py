"""
FPL Squad Optimizer Configuration Module

Provides centralized configuration management for the entire application.
Import the global config instance to access all configuration values.

Usage:
    from fpl_squad_optimizer.config import config

    # Access optimizer defaults
    complexity = config.optimization.complexity

    # Access job lifecycle limits
    ttl = config.jobs.job_ttl_seconds
"""

from .settings import (
    FPLConfig,
    OptimizationConfig,
    JobsConfig,
    DataConfig,
    config,
    load_config,
)

__all__ = [
    "FPLConfig",
    "OptimizationConfig",
    "JobsConfig",
    "DataConfig",
    "config",
    "load_config",
]

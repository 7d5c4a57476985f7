"""Domain services: optimization pipeline, job runner and squad analysis."""

from .job_runner import OptimizationJob, OptimizationJobRunner, ProgressChannel
from .optimization_service import ProgressAccumulator, SquadOptimizationService, format_elapsed
from .squad_analysis_service import SquadAnalysisService

__all__ = [
    "SquadOptimizationService",
    "ProgressAccumulator",
    "format_elapsed",
    "OptimizationJobRunner",
    "OptimizationJob",
    "ProgressChannel",
    "SquadAnalysisService",
]

"""Helpers around FPLConfig: export, validation, diffs and the show-config summary."""

import json
from pathlib import Path
from typing import Any, Dict, List

from .settings import FPLConfig


def export_config_to_json(config: FPLConfig, output_path: Path) -> None:
    """Write ``config`` to ``output_path`` as indented JSON."""
    Path(output_path).write_text(config.model_dump_json(indent=2), encoding="utf-8")


def validate_config_file(config_path: Path) -> List[str]:
    """List problems with a config file; empty when it validates.

    ``load_config`` silently falls back to defaults, this surfaces the reason.
    """
    if not config_path.exists():
        return [f"Configuration file not found: {config_path}"]
    try:
        FPLConfig.model_validate(json.loads(config_path.read_text(encoding="utf-8")))
    except (ValueError, TypeError) as e:
        return [f"Configuration validation failed: {e}"]
    return []


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def compare_configs(config1: FPLConfig, config2: FPLConfig) -> Dict[str, Any]:
    """Settings that differ, keyed by dotted path (``optimization.complexity``)."""
    left = _flatten(config1.model_dump())
    right = _flatten(config2.model_dump())
    return {
        path: {
            "config1": left.get(path, "<missing>"),
            "config2": right.get(path, "<missing>"),
        }
        for path in sorted(set(left) | set(right))
        if left.get(path, "<missing>") != right.get(path, "<missing>")
    }


def config_summary_lines(config: FPLConfig) -> List[str]:
    opt = config.optimization
    return [
        "🔧 FPL Squad Optimizer Configuration",
        f"  • Window: GW{opt.start_gw}-{opt.end_gw} (season of {opt.season_length})",
        f"  • Complexity: {opt.complexity} per criterion",
        f"  • Price band: £{opt.min_team_price:.1f}m - £{opt.max_team_price:.1f}m",
        f"  • Max per club: {opt.max_players_per_club}",
        f"  • Bench boost: {'On' if opt.calculate_bench_boost else 'Off'}",
        f"  • Top teams: {opt.top_teams}",
        f"  • Scoring workers: {opt.scoring_workers}",
        f"  • Concurrent jobs: {config.jobs.max_concurrent_jobs}",
        f"  • Job TTL: {config.jobs.job_ttl_seconds:.0f}s",
        f"  • Player data: {config.data.player_data_path}",
    ]


def create_config_template() -> str:
    """Default configuration as a JSON template."""
    return FPLConfig().model_dump_json(indent=2)


def get_env_var_examples() -> Dict[str, str]:
    # FPL_{SECTION}_{FIELD} overrides read by load_config
    return {
        "FPL_OPTIMIZATION_COMPLEXITY": "40",
        "FPL_OPTIMIZATION_CALCULATE_BENCH_BOOST": "true",
        "FPL_OPTIMIZATION_MAX_TEAM_PRICE": "100.0",
        "FPL_JOBS_JOB_TTL_SECONDS": "600.0",
        "FPL_DATA_PLAYER_DATA_PATH": "data/player-data.csv",
    }

"""Tests for configuration loading and environment overrides."""

import json

from fpl_squad_optimizer.config.settings import (
    FPLConfig,
    OptimizationConfig,
    load_config,
)


class TestDefaults:
    """Default values match the documented optimizer behaviour."""

    def test_optimization_defaults(self):
        opt = OptimizationConfig()

        assert opt.start_gw == 1
        assert opt.end_gw == 3
        assert opt.season_length == 38
        assert opt.max_players_per_club == 3
        assert opt.min_team_price == 99.0
        assert opt.max_team_price == 100.0
        assert opt.calculate_bench_boost is False
        assert opt.progress_interval_seconds == 2.0

    def test_jobs_and_data_defaults(self):
        cfg = FPLConfig()

        assert cfg.jobs.max_concurrent_jobs >= 1
        assert cfg.jobs.job_ttl_seconds > 0
        assert cfg.data.prediction_column_prefix == "gw"


class TestLoadConfig:
    """load_config merges file, explicit data and environment."""

    def test_config_data_overrides_section_fields(self, monkeypatch):
        monkeypatch.delenv("FPL_OPTIMIZATION_COMPLEXITY", raising=False)
        cfg = load_config(config_data={"optimization": {"complexity": 42}})

        assert cfg.optimization.complexity == 42
        # Untouched fields keep their defaults
        assert cfg.optimization.max_team_price == 100.0

    def test_json_file_is_loaded(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"jobs": {"max_jobs": 7}}))

        cfg = load_config(config_path=path)

        assert cfg.jobs.max_jobs == 7

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(config_path=tmp_path / "missing.json")

        assert cfg.jobs.max_jobs == FPLConfig().jobs.max_jobs

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FPL_OPTIMIZATION_COMPLEXITY", "55")
        monkeypatch.setenv("FPL_OPTIMIZATION_CALCULATE_BENCH_BOOST", "true")
        monkeypatch.setenv("FPL_JOBS_JOB_TTL_SECONDS", "12.5")

        cfg = load_config()

        assert cfg.optimization.complexity == 55
        assert cfg.optimization.calculate_bench_boost is True
        assert cfg.jobs.job_ttl_seconds == 12.5

    def test_unknown_env_section_is_ignored(self, monkeypatch):
        monkeypatch.setenv("FPL_NOPE_SETTING", "1")

        cfg = load_config()

        assert isinstance(cfg, FPLConfig)

    def test_invalid_values_fall_back_to_defaults(self):
        cfg = load_config(config_data={"optimization": {"start_gw": 5, "end_gw": 2}})

        assert cfg.optimization.start_gw == 1
        assert cfg.optimization.end_gw == 3

    def test_end_gw_beyond_season_rejected(self):
        cfg = load_config(
            config_data={"optimization": {"season_length": 10, "start_gw": 1, "end_gw": 12}}
        )

        # Falls back to defaults
        assert cfg.optimization.season_length == 38

"""Tests for config.py - layered configuration loading."""

import os

import pytest

from render_profiler.config import DetectorConfig, ProfilerConfig, ScoringConfig, load_config
from render_profiler.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user and project config files out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("RENDER_PROFILER_"):
            monkeypatch.delenv(key)


class TestDefaults:
    """Test default values and validation."""

    def test_defaults(self):
        config = load_config()
        assert config.fps_target == 60
        assert config.cdp_port == 9222
        assert config.collection_duration_ms == 15000
        assert config.verbosity == "normal"
        assert config.detectors.long_task_threshold_ms == 50.0

    def test_frame_budget(self):
        assert ProfilerConfig(fps_target=120).frame_budget_ms == 1000 / 120

    def test_invalid_fps(self):
        with pytest.raises(ValueError):
            ProfilerConfig(fps_target=0)

    def test_scoring_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoringConfig(duration_weight=0.5, frequency_weight=0.5, impact_weight=0.5)

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValueError):
            ScoringConfig(high_threshold=90)

    def test_detector_validation(self):
        with pytest.raises(ValueError):
            DetectorConfig(thrash_gap_fraction=0)


class TestLoadConfig:
    """Test load_config source merging."""

    def test_overrides_win(self):
        config = load_config(fps_target=120, cdp_port=None)
        assert config.fps_target == 120
        assert config.cdp_port == 9222

    def test_verbose_and_quiet_flags(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"
        assert load_config(verbose=False, quiet=False).verbosity == "normal"

    def test_project_file(self, tmp_path):
        (tmp_path / "render-profiler.toml").write_text(
            'fps_target = 90\n\n[detectors]\nlong_task_threshold_ms = 40\n', encoding="utf-8"
        )
        config = load_config()
        assert config.fps_target == 90
        assert config.detectors.long_task_threshold_ms == 40

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text("[scoring]\ncritical_threshold = 90\n", encoding="utf-8")
        assert load_config(config_file=path).scoring.critical_threshold == 90

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config(config_file=tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("fps_target = [", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(config_file=path)

    def test_invalid_nested_section(self, tmp_path):
        path = tmp_path / "weights.toml"
        path.write_text("[scoring]\nduration_weight = 0.9\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match=r"Invalid \[scoring\] config"):
            load_config(config_file=path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "typo.toml"
        path.write_text("fps = 30\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(config_file=path)

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("RENDER_PROFILER_FPS_TARGET", "30")
        monkeypatch.setenv("RENDER_PROFILER_CDP_HOST", "10.0.0.5")
        monkeypatch.setenv("RENDER_PROFILER_VERBOSITY", "quiet")
        config = load_config()
        assert config.fps_target == 30.0
        assert config.cdp_host == "10.0.0.5"
        assert config.verbosity == "quiet"

    def test_env_overridden_by_cli(self, monkeypatch):
        monkeypatch.setenv("RENDER_PROFILER_CDP_PORT", "9333")
        assert load_config(cdp_port=9444).cdp_port == 9444

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("RENDER_PROFILER_CDP_PORT", "not-a-port")
        with pytest.raises(ConfigurationError, match="RENDER_PROFILER_CDP_PORT"):
            load_config()

    def test_bad_env_literal(self, monkeypatch):
        monkeypatch.setenv("RENDER_PROFILER_VERBOSITY", "loud")
        with pytest.raises(ConfigurationError):
            load_config()

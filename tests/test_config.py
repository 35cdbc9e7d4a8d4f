"""
Configuration Tests
YAML persistence and validation of system settings
"""
from pathlib import Path

import pytest

from config import AccumulatorConfig, SystemConfig, load_config, save_config


class TestConfig:

    def test_defaults(self):
        config = SystemConfig()
        assert config.accumulator.tree_depth == 3
        assert config.signature.max_signing_attempts == 1024
        assert config.circuit.backend == "reference"
        assert config.log_dir == Path("logs")

    def test_roundtrip(self, tmp_path):
        config = SystemConfig(seed=7, log_level="WARNING")
        config.accumulator.tree_depth = 5
        config.circuit.batch_workers = 2
        path = tmp_path / "config.yaml"
        save_config(config, path)
        loaded = load_config(path)
        assert loaded.seed == 7
        assert loaded.log_level == "WARNING"
        assert loaded.accumulator.tree_depth == 5
        assert loaded.circuit.batch_workers == 2

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == SystemConfig()

    def test_invalid_file_gives_defaults(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("accumulator:\n  tree_depth: 0\n")
        assert load_config(path).accumulator.tree_depth == 3

    def test_debug_mode_forces_debug_logging(self):
        assert SystemConfig(enable_debug_mode=True).log_level == "DEBUG"

    def test_leaf_capacity_validated(self):
        with pytest.raises(ValueError):
            AccumulatorConfig(leaf_size=200, window_size=4, num_windows=256)

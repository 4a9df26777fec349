"""Unit tests for Config and related Pydantic models (blueprint_forge.config).

Tests cover:
- RunSettings / MaterializeSettings defaults and validation
- Config save/load round trip
- Config.from_env
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from blueprint_forge.config import Config, MaterializeSettings, RunSettings

pytestmark = pytest.mark.unit


class TestRunSettings:
    def test_defaults(self):
        settings = RunSettings()
        assert settings.max_parallel == 4
        assert settings.node_timeout == 30.0

    def test_rejects_zero_parallelism(self):
        with pytest.raises(ValidationError):
            RunSettings(max_parallel=0)

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            RunSettings(node_timeout=0)


class TestMaterializeSettings:
    def test_defaults(self):
        settings = MaterializeSettings()
        assert settings.output_dir == Path("./output")
        assert settings.archive is False
        assert settings.overwrite is False


class TestConfig:
    def test_output_dir_property(self, tmp_path: Path):
        config = Config(materialize=MaterializeSettings(output_dir=tmp_path / "out"))
        assert config.output_dir == tmp_path / "out"

    def test_save_and_load(self, tmp_path: Path):
        config = Config(
            run=RunSettings(max_parallel=2, node_timeout=5),
            merge={"extra_rules": [{"pattern": "**/tsconfig.json", "strategy": "json-manifest"}]},
            log_level="DEBUG",
        )
        path = config.save(tmp_path / "nested" / "config.json")
        assert path.exists()

        loaded = Config.load(path)
        assert loaded.run.max_parallel == 2
        assert loaded.run.node_timeout == 5
        assert loaded.merge.extra_rules[0]["strategy"] == "json-manifest"
        assert loaded.log_level == "DEBUG"


class TestConfigFromEnv:
    def test_defaults_with_empty_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()
        assert config.run.max_parallel == 4
        assert config.log_level == "INFO"
        assert config.materialize.archive is False

    def test_reads_all_variables(self, tmp_path: Path):
        env = {
            "FORGE_MAX_PARALLEL": "8",
            "FORGE_NODE_TIMEOUT": "2.5",
            "FORGE_OUTPUT_DIR": str(tmp_path / "gen"),
            "FORGE_ARCHIVE": "yes",
            "FORGE_OVERWRITE": "1",
            "FORGE_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.run.max_parallel == 8
        assert config.run.node_timeout == 2.5
        assert config.output_dir == tmp_path / "gen"
        assert config.materialize.archive is True
        assert config.materialize.overwrite is True
        assert config.log_level == "DEBUG"

    def test_false_flag(self):
        with patch.dict(os.environ, {"FORGE_ARCHIVE": "off"}, clear=True):
            config = Config.from_env()
        assert config.materialize.archive is False

    def test_invalid_parallelism(self):
        with patch.dict(os.environ, {"FORGE_MAX_PARALLEL": "0"}, clear=True):
            with pytest.raises(ValidationError):
                Config.from_env()

    def test_invalid_log_level(self):
        with patch.dict(os.environ, {"FORGE_LOG_LEVEL": "chatty"}, clear=True):
            with pytest.raises(ValidationError, match="Unknown log level"):
                Config.from_env()

    def test_log_level_normalised(self):
        assert Config(log_level="warning").log_level == "WARNING"

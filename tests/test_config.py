"""Tests for specflow.lib.config module."""

import logging
from pathlib import Path

import pytest

from specflow.lib.config import DEFAULT_DATA_DIR, load_config, read_env_file


class TestReadEnvFile:
    def test_missing_file(self, tmp_path):
        assert read_env_file(tmp_path / "specflow.env") == {}

    def test_parses_values(self, tmp_path):
        path = tmp_path / "specflow.env"
        path.write_text(
            "# SpecFlow settings\n"
            "\n"
            "SPECFLOW_LOG_LEVEL=debug\n"
            "export SPECFLOW_DUE_SOON_DAYS=\"5\"\n"
            "OTHER='quoted value'\n"
        )
        assert read_env_file(path) == {
            "SPECFLOW_LOG_LEVEL": "debug",
            "SPECFLOW_DUE_SOON_DAYS": "5",
            "OTHER": "quoted value",
        }

    def test_rejects_missing_equals(self, tmp_path):
        path = tmp_path / "specflow.env"
        path.write_text("SPECFLOW_LOG_LEVEL\n")
        with pytest.raises(ValueError, match="line 1"):
            read_env_file(path)

    def test_rejects_bad_key(self, tmp_path):
        path = tmp_path / "specflow.env"
        path.write_text("specflow-level=INFO\n")
        with pytest.raises(ValueError, match="invalid key"):
            read_env_file(path)

    @pytest.mark.parametrize("value", ["`whoami`", "$(whoami)", "${HOME}"])
    def test_rejects_shell_syntax(self, tmp_path, value):
        path = tmp_path / "specflow.env"
        path.write_text(f"SPECFLOW_LOG_LEVEL={value}\n")
        with pytest.raises(ValueError, match="shell syntax"):
            read_env_file(path)


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        config = load_config(tmp_path, environ={})
        assert config.data_dir == tmp_path
        assert config.log_level == "WARNING"
        assert config.due_soon_days == 3

    def test_default_data_dir(self):
        config = load_config(environ={})
        assert config.data_dir == DEFAULT_DATA_DIR

    def test_data_dir_from_environment(self, tmp_path):
        config = load_config(environ={"SPECFLOW_DATA_DIR": str(tmp_path)})
        assert config.data_dir == tmp_path

    def test_explicit_data_dir_wins(self, tmp_path):
        config = load_config(tmp_path / "explicit", environ={"SPECFLOW_DATA_DIR": str(tmp_path / "env")})
        assert config.data_dir == tmp_path / "explicit"

    def test_env_file(self, tmp_path):
        (tmp_path / "specflow.env").write_text("SPECFLOW_LOG_LEVEL=info\nSPECFLOW_DUE_SOON_DAYS=7\n")
        config = load_config(tmp_path, environ={})
        assert config.log_level == "INFO"
        assert config.due_soon_days == 7

    def test_environment_overrides_file(self, tmp_path):
        (tmp_path / "specflow.env").write_text("SPECFLOW_DUE_SOON_DAYS=7\n")
        config = load_config(tmp_path, environ={"SPECFLOW_DUE_SOON_DAYS": "1"})
        assert config.due_soon_days == 1

    def test_invalid_log_level_defaults(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            config = load_config(tmp_path, environ={"SPECFLOW_LOG_LEVEL": "chatty"})
        assert config.log_level == "WARNING"
        assert "Unknown SPECFLOW_LOG_LEVEL 'chatty'" in caplog.text

    @pytest.mark.parametrize("raw", ["soon", "-2"])
    def test_invalid_due_soon_days_defaults(self, tmp_path, caplog, raw):
        with caplog.at_level(logging.WARNING):
            config = load_config(tmp_path, environ={"SPECFLOW_DUE_SOON_DAYS": raw})
        assert config.due_soon_days == 3
        assert "Invalid SPECFLOW_DUE_SOON_DAYS" in caplog.text

    def test_returns_path(self, tmp_path):
        assert isinstance(load_config(str(tmp_path), environ={}).data_dir, Path)

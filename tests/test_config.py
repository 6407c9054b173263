"""
Tests for environment-driven configuration.
"""

import os

import pytest

from ai_bookmarks.config import expand_env_vars, load_config

ENV_VARS = (
    "WORKSPACE_ROOT",
    "AI_BOOKMARKS_STORE_DIR",
    "AI_BOOKMARKS_STORE_FILE",
    "AI_BOOKMARKS_WATCH_INTERVAL",
    "AI_BOOKMARKS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestExpandEnvVars:
    def test_plain(self, monkeypatch):
        monkeypatch.setenv("HOME_DIR", "/home/me")
        assert expand_env_vars("${HOME_DIR}/src") == "/home/me/src"

    def test_default(self):
        assert expand_env_vars("${UNSET_FOR_TEST:-/tmp}/x") == "/tmp/x"

    def test_unset_without_default(self):
        assert expand_env_vars("a${UNSET_FOR_TEST}b") == "ab"


class TestLoadConfig:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.workspace_root == str(tmp_path)
        assert config.store_dir == ".vscode"
        assert config.store_file_name == "ai-bookmarks.json"
        assert config.watch_interval == 1.0
        assert config.log_level == "WARNING"

    def test_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WORKSPACE_ROOT", str(tmp_path))
        monkeypatch.setenv("AI_BOOKMARKS_STORE_DIR", ".bookmarks")
        monkeypatch.setenv("AI_BOOKMARKS_STORE_FILE", "marks.json")
        monkeypatch.setenv("AI_BOOKMARKS_WATCH_INTERVAL", "0.25")
        monkeypatch.setenv("AI_BOOKMARKS_LOG_LEVEL", "debug")

        config = load_config()

        assert config.workspace_root == str(tmp_path)
        assert config.store_dir == ".bookmarks"
        assert config.store_file_name == "marks.json"
        assert config.watch_interval == 0.25
        assert config.log_level == "DEBUG"

    def test_arguments_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WORKSPACE_ROOT", "/somewhere/else")
        monkeypatch.setenv("AI_BOOKMARKS_LOG_LEVEL", "ERROR")
        config = load_config(str(tmp_path), log_level="info")
        assert config.workspace_root == str(tmp_path)
        assert config.log_level == "INFO"

    def test_expansion_in_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROJECTS", str(tmp_path))
        monkeypatch.setenv("WORKSPACE_ROOT", "${PROJECTS}/shop")
        assert load_config().workspace_root == os.path.join(str(tmp_path), "shop")

    @pytest.mark.parametrize("value", ["0", "-1", "soon"])
    def test_bad_watch_interval(self, monkeypatch, value):
        monkeypatch.setenv("AI_BOOKMARKS_WATCH_INTERVAL", value)
        with pytest.raises(ValueError):
            load_config()

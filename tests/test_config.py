"""Tests for configuration loading."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from bitferry.config import SEARCH_PATH_ENV, BitferryConfig, config_file, load_config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(SEARCH_PATH_ENV, raising=False)
        config = load_config(tmp_path / "nope.yaml")
        assert config == BitferryConfig()

    def test_reads_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv(SEARCH_PATH_ENV, raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "search_paths": ["/srv/backup"],
            "scan_mounts": False,
            "rclone": "/opt/bin/rclone",
        }))
        config = load_config(path)
        assert config.search_paths == [Path("/srv/backup")]
        assert not config.scan_mounts
        assert config.rclone == "/opt/bin/rclone"
        assert config.restic == "restic"

    def test_broken_yaml_warns(self, tmp_path, monkeypatch, caplog):
        monkeypatch.delenv(SEARCH_PATH_ENV, raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("search_paths: [unclosed")
        assert load_config(path) == BitferryConfig()
        assert "Failed to load config" in caplog.text

    def test_wrong_types_warn(self, tmp_path, monkeypatch, caplog):
        monkeypatch.delenv(SEARCH_PATH_ENV, raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("scan_mounts: [1, 2]\n")
        assert load_config(path) == BitferryConfig()
        assert "Failed to load config" in caplog.text

    def test_environment_extends_search_paths(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"search_paths": ["/a"]}))
        monkeypatch.setenv(SEARCH_PATH_ENV, os.pathsep.join(["/b", "", "/c"]))
        assert load_config(path).search_paths == [Path("/a"), Path("/b"), Path("/c")]


def test_config_file_location(tmp_path):
    assert config_file(tmp_path) == tmp_path / "config.yaml"

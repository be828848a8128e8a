"""Tests for config.ini loading."""

from pathlib import Path

import pytest

from vaultsync import config as config_module
from vaultsync.config import load_config


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_full_config(tmp_path):
    path = _write(tmp_path / "config.ini", f"""
[catalog]
base_url = http://127.0.0.1:23119/api/users/0/
timeout = 10

[storage]
path = {tmp_path}/storage

[library]
vault_path = {tmp_path}/vault
folder = /Papers/
ignore_patterns = .trash, .obsidian

[monitoring]
enabled = no
debounce_seconds = 2.5
poll_seconds = 60
""")
    config = load_config(path)

    assert config.catalog.base_url == "http://127.0.0.1:23119/api/users/0"
    assert config.catalog.timeout == 10
    assert config.storage_path == tmp_path / "storage"
    assert config.library_path == tmp_path / "vault" / "Papers"
    assert config.unsorted_path == tmp_path / "vault" / "Papers" / "_Unsorted"
    assert config.library.ignore_patterns == (".trash", ".obsidian")
    assert config.monitoring.enabled is False
    assert config.monitoring.debounce_seconds == 2.5
    assert config.monitoring.poll_seconds == 60


def test_defaults_and_home_expansion(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    path = _write(tmp_path / "config.ini", "[library]\nvault_path = ~/vault\n")

    config = load_config(path)

    assert config.catalog.base_url == "http://localhost:23119/api/users/0"
    assert config.catalog.timeout == 30
    assert config.storage_path == tmp_path / "Zotero" / "storage"
    assert config.vault_path == tmp_path / "vault"
    assert config.library.folder == "Library"
    assert config.monitoring.debounce_seconds == 5
    assert config.monitoring.poll_seconds == 30


def test_zero_timeout_disables_timeout(tmp_path):
    path = _write(tmp_path / "config.ini", "[catalog]\ntimeout = 0\n")
    assert load_config(path).catalog.timeout is None


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.ini")


def test_get_config_is_cached(tmp_path, monkeypatch):
    path = _write(tmp_path / "config.ini", "[library]\nfolder = First\n")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", path)
    config_module.reset_config_cache()
    try:
        first = config_module.get_config()
        _write(path, "[library]\nfolder = Second\n")
        assert config_module.get_config() is first

        config_module.reset_config_cache()
        assert config_module.get_config().library.folder == "Second"
    finally:
        config_module.reset_config_cache()

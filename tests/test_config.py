"""Tests for settings resolution."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from docledger.config import Settings


def test_paths_resolve_under_overrides(tmp_path: Path):
    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    assert settings.get_journal_path() == tmp_path / "data" / "registry.jsonl"
    assert (tmp_path / "data").is_dir()
    assert settings.get_config_dir() == tmp_path / "config"


def test_journal_key_created_once(tmp_path: Path):
    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    key = settings.get_journal_hmac_key()
    assert len(key) == 32
    assert (tmp_path / "config" / "journal.key").exists()
    assert settings.get_journal_hmac_key() == key


def test_explicit_key_path(tmp_path: Path):
    key_path = tmp_path / "keys" / "custom.key"
    settings = Settings(config_dir=tmp_path / "config", journal_hmac_key_path=key_path)

    settings.get_journal_hmac_key()
    assert key_path.exists()


def test_environment_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("DOCLEDGER_DATA_DIR", str(tmp_path / "env-data"))
    monkeypatch.setenv("DOCLEDGER_PAGE_SIZE", "25")
    monkeypatch.setenv("DOCLEDGER_JOURNAL_ENABLED", "false")

    settings = Settings()

    assert settings.data_dir == tmp_path / "env-data"
    assert settings.page_size == 25
    assert settings.journal_enabled is False


def test_page_size_validated():
    with pytest.raises(ValidationError):
        Settings(page_size=0)


def test_xdg_default_data_dir(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))

    settings = Settings()
    assert settings.get_data_dir() == tmp_path / "xdg" / "docledger"

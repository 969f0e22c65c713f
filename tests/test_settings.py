from __future__ import annotations

from pathlib import Path

import pytest

from persona_setup.paths import HOME_ENV_VAR, get_home_directory
from persona_setup.settings import SettingsStore, UserSettings


def test_defaults() -> None:
    settings = UserSettings()
    assert settings.max_attempts == 2
    assert settings.retry_delay_seconds == 5.0
    assert settings.winget_source == "winget"
    assert settings.skip_installed is True
    assert settings.block_on_issues is False


def test_from_dict_falls_back_on_invalid_values() -> None:
    settings = UserSettings.from_dict(
        {
            "log_level": "chatty",
            "max_attempts": 0,
            "retry_delay_seconds": "soon",
            "install_scope": " Machine ",
            "skip_installed": "no",
            "history_limit": "25",
        }
    )
    assert settings.log_level == "INFO"
    assert settings.max_attempts == 2
    assert settings.retry_delay_seconds == 5.0
    assert settings.install_scope == "machine"
    assert settings.skip_installed is False
    assert settings.history_limit == 25


def test_store_round_trip(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    assert not store.exists()
    assert store.load() == UserSettings()
    store.save(UserSettings(max_attempts=4, log_level="DEBUG"))
    loaded = store.load()
    assert loaded.max_attempts == 4
    assert loaded.log_level == "DEBUG"


def test_corrupt_settings_file_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{oops", encoding="utf-8")
    assert SettingsStore(path).load() == UserSettings()


def test_home_override_drives_data_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path / "home"))
    assert get_home_directory() == tmp_path / "home"
    paths = UserSettings().data_paths()
    assert paths.catalog == tmp_path / "home" / "catalog.json"
    assert UserSettings(data_dir=str(tmp_path / "other")).data_paths().history == tmp_path / "other" / "history.json"

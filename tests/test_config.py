from __future__ import annotations

from pathlib import Path

from larder.config import get_settings


def test_settings_read_larder_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LARDER_REMOTE_BASE_URL", "https://docs.example.test")
    monkeypatch.setenv("LARDER_EXPIRY_WINDOW_DAYS", "3")
    monkeypatch.setenv("LARDER_SYNC_MAX_WORKERS", "0")
    monkeypatch.setenv("LARDER_SYNC_BACKOFF_BASE", "not-a-number")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.database_path == tmp_path / "test_larder.db"
    assert settings.remote_base_url == "https://docs.example.test"
    assert settings.expiry_window_days == 3
    assert settings.sync_max_workers == 1
    assert settings.sync_backoff_base == 30.0


def test_env_file_values_are_used_as_fallback(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(".env").write_text(
        "# local overrides\nLARDER_DEFAULT_LIST_ID=weekly\nLARDER_LOG_FORMAT=json\n",
        encoding="utf-8",
    )
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.default_list_id == "weekly"
    assert settings.log_format == "json"
    assert settings.remote_base_url is None

from __future__ import annotations

import logging
from pathlib import Path

from pdfmerge import main
from pdfmerge.core.config import Settings, get_settings
from pdfmerge.core.logging import configure_logging


def test_configure_paths_creates_directories(tmp_path: Path) -> None:
    settings = Settings(base_dir=tmp_path)

    settings.configure_paths()

    assert settings.storage_dir == (tmp_path / "uploads").resolve()
    assert settings.sessions_dir == settings.storage_dir / "sessions"
    assert settings.merged_dir == settings.storage_dir / "mergedPDF"
    assert all(path.is_dir() for path in (settings.storage_dir, settings.sessions_dir, settings.merged_dir))


def test_size_limit_in_bytes() -> None:
    assert Settings(max_file_size_mb=10).max_file_size_bytes == 10 * 1024 * 1024


def test_settings_read_from_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "drive")
    monkeypatch.setenv("RETENTION_MINUTES", "90")
    monkeypatch.setenv("DRIVE_PARENT_FOLDER_ID", "parent")

    settings = Settings(base_dir=tmp_path)

    assert settings.uses_drive
    assert settings.retention_minutes == 90
    assert settings.missing_drive_settings() == [
        "google_client_id",
        "google_client_secret",
        "google_refresh_token",
    ]


def test_reading_settings_creates_no_directories(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BASE_DIR", str(tmp_path))
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.base_dir == tmp_path
    assert list(tmp_path.iterdir()) == []


def test_app_is_only_built_by_the_factory() -> None:
    assert not hasattr(main, "app")


def test_create_app_applies_configured_log_level(tmp_path: Path) -> None:
    logger = logging.getLogger(Settings().app_name)
    try:
        main.create_app(Settings(base_dir=tmp_path, log_level="DEBUG"))
        assert logger.level == logging.DEBUG

        main.create_app(Settings(base_dir=tmp_path, log_level="warning"))
        assert logger.level == logging.WARNING
    finally:
        configure_logging(Settings(log_level="INFO"))

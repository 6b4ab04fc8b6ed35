from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "PDF Merge API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    base_dir: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    storage_dir: Optional[Path] = None
    sessions_dir: Optional[Path] = None
    merged_dir: Optional[Path] = None

    max_file_size_mb: float = Field(default=10, gt=0)
    render_previews: bool = True

    storage_backend: Literal["local", "drive"] = "local"

    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_redirect_uri: Optional[str] = None
    google_refresh_token: Optional[str] = None
    drive_parent_folder_id: Optional[str] = None

    retention_minutes: float = Field(default=60, gt=0)
    sweep_interval_minutes: float = Field(default=60, gt=0)

    allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @property
    def uses_drive(self) -> bool:
        return self.storage_backend == "drive"

    def missing_drive_settings(self) -> list[str]:
        required = (
            "google_client_id",
            "google_client_secret",
            "google_refresh_token",
            "drive_parent_folder_id",
        )
        return [name for name in required if not getattr(self, name)]

    def configure_paths(self) -> None:
        """Resolve the storage directories and create the missing ones."""
        self.storage_dir = (self.storage_dir or (self.base_dir / "uploads")).resolve()
        self.sessions_dir = (self.sessions_dir or (self.storage_dir / "sessions")).resolve()
        self.merged_dir = (self.merged_dir or (self.storage_dir / "mergedPDF")).resolve()

        for directory in (self.storage_dir, self.sessions_dir, self.merged_dir):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    # Directories are created by create_app, not on first read.
    return Settings()

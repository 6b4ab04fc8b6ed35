from __future__ import annotations

import sys
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, Sequence

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfReader, PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfmerge.core.config import Settings  # noqa: E402
from pdfmerge.main import create_app  # noqa: E402
from pdfmerge.storage.drive import RetentionGroup  # noqa: E402


def build_pdf_bytes(widths: Sequence[int], height: int = 100) -> bytes:
    """Blank pages whose widths identify them after a merge."""
    writer = PdfWriter()
    for width in widths:
        writer.add_blank_page(width=width, height=height)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_widths(source) -> list[int]:
    reader = PdfReader(source)
    return [round(float(page.mediabox.width)) for page in reader.pages]


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[[str, Iterable[int]], Path]:
    def _create(filename: str, widths: Iterable[int] = (200,)) -> Path:
        path = tmp_path / filename
        path.write_bytes(build_pdf_bytes(list(widths)))
        return path

    return _create


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    config = Settings(base_dir=tmp_path / "service", render_previews=False)
    config.configure_paths()
    return config


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


class FakeDriveClient:
    """In-memory stand-in for DriveClient."""

    def __init__(
        self,
        groups: Iterable[RetentionGroup] = (),
        *,
        fail_create_folder: bool = False,
        fail_list: bool = False,
        fail_delete: Iterable[str] = (),
    ) -> None:
        self.groups = list(groups)
        self.fail_create_folder = fail_create_folder
        self.fail_list = fail_list
        self.fail_delete = set(fail_delete)
        self.folders: dict[str, tuple[str, str]] = {}
        self.files: dict[str, tuple[str, str, bytes]] = {}
        self.shared: list[str] = []
        self.deleted: list[str] = []

    def create_folder(self, name: str, parent_id: str) -> str:
        if self.fail_create_folder:
            raise OSError("drive unavailable")
        folder_id = f"folder-{len(self.folders) + 1}"
        self.folders[folder_id] = (name, parent_id)
        return folder_id

    def upload_file(self, folder_id: str, name: str, data: bytes, mime_type: str = "application/pdf") -> str:
        file_id = f"file-{len(self.files) + 1}"
        self.files[file_id] = (folder_id, name, data)
        return file_id

    def share_public(self, file_id: str) -> None:
        self.shared.append(file_id)

    def get_links(self, file_id: str) -> tuple[str, str]:
        return (
            f"https://drive.example/file/{file_id}/view",
            f"https://drive.example/uc?id={file_id}&export=download",
        )

    def list_groups(self, parent_id: str) -> list[RetentionGroup]:
        if self.fail_list:
            raise OSError("listing failed")
        return list(self.groups)

    def delete_group(self, group_id: str) -> None:
        if group_id in self.fail_delete:
            raise OSError(f"cannot delete {group_id}")
        self.deleted.append(group_id)


def make_group(group_id: str, created_at: datetime) -> RetentionGroup:
    return RetentionGroup(group_id=group_id, name=f"session-{group_id}", created_at=created_at)


@pytest.fixture()
def fake_drive() -> FakeDriveClient:
    return FakeDriveClient()


@pytest.fixture()
def drive_settings(tmp_path: Path) -> Settings:
    config = Settings(
        base_dir=tmp_path / "service",
        render_previews=False,
        storage_backend="drive",
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_refresh_token="refresh-token",
        drive_parent_folder_id="parent-folder",
    )
    config.configure_paths()
    return config

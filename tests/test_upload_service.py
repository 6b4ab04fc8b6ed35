from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from conftest import build_pdf_bytes
from pdfmerge.core.errors import FileTooLarge, InvalidFileType, NoFilesProvided
from pdfmerge.services.upload_service import normalize_content_type, receive_uploads
from pdfmerge.storage.local import LocalStorage
from pdfmerge.storage.session import UploadSession


def _upload(filename: str, data: bytes, content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(
        file=BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture()
def session(tmp_path: Path) -> UploadSession:
    return UploadSession(token="test", directory=tmp_path / "sessions" / "test")


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "merged")


@pytest.mark.anyio
async def test_files_keep_received_order(session: UploadSession, storage: LocalStorage) -> None:
    uploads = [_upload(name, build_pdf_bytes([100])) for name in ("zeta.pdf", "alpha.pdf", "mid.pdf")]

    accepted = await receive_uploads(uploads, session, storage, max_bytes=10_000)

    assert [item.filename for item in accepted] == ["zeta.pdf", "alpha.pdf", "mid.pdf"]
    assert [item.position for item in accepted] == [0, 1, 2]
    assert all(item.path.parent == session.directory for item in accepted)
    assert accepted[0].size_bytes == accepted[0].path.stat().st_size


@pytest.mark.anyio
async def test_client_paths_are_reduced_to_basename(session: UploadSession, storage: LocalStorage) -> None:
    accepted = await receive_uploads(
        [_upload("../../etc/evil.pdf", build_pdf_bytes([100]))],
        session,
        storage,
        max_bytes=10_000,
    )

    assert accepted[0].filename == "evil.pdf"
    assert accepted[0].path == session.directory / "evil.pdf"


@pytest.mark.anyio
async def test_empty_request_is_rejected(session: UploadSession, storage: LocalStorage) -> None:
    with pytest.raises(NoFilesProvided):
        await receive_uploads([], session, storage, max_bytes=10_000)
    with pytest.raises(NoFilesProvided):
        await receive_uploads(None, session, storage, max_bytes=10_000)
    with pytest.raises(NoFilesProvided):
        await receive_uploads([_upload("", b"")], session, storage, max_bytes=10_000)

    assert not session.directory.exists()


@pytest.mark.anyio
async def test_wrong_type_rejects_before_writing(session: UploadSession, storage: LocalStorage) -> None:
    uploads = [_upload("a.pdf", build_pdf_bytes([100])), _upload("b.png", b"\x89PNG", "image/png")]

    with pytest.raises(InvalidFileType, match="b.png"):
        await receive_uploads(uploads, session, storage, max_bytes=10_000)

    assert not session.directory.exists()


@pytest.mark.anyio
async def test_oversized_upload_is_removed(session: UploadSession, storage: LocalStorage) -> None:
    uploads = [_upload("big.pdf", b"%PDF" + b"0" * 4096)]

    with pytest.raises(FileTooLarge):
        await receive_uploads(uploads, session, storage, max_bytes=1024)

    assert list(session.directory.iterdir()) == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("application/pdf", "application/pdf"),
        ("Application/PDF; charset=binary", "application/pdf"),
        (None, ""),
        ("application/x-pdf", "application/x-pdf"),
    ],
)
def test_normalize_content_type(raw, expected) -> None:
    assert normalize_content_type(raw) == expected

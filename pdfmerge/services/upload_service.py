from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi import UploadFile

from pdfmerge.core.errors import FileTooLarge, InvalidFileType, NoFilesProvided
from pdfmerge.core.logging import configure_logging
from pdfmerge.storage.local import LocalStorage, UploadTooLarge, safe_filename
from pdfmerge.storage.session import UploadSession

logger = configure_logging()

PDF_MIME_TYPE = "application/pdf"


@dataclass
class UploadedFile:
    filename: str
    size_bytes: int
    content_type: str
    path: Path
    position: int


def normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def ensure_pdf(upload: UploadFile) -> None:
    """Reject any part whose declared type is not application/pdf."""
    if normalize_content_type(upload.content_type) != PDF_MIME_TYPE:
        raise InvalidFileType(f"Only PDF files are allowed! '{upload.filename}' is not a PDF.")


async def receive_uploads(
    files: Optional[Sequence[UploadFile]],
    session: UploadSession,
    storage: LocalStorage,
    *,
    max_bytes: int,
) -> List[UploadedFile]:
    """Validate and store the parts of one request, keeping the order they arrived in."""
    uploads = [upload for upload in (files or []) if upload.filename]
    if not uploads:
        raise NoFilesProvided()

    # Type checks run before anything is written.
    for upload in uploads:
        ensure_pdf(upload)

    accepted: List[UploadedFile] = []
    for position, upload in enumerate(uploads):
        filename = safe_filename(upload.filename, f"document_{position + 1}.pdf")
        try:
            path, size_bytes = await storage.save_upload(
                upload,
                session,
                filename=filename,
                max_bytes=max_bytes,
            )
        except UploadTooLarge as exc:
            limit_mb = exc.limit / (1024 * 1024)
            raise FileTooLarge(f"'{filename}' is larger than the {limit_mb:g} MB limit.") from exc

        accepted.append(
            UploadedFile(
                filename=filename,
                size_bytes=size_bytes,
                content_type=PDF_MIME_TYPE,
                path=path,
                position=position,
            )
        )
        logger.info("Accepted %s (%s bytes) for session %s", filename, size_bytes, session.token)

    return accepted

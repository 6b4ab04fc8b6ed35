from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from pdfmerge.core.errors import MergeProducedNoPages, ParseFailure
from pdfmerge.core.logging import configure_logging
from pdfmerge.services.upload_service import UploadedFile

logger = configure_logging()

EMPTY_DOCUMENT_REASON = "The file contains no pages."


@dataclass
class SourceSummary:
    filename: str
    position: int
    page_count: int


@dataclass
class FileError:
    filename: str
    position: int
    reason: str
    kind: str = ParseFailure.kind

    def to_payload(self) -> dict:
        return {
            "fileName": self.filename,
            "position": self.position,
            "kind": self.kind,
            "reason": self.reason,
        }


@dataclass
class MergedDocument:
    writer: PdfWriter = field(default_factory=PdfWriter)
    sources: List[SourceSummary] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.writer.pages)


@dataclass
class MergeResult:
    document: MergedDocument
    errors: List[FileError] = field(default_factory=list)


class PDFService:
    """Concatenates uploaded PDFs page by page in submission order."""

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------
    def merge(self, files: Sequence[UploadedFile]) -> MergeResult:
        result = MergeResult(document=MergedDocument())

        for upload in files:
            try:
                pages = self._load_pages(upload)
            except (PyPdfError, OSError, ValueError) as exc:
                logger.warning("Skipping %s (position %s): %s", upload.filename, upload.position, exc)
                result.errors.append(
                    FileError(
                        filename=upload.filename,
                        position=upload.position,
                        reason=ParseFailure.default_message,
                    )
                )
                continue

            if not pages:
                logger.warning("Skipping %s (position %s): no pages", upload.filename, upload.position)
                result.errors.append(
                    FileError(filename=upload.filename, position=upload.position, reason=EMPTY_DOCUMENT_REASON)
                )
                continue

            for page in pages:
                result.document.writer.add_page(page)
            result.document.sources.append(
                SourceSummary(filename=upload.filename, position=upload.position, page_count=len(pages))
            )

        if result.document.page_count == 0:
            raise MergeProducedNoPages(
                skippedFiles=[error.to_payload() for error in result.errors],
            )

        return result

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    @staticmethod
    def serialize(document: MergedDocument) -> bytes:
        buffer = BytesIO()
        document.writer.write(buffer)
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _load_pages(upload: UploadedFile) -> list:
        # Read fully into memory so nothing keeps a handle on the session file.
        reader = PdfReader(BytesIO(upload.path.read_bytes()))
        if reader.is_encrypted and not reader.decrypt(""):
            raise ValueError("document is encrypted")
        # Resolve every page before appending so a file contributes all its pages or none.
        return list(reader.pages)

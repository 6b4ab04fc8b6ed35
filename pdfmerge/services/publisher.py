from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from pdfmerge.core.errors import RemoteFolderCreationFailure, StorageFailure
from pdfmerge.core.logging import configure_logging
from pdfmerge.services.pdf_service import MergedDocument, PDFService
from pdfmerge.services.upload_service import PDF_MIME_TYPE, UploadedFile
from pdfmerge.storage.drive import DriveClient, RemoteFile
from pdfmerge.storage.local import LocalStorage
from pdfmerge.storage.session import generate_token
from pdfmerge.utils.pdf_preview import render_page_preview

logger = configure_logging()

REMOTE_ERRORS = (HttpError, GoogleAuthError, OSError)


@dataclass(frozen=True)
class MergeArtifact:
    filename: str
    size_bytes: int
    page_count: int
    location: str
    download_link: str
    view_link: Optional[str] = None
    file_id: Optional[str] = None
    preview: Optional[str] = None

    def to_payload(self) -> dict:
        payload = {
            "fileName": self.filename,
            "downloadLink": self.download_link,
            "pageCount": self.page_count,
            "sizeBytes": self.size_bytes,
        }
        if self.file_id:
            payload["id"] = self.file_id
        if self.view_link:
            payload["viewLink"] = self.view_link
        if self.preview:
            payload["preview"] = self.preview
        return payload


@dataclass
class PublishedGroup:
    group_id: str
    name: str


def artifact_filename() -> str:
    return f"{generate_token()}_merged.pdf"


class BasePublisher:
    """Serializes a merged document and hands the bytes to a concrete store."""

    def __init__(self, pdf_service: Optional[PDFService] = None, *, render_previews: bool = True) -> None:
        self.pdf_service = pdf_service or PDFService()
        self.render_previews = render_previews

    async def open_group(self, name: str) -> Optional[PublishedGroup]:
        return None

    async def archive_sources(
        self,
        group: Optional[PublishedGroup],
        uploads: Sequence[UploadedFile],
    ) -> List[RemoteFile]:
        return []

    async def publish(self, document: MergedDocument, group: Optional[PublishedGroup] = None) -> MergeArtifact:
        data = await run_in_threadpool(self.pdf_service.serialize, document)
        filename = artifact_filename()
        preview = await self._preview(data) if self.render_previews else None
        return await self._store(data, filename, document.page_count, group, preview)

    async def _store(
        self,
        data: bytes,
        filename: str,
        page_count: int,
        group: Optional[PublishedGroup],
        preview: Optional[str],
    ) -> MergeArtifact:
        raise NotImplementedError

    async def _preview(self, data: bytes) -> Optional[str]:
        try:
            return await run_in_threadpool(render_page_preview, data)
        except (RuntimeError, ValueError) as exc:
            logger.warning("Could not render preview for merged PDF: %s", exc)
            return None


class LocalPublisher(BasePublisher):
    """Writes artifacts into the public merged directory served at ``/merged``."""

    def __init__(self, storage: LocalStorage, pdf_service: Optional[PDFService] = None, **kwargs) -> None:
        super().__init__(pdf_service, **kwargs)
        self.storage = storage

    async def _store(self, data, filename, page_count, group, preview) -> MergeArtifact:
        try:
            path: Path = await run_in_threadpool(self.storage.save_bytes, data, filename)
        except OSError as exc:
            logger.exception("Could not write merged PDF %s", filename)
            raise StorageFailure() from exc

        logger.info("Saved merged PDF %s (%s pages)", path.name, page_count)
        return MergeArtifact(
            filename=filename,
            size_bytes=len(data),
            page_count=page_count,
            location=str(path),
            download_link=self.storage.public_link(path),
            preview=preview,
        )


class DrivePublisher(BasePublisher):
    """Uploads sources and the merged result into one shared Drive folder per session."""

    def __init__(
        self,
        client: DriveClient,
        parent_folder_id: str,
        pdf_service: Optional[PDFService] = None,
        **kwargs,
    ) -> None:
        super().__init__(pdf_service, **kwargs)
        self.client = client
        self.parent_folder_id = parent_folder_id

    async def open_group(self, name: str) -> PublishedGroup:
        try:
            group_id = await run_in_threadpool(self.client.create_folder, name, self.parent_folder_id)
        except REMOTE_ERRORS as exc:
            logger.exception("Could not create Drive folder %s", name)
            raise RemoteFolderCreationFailure() from exc
        logger.info("Created Drive folder %s (%s)", name, group_id)
        return PublishedGroup(group_id=group_id, name=name)

    async def archive_sources(
        self,
        group: Optional[PublishedGroup],
        uploads: Sequence[UploadedFile],
    ) -> List[RemoteFile]:
        archived: List[RemoteFile] = []
        for upload in uploads:
            data = await run_in_threadpool(upload.path.read_bytes)
            archived.append(await self._upload_shared(group, upload.filename, data))
        return archived

    async def _store(self, data, filename, page_count, group, preview) -> MergeArtifact:
        remote = await self._upload_shared(group, filename, data)
        logger.info("Uploaded merged PDF %s to Drive (%s pages)", filename, page_count)
        return MergeArtifact(
            filename=filename,
            size_bytes=len(data),
            page_count=page_count,
            location=remote.file_id,
            file_id=remote.file_id,
            download_link=remote.download_link or "",
            view_link=remote.view_link,
            preview=preview,
        )

    async def _upload_shared(self, group: Optional[PublishedGroup], name: str, data: bytes) -> RemoteFile:
        if group is None:
            raise StorageFailure("No Drive folder is open for this upload.")
        try:
            file_id = await run_in_threadpool(self.client.upload_file, group.group_id, name, data, PDF_MIME_TYPE)
            await run_in_threadpool(self.client.share_public, file_id)
            view_link, download_link = await run_in_threadpool(self.client.get_links, file_id)
        except REMOTE_ERRORS as exc:
            logger.exception("Could not upload %s to Drive folder %s", name, group.name)
            raise StorageFailure() from exc
        return RemoteFile(file_id=file_id, name=name, view_link=view_link, download_link=download_link)

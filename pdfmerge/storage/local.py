from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from pdfmerge.storage.session import UploadSession

CHUNK_SIZE = 1024 * 1024


class UploadTooLarge(Exception):
    """Raised while streaming an upload that exceeds the size cap."""

    def __init__(self, written: int, limit: int) -> None:
        self.written = written
        self.limit = limit
        super().__init__(f"upload exceeded {limit} bytes")


def safe_filename(filename: Optional[str], default: str) -> str:
    if not filename:
        return default
    return Path(filename).name or default


class LocalStorage:
    """Local file storage for session uploads and published merge results."""

    def __init__(self, merged_dir: Path, public_prefix: str = "/merged") -> None:
        self.merged_dir = Path(merged_dir)
        self.public_prefix = public_prefix.rstrip("/")
        self.merged_dir.mkdir(parents=True, exist_ok=True)

    async def save_upload(
        self,
        upload: UploadFile,
        session: UploadSession,
        *,
        filename: str,
        max_bytes: int,
    ) -> tuple[Path, int]:
        """Stream ``upload`` into the session directory, enforcing ``max_bytes``."""
        target_path = session.ensure_directory() / filename
        written = 0
        try:
            with target_path.open("wb") as buffer:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise UploadTooLarge(written, max_bytes)
                    buffer.write(chunk)
        except UploadTooLarge:
            target_path.unlink(missing_ok=True)
            raise
        return target_path, written

    def save_bytes(self, data: bytes, filename: str) -> Path:
        target_path = self.merged_dir / filename
        target_path.write_bytes(data)
        return target_path

    def public_link(self, path: Path) -> str:
        return f"{self.public_prefix}/{path.name}"

from __future__ import annotations

import shutil
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator
from uuid import uuid4

import anyio
from fastapi.concurrency import run_in_threadpool

from pdfmerge.core.logging import configure_logging

logger = configure_logging()


def generate_token() -> str:
    """Millisecond timestamp plus a random suffix, unique across concurrent requests."""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


@dataclass
class UploadSession:
    token: str
    directory: Path
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def ensure_directory(self) -> Path:
        # Created lazily on the first stored file.
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory


def cleanup(session: UploadSession) -> None:
    """Remove the session directory and its contents, logging any failure."""
    try:
        shutil.rmtree(session.directory)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Could not delete temporary directory %s: %s", session.directory, exc)
        return
    logger.debug("Removed temporary directory %s", session.directory)


@asynccontextmanager
async def upload_session(root: Path) -> AsyncIterator[UploadSession]:
    """Yield a request-scoped session whose directory is removed on every exit path."""
    token = generate_token()
    session = UploadSession(token=token, directory=Path(root) / token)
    try:
        yield session
    finally:
        # Runs even when the request task is cancelled by a client disconnect.
        with anyio.CancelScope(shield=True):
            await run_in_threadpool(cleanup, session)

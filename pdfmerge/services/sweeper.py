from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol

from fastapi.concurrency import run_in_threadpool

from pdfmerge.core.logging import configure_logging
from pdfmerge.storage.drive import RetentionGroup

logger = configure_logging()


class GroupStore(Protocol):
    def list_groups(self, parent_id: str) -> List[RetentionGroup]: ...

    def delete_group(self, group_id: str) -> None: ...


class RetentionSweeper:
    """Deletes per-session groupings older than ``max_age`` from the parent container."""

    def __init__(self, store: GroupStore, parent_id: str, max_age: timedelta = timedelta(hours=1)) -> None:
        self.store = store
        self.parent_id = parent_id
        self.max_age = max_age

    def is_expired(self, group: RetentionGroup, now: datetime) -> bool:
        return now - group.created_at > self.max_age

    async def sweep(self, now: Optional[datetime] = None) -> List[RetentionGroup]:
        now = now or datetime.now(timezone.utc)
        try:
            groups = await run_in_threadpool(self.store.list_groups, self.parent_id)
        except Exception:
            logger.exception("Could not list folders under %s", self.parent_id)
            return []

        deleted: List[RetentionGroup] = []
        for group in groups:
            if not self.is_expired(group, now):
                continue
            try:
                await run_in_threadpool(self.store.delete_group, group.group_id)
            except Exception:
                logger.exception("Could not delete folder %s (%s)", group.name, group.group_id)
                continue
            deleted.append(group)
            logger.info("Deleted expired folder %s created at %s", group.name, group.created_at.isoformat())

        logger.info("Retention sweep finished: %s of %s folders deleted", len(deleted), len(groups))
        return deleted

    async def run(self, interval: timedelta = timedelta(hours=1)) -> None:
        """Sweep every ``interval`` until cancelled."""
        seconds = interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Retention sweep failed")

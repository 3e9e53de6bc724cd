from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from memory.conversation_store import SessionStore
from settings import SETTINGS

logger = logging.getLogger(__name__)


class ConversationReaper:
    def __init__(self, store: SessionStore, interval_seconds: int | None = None) -> None:
        self.store = store
        self.interval_seconds = SETTINGS.conversation_sweep_interval_seconds if interval_seconds is None else interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self, now: datetime | None = None) -> dict:
        reaped = self.store.sweep(now)
        for conversation_id in reaped:
            logger.info("conversation_reaped", extra={"conversation_id": conversation_id})
        return {"reaped": reaped, "remaining": len(self.store.snapshot())}

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_forever())
        logger.info("conversation_reaper_started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("conversation_reaper_stopped")

    async def _run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("conversation_reaper_run_failed")

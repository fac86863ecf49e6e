"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Periodic best-effort persistence of the running transcript.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from .config import settings
from .errors import TranscriptSaveError
from .persistence import TranscriptClient, render_transcript
from .segments import TranscriptionSegment

logger = logging.getLogger(__name__)


class AutoSaver:
    """Saves the rendered transcript every ``interval`` seconds while a session records.

    Unchanged content is not re-sent. A failed save leaves ``last_saved``
    untouched so the same text goes out again on the next tick. ``flush`` is
    the end-of-session save and skips the unchanged-content check.
    """

    def __init__(
        self,
        case_id: Optional[str],
        client: TranscriptClient,
        segments: Callable[[], list[TranscriptionSegment]],
        is_active: Callable[[], bool],
        interval: float = settings.autosave_interval_seconds,
    ) -> None:
        self.case_id = case_id
        self.interval = interval
        self.last_saved: Optional[str] = None
        self._client = client
        self._segments = segments
        self._is_active = is_active
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.case_id:
            logger.debug("No case id, auto-save disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Auto-save tick failed")

    async def tick(self) -> bool:
        """Run one periodic save; returns True only if something was saved."""
        if not self.case_id or not self._is_active():
            return False
        segments = self._segments()
        if not segments:
            return False
        text = render_transcript(segments)
        if text == self.last_saved:
            return False
        return await self._save(text)

    async def flush(self) -> bool:
        """Final save at session end, sent even if identical to the last one.

        With no segments nothing is sent, so an empty transcript never
        overwrites what the backend already holds for the case.
        """
        if not self.case_id:
            return False
        segments = self._segments()
        if not segments:
            logger.info("Nothing to flush for case %s", self.case_id)
            return False
        return await self._save(render_transcript(segments))

    async def _save(self, text: str) -> bool:
        try:
            await self._client.save(self.case_id, text)
        except TranscriptSaveError as exc:
            logger.warning("Auto-save failed, will retry: %s", exc)
            return False
        self.last_saved = text
        return True

"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Transcription segments and the single-listener store that holds them.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from .speakers import Speaker

logger = logging.getLogger(__name__)

SegmentListener = Callable[[list["TranscriptionSegment"]], None]


@dataclass(frozen=True)
class TranscriptionSegment:
    """One attributed utterance. Times are seconds from recording start."""

    id: str
    speaker: Speaker
    text: str
    timestamp: str
    start_time: float
    end_time: float

    def as_dict(self) -> dict:
        return asdict(self)


class SegmentStore:
    """Ordered segments for the active session plus at most one update listener.

    Every mutation notifies the listener synchronously with a fresh list, never
    the internal one.
    """

    def __init__(self) -> None:
        self._segments: list[TranscriptionSegment] = []
        self._listener: Optional[SegmentListener] = None
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._segments)

    def set_listener(self, listener: Optional[SegmentListener]) -> None:
        """Replace the current listener; the previous one stops receiving updates."""
        self._listener = listener

    def snapshot(self) -> list[TranscriptionSegment]:
        return list(self._segments)

    def next_id(self) -> str:
        segment_id = f"segment-{self._next_id}"
        self._next_id += 1
        return segment_id

    def replace(self, segments: list[TranscriptionSegment]) -> None:
        self._segments = list(segments)
        self._notify()

    def reset(self) -> None:
        """Drop all segments and restart id numbering."""
        self._segments = []
        self._next_id = 0
        self._notify()

    def _notify(self) -> None:
        if not self._listener:
            return
        try:
            self._listener(self.snapshot())
        except Exception:
            logger.exception("Transcription update listener failed")

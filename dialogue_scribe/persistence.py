"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Transcript rendering and the backend client that stores it per case.
"""
import logging
from typing import Iterable
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .config import settings
from .errors import TranscriptSaveError
from .schemas import TranscriptSaveRequest, TranscriptSaveResponse
from .segments import TranscriptionSegment

logger = logging.getLogger(__name__)

SPEAKER_LABELS = {
    "doctor": "医生",
    "patient": "患者",
}


def render_transcript(segments: Iterable[TranscriptionSegment]) -> str:
    """One ``<speaker-label>: <text>`` line per segment."""
    return "\n".join(f"{SPEAKER_LABELS.get(s.speaker, s.speaker)}: {s.text}" for s in segments)


def _build_base_url(base: str) -> str:
    if not base.endswith("/"):
        base += "/"
    return base


class TranscriptClient:
    """Saves the rendered transcript of a case to the clinical backend."""

    def __init__(
        self,
        base_url: str = settings.backend_base_url,
        timeout: float = settings.save_timeout_seconds,
    ) -> None:
        self.base_url = _build_base_url(base_url)
        self.timeout = timeout

    async def save(self, case_id: str, text: str) -> TranscriptSaveResponse:
        """POST the transcript; any transport, status or payload problem raises ``TranscriptSaveError``."""
        endpoint = f"api/intelligence/transcription/{quote(case_id, safe='')}/incremental"
        payload = TranscriptSaveRequest(text=text).model_dump()
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
                response = await client.post(endpoint, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise TranscriptSaveError(f"Saving transcript for case {case_id} failed: {exc}") from exc
        except ValueError as exc:
            raise TranscriptSaveError(f"Backend returned invalid JSON for case {case_id}: {exc}") from exc

        try:
            result = TranscriptSaveResponse.model_validate(data)
        except ValidationError as exc:
            raise TranscriptSaveError(f"Unexpected save response for case {case_id}: {exc}") from exc
        logger.info("Transcript saved for case %s (%d chars): %s", case_id, len(text), result.message)
        return result

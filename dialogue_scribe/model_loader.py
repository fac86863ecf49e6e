"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Speech-recognition model loading with accelerator fallback.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import numpy as np

from .capabilities import CapabilityReport
from .config import settings
from .errors import ModelLoadError
from .transcription_config import TranscriberConfig, get_model_config

logger = logging.getLogger(__name__)

ACCELERATED_DEVICE = "cuda"
DEFAULT_DEVICE = "cpu"

ModelFactory = Callable[[str, str, str], Any]


@dataclass
class TranscriptionResult:
    text: str
    chunks: list[dict] = field(default_factory=list)
    language: str | None = None


class SpeechModel(Protocol):
    """The one inference call the transcription engine needs."""

    def transcribe(
        self,
        samples: np.ndarray,
        *,
        task: str,
        language: str,
        return_timestamps: bool,
        initial_prompt: str | None,
    ) -> TranscriptionResult: ...


def _serialize_chunk(segment: Any) -> dict[str, Any]:
    return {
        "timestamp": (getattr(segment, "start", None), getattr(segment, "end", None)),
        "text": getattr(segment, "text", None) or "",
    }


class WhisperSpeechModel:
    """Wraps a faster-whisper model behind the ``SpeechModel`` call."""

    def __init__(self, model: Any, model_name: str, device: str) -> None:
        self._model = model
        self.model_name = model_name
        self.device = device

    def transcribe(
        self,
        samples: np.ndarray,
        *,
        task: str = "transcribe",
        language: str = settings.language,
        return_timestamps: bool = True,
        initial_prompt: str | None = None,
    ) -> TranscriptionResult:
        segments, info = self._model.transcribe(
            samples,
            task=task,
            language=language,
            initial_prompt=initial_prompt,
            without_timestamps=not return_timestamps,
        )
        # faster-whisper yields segments lazily; decoding happens here
        chunks = [_serialize_chunk(segment) for segment in segments]
        return TranscriptionResult(
            text="".join(chunk["text"] for chunk in chunks),
            chunks=chunks if return_timestamps else [],
            language=getattr(info, "language", None),
        )


def _whisper_factory(model_name: str, device: str, compute_type: str) -> Any:
    from faster_whisper import WhisperModel

    return WhisperModel(
        model_name,
        device=device,
        compute_type=compute_type,
        download_root=settings.model_cache_dir,
    )


class ModelLoader:
    """Builds the speech model once, trying the accelerator before the CPU."""

    def __init__(self, compute_type: str = settings.compute_type, factory: Optional[ModelFactory] = None) -> None:
        self._compute_type = compute_type
        self._factory = factory or _whisper_factory

    async def _build(self, model_name: str, device: str) -> WhisperSpeechModel:
        logger.info(f"Loading whisper model: {model_name} on {device} with {self._compute_type}")
        try:
            model = await asyncio.to_thread(self._factory, model_name, device, self._compute_type)
        except Exception as exc:
            raise ModelLoadError(f"{model_name} on {device}: {exc}") from exc
        return WhisperSpeechModel(model, model_name=model_name, device=device)

    async def load(self, config: TranscriberConfig, report: CapabilityReport) -> Optional[WhisperSpeechModel]:
        """Return a loaded model, or ``None`` if the runtime or both backends fail."""
        if not report.supported:
            logger.error("Runtime not supported, model left unloaded: %s", report.issues)
            return None

        tier = get_model_config(config.model)
        logger.info("Initializing %s (%s)...", tier.name, tier.size)

        if config.enable_gpu and report.features.accelerator:
            try:
                handle = await self._build(tier.name, ACCELERATED_DEVICE)
                logger.info("Transcriber initialized with %s acceleration", ACCELERATED_DEVICE)
                return handle
            except ModelLoadError as exc:
                logger.warning("Accelerated backend unavailable, falling back to %s: %s", DEFAULT_DEVICE, exc)

        try:
            handle = await self._build(tier.name, DEFAULT_DEVICE)
        except ModelLoadError as exc:
            logger.error("Failed to initialize transcriber: %s", exc)
            return None
        logger.info("Transcriber initialized on %s", DEFAULT_DEVICE)
        return handle

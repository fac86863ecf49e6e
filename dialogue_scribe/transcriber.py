"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Record a doctor/patient conversation and transcribe it once recording stops.

``DialogueTranscriber`` owns one microphone stream, one recorder and one loaded
model at a time. Recording is a two-state machine (idle/recording). Chunks are
only buffered while recording; on ``stop_transcription`` the whole buffer is
decoded and run through the model in a single pass, producing at most one
segment, which replaces the session's segment list. Failures anywhere below
this class are logged and turned into "no transcript" or "no save".
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from .audio import decode_chunks
from .autosave import AutoSaver
from .capabilities import CapabilityReport, RuntimeDescriptor, detect_runtime, validate_runtime_support
from .capture import (
    RECORDER_INACTIVE,
    AudioConstraints,
    ChunkedRecorder,
    MediaDevices,
    MediaStream,
    Recorder,
    RecorderFactory,
    SoundDeviceMediaDevices,
    release_stream,
)
from .config import settings
from .model_loader import ModelLoader, SpeechModel
from .persistence import TranscriptClient
from .segments import SegmentListener, SegmentStore, TranscriptionSegment
from .speakers import infer_speaker
from .transcription_config import TranscriberConfig, merge_config

logger = logging.getLogger(__name__)


class DialogueTranscriber:
    def __init__(
        self,
        config: TranscriberConfig | dict | None = None,
        *,
        case_id: Optional[str] = None,
        runtime: Optional[RuntimeDescriptor] = None,
        media_devices: Optional[MediaDevices] = None,
        recorder_factory: Optional[RecorderFactory] = None,
        model_loader: Optional[ModelLoader] = None,
        transcript_client: Optional[TranscriptClient] = None,
        constraints: AudioConstraints = AudioConstraints(),
        recording_format: str = settings.recording_format,
        chunk_interval: float = settings.chunk_interval_seconds,
        autosave_interval: float = settings.autosave_interval_seconds,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config if isinstance(config, TranscriberConfig) else merge_config(config)
        self.case_id = case_id
        self.capabilities: CapabilityReport = validate_runtime_support(
            runtime or detect_runtime(settings.backend_base_url)
        )
        self._media_devices = media_devices or SoundDeviceMediaDevices()
        self._recorder_factory = recorder_factory or ChunkedRecorder
        self._model_loader = model_loader or ModelLoader()
        self._constraints = constraints
        self._recording_format = recording_format
        self._chunk_interval = chunk_interval
        self._clock = clock

        self._model: Optional[SpeechModel] = None
        self._init_task: Optional[asyncio.Task] = None
        self._stream: Optional[MediaStream] = None
        self._recorder: Optional[Recorder] = None
        self._chunks: list[bytes] = []
        self._recording = False
        self._recording_started_at = 0.0
        # Bumped on every start; an acquisition that outlives its session releases its own stream
        self._session = 0

        self._store = SegmentStore()
        self._autosaver = AutoSaver(
            case_id,
            transcript_client or TranscriptClient(),
            segments=self._store.snapshot,
            is_active=self.is_currently_transcribing,
            interval=autosave_interval,
        )

        # Start loading right away when constructed inside a running loop
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._ensure_initializing()

    async def __aenter__(self) -> "DialogueTranscriber":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.terminate()
        return False

    # ------------------
    # Model
    # ------------------

    def _ensure_initializing(self) -> None:
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())

    async def _initialize(self) -> None:
        try:
            self._model = await self._model_loader.load(self.config, self.capabilities)
        except Exception:
            logger.exception("Model initialization failed")

    async def ready(self) -> bool:
        """Wait for model initialization; True if a model is loaded."""
        self._ensure_initializing()
        await asyncio.shield(self._init_task)
        return self._model is not None

    @property
    def model_loaded(self) -> bool:
        return self._model is not None

    # ------------------
    # Segments
    # ------------------

    def set_on_transcription_update(self, callback: Optional[SegmentListener]) -> None:
        self._store.set_listener(callback)

    def get_transcription_segments(self) -> list[TranscriptionSegment]:
        return self._store.snapshot()

    def clear_transcription(self) -> None:
        self._store.reset()

    def is_currently_transcribing(self) -> bool:
        return self._recording

    # ------------------
    # Recording
    # ------------------

    def _on_chunk(self, chunk: bytes) -> None:
        if chunk:
            self._chunks.append(chunk)

    def _owns_session(self, session: int) -> bool:
        return self._recording and session == self._session

    def _release_media(self) -> None:
        stream, self._stream = self._stream, None
        self._recorder = None
        release_stream(stream)

    async def start_transcription(self) -> None:
        if self._recording:
            return
        if not self.capabilities.supported:
            logger.error("Runtime not supported, recording not started: %s", self.capabilities.issues)
            return

        self._ensure_initializing()
        self._session += 1
        session = self._session
        self._recording = True
        self._recording_started_at = self._clock()
        self._chunks = []
        self._store.reset()

        stream: Optional[MediaStream] = None
        try:
            stream = await self._media_devices.get_user_media(self._constraints)
            if not self._owns_session(session):
                logger.info("Recording stopped while the microphone was being acquired")
                release_stream(stream)
                return
            self._stream = stream
            self._recorder = self._recorder_factory(stream, self._on_chunk)
            self._recorder.start(self._chunk_interval)
        except Exception as exc:
            logger.error("Error starting transcription: %s", exc)
            if self._owns_session(session):
                self._release_media()
                self._recording = False
            else:
                release_stream(stream)
            return

        logger.info("Started audio recording (case %s)", self.case_id or "-")
        self._autosaver.start()

    async def stop_transcription(self) -> None:
        if not self._recording:
            return

        logger.info("Stopping transcription and processing complete audio...")
        self._recording = False
        await self._autosaver.stop()

        try:
            recorder = self._recorder
            if recorder is not None and recorder.state != RECORDER_INACTIVE:
                recorder.stop()
        except Exception as exc:
            logger.error("Error stopping recorder: %s", exc)
        finally:
            self._release_media()

        chunks, self._chunks = self._chunks, []
        if chunks:
            await self.process_complete_audio(chunks)
        else:
            logger.info("No audio chunks to process")

        try:
            await self._autosaver.flush()
        except Exception:
            logger.exception("Final transcript save failed")

    async def process_complete_audio(self, chunks: list[bytes]) -> Optional[TranscriptionSegment]:
        """Decode and transcribe a whole recording; the result replaces the segment list."""
        model = self._model
        if model is None:
            logger.warning("Transcriber not initialized yet, recording skipped")
            return None

        try:
            samples = await decode_chunks(chunks, self._recording_format, self._constraints.sample_rate)
            result = await asyncio.to_thread(
                model.transcribe,
                samples,
                task="transcribe",
                language=settings.language,
                return_timestamps=True,
                initial_prompt=settings.initial_prompt,
            )
        except Exception as exc:
            logger.error("Error processing complete audio: %s", exc)
            return None

        text = (result.text or "").strip()
        if not text:
            logger.info("Recording produced no text")
            return None

        now = self._clock()
        segment = TranscriptionSegment(
            id=self._store.next_id(),
            speaker=infer_speaker(text, len(self._store), self.config),
            text=text,
            timestamp=datetime.fromtimestamp(now).strftime("%H:%M:%S"),
            start_time=0.0,
            end_time=max(now - self._recording_started_at, 0.0),
        )
        self._store.replace([segment])
        logger.info("Complete transcription processed: %s", text)
        return segment

    async def terminate(self) -> None:
        """Stop any recording, release the microphone and timer, and drop the model."""
        try:
            await self.stop_transcription()
        finally:
            self._release_media()
            await self._autosaver.stop()
            task, self._init_task = self._init_task, None
            if task is not None and not task.done():
                task.cancel()
            self._model = None

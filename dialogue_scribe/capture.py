"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Microphone acquisition and chunked recording.

The transcriber only talks to the ``MediaDevices``/``MediaStream``/``Recorder``
shapes defined here, so tests can hand it fakes. The default provider opens a
sounddevice raw input stream; PortAudio delivers blocks on its own thread and
they are marshalled back onto the event loop before any listener sees them.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .config import settings
from .errors import DeviceError

logger = logging.getLogger(__name__)

PCM_SAMPLE_WIDTH_BYTES = 2

RECORDER_INACTIVE = "inactive"
RECORDER_RECORDING = "recording"

ChunkListener = Callable[[bytes], None]


@dataclass(frozen=True)
class AudioConstraints:
    sample_rate: int = settings.sample_rate
    channels: int = settings.channels
    echo_cancellation: bool = True
    noise_suppression: bool = True

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate * self.channels * PCM_SAMPLE_WIDTH_BYTES


class MediaTrack(Protocol):
    live: bool

    def stop(self) -> None: ...


class MediaStream(Protocol):
    constraints: AudioConstraints

    def get_tracks(self) -> list[MediaTrack]: ...

    def subscribe(self, listener: Optional[ChunkListener]) -> None: ...


class MediaDevices(Protocol):
    async def get_user_media(self, constraints: AudioConstraints) -> MediaStream: ...


class Recorder(Protocol):
    state: str

    def start(self, timeslice_seconds: float) -> None: ...

    def stop(self) -> None: ...


RecorderFactory = Callable[[MediaStream, ChunkListener], Recorder]


class SoundDeviceTrack:
    """One open PortAudio input stream."""

    def __init__(self, stream) -> None:
        self._stream = stream
        self.live = True

    def stop(self) -> None:
        if not self.live:
            return
        self.live = False
        try:
            self._stream.stop()
        finally:
            self._stream.close()


class SoundDeviceStream:
    def __init__(self, constraints: AudioConstraints, loop: asyncio.AbstractEventLoop) -> None:
        self.constraints = constraints
        self._loop = loop
        self._listener: Optional[ChunkListener] = None
        self._tracks: list[SoundDeviceTrack] = []

    def attach(self, track: SoundDeviceTrack) -> None:
        self._tracks.append(track)

    def get_tracks(self) -> list[SoundDeviceTrack]:
        return list(self._tracks)

    def subscribe(self, listener: Optional[ChunkListener]) -> None:
        self._listener = listener

    def _dispatch(self, data: bytes) -> None:
        if self._listener:
            self._listener(data)

    def audio_callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning("Input stream status: %s", status)
        # Runs on the PortAudio thread
        self._loop.call_soon_threadsafe(self._dispatch, bytes(indata))


class SoundDeviceMediaDevices:
    """Opens the default input device as 16-bit PCM.

    PortAudio has no echo-cancellation or noise-suppression switches; those
    constraints are carried on the stream for the caller but not applied.
    """

    def __init__(self, device: int | str | None = None) -> None:
        self._device = device

    async def get_user_media(self, constraints: AudioConstraints) -> SoundDeviceStream:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as exc:
            raise DeviceError(f"sounddevice unavailable: {exc}") from exc

        stream = SoundDeviceStream(constraints, asyncio.get_running_loop())
        try:
            raw = sd.RawInputStream(
                samplerate=constraints.sample_rate,
                channels=constraints.channels,
                dtype="int16",
                device=self._device,
                callback=stream.audio_callback,
            )
            raw.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Could not open microphone: {exc}") from exc
        stream.attach(SoundDeviceTrack(raw))
        logger.info("Microphone acquired: %s Hz, %s ch", constraints.sample_rate, constraints.channels)
        return stream


class ChunkedRecorder:
    """Groups raw PCM blocks from a stream into fixed-duration chunks.

    Like a browser MediaRecorder with a timeslice: a chunk is emitted each time
    ``timeslice_seconds`` of audio has accumulated, and whatever is left is
    flushed as a final, shorter chunk on ``stop``.
    """

    def __init__(self, stream: MediaStream, on_data: ChunkListener) -> None:
        self._stream = stream
        self._on_data = on_data
        self._pending = bytearray()
        self._chunk_bytes = 0
        self.state = RECORDER_INACTIVE

    def start(self, timeslice_seconds: float = settings.chunk_interval_seconds) -> None:
        if self.state == RECORDER_RECORDING:
            return
        chunk_bytes = int(timeslice_seconds * self._stream.constraints.bytes_per_second)
        # Keep 16-bit frames whole
        self._chunk_bytes = max(chunk_bytes - chunk_bytes % PCM_SAMPLE_WIDTH_BYTES, PCM_SAMPLE_WIDTH_BYTES)
        self._pending.clear()
        self.state = RECORDER_RECORDING
        self._stream.subscribe(self._ingest)

    def _ingest(self, data: bytes) -> None:
        if self.state != RECORDER_RECORDING or not data:
            return
        self._pending.extend(data)
        while len(self._pending) >= self._chunk_bytes:
            chunk = bytes(self._pending[: self._chunk_bytes])
            del self._pending[: self._chunk_bytes]
            self._on_data(chunk)

    def stop(self) -> None:
        if self.state == RECORDER_INACTIVE:
            return
        self.state = RECORDER_INACTIVE
        self._stream.subscribe(None)
        if self._pending:
            chunk = bytes(self._pending)
            self._pending.clear()
            self._on_data(chunk)


def release_stream(stream: Optional[MediaStream]) -> None:
    """Stop every track on ``stream``; a failing track does not keep the others open."""
    if stream is None:
        return
    for track in stream.get_tracks():
        try:
            track.stop()
        except Exception as exc:
            logger.error("Failed to stop media track: %s", exc)

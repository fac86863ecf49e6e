"""
Copyright © 2026 Vladimir Vaulin-Belskii. All rights reserved.

Decoding of accumulated recording chunks into 16 kHz mono float32 samples.
"""
from __future__ import annotations

import asyncio.subprocess as aio_subprocess
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .config import settings
from .errors import AudioDecodeError

logger = logging.getLogger(__name__)

PCM_SAMPLE_RATE = 16000
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH_BYTES = 2
PCM_FULL_SCALE = 32768.0
WEBM_HEADER_MAGIC = b"\x1a\x45\xdf\xa3"
MP4_FTYP_MAGIC = b"ftyp"


@dataclass
class RecordingFormat:
    """How the recorder encoded its chunks."""

    mode: str
    container_format: str | None


def normalize_recording_format(recording_format: str | None, first_chunk: bytes = b"") -> RecordingFormat:
    """Resolve a format hint (and, failing that, the first chunk's magic bytes)."""

    format_hint = (recording_format or "").lower().strip()

    if format_hint in {"pcm", "pcm16", "pcm_s16le", "pcm16le"}:
        return RecordingFormat(mode="pcm", container_format=None)
    if format_hint in {"mp4", "m4a"} or format_hint.startswith("audio/mp4"):
        return RecordingFormat(mode="container", container_format="mp4")
    if format_hint in {"webm", "opus"} or format_hint.startswith("audio/webm"):
        return RecordingFormat(mode="container", container_format="webm")

    if first_chunk.startswith(WEBM_HEADER_MAGIC):
        return RecordingFormat(mode="container", container_format="webm")
    if len(first_chunk) >= 8 and first_chunk[4:8] == MP4_FTYP_MAGIC:
        return RecordingFormat(mode="container", container_format="mp4")
    return RecordingFormat(mode="pcm", container_format=None)


def pcm16_to_float32(pcm_data: bytes) -> np.ndarray:
    if len(pcm_data) % PCM_SAMPLE_WIDTH_BYTES != 0:
        # Drop a dangling half-frame
        pcm_data = pcm_data[:-1]
    samples = np.frombuffer(pcm_data, dtype=np.int16)
    return samples.astype(np.float32) / PCM_FULL_SCALE


async def _transcode_container(payload: bytes, input_format: str | None, sample_rate: int) -> bytes:
    ffmpeg_args = [
        settings.ffmpeg_binary,
        "-nostdin",
        "-loglevel",
        "error",
        "-fflags",
        "+genpts+igndts",
    ]
    if input_format:
        ffmpeg_args.extend(["-f", input_format])
    ffmpeg_args.extend([
        "-i",
        "pipe:0",
        "-ac",
        str(PCM_CHANNELS),
        "-ar",
        str(sample_rate),
        "-vn",
        "-f",
        "s16le",
        "pipe:1",
    ])

    try:
        process = await aio_subprocess.create_subprocess_exec(
            *ffmpeg_args,
            stdin=aio_subprocess.PIPE,
            stdout=aio_subprocess.PIPE,
            stderr=aio_subprocess.PIPE,
        )
    except OSError as exc:
        raise AudioDecodeError(f"Could not start ffmpeg: {exc}") from exc

    stdout, stderr = await process.communicate(payload)
    if process.returncode != 0:
        message = stderr.decode(errors="ignore").strip()
        raise AudioDecodeError(f"ffmpeg exited with {process.returncode}: {message}")
    if stderr:
        logger.warning("ffmpeg stderr: %s", stderr.decode(errors="ignore").strip())
    return stdout


async def decode_chunks(
    chunks: Sequence[bytes],
    recording_format: str | None = settings.recording_format,
    sample_rate: int = PCM_SAMPLE_RATE,
) -> np.ndarray:
    """Concatenate chunks in arrival order and decode them to a mono float32 array."""

    payload = b"".join(chunks)
    if not payload:
        raise AudioDecodeError("No audio recorded")

    fmt = normalize_recording_format(recording_format, chunks[0])
    if fmt.mode == "pcm":
        pcm = payload
    else:
        logger.info("Transcoding %d bytes of %s audio", len(payload), fmt.container_format)
        pcm = await _transcode_container(payload, fmt.container_format, sample_rate)

    samples = pcm16_to_float32(pcm)
    if samples.size == 0:
        raise AudioDecodeError("Decoded audio is empty")
    logger.info("Decoded %.2fs of audio", samples.size / sample_rate)
    return samples

import asyncio

import pytest

from dialogue_scribe.capture import (
    RECORDER_INACTIVE,
    RECORDER_RECORDING,
    AudioConstraints,
    ChunkedRecorder,
    SoundDeviceStream,
    release_stream,
)
from tests.utils import FakeStream, FakeTrack, ONE_SECOND_PCM


def test_default_constraints_are_16k_mono_with_processing():
    constraints = AudioConstraints()
    assert constraints.sample_rate == 16000
    assert constraints.channels == 1
    assert constraints.echo_cancellation and constraints.noise_suppression
    assert constraints.bytes_per_second == 32000


def test_recorder_emits_one_second_chunks_and_flushes_tail_on_stop():
    stream = FakeStream()
    chunks = []
    recorder = ChunkedRecorder(stream, chunks.append)
    recorder.start(1.0)
    assert recorder.state == RECORDER_RECORDING

    # Blocks of 0.25s
    for _ in range(6):
        stream.emit(ONE_SECOND_PCM[:8000])
    assert [len(c) for c in chunks] == [32000]

    recorder.stop()
    assert recorder.state == RECORDER_INACTIVE
    assert [len(c) for c in chunks] == [32000, 16000]
    assert stream.listener is None


def test_recorder_ignores_data_after_stop():
    stream = FakeStream()
    chunks = []
    recorder = ChunkedRecorder(stream, chunks.append)
    recorder.start(1.0)
    recorder.stop()
    recorder._ingest(ONE_SECOND_PCM)
    assert chunks == []


def test_release_stream_stops_every_track_even_if_one_fails():
    class BrokenTrack(FakeTrack):
        def stop(self):
            super().stop()
            raise RuntimeError("driver error")

    stream = FakeStream(tracks=0)
    stream.tracks = [BrokenTrack(), FakeTrack()]
    release_stream(stream)
    assert stream.live_tracks == 0
    release_stream(None)


@pytest.mark.asyncio
async def test_sounddevice_callback_is_marshalled_onto_loop():
    stream = SoundDeviceStream(AudioConstraints(), asyncio.get_running_loop())
    received = []
    stream.subscribe(received.append)

    stream.audio_callback(memoryview(b"\x01\x00\x02\x00"), 2, None, None)
    assert received == []
    await asyncio.sleep(0)

    assert received == [b"\x01\x00\x02\x00"]

import asyncio
from typing import List, Optional

from dialogue_scribe.capabilities import RuntimeDescriptor
from dialogue_scribe.capture import AudioConstraints
from dialogue_scribe.errors import DeviceError, TranscriptSaveError
from dialogue_scribe.model_loader import TranscriptionResult
from dialogue_scribe.schemas import TranscriptSaveResponse

SUPPORTED_RUNTIME = RuntimeDescriptor(
    media_devices=True,
    inference_runtime=True,
    accelerator=False,
    secure_context=True,
)

ONE_SECOND_PCM = b"\x01\x00" * 16000


class MockResponse:
    def __init__(self, payload, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        return None

    def json(self):
        return self.payload


class MockClient:
    def __init__(self, payloads: List[dict]):
        self.payloads = list(payloads)
        self.post_calls = []
        self.fallback = {"message": "ok"}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, *args, **kwargs):
        self.post_calls.append((args, kwargs))
        payload = self.payloads.pop(0) if self.payloads else self.fallback
        return MockResponse(payload)


class FakeTrack:
    def __init__(self):
        self.live = True
        self.stop_calls = 0

    def stop(self):
        self.stop_calls += 1
        self.live = False


class FakeStream:
    def __init__(self, constraints: AudioConstraints = AudioConstraints(), tracks: int = 1):
        self.constraints = constraints
        self.tracks = [FakeTrack() for _ in range(tracks)]
        self.listener = None

    def get_tracks(self):
        return list(self.tracks)

    def subscribe(self, listener):
        self.listener = listener

    def emit(self, data: bytes):
        if self.listener:
            self.listener(data)

    @property
    def live_tracks(self) -> int:
        return sum(1 for track in self.tracks if track.live)


class FakeMediaDevices:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.streams: List[FakeStream] = []
        self.constraints: List[AudioConstraints] = []

    async def get_user_media(self, constraints):
        self.constraints.append(constraints)
        if self.error:
            raise self.error
        stream = FakeStream(constraints)
        self.streams.append(stream)
        return stream

    @property
    def last_stream(self) -> FakeStream:
        return self.streams[-1]


class GatedMediaDevices(FakeMediaDevices):
    """Holds every acquisition until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def get_user_media(self, constraints):
        self.constraints.append(constraints)
        await self.gate.wait()
        stream = FakeStream(constraints)
        self.streams.append(stream)
        return stream


class FakeModel:
    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls = []

    def transcribe(self, samples, **kwargs):
        self.calls.append((samples, kwargs))
        if self.error:
            raise self.error
        return TranscriptionResult(text=self.text, chunks=[{"timestamp": (0.0, 1.0), "text": self.text}])


class FakeLoader:
    def __init__(self, model=None):
        self.model = model
        self.calls = 0

    async def load(self, config, report):
        self.calls += 1
        return self.model


class FakeTranscriptClient:
    """Fails for every ``True`` in ``failures``, in order, then succeeds."""

    def __init__(self, failures: Optional[List[bool]] = None, error: Optional[Exception] = None):
        self.failures = list(failures or [])
        self.error = error
        self.calls = []

    async def save(self, case_id: str, text: str):
        self.calls.append((case_id, text))
        if self.error:
            raise self.error
        if self.failures and self.failures.pop(0):
            raise TranscriptSaveError("backend unavailable")
        return TranscriptSaveResponse(message="saved")


class FakeClock:
    def __init__(self, *times: float):
        self.times = list(times)
        self.last = self.times[0] if self.times else 0.0

    def __call__(self) -> float:
        if self.times:
            self.last = self.times.pop(0)
        return self.last


def denied_devices() -> FakeMediaDevices:
    return FakeMediaDevices(error=DeviceError("Permission denied"))

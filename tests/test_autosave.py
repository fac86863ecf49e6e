import asyncio

import pytest

from dialogue_scribe.autosave import AutoSaver
from dialogue_scribe.segments import TranscriptionSegment
from tests.utils import FakeTranscriptClient


def _segments(*texts: str) -> list[TranscriptionSegment]:
    return [
        TranscriptionSegment(
            id=f"segment-{i}", speaker="patient", text=text, timestamp="09:30:00", start_time=0.0, end_time=1.0
        )
        for i, text in enumerate(texts)
    ]


class Session:
    def __init__(self, *texts: str):
        self.segments = _segments(*texts)
        self.active = True

    def snapshot(self):
        return list(self.segments)

    def is_active(self):
        return self.active


def _saver(session: Session, client: FakeTranscriptClient, case_id="case-1", interval=30.0) -> AutoSaver:
    return AutoSaver(case_id, client, segments=session.snapshot, is_active=session.is_active, interval=interval)


@pytest.mark.asyncio
async def test_unchanged_content_is_not_resent():
    session = Session("胸痛三天")
    client = FakeTranscriptClient()
    saver = _saver(session, client)

    assert await saver.tick() is True
    assert await saver.tick() is False
    session.segments = _segments("胸痛三天，伴有气短")
    assert await saver.tick() is True

    assert [text for _, text in client.calls] == ["患者: 胸痛三天", "患者: 胸痛三天，伴有气短"]


@pytest.mark.asyncio
async def test_failed_save_is_retried_on_next_tick():
    session = Session("胸痛三天")
    client = FakeTranscriptClient(failures=[True])
    saver = _saver(session, client)

    assert await saver.tick() is False
    assert saver.last_saved is None
    assert await saver.tick() is True
    assert saver.last_saved == "患者: 胸痛三天"
    assert client.calls == [("case-1", "患者: 胸痛三天"), ("case-1", "患者: 胸痛三天")]


@pytest.mark.asyncio
async def test_tick_requires_active_session_and_segments():
    session = Session()
    client = FakeTranscriptClient()
    saver = _saver(session, client)
    assert await saver.tick() is False

    session.segments = _segments("你好")
    session.active = False
    assert await saver.tick() is False
    assert client.calls == []


@pytest.mark.asyncio
async def test_flush_sends_even_identical_content():
    session = Session("胸痛三天")
    client = FakeTranscriptClient()
    saver = _saver(session, client)

    await saver.tick()
    session.active = False
    assert await saver.flush() is True
    assert len(client.calls) == 2
    assert client.calls[0] == client.calls[1]


@pytest.mark.asyncio
async def test_without_case_id_nothing_starts_or_saves():
    session = Session("胸痛三天")
    client = FakeTranscriptClient()
    saver = _saver(session, client, case_id=None)

    saver.start()
    assert saver.running is False
    assert await saver.tick() is False
    assert await saver.flush() is False
    assert client.calls == []


@pytest.mark.asyncio
async def test_periodic_loop_saves_and_stops_cleanly():
    session = Session("胸痛三天")
    client = FakeTranscriptClient(failures=[True])
    saver = _saver(session, client, interval=0.01)

    saver.start()
    assert saver.running
    for _ in range(100):
        if saver.last_saved is not None:
            break
        await asyncio.sleep(0.01)
    await saver.stop()

    assert saver.running is False
    assert saver.last_saved == "患者: 胸痛三天"
    # Failure then one successful save, no duplicate after success
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_flush_with_no_segments_sends_nothing():
    client = FakeTranscriptClient()
    saver = _saver(Session(), client)

    assert await saver.flush() is False
    assert client.calls == []

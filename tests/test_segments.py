from dialogue_scribe.segments import SegmentStore, TranscriptionSegment


def _segment(segment_id: str = "segment-0", text: str = "hello") -> TranscriptionSegment:
    return TranscriptionSegment(
        id=segment_id, speaker="doctor", text=text, timestamp="10:00:00", start_time=0.0, end_time=1.0
    )


def test_listener_receives_copies_not_internal_list():
    store = SegmentStore()
    received = []
    store.set_listener(received.append)

    store.replace([_segment()])
    received[0].clear()

    assert len(store) == 1
    assert store.snapshot() == [_segment()]


def test_only_last_listener_is_notified():
    store = SegmentStore()
    first, second = [], []
    store.set_listener(first.append)
    store.set_listener(second.append)

    store.replace([_segment()])

    assert first == []
    assert second == [[_segment()]]


def test_reset_restarts_ids_and_notifies_empty_list():
    store = SegmentStore()
    assert store.next_id() == "segment-0"
    assert store.next_id() == "segment-1"
    received = []
    store.set_listener(received.append)

    store.reset()

    assert store.next_id() == "segment-0"
    assert received == [[]]


def test_failing_listener_does_not_break_store():
    store = SegmentStore()

    def boom(segments):
        raise RuntimeError("ui crashed")

    store.set_listener(boom)
    store.replace([_segment()])
    assert len(store) == 1


def test_segment_as_dict():
    assert _segment().as_dict() == {
        "id": "segment-0",
        "speaker": "doctor",
        "text": "hello",
        "timestamp": "10:00:00",
        "start_time": 0.0,
        "end_time": 1.0,
    }

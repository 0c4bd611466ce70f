import json

import pytest

from models_chat.domain.exceptions import ParseError
from models_chat.infrastructure.sse.event_reader import EventStreamReader, StreamEvent, iter_events


STREAM = (
    b'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
    b'data: {"choices": [{"delta": {"content": "lo"}}]}\n\n'
    b"data: [DONE]\n\n"
)


def _identity(payload):
    return payload


def _split(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


class CloseCounter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def test_reader_yields_payloads_then_ends_on_done():
    closer = CloseCounter()
    reader = EventStreamReader([STREAM], decode=_identity, on_close=closer)
    items = list(reader)
    assert [i["choices"][0]["delta"]["content"] for i in items] == ["Hel", "lo"]
    assert reader.finished
    assert closer.calls == 1
    # 结束后继续读取不会报错
    assert reader.read() is None


def test_done_stops_before_trailing_frames():
    data = STREAM + b'data: {"choices": []}\n\n'
    reader = EventStreamReader([data], decode=_identity)
    assert len(list(reader)) == 2


@pytest.mark.parametrize("size", [1, 2, 3, 7, 16])
def test_arbitrary_chunk_boundaries_decode_identically(size):
    whole = list(EventStreamReader([STREAM], decode=_identity))
    split = list(EventStreamReader(_split(STREAM, size), decode=_identity))
    assert split == whole


def test_multibyte_utf8_split_across_chunks():
    payload = 'data: {"choices": [{"delta": {"content": "你好"}}]}\n\n'.encode("utf-8")
    # 在 “你” 的三个字节中间切开
    cut = payload.index("你".encode("utf-8")) + 1
    reader = EventStreamReader([payload[:cut], payload[cut:]], decode=_identity)
    assert next(reader)["choices"][0]["delta"]["content"] == "你好"


def test_comments_and_fields():
    data = (
        b": keep-alive\n"
        b"event: completion\n"
        b"id: 42\n"
        b": another comment\n"
        b"data: {\"a\": 1}\n"
        b"retry: 1000\n"
        b"\n"
    )
    events = list(iter_events([data]))
    assert events == [StreamEvent(data='{"a": 1}', event="completion", id="42")]


def test_multiple_data_lines_joined_with_newline():
    data = b'data: {"a":\ndata: [1,\ndata: 2]}\n\n'
    events = list(iter_events([data]))
    assert events[0].data == '{"a":\n[1,\n2]}'
    reader = EventStreamReader([data], decode=_identity)
    assert next(reader) == {"a": [1, 2]}


def test_crlf_line_endings():
    data = b'data: {"x": "y"}\r\n\r\ndata: [DONE]\r\n\r\n'
    assert list(EventStreamReader([data], decode=_identity)) == [{"x": "y"}]


def test_frames_without_data_are_dropped():
    data = b"event: ping\n\n: comment only\n\ndata: {}\n\n"
    assert [e.data for e in iter_events([data])] == ["{}"]


def test_pending_frame_dispatched_at_end_of_input():
    data = b'data: {"a": 1}\n\ndata: {"b": 2}'
    assert list(EventStreamReader([data], decode=_identity)) == [{"a": 1}, {"b": 2}]


def test_field_without_space_after_colon():
    assert [e.data for e in iter_events([b'data:{"a":1}\n\n'])] == ['{"a":1}']


def test_malformed_payload_raises_once_and_terminates():
    closer = CloseCounter()
    data = b'data: {"ok": true}\n\ndata: {not json\n\ndata: {"later": 1}\n\n'
    reader = EventStreamReader([data], decode=_identity, on_close=closer)
    assert next(reader) == {"ok": True}
    with pytest.raises(ParseError) as exc_info:
        next(reader)
    assert exc_info.value.code == "MALFORMED_EVENT"
    with pytest.raises(StopIteration):
        next(reader)
    assert closer.calls == 1


def test_decode_failure_is_parse_error():
    def decode(payload):
        return payload["choices"]

    reader = EventStreamReader([b'data: {"other": 1}\n\n'], decode=decode)
    with pytest.raises(ParseError):
        next(reader)
    assert reader.finished


def test_close_early_releases_source_once():
    closer = CloseCounter()
    consumed = []

    def chunks():
        for piece in _split(STREAM, 10):
            consumed.append(piece)
            yield piece

    reader = EventStreamReader(chunks(), decode=_identity, on_close=closer)
    with reader:
        assert next(reader)["choices"][0]["delta"]["content"] == "Hel"
    reader.close()
    assert closer.calls == 1
    assert b"".join(consumed) != STREAM
    assert list(reader) == []


def test_error_from_byte_source_releases_it():
    closer = CloseCounter()

    def chunks():
        yield b'data: {"a": 1}\n\n'
        raise ConnectionResetError("boom")

    reader = EventStreamReader(chunks(), decode=_identity, on_close=closer)
    assert next(reader) == {"a": 1}
    with pytest.raises(ConnectionResetError):
        next(reader)
    assert closer.calls == 1


def test_payloads_are_json_decoded_before_decode_function():
    seen = []

    def decode(payload):
        seen.append(payload)
        return json.dumps(payload)

    list(EventStreamReader([b'data: [1, 2]\n\n'], decode=decode))
    assert seen == [[1, 2]]


def test_events_yields_raw_frames_until_done():
    closer = CloseCounter()
    data = b"event: delta\nid: 1\ndata: not json\n\n" + STREAM
    reader = EventStreamReader(_split(data, 7), decode=_identity, on_close=closer)

    frames = list(reader.events())

    assert frames[0] == StreamEvent(data="not json", event="delta", id="1")
    assert [f.data for f in frames[1:]] == [
        '{"choices": [{"delta": {"content": "Hel"}}]}',
        '{"choices": [{"delta": {"content": "lo"}}]}',
    ]
    assert reader.finished
    assert closer.calls == 1
    assert reader.read() is None


def test_events_and_payloads_share_one_stream():
    closer = CloseCounter()
    reader = EventStreamReader([STREAM], decode=_identity, on_close=closer)
    assert next(reader)["choices"][0]["delta"]["content"] == "Hel"
    assert [json.loads(f.data)["choices"][0]["delta"]["content"] for f in reader.events()] == ["lo"]
    assert closer.calls == 1

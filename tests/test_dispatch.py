"""
Tests for the JSON filter between body readers and listeners.
"""

import pytest

from services.campfire.api.events import EventEmitter
from services.campfire.chat.dispatch import decode_payload, dispatch_payload, is_blank


@pytest.fixture
def emitter(recorder):
    emitter = EventEmitter()
    recorder.attach(emitter)
    return emitter


class TestDispatchPayload:

    @pytest.mark.parametrize("payload", [b"", b"   ", b"\r\n", "\t \n", ""])
    def test_blank_payloads_are_dropped(self, emitter, recorder, payload):
        assert is_blank(payload)
        assert dispatch_payload(emitter, payload) is False
        assert recorder.events == []

    def test_object_is_emitted_as_stream(self, emitter, recorder):
        assert dispatch_payload(emitter, b'{"id":1,"body":"hi"}\n') is True

        assert recorder.streams == [{"id": 1, "body": "hi"}]
        assert recorder.errors == []

    def test_scalars_and_arrays_are_forwarded(self, emitter, recorder):
        dispatch_payload(emitter, "[1, 2]")
        dispatch_payload(emitter, "7")
        dispatch_payload(emitter, '"text"')

        assert recorder.streams == [[1, 2], 7, "text"]

    def test_utf8_bytes_are_decoded(self, emitter, recorder):
        dispatch_payload(emitter, '{"body":"café"}'.encode("utf-8"))

        assert recorder.streams == [{"body": "café"}]

    def test_malformed_json_emits_error(self, emitter, recorder):
        assert dispatch_payload(emitter, b"{not json", room_id="42") is False

        assert recorder.streams == []
        assert len(recorder.errors) == 1
        (reason,) = recorder.errors[0]
        assert reason.startswith("malformed JSON payload")

    def test_invalid_utf8_emits_error(self, emitter, recorder):
        dispatch_payload(emitter, b'{"body":"\xff"}')

        assert recorder.streams == []
        assert len(recorder.errors) == 1

    def test_decode_payload_accepts_text(self):
        assert decode_payload(' {"id": 3} ') == {"id": 3}

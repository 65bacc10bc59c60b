"""JSON filter between the body readers and the event emitter."""

import json
from typing import Any, Union

from services.campfire.api.events import ERROR, STREAM, EventEmitter
from shared.logging.logger import get_logger

log = get_logger("campfire.chat.dispatch")

Payload = Union[bytes, str]


def is_blank(payload: Payload) -> bool:
    return not payload.strip()


def decode_payload(payload: Payload) -> Any:
    """Parse one payload as UTF-8 JSON text."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    return json.loads(payload)


def dispatch_payload(emitter: EventEmitter, payload: Payload, *, room_id: str = "") -> bool:
    """
    Emit `stream` for a JSON payload, `error` for a malformed one.

    Blank payloads are dropped silently. Returns True when a `stream`
    event was emitted.
    """
    if is_blank(payload):
        return False

    try:
        value = decode_payload(payload)
    except ValueError as e:
        log.warning("Malformed JSON payload from room %s: %s", room_id, e)
        emitter.emit(ERROR, f"malformed JSON payload: {e}")
        return False

    emitter.emit(STREAM, value)
    return True

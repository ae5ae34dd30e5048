"""Push channel protocol tests — inbound decoding never raises."""

import json

from chathub.realtime.protocol import (
    AuthEvent,
    PingEvent,
    PongEvent,
    TypingEvent,
    UnknownEvent,
    decode_inbound,
    encode_event,
)


def test_decode_auth():
    event = decode_inbound('{"event": "auth", "userId": 7, "token": "abc"}')
    assert isinstance(event, AuthEvent)
    assert event.user_id == 7
    assert event.token == "abc"


def test_decode_auth_without_token():
    event = decode_inbound('{"event": "auth", "userId": 7}')
    assert isinstance(event, AuthEvent)
    assert event.token is None


def test_decode_typing():
    event = decode_inbound('{"event": "typing", "isTyping": false}')
    assert isinstance(event, TypingEvent)
    assert event.is_typing is False


def test_decode_ping_and_pong():
    assert isinstance(decode_inbound('{"event": "ping"}'), PingEvent)
    assert isinstance(decode_inbound(b'{"event": "pong"}'), PongEvent)


def test_unknown_tag_is_dropped():
    event = decode_inbound('{"event": "selfDestruct"}')
    assert isinstance(event, UnknownEvent)
    assert "selfDestruct" in event.raw


def test_invalid_json_is_dropped():
    assert isinstance(decode_inbound("not json {"), UnknownEvent)
    assert isinstance(decode_inbound(b"\xff\xfe"), UnknownEvent)


def test_wrong_field_types_are_dropped():
    # userId must be an integer, not a numeric string
    assert isinstance(decode_inbound('{"event": "auth", "userId": "7"}'), UnknownEvent)
    assert isinstance(decode_inbound('{"event": "auth", "userId": 0}'), UnknownEvent)
    assert isinstance(decode_inbound('{"event": "typing", "isTyping": "yes"}'), UnknownEvent)
    assert isinstance(decode_inbound('{"event": "typing"}'), UnknownEvent)


def test_unknown_event_raw_is_truncated():
    event = decode_inbound("x" * 1000)
    assert isinstance(event, UnknownEvent)
    assert len(event.raw) == 200


def test_encode_event():
    frame = json.loads(encode_event("messageDelete", {"id": 3}))
    assert frame == {"event": "messageDelete", "data": {"id": 3}}

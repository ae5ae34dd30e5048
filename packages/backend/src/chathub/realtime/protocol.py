"""Push channel wire protocol.

Learn: Every frame is a JSON object with an "event" tag. Inbound frames are
decoded ONCE at the boundary into a tagged union (pydantic discriminated
union on "event"). Anything that doesn't fit — invalid JSON, an unknown
tag, a wrong field type — becomes UnknownEvent, which the handler drops.
Decoding never raises, so a bad frame can't kill the connection.

Outbound frames are {"event": <name>, "data": <payload>}.
"""

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictInt, TypeAdapter, ValidationError

from chathub.events.types import AUTH, PING, PONG, TYPING


class AuthEvent(BaseModel):
    """Bind this connection to a user. Must precede everything else."""

    event: Literal["auth"] = AUTH
    user_id: StrictInt = Field(alias="userId", gt=0)
    token: Optional[str] = None


class TypingEvent(BaseModel):
    """Typing indicator — relayed to the user's other sessions."""

    event: Literal["typing"] = TYPING
    is_typing: StrictBool = Field(alias="isTyping")


class PingEvent(BaseModel):
    """Client-initiated heartbeat."""

    event: Literal["ping"] = PING


class PongEvent(BaseModel):
    """Reply to a liveness probe."""

    event: Literal["pong"] = PONG


class UnknownEvent(BaseModel):
    """Anything that failed to decode. Always dropped."""

    raw: str = ""


InboundEvent = Annotated[
    Union[AuthEvent, TypingEvent, PingEvent, PongEvent],
    Field(discriminator="event"),
]

_inbound_adapter = TypeAdapter(InboundEvent)


def decode_inbound(
    raw: Union[str, bytes],
) -> Union[AuthEvent, TypingEvent, PingEvent, PongEvent, UnknownEvent]:
    """Decode one inbound frame. Never raises."""
    try:
        return _inbound_adapter.validate_json(raw)
    except ValidationError:
        text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
        return UnknownEvent(raw=text[:200])


def encode_event(event: str, data: Any) -> str:
    """Serialize one outbound frame."""
    return json.dumps({"event": event, "data": data})

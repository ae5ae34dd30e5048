"""Pydantic schemas for messages and the chat flow.

Learn: Separate schemas for create/update/read keeps the API clean.
- MessageCreate / MessageEdit / ReactionCreate: request bodies
- MessageRead: what the API returns AND what the hub pushes as
  `messageUpdate` data — one shape for both, so a client can merge a push
  event into its REST-fetched state without translation.

Wire format is camelCase (browser clients); Python attributes stay
snake_case. MessageRead reads from attributes, so it accepts both ORM rows
and in-memory records.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_camel_out = AliasGenerator(serialization_alias=to_camel)


class CamelModel(BaseModel):
    """Request body accepting camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Requests ────────────────────────────────────────────

class MessageCreate(CamelModel):
    content: str = Field(..., min_length=1)
    role: str = Field(default="user", pattern=r"^(user|assistant)$")
    content_type: str = Field(default="text", pattern=r"^(text|code|file)$")
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class MessageEdit(CamelModel):
    content: str = Field(..., min_length=1)


class ReactionCreate(CamelModel):
    kind: str = Field(..., min_length=1, max_length=32)


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1)


# ─── Responses / push payloads ───────────────────────────

class EditSnapshot(BaseModel):
    """Content as it was before one edit."""

    timestamp: datetime
    content: str


class ReactionSummary(BaseModel):
    count: int
    users: list[int]


class MessageRead(BaseModel):
    id: int
    user_id: int
    role: str
    content: str
    content_type: str
    tags: list[str]
    metadata: dict[str, Any] = Field(validation_alias="meta")
    timestamp: datetime
    edited: bool
    edit_history: list[EditSnapshot]
    deleted: bool
    favorite: bool
    reactions: ReactionSummary

    model_config = ConfigDict(from_attributes=True, alias_generator=_camel_out)


class MessageDeleted(BaseModel):
    id: int
    deleted: bool = True


class ChatResponse(BaseModel):
    response: str
    user_message: MessageRead
    assistant_message: MessageRead

    model_config = ConfigDict(alias_generator=_camel_out)


def to_wire(message: Any) -> dict[str, Any]:
    """Serialize a stored message into the JSON-ready push payload."""
    return MessageRead.model_validate(message).model_dump(mode="json", by_alias=True)

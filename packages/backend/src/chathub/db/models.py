"""SQLAlchemy ORM models for the postgres backend.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
The Message row mirrors the in-memory MessageRecord attribute for attribute,
so both backends feed the same MessageRead schema and the same mutation
helpers in chathub.store.mutations.

- JSONB for metadata, edit history and the reaction aggregate
- ARRAY for tags (overlap queries for tag filtering)
- "meta" instead of "metadata" (reserved by the declarative base)
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_reactions() -> dict:
    return {"count": 0, "users": []}


class User(Base):
    """A chat user. Credentials live with the external auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(
        String(30), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Message(Base):
    """One turn of a user's conversation with the assistant.

    Learn: Rows are never physically deleted. `deleted` hides a message
    from every read query, `edit_history` keeps every prior version.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_user_ts", "user_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(10), nullable=False)  # user|assistant
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="text"
    )  # text|code|file
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=list
    )
    meta: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Mutable state
    edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edit_history: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reactions: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=empty_reactions
    )

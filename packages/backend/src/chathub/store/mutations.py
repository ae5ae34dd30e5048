"""Message mutation rules shared by every store backend.

Learn: Both the in-memory MessageRecord and the ORM Message row expose the
same attributes, so the rules live here once and each backend only adds
its own locking and persistence around them. Every function mutates the
record in place; callers hold the per-message lock.

Edit history entries are plain dicts with an ISO timestamp so they store
as-is in a JSONB column.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from chathub.errors import InvalidMessageError, MessageNotFoundError

ROLES = ("user", "assistant")
CONTENT_TYPES = ("text", "code", "file")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Validation ──────────────────────────────────────────


def validate_content(content: str) -> str:
    if not isinstance(content, str) or not content.strip():
        raise InvalidMessageError("Message content must not be empty")
    return content


def validate_new_message(
    content: str,
    role: str,
    content_type: str,
) -> None:
    validate_content(content)
    if role not in ROLES:
        raise InvalidMessageError(
            f"Invalid role '{role}'. Allowed: {', '.join(ROLES)}"
        )
    if content_type not in CONTENT_TYPES:
        raise InvalidMessageError(
            f"Invalid content type '{content_type}'. "
            f"Allowed: {', '.join(CONTENT_TYPES)}"
        )


def validate_reaction_kind(kind: str) -> str:
    if not isinstance(kind, str) or not kind.strip():
        raise InvalidMessageError("Reaction kind must not be empty")
    return kind


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Collapse duplicate tags, keeping first-seen order."""
    return list(dict.fromkeys(tags or []))


# ─── Mutations ───────────────────────────────────────────


def require_live(record: Any) -> None:
    """Soft-deleted messages only accept delete and restore."""
    if record.deleted:
        raise MessageNotFoundError(record.id)


def apply_edit(record: Any, new_content: str, now: Optional[datetime] = None) -> None:
    """Snapshot the current content into history, then replace it."""
    require_live(record)
    validate_content(new_content)
    snapshot = {
        "timestamp": (now or utcnow()).isoformat(),
        "content": record.content,
    }
    record.edit_history = [*record.edit_history, snapshot]
    record.content = new_content
    record.edited = True


def apply_soft_delete(record: Any) -> None:
    record.deleted = True


def apply_restore(record: Any) -> None:
    record.deleted = False


def apply_toggle_favorite(record: Any) -> None:
    require_live(record)
    record.favorite = not record.favorite


def apply_add_reaction(record: Any, user_id: int) -> bool:
    """Add a reactor. Returns False (no-op) if the user already reacted."""
    require_live(record)
    users = list(record.reactions.get("users", []))
    if user_id in users:
        return False
    users.append(user_id)
    record.reactions = {"count": len(users), "users": users}
    return True


def apply_remove_reaction(record: Any, user_id: int) -> bool:
    """Remove a reactor. Returns False (no-op) if the user never reacted."""
    require_live(record)
    users = list(record.reactions.get("users", []))
    if user_id not in users:
        return False
    users.remove(user_id)
    record.reactions = {"count": len(users), "users": users}
    return True


# ─── Query predicates (in-memory backend) ────────────────


def matches_query(record: Any, query: str) -> bool:
    return query.casefold() in record.content.casefold()


def in_range(record: Any, start: datetime, end: datetime) -> bool:
    return start <= record.timestamp <= end


def has_any_tag(record: Any, tags: Iterable[str]) -> bool:
    return not set(record.tags).isdisjoint(tags)

"""Message API routes.

Learn: These routes are the HTTP interface to the message store. The
service layer owns validation, ownership and broadcasting; routes just
translate HTTP to service calls and map errors to status codes:
- MessageNotFoundError → 404 (also for other users' messages)
- InvalidMessageError  → 422

Key patterns:
- POST for creation and toggles (not idempotent)
- PATCH for edits, DELETE for soft-delete (idempotent)
- Fixed sub-paths (/search, /range, /tags, /favorites) are declared
  before /messages/{message_id} so they aren't captured by it
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from chathub.auth.dependencies import CurrentIdentity, get_current_user
from chathub.errors import InvalidMessageError, MessageNotFoundError
from chathub.realtime.hub import get_router
from chathub.realtime.router import BroadcastRouter
from chathub.schemas.message import (
    MessageCreate,
    MessageDeleted,
    MessageEdit,
    MessageRead,
    ReactionCreate,
)
from chathub.services.message_service import MessageService
from chathub.store import MessageStore, get_message_store

router = APIRouter(prefix="/messages")


def get_message_service(
    store: MessageStore = Depends(get_message_store),
    hub: BroadcastRouter = Depends(get_router),
) -> MessageService:
    return MessageService(store, hub)


# ═══════════════════════════════════════════════════════════
# Collection
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=MessageRead, status_code=201)
async def create_message(
    body: MessageCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Store a message and push it to all of the user's sessions."""
    try:
        return await svc.create(
            user_id=identity.user_id,
            content=body.content,
            role=body.role,
            content_type=body.content_type,
            tags=body.tags,
            metadata=body.metadata,
        )
    except InvalidMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("", response_model=list[MessageRead])
async def list_messages(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Conversation history, oldest first, deleted messages excluded."""
    return await svc.history(identity.user_id)


@router.get("/search", response_model=list[MessageRead])
async def search_messages(
    q: str = Query(..., min_length=1, description="Case-insensitive substring"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    return await svc.search(identity.user_id, q)


@router.get("/range", response_model=list[MessageRead])
async def messages_in_range(
    start: datetime = Query(..., description="Inclusive lower bound"),
    end: datetime = Query(..., description="Inclusive upper bound"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return await svc.by_date_range(identity.user_id, start, end)


@router.get("/tags", response_model=list[MessageRead])
async def messages_with_tags(
    tag: list[str] = Query([], description="Match messages carrying any of these"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    if not tag:
        raise HTTPException(status_code=422, detail="At least one tag is required")
    return await svc.by_tags(identity.user_id, tag)


@router.get("/favorites", response_model=list[MessageRead])
async def favorite_messages(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    return await svc.favorites(identity.user_id)


# ═══════════════════════════════════════════════════════════
# Single message
# ═══════════════════════════════════════════════════════════


@router.get("/{message_id}", response_model=MessageRead)
async def get_message(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    try:
        return await svc.get(identity.user_id, message_id)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{message_id}", response_model=MessageRead)
async def edit_message(
    message_id: int,
    body: MessageEdit,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Replace the content. The previous content goes to editHistory."""
    try:
        return await svc.edit(identity.user_id, message_id, body.content)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{message_id}", response_model=MessageDeleted)
async def delete_message(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Soft-delete. Repeating the call is a no-op that still succeeds."""
    try:
        msg = await svc.delete(identity.user_id, message_id)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageDeleted(id=msg.id)


@router.post("/{message_id}/restore", response_model=MessageRead)
async def restore_message(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Undo a soft-delete."""
    try:
        return await svc.restore(identity.user_id, message_id)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{message_id}/favorite", response_model=MessageRead)
async def toggle_favorite(
    message_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    try:
        return await svc.toggle_favorite(identity.user_id, message_id)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ═══════════════════════════════════════════════════════════
# Reactions
# ═══════════════════════════════════════════════════════════


@router.post("/{message_id}/reactions", response_model=MessageRead)
async def add_reaction(
    message_id: int,
    body: ReactionCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """React to a message. Reacting twice counts once."""
    try:
        return await svc.add_reaction(identity.user_id, message_id, body.kind)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{message_id}/reactions/{kind}", response_model=MessageRead)
async def remove_reaction(
    message_id: int,
    kind: str,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MessageService = Depends(get_message_service),
):
    """Withdraw a reaction. A no-op if the user never reacted."""
    try:
        return await svc.remove_reaction(identity.user_id, message_id, kind)
    except MessageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidMessageError as e:
        raise HTTPException(status_code=422, detail=str(e))

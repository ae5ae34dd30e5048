"""Message store tests — in-memory backend.

Learn: These cover the mutable-state rules every backend shares:
1. Edits append the previous content to the history
2. Soft-delete hides a message from every query and is idempotent
3. Reactions are idempotent per user and never go negative
4. Queries are per-user and ordered
"""

import asyncio
from datetime import timedelta

import pytest

from chathub.errors import InvalidMessageError, MessageNotFoundError


# ═══════════════════════════════════════════════════════════
# Create / get
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_defaults(store):
    msg = await store.create(user_id=1, content="hi")
    assert msg.id == 1
    assert msg.content == "hi"
    assert msg.role == "user"
    assert msg.content_type == "text"
    assert msg.edited is False
    assert msg.deleted is False
    assert msg.favorite is False
    assert msg.edit_history == []
    assert msg.reactions == {"count": 0, "users": []}


@pytest.mark.asyncio
async def test_ids_are_sequential(store):
    a = await store.create(user_id=1, content="a")
    b = await store.create(user_id=2, content="b")
    assert b.id == a.id + 1


@pytest.mark.asyncio
async def test_create_rejects_empty_content(store):
    with pytest.raises(InvalidMessageError):
        await store.create(user_id=1, content="   ")


@pytest.mark.asyncio
async def test_create_rejects_unknown_role(store):
    with pytest.raises(InvalidMessageError):
        await store.create(user_id=1, content="hi", role="system")


@pytest.mark.asyncio
async def test_create_collapses_duplicate_tags(store):
    msg = await store.create(user_id=1, content="hi", tags=["a", "b", "a"])
    assert msg.tags == ["a", "b"]


@pytest.mark.asyncio
async def test_get_missing_raises(store):
    with pytest.raises(MessageNotFoundError) as exc:
        await store.get(42)
    assert exc.value.message_id == 42


@pytest.mark.asyncio
async def test_returned_records_are_snapshots(store):
    """Mutating a returned record must not touch the stored one."""
    msg = await store.create(user_id=1, content="hi")
    msg.content = "tampered"
    msg.reactions["users"].append(99)

    fresh = await store.get(msg.id)
    assert fresh.content == "hi"
    assert fresh.reactions == {"count": 0, "users": []}


# ═══════════════════════════════════════════════════════════
# Edit
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_edit_records_previous_content(store):
    msg = await store.create(user_id=1, content="hi")
    edited = await store.edit(msg.id, "hello")

    assert edited.content == "hello"
    assert edited.edited is True
    assert len(edited.edit_history) == 1
    assert edited.edit_history[0]["content"] == "hi"
    assert "timestamp" in edited.edit_history[0]


@pytest.mark.asyncio
async def test_n_edits_give_n_history_entries(store):
    msg = await store.create(user_id=1, content="v0")
    for i in range(1, 5):
        msg = await store.edit(msg.id, f"v{i}")

    assert [h["content"] for h in msg.edit_history] == ["v0", "v1", "v2", "v3"]
    assert msg.content == "v4"


@pytest.mark.asyncio
async def test_edit_empty_content_leaves_message_untouched(store):
    msg = await store.create(user_id=1, content="hi")
    with pytest.raises(InvalidMessageError):
        await store.edit(msg.id, "")

    fresh = await store.get(msg.id)
    assert fresh.content == "hi"
    assert fresh.edited is False
    assert fresh.edit_history == []


@pytest.mark.asyncio
async def test_edit_missing_raises(store):
    with pytest.raises(MessageNotFoundError):
        await store.edit(7, "x")


# ═══════════════════════════════════════════════════════════
# Soft delete / restore
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_soft_delete_is_idempotent(store):
    msg = await store.create(user_id=1, content="bye")
    first = await store.soft_delete(msg.id)
    second = await store.soft_delete(msg.id)
    assert first.deleted is True
    assert second.deleted is True


@pytest.mark.asyncio
async def test_deleted_message_absent_from_every_query(store):
    msg = await store.create(user_id=1, content="secret", tags=["x"])
    await store.toggle_favorite(msg.id)
    await store.soft_delete(msg.id)

    far_past = msg.timestamp - timedelta(days=1)
    far_future = msg.timestamp + timedelta(days=1)

    assert await store.list_for_user(1) == []
    assert await store.search(1, "secret") == []
    assert await store.by_tags(1, ["x"]) == []
    assert await store.by_date_range(1, far_past, far_future) == []
    assert await store.favorites_of(1) == []


@pytest.mark.asyncio
async def test_restore_brings_message_back(store):
    msg = await store.create(user_id=1, content="oops")
    await store.soft_delete(msg.id)
    restored = await store.restore(msg.id)

    assert restored.deleted is False
    assert [m.id for m in await store.list_for_user(1)] == [msg.id]


@pytest.mark.asyncio
async def test_deleted_message_refuses_edit_favorite_and_reactions(store):
    msg = await store.create(user_id=1, content="gone")
    await store.soft_delete(msg.id)

    for call in (
        store.edit(msg.id, "changed"),
        store.toggle_favorite(msg.id),
        store.add_reaction(msg.id, 2, "like"),
        store.remove_reaction(msg.id, 2, "like"),
    ):
        with pytest.raises(MessageNotFoundError):
            await call

    after = await store.get(msg.id)
    assert after.content == "gone"
    assert after.edit_history == []
    assert after.favorite is False
    assert after.reactions == {"count": 0, "users": []}


# ═══════════════════════════════════════════════════════════
# Favorites / reactions
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_toggle_favorite_flips(store):
    msg = await store.create(user_id=1, content="keep")
    assert (await store.toggle_favorite(msg.id)).favorite is True
    assert [m.id for m in await store.favorites_of(1)] == [msg.id]
    assert (await store.toggle_favorite(msg.id)).favorite is False
    assert await store.favorites_of(1) == []


@pytest.mark.asyncio
async def test_add_reaction_is_idempotent_per_user(store):
    msg = await store.create(user_id=1, content="nice")
    await store.add_reaction(msg.id, 1, "like")
    again = await store.add_reaction(msg.id, 1, "like")

    assert again.reactions == {"count": 1, "users": [1]}


@pytest.mark.asyncio
async def test_reactions_from_several_users(store):
    msg = await store.create(user_id=1, content="nice")
    await store.add_reaction(msg.id, 1, "like")
    result = await store.add_reaction(msg.id, 2, "like")
    assert result.reactions == {"count": 2, "users": [1, 2]}

    result = await store.remove_reaction(msg.id, 1, "like")
    assert result.reactions == {"count": 1, "users": [2]}


@pytest.mark.asyncio
async def test_remove_reaction_by_non_reactor_is_noop(store):
    msg = await store.create(user_id=1, content="meh")
    result = await store.remove_reaction(msg.id, 5, "like")
    assert result.reactions == {"count": 0, "users": []}


@pytest.mark.asyncio
async def test_reaction_kind_must_not_be_empty(store):
    msg = await store.create(user_id=1, content="meh")
    with pytest.raises(InvalidMessageError):
        await store.add_reaction(msg.id, 1, "")


@pytest.mark.asyncio
async def test_concurrent_reactions_are_all_counted(store):
    msg = await store.create(user_id=1, content="popular")
    await asyncio.gather(
        *(store.add_reaction(msg.id, uid, "like") for uid in range(1, 51))
    )
    final = await store.get(msg.id)
    assert final.reactions["count"] == 50
    assert sorted(final.reactions["users"]) == list(range(1, 51))


# ═══════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_for_user_is_oldest_first_and_scoped(store):
    a = await store.create(user_id=1, content="first")
    await store.create(user_id=2, content="someone else")
    b = await store.create(user_id=1, content="second")

    assert [m.id for m in await store.list_for_user(1)] == [a.id, b.id]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_newest_first(store):
    a = await store.create(user_id=1, content="Deploy the API")
    await store.create(user_id=1, content="lunch?")
    b = await store.create(user_id=1, content="redeploy later")
    await store.create(user_id=2, content="deploy too")

    assert [m.id for m in await store.search(1, "DEPLOY")] == [b.id, a.id]


@pytest.mark.asyncio
async def test_by_date_range_is_inclusive(store):
    msg = await store.create(user_id=1, content="now")
    hits = await store.by_date_range(1, msg.timestamp, msg.timestamp)
    assert [m.id for m in hits] == [msg.id]

    later = msg.timestamp + timedelta(seconds=1)
    assert await store.by_date_range(1, later, later + timedelta(hours=1)) == []


@pytest.mark.asyncio
async def test_by_tags_matches_any(store):
    a = await store.create(user_id=1, content="a", tags=["work"])
    b = await store.create(user_id=1, content="b", tags=["home", "urgent"])
    await store.create(user_id=1, content="c", tags=["misc"])

    hits = await store.by_tags(1, ["work", "urgent"])
    assert {m.id for m in hits} == {a.id, b.id}
    assert await store.by_tags(1, []) == []

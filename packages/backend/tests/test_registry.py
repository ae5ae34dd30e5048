"""Connection registry tests — membership and liveness sweeps.

Learn: The registry is tested with FakeSocket connections, so sweeps,
probes and evictions can be driven step by step without timers.
"""

import asyncio

import pytest

from chathub.realtime.registry import Connection, Liveness


# ═══════════════════════════════════════════════════════════
# Membership
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_adds_connection(registry, connect):
    conn, _ = await connect(user_id=7)
    assert conn.authenticated
    assert await registry.connections_for(7) == (conn,)
    assert registry.has_user(7)
    assert registry.user_count == 1


@pytest.mark.asyncio
async def test_user_can_hold_several_connections(registry, connect):
    a, _ = await connect(user_id=7)
    b, _ = await connect(user_id=7)
    assert set(await registry.connections_for(7)) == {a, b}
    assert registry.connection_count == 2


@pytest.mark.asyncio
async def test_unauthenticated_connection_belongs_to_nobody(registry, connect):
    conn, _ = await connect()
    assert not conn.authenticated
    assert registry.user_count == 0
    assert registry.connection_count == 1


@pytest.mark.asyncio
async def test_connections_for_unknown_user_is_empty(registry):
    assert await registry.connections_for(404) == ()


@pytest.mark.asyncio
async def test_unregister_is_idempotent(registry, connect):
    conn, _ = await connect(user_id=7)
    await registry.unregister(conn)
    await registry.unregister(conn)

    assert await registry.connections_for(7) == ()
    assert not registry.has_user(7)
    assert registry.connection_count == 0


@pytest.mark.asyncio
async def test_unregister_never_registered_is_noop(registry):
    await registry.unregister(Connection(object()))
    assert registry.connection_count == 0


@pytest.mark.asyncio
async def test_reauth_moves_connection(registry, connect):
    conn, _ = await connect(user_id=7)
    await registry.register(conn, 8)

    assert await registry.connections_for(7) == ()
    assert await registry.connections_for(8) == (conn,)
    assert conn.user_id == 8


@pytest.mark.asyncio
async def test_closed_connection_is_not_registered(registry):
    conn = Connection(object())
    conn.closed = True
    await registry.register(conn, 7)
    assert await registry.connections_for(7) == ()


@pytest.mark.asyncio
async def test_concurrent_register_and_unregister(registry, connect):
    """Churn on one user leaves exactly the survivors registered."""
    conns = [(await connect())[0] for _ in range(20)]
    await asyncio.gather(*(registry.register(c, 1) for c in conns))
    await asyncio.gather(*(registry.unregister(c) for c in conns[::2]))

    assert set(await registry.connections_for(1)) == set(conns[1::2])


# ═══════════════════════════════════════════════════════════
# Liveness
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sweep_probes_live_connections(registry, connect):
    conn, socket = await connect(user_id=7)
    evicted = await registry.sweep()

    assert evicted == 0
    assert conn.liveness is Liveness.AWAITING_PONG
    assert socket.frames == [{"event": "ping", "data": {}}]


@pytest.mark.asyncio
async def test_answered_probe_keeps_connection(registry, connect):
    conn, _ = await connect(user_id=7)
    await registry.sweep()
    conn.mark_alive()  # pong arrived
    await registry.sweep()

    assert await registry.connections_for(7) == (conn,)


@pytest.mark.asyncio
async def test_silent_connection_evicted_on_second_sweep(registry, connect):
    silent, silent_socket = await connect(user_id=7)
    chatty, _ = await connect(user_id=7)

    await registry.sweep()
    chatty.mark_alive()
    evicted = await registry.sweep()

    assert evicted == 1
    assert silent.closed
    assert silent_socket.close_code == 1001
    assert await registry.connections_for(7) == (chatty,)


@pytest.mark.asyncio
async def test_unauthenticated_connections_are_swept(registry, connect):
    conn, _ = await connect()
    await registry.sweep()
    await registry.sweep()
    assert conn.closed
    assert registry.connection_count == 0


@pytest.mark.asyncio
async def test_failed_probe_evicts_immediately(registry, connect):
    conn, socket = await connect(user_id=7)
    socket.fail = True

    assert await registry.sweep() == 1
    assert conn.closed
    assert not registry.has_user(7)


@pytest.mark.asyncio
async def test_run_sweeps_background_loop(registry, connect):
    conn, _ = await connect(user_id=7)
    task = asyncio.create_task(registry.run_sweeps())
    try:
        for _ in range(100):
            if conn.closed:
                break
            await asyncio.sleep(0.01)
    finally:
        registry.stop()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    assert conn.closed
    assert not registry.has_user(7)

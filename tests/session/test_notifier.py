from unittest.mock import AsyncMock

import pytest

from queueup.session.notifier import ConnectionManager


def fake_socket():
    socket = AsyncMock()
    return socket


@pytest.mark.asyncio
async def test_publish_reaches_every_actor_of_the_tenant():
    manager = ConnectionManager()
    alice, bob, other = fake_socket(), fake_socket(), fake_socket()
    await manager.connect(alice, "guild-1", "alice")
    await manager.connect(bob, "guild-1", "bob")
    await manager.connect(other, "guild-2", "carol")

    delivered = await manager.publish("guild-1", "queue:1", {"is_full": False})

    assert delivered == 2
    message = alice.send_json.await_args.args[0]
    assert message["type"] == "view"
    assert message["key"] == "queue:1"
    other.send_json.assert_not_awaited()
    assert manager.view("guild-1", "queue:1") == {"is_full": False}


@pytest.mark.asyncio
async def test_late_connection_gets_current_views():
    manager = ConnectionManager()
    await manager.publish("guild-1", "draft:1", {"phase": "draft"})
    socket = fake_socket()

    await manager.connect(socket, "guild-1", "alice")

    assert socket.send_json.await_args.args[0]["payload"] == {"phase": "draft"}


@pytest.mark.asyncio
async def test_ephemeral_goes_to_one_actor_and_send_errors_are_contained():
    manager = ConnectionManager()
    alice, broken = fake_socket(), fake_socket()
    broken.send_json.side_effect = RuntimeError("closed")
    await manager.connect(alice, "guild-1", "alice")
    await manager.connect(broken, "guild-1", "bob")

    assert await manager.ephemeral("guild-1", "alice", {"message": "ok"}, ttl=2) == 1
    assert alice.send_json.await_args.args[0]["expires_in"] == 2
    assert await manager.ephemeral("guild-1", "bob", {"message": "ok"}, ttl=2) == 0
    assert await manager.ephemeral("guild-1", "nobody", {"message": "ok"}, ttl=2) == 0


@pytest.mark.asyncio
async def test_disconnect_forgets_actor():
    manager = ConnectionManager()
    socket = fake_socket()
    await manager.connect(socket, "guild-1", "alice")

    manager.disconnect(socket, "guild-1", "alice")

    assert manager.active_connections == {}

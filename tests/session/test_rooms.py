from unittest.mock import AsyncMock

import pytest

from queueup.errors import RoomUnavailable
from queueup.session.rooms import InMemoryRoomProvisioner, RoomService


@pytest.mark.asyncio
async def test_in_memory_rooms_and_moves():
    provisioner = InMemoryRoomProvisioner()
    moves = []

    async def on_move(tenant_id, actor_id, room):
        moves.append((actor_id, room))

    provisioner.on_move(on_move)
    voice = await provisioner.create_voice_room("guild-1", "Queue VC #1")
    await provisioner.place("guild-1", "alice", "lobby")

    assert await provisioner.move_actor("guild-1", "alice", "lobby", voice)
    assert not await provisioner.move_actor("guild-1", "alice", "lobby", voice)
    assert await provisioner.location_of("guild-1", "alice") == voice

    await provisioner.delete_room(voice)
    assert await provisioner.location_of("guild-1", "alice") is None
    assert moves == [("alice", "lobby"), ("alice", voice), ("alice", None)]


@pytest.mark.asyncio
async def test_move_actors_only_moves_from_origin():
    provisioner = InMemoryRoomProvisioner()
    service = RoomService(provisioner, attempts=3, base_delay=0)
    await provisioner.place("guild-1", "a", "lobby")
    await provisioner.place("guild-1", "b", "elsewhere")

    moved = await service.move_actors("guild-1", ["a", "b", "c"], "lobby", "vc-1")

    assert moved == ["a"]
    assert await provisioner.location_of("guild-1", "b") == "elsewhere"


@pytest.mark.asyncio
async def test_retry_then_succeed():
    provisioner = InMemoryRoomProvisioner()
    provisioner.create_text_room = AsyncMock(side_effect=[ConnectionError("down"), "text-1"])
    service = RoomService(provisioner, attempts=3, base_delay=0)

    assert await service.create_text_room("guild-1", "Queue #1") == "text-1"
    assert provisioner.create_text_room.await_count == 2


@pytest.mark.asyncio
async def test_retry_exhausted_raises_room_unavailable():
    provisioner = InMemoryRoomProvisioner()
    provisioner.create_voice_room = AsyncMock(side_effect=ConnectionError("down"))
    service = RoomService(provisioner, attempts=3, base_delay=0)

    with pytest.raises(RoomUnavailable):
        await service.create_voice_room("guild-1", "Queue VC #1")
    assert provisioner.create_voice_room.await_count == 3

import asyncio
from unittest.mock import AsyncMock

import pytest

from queueup.errors import RolePromptExpired
from queueup.queue.prompts import RolePromptRegistry

KEY = ("guild-1", 1, "alice")


@pytest.mark.asyncio
async def test_take_open_prompt():
    prompts = RolePromptRegistry()
    on_expire = AsyncMock()
    prompts.open(KEY, 5, on_expire)

    assert prompts.is_open(KEY)
    prompts.take(KEY)

    assert not prompts.is_open(KEY)
    assert len(prompts) == 0
    on_expire.assert_not_called()


@pytest.mark.asyncio
async def test_prompt_expires():
    prompts = RolePromptRegistry()
    on_expire = AsyncMock()
    prompts.open(KEY, 0.01, on_expire)

    await asyncio.sleep(0.05)

    on_expire.assert_awaited_once()
    with pytest.raises(RolePromptExpired):
        prompts.take(KEY)


@pytest.mark.asyncio
async def test_cancel_session_only_touches_that_session():
    prompts = RolePromptRegistry()
    on_expire = AsyncMock()
    prompts.open(("guild-1", 1, "a"), 5, on_expire)
    prompts.open(("guild-1", 1, "b"), 5, on_expire)
    prompts.open(("guild-1", 2, "c"), 5, on_expire)

    prompts.cancel_session("guild-1", 1)

    assert len(prompts) == 1
    assert prompts.is_open(("guild-1", 2, "c"))
    prompts.cancel_all()
    assert len(prompts) == 0

from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Tuple

from queueup.config import logger
from queueup.errors import RolePromptExpired
from queueup.session.timers import ScheduledCallback

prompt_logger = logger.getChild("queue")

PromptKey = Tuple[str, int, str]


class RolePromptRegistry:
    """
    Open role prompts keyed by (tenant, session, actor).

    A prompt is opened when a player asks to join without a role and expires
    after a bounded wait unless the player picks a role first.
    """

    def __init__(self):
        self._prompts: Dict[PromptKey, ScheduledCallback] = {}

    def open(
        self,
        key: PromptKey,
        timeout: float,
        on_expire: Callable[[], Awaitable[None]],
    ) -> datetime:
        self.cancel(key)

        async def expire():
            if self._prompts.pop(key, None) is not None:
                prompt_logger.info(f"Role prompt expired for {key}")
                await on_expire()

        self._prompts[key] = ScheduledCallback(timeout, expire, name=f"role-prompt:{key}")
        return datetime.utcnow() + timedelta(seconds=timeout)

    def take(self, key: PromptKey) -> None:
        """Consume an open prompt; raises RolePromptExpired if there is none."""
        timer = self._prompts.pop(key, None)
        if timer is None:
            raise RolePromptExpired()
        timer.cancel()

    def is_open(self, key: PromptKey) -> bool:
        return key in self._prompts

    def cancel(self, key: PromptKey) -> None:
        timer = self._prompts.pop(key, None)
        if timer is not None:
            timer.cancel()

    def cancel_session(self, tenant_id: str, session_number: int) -> None:
        for key in [k for k in self._prompts if k[0] == tenant_id and k[1] == session_number]:
            self.cancel(key)

    def __len__(self) -> int:
        return len(self._prompts)

    def cancel_all(self) -> None:
        for key in list(self._prompts):
            self.cancel(key)

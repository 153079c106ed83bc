from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class QueueSnapshot(BaseModel):
    """
    Represents the visible state of one session's queue.
    """

    tenant_id: str
    session_number: int
    capacity: int
    buckets: Dict[str, List[str]]
    is_full: bool


class JoinRequest(BaseModel):
    role: Optional[str] = None


class RoleChoiceRequest(BaseModel):
    role: str


class RolePrompt(BaseModel):
    """
    Returned when a player joins without a role and must pick one before the deadline.
    """

    open_roles: List[str]
    expires_at: datetime


class QueueActionResult(BaseModel):
    """
    Represents the result of a queue operation.
    """

    success: bool
    message: str
    queue: Optional[QueueSnapshot] = None
    prompt: Optional[RolePrompt] = None

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class CaptainVoteRequest(BaseModel):
    candidate_id: str = Field(min_length=1)


class CaptainRoleVoteRequest(BaseModel):
    role: str


class CaptainVoteResult(BaseModel):
    success: bool
    message: str
    selected: List[str]


class PickRequest(BaseModel):
    player_id: str = Field(min_length=1)


class PickResult(BaseModel):
    success: bool
    message: str
    role: str
    picked: str
    mirrored: Optional[str] = None


class ResultVoteRequest(BaseModel):
    side: Literal["blue", "red", "clear"]


class ResultVoteResult(BaseModel):
    success: bool
    message: str
    blue: int
    red: int


class SessionView(BaseModel):
    """
    Everything a client needs to render the current session of a tenant.
    """

    tenant_id: str
    session_number: int
    phase: str
    text_room: Optional[str] = None
    voice_room: Optional[str] = None
    captains: Optional[List[str]] = None
    detail: Dict[str, Any] = Field(default_factory=dict)

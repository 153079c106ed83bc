from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: str
    player_name: str
    points: int
    hidden_mmr: int
    match_wins: int
    match_losses: int


class PublicPlayerResponse(BaseModel):
    """Player card without the hidden rating."""

    model_config = ConfigDict(from_attributes=True)

    player_id: str
    player_name: str
    points: int
    match_wins: int
    match_losses: int


class ObservedMember(BaseModel):
    player_id: str = Field(min_length=1)
    player_name: str = Field(min_length=1)


class ObserveMembersRequest(BaseModel):
    members: List[ObservedMember]


class ObserveMembersResponse(BaseModel):
    created: int
    total: int


class PlayerStatsPatch(BaseModel):
    """Admin override of a player's ratings and record."""

    player_name: Optional[str] = None
    points: Optional[int] = None
    mmr: Optional[int] = None
    wins: Optional[int] = Field(default=None, ge=0)
    losses: Optional[int] = Field(default=None, ge=0)


class PlayerDelta(BaseModel):
    """One row of a post-match batch write."""

    player_id: str
    points_delta: int
    mmr_delta: int
    won: bool

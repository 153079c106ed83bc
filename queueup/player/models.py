from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

DEFAULT_POINTS = 500
DEFAULT_HIDDEN_MMR = 500


class Player(SQLModel, table=True):
    __tablename__ = "players"
    __table_args__ = (
        UniqueConstraint("tenant_id", "player_id", name="uq_players_tenant_player"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True, nullable=False)
    player_id: str = Field(index=True, nullable=False)
    player_name: str = Field(nullable=False)
    points: int = Field(default=DEFAULT_POINTS, nullable=False)
    hidden_mmr: int = Field(default=DEFAULT_HIDDEN_MMR, nullable=False)
    match_wins: int = Field(default=0, nullable=False, ge=0)
    match_losses: int = Field(default=0, nullable=False, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def games(self) -> int:
        return self.match_wins + self.match_losses

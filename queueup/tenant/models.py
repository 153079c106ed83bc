from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

DEFAULT_QUEUE_HEADER = "Custom 5vs5 Queue"


class TenantConfig(SQLModel, table=True):
    __tablename__ = "tenant_configs"

    id: Optional[int] = Field(default=None, primary_key=True)
    tenant_id: str = Field(index=True, unique=True, nullable=False)
    bot_channel: Optional[str] = Field(default=None)
    lobby_voice_room: Optional[str] = Field(default=None)
    queue_header: str = Field(default=DEFAULT_QUEUE_HEADER)
    queue_number: int = Field(default=1, nullable=False)

    # Per-tenant overrides; None falls back to the process defaults
    per_role_capacity: Optional[int] = Field(default=None)
    vote_threshold: Optional[int] = Field(default=None)
    member_wait_timeout: Optional[float] = Field(default=None)
    captain_vote_timeout: Optional[float] = Field(default=None)
    draft_turn_timeout: Optional[float] = Field(default=None)
    result_vote_timeout: Optional[float] = Field(default=None)
    role_pick_timeout: Optional[float] = Field(default=None)
    presence_debounce: Optional[float] = Field(default=None)
    ack_ttl_short: Optional[float] = Field(default=None)
    ack_ttl_medium: Optional[float] = Field(default=None)
    cleanup_delay: Optional[float] = Field(default=None)
    room_retry_attempts: Optional[int] = Field(default=None)

    # Rating constants; None keeps the engine default
    k_points: Optional[float] = Field(default=None)
    d_points: Optional[float] = Field(default=None)
    bridge_cap: Optional[float] = Field(default=None)
    bridge_scale: Optional[float] = Field(default=None)
    d_mmr: Optional[float] = Field(default=None)
    prior_beta: Optional[float] = Field(default=None)
    winrate_gamma: Optional[float] = Field(default=None)
    winrate_amp: Optional[float] = Field(default=None)
    k_start: Optional[float] = Field(default=None)
    k_end: Optional[float] = Field(default=None)
    k_ramp_games: Optional[int] = Field(default=None)
    k_floor: Optional[float] = Field(default=None)
    k_post_ramp: Optional[float] = Field(default=None)
    k_tau: Optional[float] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

from dataclasses import fields, replace
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from queueup.config import Config
from queueup.queue.roles import PLAYERS_PER_ROLE
from queueup.rating.engine import DEFAULT_CONSTANTS, RatingConstants
from queueup.tenant.models import TenantConfig

# Bounds for admin-supplied timers, in seconds
MIN_TIMER_SECONDS = 10
MAX_TIMER_SECONDS = 24 * 60 * 60

SESSION_OVERRIDES = (
    "per_role_capacity",
    "vote_threshold",
    "member_wait_timeout",
    "captain_vote_timeout",
    "draft_turn_timeout",
    "result_vote_timeout",
    "role_pick_timeout",
    "presence_debounce",
    "ack_ttl_short",
    "ack_ttl_medium",
    "cleanup_delay",
    "room_retry_attempts",
)
RATING_OVERRIDES = tuple(f.name for f in fields(RatingConstants))


def _present(config: TenantConfig, names) -> dict:
    return {name: getattr(config, name) for name in names if getattr(config, name) is not None}


class SessionSettings(BaseModel):
    """Effective tunables for one session, resolved from defaults and tenant overrides."""

    model_config = ConfigDict(frozen=True)

    per_role_capacity: int = Config.PER_ROLE_CAPACITY
    vote_threshold: int = Config.VOTE_THRESHOLD
    member_wait_timeout: float = Config.MEMBER_WAIT_TIMEOUT
    captain_vote_timeout: float = Config.CAPTAIN_VOTE_TIMEOUT
    draft_turn_timeout: float = Config.DRAFT_TURN_TIMEOUT
    result_vote_timeout: float = Config.RESULT_VOTE_TIMEOUT
    role_pick_timeout: float = Config.ROLE_PICK_TIMEOUT
    presence_debounce: float = Config.PRESENCE_DEBOUNCE
    ack_ttl_short: float = Config.ACK_TTL_SHORT
    ack_ttl_medium: float = Config.ACK_TTL_MEDIUM
    cleanup_delay: float = Config.CLEANUP_DELAY
    room_retry_attempts: int = Config.ROOM_RETRY_ATTEMPTS
    rating: RatingConstants = DEFAULT_CONSTANTS

    @classmethod
    def from_tenant_config(cls, config: TenantConfig) -> "SessionSettings":
        overrides = _present(config, SESSION_OVERRIDES)
        rating = _present(config, RATING_OVERRIDES)
        if rating:
            overrides["rating"] = replace(DEFAULT_CONSTANTS, **rating)
        return cls(**overrides)


class TenantConfigPatch(BaseModel):
    """Admin update of a tenant's configuration. Only the provided fields change."""

    model_config = ConfigDict(extra="forbid")

    bot_channel: Optional[str] = None
    lobby_voice_room: Optional[str] = None
    queue_header: Optional[str] = Field(default=None, min_length=1, max_length=256)
    # The lane-mirror draft pairs exactly one player per side for each role
    per_role_capacity: Optional[int] = Field(
        default=None, ge=PLAYERS_PER_ROLE, le=PLAYERS_PER_ROLE
    )
    vote_threshold: Optional[int] = Field(default=None, ge=1, le=10)
    member_wait_timeout: Optional[int] = Field(
        default=None, ge=MIN_TIMER_SECONDS, le=MAX_TIMER_SECONDS
    )
    captain_vote_timeout: Optional[int] = Field(
        default=None, ge=MIN_TIMER_SECONDS, le=MAX_TIMER_SECONDS
    )
    draft_turn_timeout: Optional[int] = Field(
        default=None, ge=MIN_TIMER_SECONDS, le=MAX_TIMER_SECONDS
    )
    result_vote_timeout: Optional[int] = Field(
        default=None, ge=MIN_TIMER_SECONDS, le=MAX_TIMER_SECONDS
    )
    role_pick_timeout: Optional[int] = Field(
        default=None, ge=MIN_TIMER_SECONDS, le=MAX_TIMER_SECONDS
    )
    presence_debounce: Optional[float] = Field(default=None, ge=0, le=60)
    ack_ttl_short: Optional[float] = Field(default=None, ge=1, le=3600)
    ack_ttl_medium: Optional[float] = Field(default=None, ge=1, le=3600)
    cleanup_delay: Optional[float] = Field(default=None, ge=0, le=MAX_TIMER_SECONDS)
    room_retry_attempts: Optional[int] = Field(default=None, ge=1, le=10)

    k_points: Optional[float] = Field(default=None, gt=0, le=400)
    d_points: Optional[float] = Field(default=None, gt=0)
    bridge_cap: Optional[float] = Field(default=None, ge=0, lt=1)
    bridge_scale: Optional[float] = Field(default=None, gt=0)
    d_mmr: Optional[float] = Field(default=None, gt=0)
    prior_beta: Optional[float] = Field(default=None, gt=0)
    winrate_gamma: Optional[float] = Field(default=None, gt=0)
    winrate_amp: Optional[float] = Field(default=None, ge=0, lt=1)
    k_start: Optional[float] = Field(default=None, gt=0)
    k_end: Optional[float] = Field(default=None, gt=0)
    k_ramp_games: Optional[int] = Field(default=None, ge=1)
    k_floor: Optional[float] = Field(default=None, gt=0)
    k_post_ramp: Optional[float] = Field(default=None, gt=0)
    k_tau: Optional[float] = Field(default=None, gt=0)


class TenantConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    bot_channel: Optional[str] = None
    lobby_voice_room: Optional[str] = None
    queue_header: str
    queue_number: int
    per_role_capacity: Optional[int] = None
    vote_threshold: Optional[int] = None
    member_wait_timeout: Optional[float] = None
    captain_vote_timeout: Optional[float] = None
    draft_turn_timeout: Optional[float] = None
    result_vote_timeout: Optional[float] = None
    role_pick_timeout: Optional[float] = None
    presence_debounce: Optional[float] = None
    ack_ttl_short: Optional[float] = None
    ack_ttl_medium: Optional[float] = None
    cleanup_delay: Optional[float] = None
    room_retry_attempts: Optional[int] = None
    k_points: Optional[float] = None
    d_points: Optional[float] = None
    bridge_cap: Optional[float] = None
    bridge_scale: Optional[float] = None
    d_mmr: Optional[float] = None
    prior_beta: Optional[float] = None
    winrate_gamma: Optional[float] = None
    winrate_amp: Optional[float] = None
    k_start: Optional[float] = None
    k_end: Optional[float] = None
    k_ramp_games: Optional[int] = None
    k_floor: Optional[float] = None
    k_post_ramp: Optional[float] = None
    k_tau: Optional[float] = None

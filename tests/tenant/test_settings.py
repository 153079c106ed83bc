from dataclasses import replace

from queueup.config import Config
from queueup.rating.engine import DEFAULT_CONSTANTS
from queueup.tenant.models import TenantConfig
from queueup.tenant.schemas import SessionSettings


def test_defaults_without_overrides():
    settings = SessionSettings.from_tenant_config(TenantConfig(tenant_id="guild-1"))

    assert settings.per_role_capacity == Config.PER_ROLE_CAPACITY
    assert settings.role_pick_timeout == Config.ROLE_PICK_TIMEOUT
    assert settings.cleanup_delay == Config.CLEANUP_DELAY
    assert settings.rating == DEFAULT_CONSTANTS


def test_every_session_tunable_is_overridable():
    config = TenantConfig(
        tenant_id="guild-1",
        vote_threshold=4,
        role_pick_timeout=45,
        presence_debounce=0.5,
        ack_ttl_short=1,
        ack_ttl_medium=8,
        cleanup_delay=30,
        room_retry_attempts=5,
    )

    settings = SessionSettings.from_tenant_config(config)

    assert settings.vote_threshold == 4
    assert settings.role_pick_timeout == 45
    assert settings.presence_debounce == 0.5
    assert settings.ack_ttl_short == 1
    assert settings.ack_ttl_medium == 8
    assert settings.cleanup_delay == 30
    assert settings.room_retry_attempts == 5
    # Untouched keys keep their defaults
    assert settings.draft_turn_timeout == Config.DRAFT_TURN_TIMEOUT


def test_rating_constants_overridable_per_tenant():
    config = TenantConfig(tenant_id="guild-1", k_points=40, k_tau=25, k_ramp_games=5)

    settings = SessionSettings.from_tenant_config(config)

    assert settings.rating == replace(DEFAULT_CONSTANTS, k_points=40, k_tau=25, k_ramp_games=5)
    assert settings.rating.d_points == DEFAULT_CONSTANTS.d_points

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from queueup.config import logger
from queueup.errors import (
    BadRequestException,
    DatabaseException,
    MissingPlayerRecord,
    ResourceNotFoundException,
)
from queueup.player.models import Player
from queueup.player.schemas import PlayerDelta, PlayerStatsPatch

player_logger = logger.getChild("db")


async def load_player(db: AsyncSession, tenant_id: str, player_id: str) -> Optional[Player]:
    """Get a player record, or None if it was never observed."""
    try:
        result = await db.execute(
            select(Player).where(
                Player.tenant_id == tenant_id, Player.player_id == player_id
            )
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        player_logger.error(f"Error retrieving player {tenant_id}/{player_id}: {str(e)}")
        raise DatabaseException(detail="Failed to retrieve player due to database error")


async def load_players(
    db: AsyncSession, tenant_id: str, player_ids: Iterable[str]
) -> Dict[str, Player]:
    """Get the stored records for the given ids, keyed by player id."""
    ids = list(player_ids)
    try:
        result = await db.execute(
            select(Player).where(
                Player.tenant_id == tenant_id, Player.player_id.in_(ids)
            )
        )
        return {p.player_id: p for p in result.scalars().all()}
    except SQLAlchemyError as e:
        player_logger.error(f"Error retrieving players {ids}: {str(e)}")
        raise DatabaseException(detail="Failed to retrieve players due to database error")


async def ensure_player(
    db: AsyncSession, tenant_id: str, player_id: str, player_name: str
) -> bool:
    """Create the player's record on first observation. Returns True if it was created."""
    if await load_player(db, tenant_id, player_id):
        return False
    try:
        db.add(Player(tenant_id=tenant_id, player_id=player_id, player_name=player_name))
        await db.commit()
        player_logger.info(f"Added new player {player_name} ({tenant_id}/{player_id})")
        return True
    except IntegrityError:
        # Observed concurrently by another request
        await db.rollback()
        return False
    except SQLAlchemyError as e:
        await db.rollback()
        player_logger.error(f"Error adding player {tenant_id}/{player_id}: {str(e)}")
        raise DatabaseException(detail="Failed to create player record")


async def set_player_stats(
    db: AsyncSession, tenant_id: str, player_id: str, patch: PlayerStatsPatch
) -> Player:
    """Admin override of a player's ratings and record, creating the record if needed."""
    values = {
        "points": patch.points,
        "hidden_mmr": patch.mmr,
        "match_wins": patch.wins,
        "match_losses": patch.losses,
    }
    values = {k: v for k, v in values.items() if v is not None}
    if not values:
        raise BadRequestException(
            detail="Nothing to update. Provide at least one of: points, mmr, wins, losses"
        )

    player = await load_player(db, tenant_id, player_id)
    if player is None:
        player = Player(
            tenant_id=tenant_id,
            player_id=player_id,
            player_name=patch.player_name or player_id,
        )
    elif patch.player_name:
        player.player_name = patch.player_name

    try:
        for key, value in values.items():
            setattr(player, key, value)
        player.updated_at = datetime.utcnow()
        db.add(player)
        await db.commit()
        await db.refresh(player)
        player_logger.info(f"Admin updated player {tenant_id}/{player_id}: {values}")
        return player
    except SQLAlchemyError as e:
        await db.rollback()
        player_logger.error(f"Error updating player {tenant_id}/{player_id}: {str(e)}")
        raise DatabaseException(detail="Failed to update player")


async def get_player_or_404(db: AsyncSession, tenant_id: str, player_id: str) -> Player:
    player = await load_player(db, tenant_id, player_id)
    if not player:
        raise ResourceNotFoundException(detail="Player not found")
    return player


async def batch_update_players(
    db: AsyncSession, tenant_id: str, updates: List[PlayerDelta]
) -> None:
    """
    Apply post-match deltas to every player in a single transaction.

    Either every row is updated or none is: a missing record or a database
    error rolls the whole batch back.
    """
    now = datetime.utcnow()
    try:
        for delta in updates:
            stmt = (
                update(Player)
                .where(
                    Player.tenant_id == tenant_id,
                    Player.player_id == delta.player_id,
                )
                .values(
                    points=Player.points + delta.points_delta,
                    hidden_mmr=Player.hidden_mmr + delta.mmr_delta,
                    match_wins=Player.match_wins + (1 if delta.won else 0),
                    match_losses=Player.match_losses + (0 if delta.won else 1),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            if result.rowcount != 1:
                await db.rollback()
                raise MissingPlayerRecord([delta.player_id])
        await db.commit()
        player_logger.info(
            f"Applied match result to {len(updates)} players for tenant {tenant_id}"
        )
    except SQLAlchemyError as e:
        await db.rollback()
        player_logger.error(f"Batch player update failed for tenant {tenant_id}: {str(e)}")
        raise DatabaseException(detail="Failed to apply match result")

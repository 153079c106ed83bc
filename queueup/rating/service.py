from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from queueup.config import logger
from queueup.draft.models import Match, Side
from queueup.player.repository import batch_update_players, load_players
from queueup.player.schemas import PlayerDelta
from queueup.rating.engine import (
    DEFAULT_CONSTANTS,
    PlayerHistory,
    RatingConstants,
    RatingResult,
    apply_match_result,
)

rating_logger = logger.getChild("rating")


class RatingService:
    def __init__(self, constants: RatingConstants = DEFAULT_CONSTANTS):
        self.constants = constants

    async def apply(
        self,
        db: AsyncSession,
        tenant_id: str,
        match: Match,
        winner: Side,
        constants: Optional[RatingConstants] = None,
    ) -> RatingResult:
        """
        Rate a finished match and persist every participant's new values in one batch.

        ``constants`` are the tenant's rating constants; the service default applies when omitted.
        """
        records = await load_players(db, tenant_id, match.participant_ids())
        history = {
            pid: PlayerHistory(
                points=record.points,
                hidden_mmr=record.hidden_mmr,
                wins=record.match_wins,
                losses=record.match_losses,
            )
            for pid, record in records.items()
        }

        result = apply_match_result(match, winner, history, constants or self.constants)

        updates = [
            PlayerDelta(
                player_id=pid,
                points_delta=result.points.deltas[pid],
                mmr_delta=result.mmr.deltas[pid],
                won=match.side_of(pid) is result.winner,
            )
            for pid in match.participant_ids()
        ]
        await batch_update_players(db, tenant_id, updates)

        for pid in match.participant_ids():
            rating_logger.info(
                f"Rated {tenant_id}/{pid}: points {history[pid].points} → {result.points.after[pid]} "
                f"({result.points.deltas[pid]:+d}), hidden {result.mmr.deltas[pid]:+d}"
            )
        return result

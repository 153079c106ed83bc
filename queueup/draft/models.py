from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from queueup.queue.roles import ROLE_ORDER, Role


class Side(str, Enum):
    BLUE = "blue"
    RED = "red"

    @property
    def other(self) -> "Side":
        return Side.RED if self is Side.BLUE else Side.BLUE


@dataclass
class Team:
    captain: str
    picks: Dict[Role, str] = field(default_factory=dict)

    def owns(self, player_id: str) -> bool:
        return player_id == self.captain or player_id in self.picks.values()

    def member_ids(self) -> List[str]:
        """Resolved entrants in role order."""
        return [self.picks[role] for role in ROLE_ORDER if role in self.picks]

    def to_dict(self) -> dict:
        return {
            "captain": self.captain,
            "picks": {role.value: self.picks.get(role) for role in ROLE_ORDER},
        }


@dataclass
class Match:
    blue: Team
    red: Team

    def team(self, side: Side) -> Team:
        return self.blue if side is Side.BLUE else self.red

    def side_of(self, player_id: str) -> Optional[Side]:
        if player_id in self.blue.picks.values():
            return Side.BLUE
        if player_id in self.red.picks.values():
            return Side.RED
        return None

    def participant_ids(self) -> List[str]:
        return self.blue.member_ids() + self.red.member_ids()

    def is_complete(self) -> bool:
        return all(role in self.blue.picks and role in self.red.picks for role in ROLE_ORDER)

    def to_dict(self) -> dict:
        return {"blue": self.blue.to_dict(), "red": self.red.to_dict()}

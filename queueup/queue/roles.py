from enum import Enum
from typing import List, Union

from queueup.errors import UnknownRole


class Role(str, Enum):
    TOP = "Top"
    JUNGLE = "Jungle"
    MID = "Mid"
    ADC = "ADC"
    SUPPORT = "Support"


ROLE_ORDER: List[Role] = [Role.TOP, Role.JUNGLE, Role.MID, Role.ADC, Role.SUPPORT]

# One player per side for every role
PLAYERS_PER_ROLE = 2

_ALIASES = {
    "top": Role.TOP,
    "jungle": Role.JUNGLE,
    "jg": Role.JUNGLE,
    "jgl": Role.JUNGLE,
    "mid": Role.MID,
    "adc": Role.ADC,
    "bot": Role.ADC,
    "support": Role.SUPPORT,
    "supp": Role.SUPPORT,
    "sup": Role.SUPPORT,
}


def normalize_role(value: Union[str, Role]) -> Role:
    """Map a role name or one of its short aliases (Jg, Adc, Supp...) to a Role."""
    if isinstance(value, Role):
        return value
    role = _ALIASES.get(str(value).strip().lower())
    if role is None:
        raise UnknownRole(str(value))
    return role

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Union

StatValue = Optional[Union[int, float, str]]

HITTING = "hitting"
PITCHING = "pitching"
STAT_TYPES = (HITTING, PITCHING)

# Canonical stat name -> aliases seen in source JSON keys and HTML headers.
# Aliases are compared upper-cased.
HITTING_FIELDS: Dict[str, tuple] = {
    "g": ("G", "GAMESPLAYED"),
    "ab": ("AB", "ATBATS"),
    "r": ("R", "RUNS"),
    "h": ("H", "HITS"),
    "2b": ("2B", "DOUBLES"),
    "3b": ("3B", "TRIPLES"),
    "hr": ("HR", "HOMERUNS"),
    "rbi": ("RBI",),
    "bb": ("BB", "BASEONBALLS"),
    "so": ("SO", "K", "STRIKEOUTS"),
    "sb": ("SB", "STOLENBASES"),
    "cs": ("CS", "CAUGHTSTEALING"),
    "avg": ("AVG", "BA"),
    "obp": ("OBP",),
    "slg": ("SLG",),
    "ops": ("OPS",),
}

PITCHING_FIELDS: Dict[str, tuple] = {
    "w": ("W", "WINS"),
    "l": ("L", "LOSSES"),
    "era": ("ERA",),
    "g": ("G", "GAMESPLAYED", "GAMESPITCHED"),
    "gs": ("GS", "GAMESSTARTED"),
    "sv": ("SV", "SAVES"),
    "ip": ("IP", "INNINGSPITCHED"),
    "h": ("H", "HITS"),
    "r": ("R", "RUNS"),
    "er": ("ER", "EARNEDRUNS"),
    "hr": ("HR", "HOMERUNS"),
    "bb": ("BB", "BASEONBALLS"),
    "so": ("SO", "K", "STRIKEOUTS"),
    "whip": ("WHIP",),
    "avg": ("AVG", "BAA", "OPPAVG"),
}

STAT_FIELDS = {HITTING: HITTING_FIELDS, PITCHING: PITCHING_FIELDS}


def normalize_stat_type(value: Optional[str]) -> str:
    """Validate a statType value; None means the hitting default."""
    if value is None:
        return HITTING
    stat_type = value.strip().lower()
    if stat_type not in STAT_TYPES:
        raise ValueError(f"Invalid statType '{value}': expected one of {', '.join(STAT_TYPES)}")
    return stat_type


@dataclass(frozen=True)
class Player:
    """Canonical player record produced by the parser and held in the cache."""

    id: str
    name: str
    team: str
    position: str
    stat_type: str
    stats: Dict[str, StatValue] = field(default_factory=dict)
    fetched_at: Optional[datetime] = None
    team_name: Optional[str] = None
    jersey_number: Optional[str] = None

from rosterstats.models.player import (
    Player,
    HITTING,
    PITCHING,
    STAT_TYPES,
    STAT_FIELDS,
    normalize_stat_type,
)
from rosterstats.models.source import SourceQuery, RawPage, TEAM_SCOPE, LEAGUE_SCOPE
from rosterstats.models.query import PlayerQuery, QueryResult

__all__ = [
    "Player",
    "HITTING",
    "PITCHING",
    "STAT_TYPES",
    "STAT_FIELDS",
    "normalize_stat_type",
    "SourceQuery",
    "RawPage",
    "TEAM_SCOPE",
    "LEAGUE_SCOPE",
    "PlayerQuery",
    "QueryResult",
]

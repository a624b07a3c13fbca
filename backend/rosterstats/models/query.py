from dataclasses import dataclass
from typing import List, Optional

from rosterstats.models.player import Player, HITTING


@dataclass
class PlayerQuery:
    """Filter + pagination parameters for a player listing."""

    team: Optional[str] = None
    position: Optional[str] = None
    search: Optional[str] = None
    stat_type: str = HITTING
    limit: int = 50
    offset: int = 0

    def has_filter(self) -> bool:
        return any(v is not None and str(v).strip() for v in (self.team, self.position, self.search))


@dataclass
class QueryResult:
    players: List[Player]
    total: int
    cache_key: str
    stale: bool = False

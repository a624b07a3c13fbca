from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from rosterstats.models.player import HITTING

TEAM_SCOPE = "team"
LEAGUE_SCOPE = "league"


@dataclass(frozen=True)
class SourceQuery:
    """Origin-specific request descriptor handed to a Fetcher."""

    scope: str
    stat_type: str = HITTING
    team: Optional[str] = None

    @classmethod
    def for_team(cls, team: str, stat_type: str = HITTING) -> "SourceQuery":
        return cls(scope=TEAM_SCOPE, stat_type=stat_type, team=team)

    @classmethod
    def for_league(cls, stat_type: str = HITTING) -> "SourceQuery":
        return cls(scope=LEAGUE_SCOPE, stat_type=stat_type)

    @property
    def cache_key(self) -> str:
        if self.scope == TEAM_SCOPE:
            return f"team:{self.team}:{self.stat_type}"
        return f"league:{self.stat_type}"


@dataclass(frozen=True)
class RawPage:
    """Unparsed origin response: rendered HTML or stats JSON."""

    query: SourceQuery
    url: str
    body: str
    content_type: str  # "html" or "json"
    fetched_at: datetime
    status_code: int = 200

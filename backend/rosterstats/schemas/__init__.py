from rosterstats.schemas.player import (
    PlayerResponse,
    PlayerStatsResponse,
    ErrorResponse,
    CacheStatsResponse,
    HealthResponse,
)
from rosterstats.schemas.team import TeamResponse

__all__ = [
    "PlayerResponse",
    "PlayerStatsResponse",
    "ErrorResponse",
    "CacheStatsResponse",
    "HealthResponse",
    "TeamResponse",
]

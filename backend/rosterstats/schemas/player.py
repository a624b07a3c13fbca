from datetime import datetime
from typing import Optional, Dict, Union
from pydantic import BaseModel

StatValue = Optional[Union[int, float, str]]


class PlayerResponse(BaseModel):
    id: str
    name: str
    team: str
    team_name: Optional[str] = None
    position: str
    stat_type: str
    jersey_number: Optional[str] = None
    stats: Dict[str, StatValue] = {}
    fetched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlayerStatsResponse(BaseModel):
    """Single-player lookup: identity plus stats per stat type found."""
    id: str
    name: str
    team: str
    team_name: Optional[str] = None
    position: str
    jersey_number: Optional[str] = None
    hitting: Optional[Dict[str, StatValue]] = None
    pitching: Optional[Dict[str, StatValue]] = None
    fetched_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    error: str


class CacheStatsResponse(BaseModel):
    entries: int
    hits: int
    misses: int
    evictions: int
    max_entries: int
    ttl_seconds: int
    inflight_fetches: int = 0


class HealthResponse(BaseModel):
    status: str
    cache: dict
    source: dict
    timestamp: datetime

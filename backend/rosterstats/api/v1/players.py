import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Response

from rosterstats.config import settings
from rosterstats.dependencies import get_query_service
from rosterstats.models import PlayerQuery, HITTING
from rosterstats.schemas.player import ErrorResponse, PlayerResponse, PlayerStatsResponse
from rosterstats.services.query_service import PlayerQueryService

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get("/", response_model=List[PlayerResponse], responses=ERROR_RESPONSES)
async def get_players(
    response: Response,
    service: PlayerQueryService = Depends(get_query_service),
    team: Optional[str] = Query(None, description="Team code, e.g. NYY"),
    position: Optional[str] = Query(None, description="Position, e.g. SS"),
    search: Optional[str] = Query(None, description="Name substring"),
    stat_type: str = Query(HITTING, alias="statType", description="hitting or pitching"),
    limit: int = Query(settings.default_page_limit, ge=0, le=settings.max_page_limit),
    offset: int = Query(0, ge=0),
):
    """List players by team, position or name search, paginated after filtering."""
    query = PlayerQuery(
        team=team,
        position=position,
        search=search,
        stat_type=stat_type,
        limit=limit,
        offset=offset,
    )
    result = await service.list_players(query)

    response.headers["X-Total-Count"] = str(result.total)
    if result.stale:
        response.headers["X-Data-Stale"] = "true"
    return result.players


@router.get(
    "/{player_id}",
    response_model=PlayerStatsResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
)
async def get_player_stats(
    player_id: str,
    service: PlayerQueryService = Depends(get_query_service),
    stat_type: Optional[str] = Query(None, alias="statType", description="hitting or pitching"),
):
    """Stats for one player; 404 if the id is in no reachable dataset."""
    by_type = await service.get_player_stats(player_id, stat_type)

    # Identity comes from whichever record we found first
    base = next(iter(by_type.values()))
    stamps = [p.fetched_at for p in by_type.values() if p.fetched_at]
    return PlayerStatsResponse(
        id=base.id,
        name=base.name,
        team=base.team,
        team_name=base.team_name,
        position=base.position,
        jersey_number=base.jersey_number,
        hitting=by_type["hitting"].stats if "hitting" in by_type else None,
        pitching=by_type["pitching"].stats if "pitching" in by_type else None,
        fetched_at=max(stamps) if stamps else None,
    )

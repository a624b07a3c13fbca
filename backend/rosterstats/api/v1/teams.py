from typing import List

from fastapi import APIRouter

from rosterstats.exceptions import NotFound
from rosterstats.schemas.player import ErrorResponse
from rosterstats.schemas.team import TeamResponse
from rosterstats.utils import TEAMS, normalize_team_code

router = APIRouter()


def _team_response(code: str) -> TeamResponse:
    return TeamResponse(**TEAMS[code]._asdict())


@router.get("/", response_model=List[TeamResponse])
async def list_teams():
    """Every club with the code accepted by the players ``team`` filter."""
    return [_team_response(code) for code in sorted(TEAMS)]


@router.get("/{team_code}", response_model=TeamResponse, responses={404: {"model": ErrorResponse}})
async def get_team(team_code: str):
    # Aliases such as CHW or AZ resolve to the canonical club
    try:
        code = normalize_team_code(team_code)
    except ValueError as e:
        raise NotFound(str(e))
    return _team_response(code)

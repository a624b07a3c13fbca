from pydantic import BaseModel


class TeamResponse(BaseModel):
    code: str
    team_id: int
    name: str
    nickname: str
    slug: str

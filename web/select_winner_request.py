from pydantic import BaseModel, Field


class SelectWinnerRequest(BaseModel):
    """Request model for deciding a match."""

    match_id: int = Field(ge=1)
    winner_id: int = Field(ge=1)

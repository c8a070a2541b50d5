"""Tournament flow endpoints."""

from fastapi import APIRouter, Depends, Request

from tournaments import TournamentAPI
from web.select_winner_request import SelectWinnerRequest

router = APIRouter(prefix="/api")


def get_tournament_api(request: Request) -> TournamentAPI:
    """Get the handler instance the application was built with."""
    return request.app.state.tournament_api


@router.post("/initialize")
async def initialize_tournament(api: TournamentAPI = Depends(get_tournament_api)):
    """Start a new tournament, closing the running one."""
    return await api.initialize()


@router.get("/current-match")
async def get_current_match(api: TournamentAPI = Depends(get_tournament_api)):
    """Get the match awaiting a decision."""
    return await api.get_current_match()


@router.post("/select-winner")
async def select_winner(
    request: SelectWinnerRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Record the winner of a match."""
    return await api.select_winner(request.match_id, request.winner_id)


@router.post("/next-match")
async def next_match(api: TournamentAPI = Depends(get_tournament_api)):
    """Move the tournament pointer to the next undecided match."""
    return await api.next_match()


@router.get("/tournament-progress")
async def get_tournament_progress(api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_progress()


@router.get("/tournament/current")
async def get_current_tournament(api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_current_tournament()


@router.get("/tournament/bracket")
async def get_current_bracket(api: TournamentAPI = Depends(get_tournament_api)):
    """Get the running tournament's bracket."""
    return await api.get_bracket()


@router.get("/tournament/history")
async def get_tournament_history(api: TournamentAPI = Depends(get_tournament_api)):
    """List every tournament with its podium."""
    return await api.get_tournament_history()


@router.get("/tournaments/{tournament_id}/bracket")
async def get_tournament_bracket(
    tournament_id: int, api: TournamentAPI = Depends(get_tournament_api)
):
    """Get tournament bracket visualization data."""
    return await api.get_bracket(tournament_id)


@router.get("/matches/{match_id}")
async def get_match(match_id: int, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_match(match_id)

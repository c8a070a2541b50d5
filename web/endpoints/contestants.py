"""Contestant roster and statistics endpoints."""

from fastapi import APIRouter, Depends

from tournaments import TournamentAPI
from web.contestant_request import ContestantCreateRequest, NationalityUpdateRequest
from web.endpoints.tournaments import get_tournament_api

router = APIRouter(prefix="/api")


@router.get("/contestants")
async def list_contestants(api: TournamentAPI = Depends(get_tournament_api)):
    """List the whole roster."""
    return await api.list_contestants()


@router.get("/contestants/active")
async def list_active_contestants(api: TournamentAPI = Depends(get_tournament_api)):
    """List the running tournament's field."""
    return await api.list_contestants(active_only=True)


@router.get("/contestants/ranking")
async def get_ranking(
    limit: int = 100, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_ranking(limit=limit)


@router.get("/contestants/tournament-ranking")
async def get_tournament_ranking(
    limit: int = 100, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_ranking(by_tournament_points=True, limit=limit)


@router.post("/contestants")
async def add_contestant(
    request: ContestantCreateRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Add a contestant to the roster."""
    return await api.add_contestant(request.name, request.nationality)


@router.get("/contestants/{contestant_id}")
async def get_contestant(
    contestant_id: int, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_contestant(contestant_id)


@router.get("/contestants/{contestant_id}/images")
async def get_contestant_images(
    contestant_id: int, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_contestant_images(contestant_id)


@router.patch("/contestants/{contestant_id}")
async def update_contestant_nationality(
    contestant_id: int,
    request: NationalityUpdateRequest,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Change a contestant's nationality."""
    return await api.update_nationality(contestant_id, request.nationality)


@router.get("/stats/general")
async def get_general_stats(api: TournamentAPI = Depends(get_tournament_api)):
    """Every contestant ordered by wins."""
    return await api.get_general_stats()


@router.get("/stats/top-performers-history")
async def get_top_performers_history(
    limit: int = 8, api: TournamentAPI = Depends(get_tournament_api)
):
    return await api.get_top_performers_history(limit)

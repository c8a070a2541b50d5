"""Tournament API endpoints."""

import logging
from typing import Any

from fastapi import HTTPException

from .exceptions import AlreadyDecidedError, InsufficientRosterError, NotFoundError
from .images import ImageProvider, NoImageProvider
from .manager import TournamentManager
from .models import CurrentMatchContestant
from .roster import RosterService

logger = logging.getLogger(__name__)


def _http_error(error: Exception, action: str) -> HTTPException:
    """Map an engine error onto an HTTP status."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AlreadyDecidedError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, InsufficientRosterError):
        logger.warning(f"Failed to {action}: {error}")
        return HTTPException(
            status_code=503,
            detail={
                "message": str(error),
                "available": error.available,
                "required": error.required,
                "completed_tournament_id": error.completed_tournament_id,
            },
        )
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=str(error))

    logger.error(f"Failed to {action}: {error}")
    return HTTPException(status_code=500, detail="Internal server error")


class TournamentAPI:
    """FastAPI endpoint handlers for tournament operations."""

    def __init__(
        self,
        tournament_manager: TournamentManager,
        roster: RosterService,
        image_provider: ImageProvider | None = None,
    ):
        self.manager = tournament_manager
        self.roster = roster
        self.image_provider = image_provider or NoImageProvider()

    # ------------------------------------------------------------------
    # Tournament flow
    # ------------------------------------------------------------------

    async def initialize(self) -> dict[str, Any]:
        """Close the running tournament and start a new one."""
        try:
            tournament = self.manager.initialize_tournament()
            return {
                "tournament": tournament.model_dump(mode="json"),
                "message": "Tournament initialized successfully",
            }

        except Exception as e:
            raise _http_error(e, "initialize tournament")

    async def get_current_match(self) -> dict[str, Any]:
        """Get the match awaiting a decision, with contestant images."""
        try:
            self.manager.ensure_tournament()
            view = self.manager.get_current_match_data()
            if not view:
                raise HTTPException(status_code=404, detail="No current match found")

            await self._attach_images(view.contestant1)
            await self._attach_images(view.contestant2)
            return view.model_dump(mode="json")

        except HTTPException:
            raise
        except Exception as e:
            raise _http_error(e, "get current match")

    async def select_winner(self, match_id: int, winner_id: int) -> dict[str, Any]:
        """Record the winner of a match."""
        try:
            result = self.manager.select_winner(match_id, winner_id)
            return result.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, f"select winner for match {match_id}")

    async def next_match(self) -> dict[str, Any]:
        try:
            match = self.manager.advance_to_next_match()
            if not match:
                raise HTTPException(status_code=404, detail="No pending match found")
            return match.model_dump(mode="json")

        except HTTPException:
            raise
        except Exception as e:
            raise _http_error(e, "advance to next match")

    async def get_progress(self) -> dict[str, Any]:
        """Get progress of the running tournament."""
        try:
            tournament = self.manager.ensure_tournament()
            progress = self.manager.get_tournament_progress(tournament.id)
            return progress.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, "get tournament progress")

    async def get_current_tournament(self) -> dict[str, Any]:
        try:
            tournament = self.manager.ensure_tournament()
            return tournament.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, "get current tournament")

    async def get_bracket(self, tournament_id: int | None = None) -> dict[str, Any]:
        """Get tournament bracket visualization data."""
        try:
            if tournament_id is None:
                tournament_id = self.manager.ensure_tournament().id
            bracket = self.manager.get_tournament_bracket(tournament_id)
            return bracket.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, f"get bracket for tournament {tournament_id}")

    async def get_tournament_history(self) -> list[dict[str, Any]]:
        try:
            return [
                entry.model_dump(mode="json")
                for entry in self.roster.get_tournament_history()
            ]

        except Exception as e:
            raise _http_error(e, "get tournament history")

    async def get_match(self, match_id: int) -> dict[str, Any]:
        try:
            return self.manager.get_match_detail(match_id).model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, f"get match {match_id}")

    # ------------------------------------------------------------------
    # Contestants and statistics
    # ------------------------------------------------------------------

    async def list_contestants(self, active_only: bool = False) -> list[dict[str, Any]]:
        try:
            if active_only:
                contestants = self.roster.list_active_contestants()
            else:
                contestants = self.roster.list_contestants()
            return [c.model_dump(mode="json") for c in contestants]

        except Exception as e:
            raise _http_error(e, "list contestants")

    async def get_ranking(
        self, by_tournament_points: bool = False, limit: int = 100
    ) -> list[dict[str, Any]]:
        try:
            if by_tournament_points:
                ranking = self.roster.get_tournament_ranking(limit)
            else:
                ranking = self.roster.get_ranking(limit)
            return [c.model_dump(mode="json") for c in ranking]

        except Exception as e:
            raise _http_error(e, "get ranking")

    async def get_contestant(self, contestant_id: int) -> dict[str, Any]:
        """Get a contestant and their recent point history."""
        try:
            detail = self.roster.get_contestant_detail(contestant_id)
            return detail.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, f"get contestant {contestant_id}")

    async def get_contestant_images(self, contestant_id: int) -> dict[str, Any]:
        try:
            contestant = self.roster.get_contestant(contestant_id)
            image_urls = await self._fetch_images(contestant.id, contestant.name)
            return {"contestant_id": contestant.id, "image_urls": image_urls}

        except Exception as e:
            raise _http_error(e, f"get images for contestant {contestant_id}")

    async def add_contestant(
        self, name: str, nationality: str | None = None
    ) -> dict[str, Any]:
        try:
            contestant = self.roster.add_contestant(name, nationality)
            return contestant.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, "add contestant")

    async def update_nationality(
        self, contestant_id: int, nationality: str | None
    ) -> dict[str, Any]:
        try:
            contestant = self.roster.update_nationality(contestant_id, nationality)
            return contestant.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, f"update contestant {contestant_id}")

    async def get_general_stats(self) -> list[dict[str, Any]]:
        try:
            return [c.model_dump(mode="json") for c in self.roster.get_general_stats()]

        except Exception as e:
            raise _http_error(e, "get general stats")

    async def get_top_performers_history(self, limit: int = 8) -> dict[str, Any]:
        try:
            history = self.roster.get_top_performers_history(limit)
            return history.model_dump(mode="json")

        except Exception as e:
            raise _http_error(e, "get top performers history")

    async def _attach_images(self, contestant: CurrentMatchContestant) -> None:
        if not contestant.image_urls:
            contestant.image_urls = await self._fetch_images(
                contestant.id, contestant.name
            )

    async def _fetch_images(self, contestant_id: int, name: str) -> list[str]:
        """Image lookups never fail the request."""
        try:
            return await self.image_provider.fetch_images(contestant_id, name)
        except Exception as e:
            logger.warning(f"Image lookup failed for contestant {contestant_id}: {e}")
            return []

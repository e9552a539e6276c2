"""Leaderboard API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Header

from api.leaderboard_store import get_leaderboard_store, leaderboard_lock
from api.routes.game import peek_game, require_session
from api.schemas import (
    LeaderboardEntryResponse,
    LeaderboardResponse,
    ScoreSubmitRequest,
    ScoreSubmitResponse,
)
from api.session import get_session, update_session
from core.leaderboard import Leaderboard

logger = logging.getLogger(__name__)

router = APIRouter()


def _entries_response(leaderboard: Leaderboard) -> list[LeaderboardEntryResponse]:
    return [LeaderboardEntryResponse.model_validate(e) for e in leaderboard.entries]


@router.get("")
async def get_leaderboard() -> LeaderboardResponse:
    """Get the ranked scores."""
    store = await get_leaderboard_store()
    leaderboard = await store.load()
    return LeaderboardResponse(
        entries=_entries_response(leaderboard),
        max_entries=leaderboard.max_entries,
    )


@router.post("")
async def submit_score(
    request: ScoreSubmitRequest,
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> ScoreSubmitResponse:
    """Record the session's finished game on the leaderboard."""
    session_id = require_session(session_id)
    game = peek_game(session_id)
    if game is None or not game.is_finished or game.score is None:
        raise HTTPException(status_code=409, detail="No finished game to submit")

    store = await get_leaderboard_store()
    async with leaderboard_lock:
        # Check and mark under the lock so a game is only ever entered once
        meta = await get_session(session_id)
        if meta is not None and meta.submitted_game_id == game.game_id:
            raise HTTPException(status_code=409, detail="Score already submitted")

        leaderboard = await store.load()
        rank = leaderboard.add(request.name, game.score)
        await store.save(leaderboard)
        await update_session(session_id, submitted_game_id=game.game_id)

    logger.info("Score %d submitted, rank %s", game.score, rank)

    return ScoreSubmitResponse(
        score=game.score,
        rank=rank,
        entries=_entries_response(leaderboard),
    )


@router.delete("/{index}")
async def remove_entry(index: int) -> LeaderboardResponse:
    """Remove one entry from the leaderboard."""
    store = await get_leaderboard_store()
    async with leaderboard_lock:
        leaderboard = await store.load()
        try:
            removed = leaderboard.remove(index)
        except IndexError:
            raise HTTPException(status_code=404, detail=f"No entry at index {index}")
        await store.save(leaderboard)

    logger.info("Removed leaderboard entry %s (%d)", removed.name, removed.score)
    return LeaderboardResponse(
        entries=_entries_response(leaderboard),
        max_entries=leaderboard.max_entries,
    )

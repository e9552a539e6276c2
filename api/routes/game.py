"""Game API endpoints."""

import logging
from random import Random
from typing import Annotated, Callable

from fastapi import APIRouter, HTTPException, Header

from api.schemas import (
    CardResponse,
    GameStateResponse,
    PredictionResultResponse,
    PredictRequest,
    ProbabilitiesResponse,
    SelectRequest,
    SessionResponse,
    SessionStatsResponse,
    SlotResponse,
)
from api.session import (
    create_session,
    delete_session,
    extract_session_id,
    get_session,
    record_game_result,
    record_game_started,
    update_session,
)
from config import config
from core.cards import Card
from core.game import GameOutcome, HiLoGame

logger = logging.getLogger(__name__)

router = APIRouter()

# Games in progress, by session token. Process memory only.
_games: dict[str, HiLoGame] = {}


def new_hilo_game() -> HiLoGame:
    """Create a game using the configured seed, if any."""
    rng = Random(config.game.seed) if config.game.seed is not None else None
    return HiLoGame(rng=rng)


def require_session(session_id: str | None) -> str:
    """Reject missing or forged session tokens."""
    if session_id is None or extract_session_id(session_id) is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return session_id


async def get_game(session_id: str) -> HiLoGame:
    """Get or create the game for a session."""
    if session_id in _games:
        return _games[session_id]

    game = new_hilo_game()
    _games[session_id] = game
    await record_game_started(session_id)
    return game


def peek_game(session_id: str) -> HiLoGame | None:
    """Return the session's game without creating one."""
    return _games.get(session_id)


async def prune_games() -> int:
    """Drop games whose session token or stored session has expired."""
    stale = [
        token
        for token in list(_games)
        if extract_session_id(token) is None or await get_session(token) is None
    ]
    for token in stale:
        del _games[token]
    if stale:
        logger.info("Dropped %d abandoned games", len(stale))
    return len(stale)


async def run_command(
    session_id: str,
    game: HiLoGame,
    command: Callable[[], bool],
) -> bool:
    """Run a game command and update session counters if it dealt or ended a game."""
    was_finished = game.is_finished
    game_id = game.game_id
    accepted = command()
    if accepted and game.game_id != game_id:
        await record_game_started(session_id)
    elif accepted and game.is_finished and not was_finished:
        await record_game_result(
            session_id, won=game.outcome == GameOutcome.VICTORY, score=game.score
        )
        logger.info("Game %s ended: %s, score %s", game.game_id, game.outcome, game.score)
    elif accepted:
        await update_session(session_id)
    return accepted


def card_response(card: Card) -> CardResponse:
    """Convert a Card to CardResponse."""
    return CardResponse(
        id=card.id,
        rank=str(card.rank),
        suit=card.suit.value,
        symbol=str(card.suit),
        value=card.value,
    )


def game_state_response(game: HiLoGame) -> GameStateResponse:
    """Convert game state to response."""
    last_result = None
    if game.last_result is not None:
        result = game.last_result
        last_result = PredictionResultResponse(
            row=result.row,
            col=result.col,
            previous_card=card_response(result.previous_card),
            drawn_card=card_response(result.drawn_card),
            is_higher=result.is_higher,
            correct=result.correct,
        )

    probabilities = game.probabilities
    return GameStateResponse(
        game_id=game.game_id,
        phase=game.phase.name,
        outcome=game.outcome.name if game.outcome else None,
        score=game.score,
        deck_remaining=game.remaining_count(),
        active_count=game.active_count,
        slots=[
            SlotResponse(
                row=view.row,
                col=view.col,
                card=card_response(view.card),
                active=view.active,
                is_selected=view.is_selected,
            )
            for view in game.slot_views()
        ],
        used_counts=game.used_counts,
        probabilities=ProbabilitiesResponse(
            LOW=probabilities.low,
            MID=probabilities.mid,
            HIGH=probabilities.high,
        ),
        last_result=last_result,
        can_select=game.can_select,
        can_predict=game.can_predict,
        can_pause=game.can_pause,
        can_resume=game.can_resume,
    )


async def _command_response(
    session_id: str | None,
    action: str,
    command: Callable[[HiLoGame], bool],
) -> GameStateResponse:
    session_id = require_session(session_id)
    game = await get_game(session_id)
    if not await run_command(session_id, game, lambda: command(game)):
        raise HTTPException(status_code=409, detail=f"Cannot {action} now")
    return game_state_response(game)


@router.post("/new")
async def new_game(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> SessionResponse:
    """Start a new game, issuing a session if none was given."""
    await prune_games()
    if session_id is None:
        session_id = await create_session()
    else:
        require_session(session_id)

    game = peek_game(session_id)
    if game is None:
        await get_game(session_id)
    else:
        # Restart in place so event subscribers stay attached
        await run_command(session_id, game, game.restart)

    return SessionResponse(session_id=session_id)


@router.get("/state")
async def get_state(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Get current game state."""
    session_id = require_session(session_id)
    game = await get_game(session_id)
    return game_state_response(game)


@router.post("/select")
async def select_slot(
    request: SelectRequest,
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Select, switch, or deselect a grid slot."""
    return await _command_response(
        session_id, "select", lambda game: game.select_slot(request.row, request.col)
    )


@router.post("/deselect")
async def deselect_slot(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Clear the current selection."""
    return await _command_response(session_id, "deselect", lambda game: game.deselect())


@router.post("/predict")
async def predict(
    request: PredictRequest,
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Predict higher or lower for the selected slot."""
    return await _command_response(
        session_id, "predict", lambda game: game.predict(request.higher)
    )


@router.post("/pause")
async def pause(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Pause the game."""
    return await _command_response(session_id, "pause", lambda game: game.pause())


@router.post("/resume")
async def resume(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Resume a paused game."""
    return await _command_response(session_id, "resume", lambda game: game.resume())


@router.post("/restart")
async def restart(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> GameStateResponse:
    """Throw away the current game and deal a new one."""
    session_id = require_session(session_id)
    if peek_game(session_id) is None:
        # Nothing to throw away, the first deal is already fresh
        return game_state_response(await get_game(session_id))
    return await _command_response(session_id, "restart", lambda game: game.restart())


@router.delete("")
async def end_session(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> dict[str, str]:
    """Drop the session and its game."""
    session_id = require_session(session_id)
    _games.pop(session_id, None)
    await delete_session(session_id)
    return {"status": "ended"}


@router.get("/session")
async def session_stats(
    session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> SessionStatsResponse:
    """Report the session's play history."""
    session_id = require_session(session_id)
    meta = await get_session(session_id)
    if meta is None:
        raise HTTPException(status_code=404, detail="Session expired")
    return SessionStatsResponse.model_validate(meta)

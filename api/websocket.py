"""WebSocket connection management with game engine integration."""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.routes.game import game_state_response, get_game, run_command
from api.session import extract_session_id
from core.game import HiLoGame
from core.game.events import EventType, GameEvent

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Manage WebSocket connections and their event queues."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._event_queues: dict[str, asyncio.Queue[GameEvent]] = {}

    async def connect(self, websocket: WebSocket, session_id: str) -> None:
        """Accept and register a new connection."""
        await websocket.accept()
        self._connections[session_id] = websocket
        self._event_queues[session_id] = asyncio.Queue()

    def disconnect(self, session_id: str) -> None:
        """Remove a connection. The game stays for reconnection."""
        self._connections.pop(session_id, None)
        self._event_queues.pop(session_id, None)

    def queue_event(self, session_id: str, event: GameEvent) -> None:
        """Queue an event for async delivery."""
        queue = self._event_queues.get(session_id)
        if queue is not None:
            queue.put_nowait(event)

    async def get_event(self, session_id: str) -> GameEvent | None:
        """Wait briefly for the next queued event."""
        queue = self._event_queues.get(session_id)
        if queue is None:
            return None
        try:
            return await asyncio.wait_for(queue.get(), timeout=0.1)
        except asyncio.TimeoutError:
            return None

    async def send_message(self, session_id: str, message: dict[str, Any]) -> None:
        """Send a message to a specific session."""
        websocket = self._connections.get(session_id)
        if websocket is not None:
            await websocket.send_json(message)

    @property
    def active_connections(self) -> int:
        """Return number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


def _state_message(game: HiLoGame) -> dict[str, Any]:
    return {"type": "state_update", "state": game_state_response(game).model_dump()}


def _event_to_message(event: GameEvent, game: HiLoGame) -> dict[str, Any]:
    """Convert a game event to a WebSocket message."""
    return {
        "type": "event",
        "event_type": event.event_type.name,
        "data": event.data,
        "state": game_state_response(game).model_dump(),
    }


def _command_for(game: HiLoGame, message: dict[str, Any]):
    """Map a client message to a zero-argument game command, or None."""
    msg_type = message.get("type")
    if msg_type == "select":
        row, col = int(message["row"]), int(message["col"])
        return lambda: game.select_slot(row, col)
    if msg_type == "deselect":
        return game.deselect
    if msg_type == "predict":
        higher = message["higher"]
        if not isinstance(higher, bool):
            raise TypeError(f"higher must be true or false, got {higher!r}")
        return lambda: game.predict(higher)
    if msg_type == "pause":
        return game.pause
    if msg_type == "resume":
        return game.resume
    if msg_type == "restart":
        return game.restart
    return None


@router.websocket("/game/{session_id}")
async def game_websocket(websocket: WebSocket, session_id: str) -> None:
    """
    WebSocket endpoint for real-time game updates.

    Messages from client:
    - {"type": "get_state"}
    - {"type": "select", "row": 0, "col": 2}
    - {"type": "deselect"}
    - {"type": "predict", "higher": true}
    - {"type": "pause"} / {"type": "resume"} / {"type": "restart"}

    Messages to client:
    - {"type": "state_update", "state": {...}}
    - {"type": "event", "event_type": "...", "data": {...}, "state": {...}}
    - {"type": "error", "message": "..."}
    """
    if extract_session_id(session_id) is None:
        await websocket.close(code=1008)
        return

    await manager.connect(websocket, session_id)
    game = await get_game(session_id)

    def forward(event: GameEvent) -> None:
        # Rejections are answered directly as error messages
        if event.event_type != EventType.INVALID_ACTION:
            manager.queue_event(session_id, event)

    game.subscribe(forward)
    await manager.send_message(session_id, _state_message(game))

    async def process_events() -> None:
        """Process game events and send to client."""
        while True:
            event = await manager.get_event(session_id)
            if event is not None:
                await manager.send_message(session_id, _event_to_message(event, game))

    event_task = asyncio.create_task(process_events())

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                message = None
            if not isinstance(message, dict):
                await manager.send_message(session_id, {"type": "error", "message": "Invalid JSON"})
                continue

            if message.get("type") == "get_state":
                await manager.send_message(session_id, _state_message(game))
                continue

            try:
                command = _command_for(game, message)
            except (KeyError, TypeError, ValueError) as e:
                await manager.send_message(
                    session_id, {"type": "error", "message": f"Malformed message: {e}"}
                )
                continue

            if command is None:
                await manager.send_message(session_id, {
                    "type": "error",
                    "message": f"Unknown message type: {message.get('type')}",
                })
                continue

            if not await run_command(session_id, game, command):
                await manager.send_message(session_id, {
                    "type": "error",
                    "message": f"Cannot {message['type']} now",
                })

    except WebSocketDisconnect:
        logger.debug("WebSocket for session disconnected")
    finally:
        game.unsubscribe(forward)
        event_task.cancel()
        try:
            await event_task
        except asyncio.CancelledError:
            pass
        manager.disconnect(session_id)

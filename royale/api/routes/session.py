"""
Session API routes.

Read-only view of the live game for dashboards and debugging.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class PlayerResponse(BaseModel):
    display_name: str
    status: str


class SessionResponse(BaseModel):
    """Snapshot of the game session."""

    phase: str
    current_question: int
    total_questions: int
    max_players: int
    players: list[PlayerResponse]
    connections: int


@router.get("", response_model=SessionResponse)
async def get_session(request: Request) -> SessionResponse:
    """Get the current phase, question and roster."""
    service = request.app.state.game_service
    snapshot = service.snapshot()
    return SessionResponse(
        **snapshot,
        connections=service.broadcaster.registry.get_connection_count(),
    )

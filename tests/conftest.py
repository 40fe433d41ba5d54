from typing import Any

import pytest
from fastapi.websockets import WebSocketState

from royale.game_engine.challenges.questions import Question, QuestionBank, Validator
from royale.game_engine.session import GameSession


class FakeWebSocket:
    """Records what the server sends; stands in for a Starlette WebSocket."""

    def __init__(self, fail_on_send: bool = False):
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail_on_send = fail_on_send

    async def accept(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail_on_send:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code
        self.application_state = WebSocketState.DISCONNECTED

    def hang_up(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED


@pytest.fixture
def question_bank() -> QuestionBank:
    """Two questions; the first only accepts the adjacent-products answer."""
    return QuestionBank([
        Question(
            prompt="Sum of adjacent products",
            code_template="lambda arr: 0",
            validators=(Validator(args=([1, 2, 3],), expected=8),),
        ),
        Question(
            prompt="Identity",
            validators=(Validator(args=(7,), expected=7),),
        ),
    ])


@pytest.fixture
def make_session(question_bank):
    def factory(max_players: int = 2, **kwargs) -> GameSession:
        return GameSession(
            question_bank,
            max_players=max_players,
            question_timeout_ms=kwargs.pop("question_timeout_ms", 10000),
            **kwargs,
        )
    return factory


@pytest.fixture
def fake_websocket():
    return FakeWebSocket

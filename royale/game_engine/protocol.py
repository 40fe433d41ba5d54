"""Wire protocol shared by the server and the browser client.

Every frame is a JSON object with a ``type`` field. Clients send ``Join`` and
``Submit``; the server only ever sends ``Status`` frames whose ``state``
selects the payload.
"""

import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, ValidationError

from royale.core.exceptions import ProtocolError


class StatusState(str, Enum):
    WAITING_START = "WaitingStart"
    GAME_ALREADY_STARTED = "GameAlreadyStarted"
    PLAYER_ALREADY_JOINED = "PlayerAlreadyJoined"
    QUESTION = "Question"
    PASSED = "Passed"
    ELIMINATED = "Eliminated"
    GAME_OVER = "GameOver"


# Inbound

class JoinMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    type: Literal["Join"]
    player_name: str = Field(..., alias="playerName", min_length=1)


class SubmitMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["Submit"]
    q_num: StrictInt = Field(..., alias="qNum", ge=0)
    code: str = ""


InboundMessage = Annotated[Union[JoinMessage, SubmitMessage], Field(discriminator="type")]

_inbound_adapter = TypeAdapter(InboundMessage)


def parse_inbound(raw: str | bytes) -> JoinMessage | SubmitMessage:
    """Decode one client frame, raising ProtocolError when it is unusable."""
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise ProtocolError(f"Invalid JSON: {e}", code="invalid_json") from e

    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as e:
        raise ProtocolError(
            f"Invalid message: {e.error_count()} validation error(s)",
            code="invalid_message",
        ) from e


# Outbound

class StatusMessage(BaseModel):
    """A server-to-client ``Status`` frame."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["Status"] = "Status"
    state: StatusState
    players: list[str] | None = None
    q_num: int | None = Field(default=None, alias="qNum")
    total_q: int | None = Field(default=None, alias="totalQ")
    description: str | None = None
    time_left: int | None = Field(default=None, alias="timeLeft")
    code_template: str | None = Field(default=None, alias="codeTemplate")
    winners: list[str] | None = None
    losers: list[str] | None = None

    @classmethod
    def of(cls, state: StatusState) -> "StatusMessage":
        return cls(state=state)

    @classmethod
    def waiting_start(cls, players: list[str]) -> "StatusMessage":
        return cls(state=StatusState.WAITING_START, players=players)

    @classmethod
    def question(
        cls,
        q_num: int,
        total_q: int,
        description: str,
        time_left: int,
        code_template: str | None,
    ) -> "StatusMessage":
        return cls(
            state=StatusState.QUESTION,
            q_num=q_num,
            total_q=total_q,
            description=description,
            time_left=time_left,
            code_template=code_template,
        )

    @classmethod
    def game_over(cls, winners: list[str], losers: list[str]) -> "StatusMessage":
        return cls(state=StatusState.GAME_OVER, winners=winners, losers=losers)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

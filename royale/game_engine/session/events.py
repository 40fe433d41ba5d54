"""Events consumed by the game session and the effects it produces.

The session never performs I/O itself. Every transition returns a list of
effects which the game service executes in order.
"""

from dataclasses import dataclass
from typing import Union

from royale.game_engine.challenges.questions import Question
from royale.game_engine.protocol import StatusMessage


# Events

@dataclass(frozen=True)
class Join:
    connection_id: str
    player_name: str


@dataclass(frozen=True)
class Submit:
    connection_id: str
    q_num: int
    code: str


@dataclass(frozen=True)
class SubmissionEvaluated:
    """Sandbox verdict folded back into the session."""
    connection_id: str
    round_serial: int
    passed: bool


@dataclass(frozen=True)
class RoundTimeout:
    round_serial: int


@dataclass(frozen=True)
class Disconnect:
    connection_id: str


Event = Union[Join, Submit, SubmissionEvaluated, RoundTimeout, Disconnect]


# Effects

@dataclass(frozen=True)
class Reply:
    """Send to one connection."""
    connection_id: str
    message: StatusMessage


@dataclass(frozen=True)
class Broadcast:
    """Send to ``recipients``, or to every open connection when None."""
    message: StatusMessage
    recipients: frozenset[str] | None = None


@dataclass(frozen=True)
class ArmTimer:
    round_serial: int
    delay_ms: int


@dataclass(frozen=True)
class CancelTimer:
    pass


@dataclass(frozen=True)
class EvaluateSubmission:
    connection_id: str
    round_serial: int
    code: str
    question: Question


@dataclass(frozen=True)
class CloseConnections:
    pass


Effect = Union[Reply, Broadcast, ArmTimer, CancelTimer, EvaluateSubmission, CloseConnections]

from royale.game_engine.session.engine import (
    GameSession,
    Participant,
    Phase,
    PlayerStatus,
)
from royale.game_engine.session.events import (
    ArmTimer,
    Broadcast,
    CancelTimer,
    CloseConnections,
    Disconnect,
    Effect,
    EvaluateSubmission,
    Event,
    Join,
    Reply,
    RoundTimeout,
    Submit,
    SubmissionEvaluated,
)

__all__ = [
    "GameSession",
    "Participant",
    "Phase",
    "PlayerStatus",
    "ArmTimer",
    "Broadcast",
    "CancelTimer",
    "CloseConnections",
    "Disconnect",
    "Effect",
    "EvaluateSubmission",
    "Event",
    "Join",
    "Reply",
    "RoundTimeout",
    "Submit",
    "SubmissionEvaluated",
]

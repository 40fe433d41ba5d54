"""
Elimination game session.

A single lobby of participants races through the question bank. Each round
is timed; a wrong submission or no submission before the timer eliminates
the participant. Whoever passed the last round wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from royale.core.metrics import (
    GAMES_FINISHED_TOTAL,
    GAMES_STARTED_TOTAL,
    record_elimination,
    record_reset,
)
from royale.game_engine.challenges.questions import QuestionBank
from royale.game_engine.protocol import StatusMessage, StatusState
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

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Phase of the game session."""

    LOBBY = "Lobby"          # Accepting joins
    IN_ROUND = "InRound"     # Question active, accepting submissions
    FINISHED = "Finished"    # Results sent, about to reset


class PlayerStatus(Enum):
    PLAYING = "Playing"
    PASSED = "Passed"
    ELIMINATED = "Eliminated"


@dataclass
class Participant:
    """A player in the session, keyed by connection."""

    id: str
    display_name: str
    status: PlayerStatus = PlayerStatus.PLAYING

    @property
    def is_survivor(self) -> bool:
        return self.status != PlayerStatus.ELIMINATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "display_name": self.display_name,
            "status": self.status.value,
        }


class GameSession:
    """The authoritative game state.

    Not thread-safe and not async: callers feed events one at a time through
    ``handle`` and execute the returned effects.
    """

    def __init__(
        self,
        questions: QuestionBank,
        max_players: int = 1,
        question_timeout_ms: int = 10000,
        finish_when_all_eliminated: bool = False,
    ):
        self.questions = questions
        self.max_players = max_players
        self.question_timeout_ms = question_timeout_ms
        self.finish_when_all_eliminated = finish_when_all_eliminated

        self.phase = Phase.LOBBY
        self.current_question_index = 0
        self.participants: dict[str, Participant] = {}
        # Never reset, so timers and verdicts from an earlier game stay stale
        self.round_serial = 0
        self._evaluating: set[str] = set()

    @property
    def survivors(self) -> list[Participant]:
        return [p for p in self.participants.values() if p.is_survivor]

    def player_names(self) -> list[str]:
        return [p.display_name for p in self.participants.values()]

    def is_evaluating(self, connection_id: str) -> bool:
        return connection_id in self._evaluating

    def handle(self, event: Event) -> list[Effect]:
        """Apply one event and return the effects it causes."""
        if isinstance(event, Join):
            return self.join(event.connection_id, event.player_name)
        elif isinstance(event, Submit):
            return self.submit(event.connection_id, event.q_num, event.code)
        elif isinstance(event, SubmissionEvaluated):
            return self.submission_evaluated(
                event.connection_id, event.round_serial, event.passed
            )
        elif isinstance(event, RoundTimeout):
            return self.round_timeout(event.round_serial)
        elif isinstance(event, Disconnect):
            return self.disconnect(event.connection_id)
        raise TypeError(f"Unknown event: {event!r}")

    def join(self, connection_id: str, player_name: str) -> list[Effect]:
        if self.phase != Phase.LOBBY:
            return [Reply(connection_id, StatusMessage.of(StatusState.GAME_ALREADY_STARTED))]

        folded = player_name.casefold()
        if connection_id in self.participants or any(
            p.display_name.casefold() == folded for p in self.participants.values()
        ):
            return [Reply(connection_id, StatusMessage.of(StatusState.PLAYER_ALREADY_JOINED))]

        self.participants[connection_id] = Participant(
            id=connection_id,
            display_name=player_name,
        )
        logger.info(
            f"Player {player_name!r} joined ({len(self.participants)}/{self.max_players})"
        )

        if len(self.participants) >= self.max_players:
            self.phase = Phase.IN_ROUND
            GAMES_STARTED_TOTAL.inc()
            logger.info(f"Game started with {len(self.participants)} players")
            return self._start_round()

        return [Broadcast(StatusMessage.waiting_start(self.player_names()))]

    def submit(self, connection_id: str, q_num: int, code: str) -> list[Effect]:
        if self.phase != Phase.IN_ROUND or q_num != self.current_question_index:
            return []

        participant = self.participants.get(connection_id)
        if participant is None or participant.status != PlayerStatus.PLAYING:
            return []
        if connection_id in self._evaluating:
            return []

        self._evaluating.add(connection_id)
        return [
            EvaluateSubmission(
                connection_id=connection_id,
                round_serial=self.round_serial,
                code=code,
                question=self.questions.get(self.current_question_index),
            )
        ]

    def submission_evaluated(
        self,
        connection_id: str,
        round_serial: int,
        passed: bool,
    ) -> list[Effect]:
        if round_serial != self.round_serial or self.phase != Phase.IN_ROUND:
            logger.debug(f"Discarding stale verdict for {connection_id} (round {round_serial})")
            return []

        self._evaluating.discard(connection_id)
        participant = self.participants.get(connection_id)
        if participant is None or participant.status != PlayerStatus.PLAYING:
            return []

        if passed:
            participant.status = PlayerStatus.PASSED
            return [Reply(connection_id, StatusMessage.of(StatusState.PASSED))]

        participant.status = PlayerStatus.ELIMINATED
        record_elimination("failed")
        logger.info(f"Player {participant.display_name!r} eliminated by failed submission")
        return [Reply(connection_id, StatusMessage.of(StatusState.ELIMINATED))]

    def round_timeout(self, round_serial: int) -> list[Effect]:
        if round_serial != self.round_serial or self.phase != Phase.IN_ROUND:
            logger.debug(f"Ignoring stale timeout for round {round_serial}")
            return []

        effects: list[Effect] = []
        timed_out = 0
        for participant in self.participants.values():
            if participant.status == PlayerStatus.PLAYING:
                participant.status = PlayerStatus.ELIMINATED
                effects.append(Reply(participant.id, StatusMessage.of(StatusState.ELIMINATED)))
                timed_out += 1
        record_elimination("timeout", timed_out)
        self._evaluating.clear()

        self.current_question_index += 1
        if self.current_question_index >= self.questions.count():
            return effects + self._finish()

        if self.finish_when_all_eliminated and not self.survivors:
            logger.info("No survivors left, ending game early")
            return effects + self._finish()

        return effects + self._start_round()

    def disconnect(self, connection_id: str) -> list[Effect]:
        participant = self.participants.pop(connection_id, None)
        self._evaluating.discard(connection_id)
        if participant is None:
            return []

        logger.info(f"Player {participant.display_name!r} left")
        if not self.participants:
            logger.info("Roster empty, resetting session")
            record_reset("abandoned")
            self.reset()
            return [CancelTimer()]

        if self.phase == Phase.LOBBY:
            return [Broadcast(StatusMessage.waiting_start(self.player_names()))]
        return []

    def reset(self) -> None:
        self.phase = Phase.LOBBY
        self.current_question_index = 0
        self.participants = {}
        self._evaluating.clear()

    def _start_round(self) -> list[Effect]:
        question = self.questions.get(self.current_question_index)
        self.round_serial += 1

        recipients = []
        for participant in self.survivors:
            participant.status = PlayerStatus.PLAYING
            recipients.append(participant.id)

        message = StatusMessage.question(
            q_num=self.current_question_index,
            total_q=self.questions.count(),
            description=question.prompt,
            time_left=self.question_timeout_ms,
            code_template=question.code_template,
        )
        logger.info(
            f"Round {self.current_question_index + 1}/{self.questions.count()} "
            f"started for {len(recipients)} survivors"
        )
        return [
            Broadcast(message, recipients=frozenset(recipients)),
            ArmTimer(round_serial=self.round_serial, delay_ms=self.question_timeout_ms),
        ]

    def _finish(self) -> list[Effect]:
        self.phase = Phase.FINISHED
        winners = [
            p.display_name for p in self.participants.values()
            if p.status == PlayerStatus.PASSED
        ]
        losers = [
            p.display_name for p in self.participants.values()
            if p.status == PlayerStatus.ELIMINATED
        ]
        GAMES_FINISHED_TOTAL.inc()
        record_reset("finished")
        logger.info(f"Game over: winners={winners} losers={losers}")

        self.reset()
        return [
            Broadcast(StatusMessage.game_over(winners, losers)),
            CloseConnections(),
            CancelTimer(),
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "current_question": self.current_question_index,
            "total_questions": self.questions.count(),
            "max_players": self.max_players,
            "players": [p.to_dict() for p in self.participants.values()],
        }

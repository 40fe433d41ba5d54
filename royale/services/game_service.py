"""
Game service.

Serializes every change to the game session through one asyncio task.
Client events, timer expiries and sandbox verdicts are queued and applied
strictly one at a time; the effects of each transition are executed before
the next event is taken.
"""

import asyncio
import logging
from typing import Any

from royale.api.websocket.broadcaster import Broadcaster
from royale.game_engine.challenges.judge import SubmissionJudge
from royale.game_engine.scheduler import RoundScheduler
from royale.game_engine.session import (
    ArmTimer,
    Broadcast,
    CancelTimer,
    CloseConnections,
    Effect,
    EvaluateSubmission,
    Event,
    GameSession,
    Reply,
    RoundTimeout,
    SubmissionEvaluated,
)

logger = logging.getLogger(__name__)


class GameService:
    """Owns the game session and executes its effects."""

    def __init__(
        self,
        session: GameSession,
        broadcaster: Broadcaster,
        judge: SubmissionJudge,
        scheduler: RoundScheduler | None = None,
    ):
        self.session = session
        self.broadcaster = broadcaster
        self.judge = judge
        self.scheduler = scheduler or RoundScheduler()

        self._queue: asyncio.Queue[Event] | None = None
        self._processor_task: asyncio.Task | None = None
        self._evaluations: set[asyncio.Task] = set()
        self._running = False

    async def start(self) -> None:
        """Start the event processor."""
        if self._running:
            return
        self._running = True
        self._queue = asyncio.Queue()
        self._processor_task = asyncio.create_task(self._process_events())
        logger.info("Game service started")

    async def stop(self, grace: float = 0) -> None:
        """Stop the event processor, timer and pending evaluations.

        With ``grace`` set, first wait up to that many seconds for queued
        events and in-flight verdicts to be applied.
        """
        if grace and self._running:
            try:
                await asyncio.wait_for(self.settle(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"Stopping with work still pending after {grace}s")
        self._running = False
        self.scheduler.cancel()
        for task in list(self._evaluations):
            task.cancel()
        if self._processor_task:
            self._processor_task.cancel()
            try:
                await self._processor_task
            except asyncio.CancelledError:
                pass
        logger.info("Game service stopped")

    def dispatch(self, event: Event) -> None:
        """Queue an event for the session."""
        if self._queue is None:
            raise RuntimeError("Game service is not running")
        self._queue.put_nowait(event)

    async def settle(self) -> None:
        """Wait until queued events and in-flight evaluations are all applied."""
        if self._queue is None:
            return
        await self._queue.join()
        while self._evaluations:
            await asyncio.gather(*self._evaluations, return_exceptions=True)
            await self._queue.join()

    def snapshot(self) -> dict[str, Any]:
        return self.session.to_dict()

    async def _process_events(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                effects = self.session.handle(event)
                self._apply(effects)
            except Exception as e:
                logger.exception(f"Error applying {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()

    def _apply(self, effects: list[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Reply):
                self.broadcaster.send(effect.connection_id, effect.message)
            elif isinstance(effect, Broadcast):
                self.broadcaster.broadcast(effect.message, effect.recipients)
            elif isinstance(effect, ArmTimer):
                self.scheduler.arm(effect.round_serial, effect.delay_ms, self._on_timer)
            elif isinstance(effect, CancelTimer):
                self.scheduler.cancel()
            elif isinstance(effect, EvaluateSubmission):
                task = asyncio.create_task(self._evaluate(effect))
                self._evaluations.add(task)
                task.add_done_callback(self._evaluations.discard)
            elif isinstance(effect, CloseConnections):
                self.broadcaster.close_all()
            else:
                logger.error(f"Unhandled effect: {effect!r}")

    def _on_timer(self, round_serial: int) -> None:
        if self._running:
            self.dispatch(RoundTimeout(round_serial))

    async def _evaluate(self, job: EvaluateSubmission) -> None:
        try:
            result = await self.judge.judge(job.code, job.question)
            passed = result.passed
        except Exception as e:
            logger.exception(f"Judge failed for {job.connection_id}: {e}")
            passed = False

        if self._running:
            self.dispatch(SubmissionEvaluated(job.connection_id, job.round_serial, passed))

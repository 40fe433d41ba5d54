"""Unit tests for the game service event loop."""

import asyncio

import pytest
import pytest_asyncio

from royale.api.websocket.broadcaster import Broadcaster
from royale.api.websocket.manager import ConnectionRegistry
from royale.game_engine.challenges.judge import JudgeResult
from royale.game_engine.session import Disconnect, Join, Phase, PlayerStatus, RoundTimeout, Submit
from royale.services.game_service import GameService


class StubJudge:
    """Passes exactly the code 'good'; optionally slow."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: list[str] = []

    async def judge(self, code, question):
        self.calls.append(code)
        if self.delay:
            await asyncio.sleep(self.delay)
        passed = code == "good"
        return JudgeResult(
            passed=passed,
            passed_validators=int(passed),
            total_validators=1,
        )


def states(ws):
    return [m["state"] for m in ws.sent]


async def flush():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest_asyncio.fixture
async def harness(make_session, fake_websocket):
    async def build(max_players=1, question_timeout_ms=10000, judge=None):
        registry = ConnectionRegistry()
        service = GameService(
            session=make_session(max_players=max_players, question_timeout_ms=question_timeout_ms),
            broadcaster=Broadcaster(registry),
            judge=judge or StubJudge(),
        )
        await service.start()
        built.append(service)
        return service, registry

    built: list[GameService] = []
    yield build
    for service in built:
        await service.stop()


async def connect(registry, fake_websocket):
    ws = fake_websocket()
    return ws, await registry.register(ws)


class TestGameService:
    """Tests for serialized event handling and effect execution."""

    @pytest.mark.asyncio
    async def test_join_pass_and_win(self, harness, fake_websocket):
        """Single player joins, passes both rounds, receives GameOver and is closed."""
        service, registry = await harness(max_players=1)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        await service.settle()
        await flush()
        assert states(ws) == ["Question"]

        service.dispatch(Submit(cid, 0, "good"))
        await service.settle()
        await flush()
        assert states(ws) == ["Question", "Passed"]

        service.dispatch(RoundTimeout(service.session.round_serial))
        await service.settle()
        await flush()
        assert states(ws)[-1] == "Question"
        assert ws.sent[-1]["qNum"] == 1

        service.dispatch(Submit(cid, 1, "good"))
        await service.settle()
        service.dispatch(RoundTimeout(service.session.round_serial))
        await service.settle()
        await flush()

        assert ws.sent[-1] == {"type": "Status", "state": "GameOver", "winners": ["Ann"], "losers": []}
        assert ws.closed_with == 1000
        assert service.session.phase == Phase.LOBBY
        assert not service.scheduler.armed

    @pytest.mark.asyncio
    async def test_failed_submission_eliminates(self, harness, fake_websocket):
        service, registry = await harness(max_players=2)
        ann, ann_id = await connect(registry, fake_websocket)
        bob, bob_id = await connect(registry, fake_websocket)

        service.dispatch(Join(ann_id, "Ann"))
        service.dispatch(Join(bob_id, "Bob"))
        service.dispatch(Submit(bob_id, 0, "bad"))
        await service.settle()
        await flush()

        assert states(ann) == ["WaitingStart", "Question"]
        assert states(bob) == ["WaitingStart", "Question", "Eliminated"]
        assert service.session.participants[bob_id].status == PlayerStatus.ELIMINATED

    @pytest.mark.asyncio
    async def test_timers_drive_the_game_to_the_end(self, harness, fake_websocket):
        """With nobody submitting, each round times out and the game ends on its own."""
        service, registry = await harness(max_players=1, question_timeout_ms=30)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        await asyncio.sleep(0.3)
        await service.settle()
        await flush()

        assert states(ws) == ["Question", "Eliminated", "GameOver"]
        assert ws.sent[-1]["losers"] == ["Ann"]
        assert service.session.phase == Phase.LOBBY

    @pytest.mark.asyncio
    async def test_slow_verdict_after_timeout_is_discarded(self, harness, fake_websocket):
        """A sandbox result landing after the round ended must not revive the player."""
        judge = StubJudge(delay=0.1)
        service, registry = await harness(max_players=1, judge=judge)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        service.dispatch(Submit(cid, 0, "good"))
        await asyncio.sleep(0.01)
        service.dispatch(RoundTimeout(service.session.round_serial))
        await service.settle()
        await flush()

        assert judge.calls == ["good"]
        assert states(ws) == ["Question", "Eliminated"]
        assert service.session.participants[cid].status == PlayerStatus.ELIMINATED

    @pytest.mark.asyncio
    async def test_disconnect_resets_and_cancels_timer(self, harness, fake_websocket):
        service, registry = await harness(max_players=1)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        await service.settle()
        assert service.scheduler.armed

        service.dispatch(Disconnect(cid))
        await service.settle()

        assert not service.scheduler.armed
        assert service.session.phase == Phase.LOBBY
        assert service.snapshot()["players"] == []

    @pytest.mark.asyncio
    async def test_rejections_reply_to_sender_only(self, harness, fake_websocket):
        service, registry = await harness(max_players=3)
        ann, ann_id = await connect(registry, fake_websocket)
        dup, dup_id = await connect(registry, fake_websocket)

        service.dispatch(Join(ann_id, "Ann"))
        service.dispatch(Join(dup_id, "ANN"))
        await service.settle()
        await flush()

        assert states(ann) == ["WaitingStart"]
        assert states(dup) == ["WaitingStart", "PlayerAlreadyJoined"]

    @pytest.mark.asyncio
    async def test_error_in_event_does_not_kill_loop(self, harness, fake_websocket):
        service, registry = await harness(max_players=2)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(object())
        service.dispatch(Join(cid, "Ann"))
        await service.settle()
        await flush()

        assert states(ws) == ["WaitingStart"]

    @pytest.mark.asyncio
    async def test_stop_with_grace_applies_pending_verdict(self, harness, fake_websocket):
        """A verdict still being judged at shutdown is delivered before stopping."""
        service, registry = await harness(max_players=1, judge=StubJudge(delay=0.05))
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        service.dispatch(Submit(cid, 0, "good"))
        await service.stop(grace=2.0)
        await flush()

        assert states(ws) == ["Question", "Passed"]
        assert not service.scheduler.armed

    @pytest.mark.asyncio
    async def test_stop_without_grace_drops_pending_verdict(self, harness, fake_websocket):
        judge = StubJudge(delay=0.5)
        service, registry = await harness(max_players=1, judge=judge)
        ws, cid = await connect(registry, fake_websocket)

        service.dispatch(Join(cid, "Ann"))
        service.dispatch(Submit(cid, 0, "good"))
        await asyncio.sleep(0.05)
        await service.stop()
        await flush()

        assert judge.calls == ["good"]
        assert states(ws) == ["Question"]

"""Unit tests for the round scheduler."""

import asyncio

import pytest

from royale.game_engine.scheduler import RoundScheduler


class TestRoundScheduler:
    """Tests for arming and cancelling round timers."""

    @pytest.mark.asyncio
    async def test_fires_with_round_serial(self):
        scheduler = RoundScheduler()
        fired: list[int] = []

        scheduler.arm(3, 20, fired.append)
        assert scheduler.armed
        assert scheduler.round_serial == 3

        await asyncio.sleep(0.1)

        assert fired == [3]
        assert not scheduler.armed

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self):
        scheduler = RoundScheduler()
        fired: list[int] = []

        scheduler.arm(1, 30, fired.append)
        scheduler.cancel()
        await asyncio.sleep(0.1)

        assert fired == []
        assert not scheduler.armed
        assert scheduler.round_serial is None

    @pytest.mark.asyncio
    async def test_rearming_replaces_previous_timer(self):
        """Only the most recently armed timer may fire."""
        scheduler = RoundScheduler()
        fired: list[int] = []

        scheduler.arm(1, 30, fired.append)
        scheduler.arm(2, 30, fired.append)
        await asyncio.sleep(0.15)

        assert fired == [2]

    def test_cancel_without_timer_is_safe(self):
        scheduler = RoundScheduler()
        scheduler.cancel()
        assert not scheduler.armed

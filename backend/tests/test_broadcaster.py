"""
PURPOSE: Tests for concurrent channel fan-out with isolated failures.
"""

import asyncio

import pytest

from signal_relay.notifications.broadcaster import BroadcastDispatcher


class TestBroadcast:
    """Test per-channel delivery outcomes."""

    @pytest.mark.asyncio
    async def test_sends_to_every_channel(self, sender):
        results = await BroadcastDispatcher(sender).broadcast("hi", ["a", "b", "c"], parse_mode="Markdown")
        assert [r.channel_id for r in results] == ["a", "b", "c"]
        assert all(r.ok for r in results)
        assert sorted(cid for cid, _, _ in sender.sent) == ["a", "b", "c"]
        assert all(mode == "Markdown" for _, _, mode in sender.sent)

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, sender):
        sender.fail_for = {"b"}
        results = await BroadcastDispatcher(sender).broadcast("hi", ["a", "b", "c"])
        outcome = {r.channel_id: r for r in results}
        assert outcome["a"].ok and outcome["c"].ok
        assert not outcome["b"].ok
        assert "chat not found" in outcome["b"].error
        assert sorted(sender.attempts) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_isolated(self):
        class ExplodingSender:
            async def send_message(self, chat_id, text, parse_mode=None):
                if chat_id == "bad":
                    raise ValueError("boom")

        results = await BroadcastDispatcher(ExplodingSender()).broadcast("hi", ["bad", "good"])
        assert [(r.channel_id, r.ok) for r in results] == [("bad", False), ("good", True)]

    @pytest.mark.asyncio
    async def test_no_channels(self, sender):
        assert await BroadcastDispatcher(sender).broadcast("hi", []) == []
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_sends_are_concurrent(self):
        in_flight = 0
        peak = 0

        class SlowSender:
            async def send_message(self, chat_id, text, parse_mode=None):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1

        await BroadcastDispatcher(SlowSender()).broadcast("hi", ["a", "b", "c"])
        assert peak == 3

"""
PURPOSE: Unit tests for WebhookIngestor outcomes, independent of HTTP.
"""

import pytest

from signal_relay.core.errors import ConfigUnreadable
from signal_relay.notifications.broadcaster import BroadcastDispatcher
from signal_relay.webhook.processor import DISABLED_MESSAGE, WebhookIngestor

from conftest import write_config


@pytest.fixture
def ingestor(store, sender):
    return WebhookIngestor(store, BroadcastDispatcher(sender))


class TestProcess:
    """Test per-request outcomes."""

    @pytest.mark.asyncio
    async def test_disabled_outcome(self, ingestor, sender, config_path):
        write_config(config_path, enabled=False, channels=["a"])
        outcome = await ingestor.process('{"ticker": "BTCUSD"}')
        assert outcome.forwarded is False
        assert outcome.message == DISABLED_MESSAGE
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_outcome_records_each_channel(self, ingestor, sender, config_path):
        write_config(config_path, enabled=True, channels=["a", "b"])
        sender.fail_for = {"b"}

        outcome = await ingestor.process('{"ticker": "BTCUSD", "direction": "sell"}')

        assert outcome.forwarded is True
        assert outcome.channels == ["a", "b"]
        assert [(r.channel_id, r.ok) for r in outcome.raw] == [("a", True), ("b", False)]
        assert [(r.channel_id, r.ok) for r in outcome.formatted] == [("a", True), ("b", False)]
        assert outcome.message == "Signal sent to 2 channels"

    @pytest.mark.asyncio
    async def test_malformed_body_skips_formatting(self, ingestor, config_path):
        write_config(config_path, enabled=True, channels=["a"])
        outcome = await ingestor.process("ticker=BTCUSD&direction=buy")
        assert len(outcome.raw) == 1
        assert outcome.formatted is None

    @pytest.mark.asyncio
    async def test_unreadable_config_propagates(self, ingestor, config_path):
        config_path.unlink()
        with pytest.raises(ConfigUnreadable):
            await ingestor.process("{}")

    @pytest.mark.asyncio
    async def test_custom_preview_limit(self, store, sender, config_path):
        write_config(config_path, enabled=True, channels=["a"])
        ingestor = WebhookIngestor(store, BroadcastDispatcher(sender), raw_preview_limit=5)
        await ingestor.process("0123456789")
        assert "01234\n```" in sender.texts_for("a")[0]
        assert "56789" not in sender.texts_for("a")[0]


class TestNotifyFailure:
    """Test the best-effort error notice."""

    @pytest.mark.asyncio
    async def test_notice_sent_even_when_disabled(self, ingestor, sender, config_path):
        write_config(config_path, enabled=False, channels=["a"])
        await ingestor.notify_failure(RuntimeError("boom"))
        assert sender.texts_for("a") == ["❌ *WEBHOOK ERROR*\n\nboom"]

    @pytest.mark.asyncio
    async def test_unreadable_config_drops_notice(self, ingestor, sender, config_path):
        config_path.unlink()
        await ingestor.notify_failure(RuntimeError("boom"))
        assert sender.attempts == []

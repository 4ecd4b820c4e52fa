"""
PURPOSE: Pytest fixtures for signal relay tests.

Provides shared test objects including:
- Test configuration settings
- A temporary, pre-seeded relay configuration file and store
- A recording fake Telegram sender with per-chat failure injection
- A FastAPI TestClient wired to the fake sender
"""

import json
from typing import List, Optional, Set, Tuple

import pytest
from fastapi.testclient import TestClient

from signal_relay.config.relay_config import ConfigStore
from signal_relay.config.settings import Settings
from signal_relay.core.errors import TransportFailure

ADMIN_ID = "111"
OTHER_ID = "999"


class RecordingSender:
    """
    PURPOSE: Stand-in for TelegramClient that records every send.

    Attributes:
        sent:     (chat_id, text, parse_mode) per successful send, in order.
        attempts: chat_id of every attempt, including failed ones.
        fail_for: chat ids whose sends raise TransportFailure.
    """

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Optional[str]]] = []
        self.attempts: List[str] = []
        self.fail_for: Set[str] = set()

    async def send_message(self, chat_id: str, text: str, parse_mode: Optional[str] = None):
        self.attempts.append(chat_id)
        if chat_id in self.fail_for:
            raise TransportFailure("Bad Request: chat not found", chat_id=chat_id, status_code=400)
        self.sent.append((chat_id, text, parse_mode))
        return {"message_id": len(self.sent)}

    def texts_for(self, chat_id: str) -> List[str]:
        return [text for cid, text, _ in self.sent if cid == chat_id]


def write_config(path, enabled: bool = True, channels: Optional[List[str]] = None) -> None:
    path.write_text(json.dumps({"enabled": enabled, "channels": channels or []}), encoding="utf-8")


def read_config(path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def config_path(tmp_path):
    """
    PURPOSE: Relay configuration file seeded as enabled with no channels.

    Returns:
        Path: Location of the JSON document.
    """
    path = tmp_path / "config.json"
    write_config(path, enabled=True, channels=[])
    return path


@pytest.fixture
def store(config_path):
    return ConfigStore(config_path)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def test_settings(config_path):
    """
    PURPOSE: Settings override with test values.

    Polling is disabled so no background task talks to Telegram.

    Returns:
        Settings: Configuration object with test values.
    """
    return Settings(
        TELEGRAM_BOT_TOKEN="test-token",
        TELEGRAM_API_BASE="https://telegram.invalid",
        TELEGRAM_POLLING_ENABLED=False,
        ADMIN_CHAT_IDS=f"{ADMIN_ID}, 222",
        CONFIG_PATH=str(config_path),
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(test_settings, sender):
    """
    PURPOSE: TestClient for an app whose outbound messages go to `sender`.
    """
    from signal_relay.main import create_app

    app = create_app(test_settings, sender=sender)
    with TestClient(app) as test_client:
        yield test_client

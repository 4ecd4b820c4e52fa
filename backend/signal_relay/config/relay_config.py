"""
PURPOSE: File-backed store for the relay's mutable configuration.

The relay configuration is a single JSON document with exactly two fields:
the global forwarding switch and the ordered list of destination channels.
It is created out-of-band before first run (see config.example.json) and is
never deleted by the running process.

Every read loads the whole document fresh from disk; every write replaces the
whole document atomically (temp file + os.replace), so readers never observe
a partial write. The file mode of an existing document is preserved.

Async callers use read() and transaction(), which run the file I/O in the
default executor. Mutations go through transaction(), which holds an
asyncio.Lock across load → mutate → save so concurrent admin commands do
not lose each other's updates. Conflicting toggles are still last-write-wins.

CALLED BY:
    - bot/commands.py — /on, /off, /addchannel, /removechannel, /list
    - webhook/processor.py — enabled flag and channel list per request
"""

import asyncio
import json
import os
import stat
import tempfile
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import AsyncIterator, List, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from signal_relay.core.errors import ConfigUnreadable, ConfigUnwritable
from signal_relay.utils.logger import get_logger

logger = get_logger("config.relay_config")


class RelayConfig(BaseModel):
    """
    PURPOSE: In-memory snapshot of the persisted relay configuration.

    Attributes:
        enabled:  Global forwarding switch. When False, webhooks are acknowledged
                  but nothing is broadcast.
        channels: Destination channel ids in insertion order, no duplicates.
    """

    enabled: bool = False
    channels: List[str] = Field(default_factory=list)

    @field_validator("channels", mode="before")
    @classmethod
    def _normalize_channels(cls, value):
        """Coerce ids to stripped strings and drop duplicates, keeping first-seen order."""
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("channels must be a list")
        seen: List[str] = []
        for item in value:
            channel_id = str(item).strip()
            if channel_id and channel_id not in seen:
                seen.append(channel_id)
        return seen

    def add_channel(self, channel_id: str) -> bool:
        """
        PURPOSE: Append a channel if it is not already configured.

        Returns:
            bool: True if the channel was added, False if it was already present.
        """
        if channel_id in self.channels:
            return False
        self.channels.append(channel_id)
        return True

    def remove_channel(self, channel_id: str) -> None:
        """Remove every occurrence of a channel. Absent ids are a no-op."""
        self.channels = [existing for existing in self.channels if existing != channel_id]


class ConfigStore:
    """
    PURPOSE: Load and persist RelayConfig as a whole JSON document.

    No caching: load() always reads the file, save() always rewrites it.

    Attributes:
        _path: Location of the JSON document.
        _lock: Serializes read-modify-write transactions within this process.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """Return True if the backing document is present on disk."""
        return self._path.is_file()

    def _current_mode(self) -> int:
        """Permission bits of the existing document, or 0o644 for a new one."""
        try:
            return stat.S_IMODE(os.stat(self._path).st_mode)
        except FileNotFoundError:
            return 0o644

    # ------------------------------------------------------------------ #
    #  Load / Save
    # ------------------------------------------------------------------ #

    def load(self) -> RelayConfig:
        """
        PURPOSE: Read and validate the full configuration document.

        CALLED BY: read(), transaction()

        Returns:
            RelayConfig: Fresh snapshot of the persisted state.

        Raises:
            ConfigUnreadable: If the file is missing, unreadable, not JSON,
                or does not match the expected structure.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("relay_config_read_failed", path=str(self._path), error=str(e))
            raise ConfigUnreadable(f"Cannot read {self._path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("relay_config_invalid_json", path=str(self._path), error=str(e))
            raise ConfigUnreadable(f"{self._path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigUnreadable(f"{self._path} must contain a JSON object")

        try:
            return RelayConfig.model_validate(data)
        except ValidationError as e:
            logger.error(
                "relay_config_invalid_structure",
                path=str(self._path),
                error_count=e.error_count(),
            )
            raise ConfigUnreadable(f"{self._path} has an invalid structure") from e

    def save(self, config: RelayConfig) -> None:
        """
        PURPOSE: Atomically replace the persisted document with a full snapshot.

        Writes to a temporary file in the same directory, then renames it over
        the target so a crash mid-write never leaves a truncated document.

        CALLED BY: transaction()

        Raises:
            ConfigUnwritable: On any I/O failure. Not retried.
        """
        payload = json.dumps(
            {"enabled": config.enabled, "channels": list(config.channels)},
            indent=2,
        )
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            # mkstemp creates 0600 files
            os.chmod(tmp_name, self._current_mode())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            logger.error("relay_config_save_failed", path=str(self._path), error=str(e))
            raise ConfigUnwritable(f"Cannot write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                with suppress(OSError):
                    os.unlink(tmp_name)

        logger.info(
            "relay_config_saved",
            enabled=config.enabled,
            channel_count=len(config.channels),
        )

    async def read(self) -> RelayConfig:
        """
        PURPOSE: load() without blocking the event loop.

        CALLED BY: CommandRouter (/list), WebhookIngestor

        Raises:
            ConfigUnreadable: As load().
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.load)

    # ------------------------------------------------------------------ #
    #  Transactions
    # ------------------------------------------------------------------ #

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RelayConfig]:
        """
        PURPOSE: Serialize a load → mutate → save cycle.

        The yielded RelayConfig is saved when the block exits normally. If the
        block raises, nothing is written.

        Usage:
            async with store.transaction() as config:
                config.enabled = True

        Raises:
            ConfigUnreadable: If the initial load fails.
            ConfigUnwritable: If the final save fails.
        """
        loop = asyncio.get_running_loop()
        async with self._lock:
            config = await loop.run_in_executor(None, self.load)
            yield config
            await loop.run_in_executor(None, self.save, config)

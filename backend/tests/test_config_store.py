"""
PURPOSE: Tests for the file-backed relay configuration store.

Covers:
- Loading valid, missing and malformed documents
- Channel normalization on load
- Atomic full-document saves
- Serialized transactions (no lost updates between concurrent writers)
"""

import asyncio
import json
import os
import stat
import threading

import pytest

from signal_relay.config.relay_config import ConfigStore, RelayConfig
from signal_relay.core.errors import ConfigUnreadable, ConfigUnwritable

from conftest import read_config, write_config


class TestLoad:
    """Test reading the configuration document."""

    def test_load_seeded_document(self, config_path):
        write_config(config_path, enabled=False, channels=["-100123", "456"])
        config = ConfigStore(config_path).load()
        assert config.enabled is False
        assert config.channels == ["-100123", "456"]

    def test_missing_file_is_unreadable(self, tmp_path):
        with pytest.raises(ConfigUnreadable):
            ConfigStore(tmp_path / "absent.json").load()

    def test_invalid_json_is_unreadable(self, config_path):
        config_path.write_text("{enabled: true", encoding="utf-8")
        with pytest.raises(ConfigUnreadable):
            ConfigStore(config_path).load()

    def test_non_object_is_unreadable(self, config_path):
        config_path.write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigUnreadable):
            ConfigStore(config_path).load()

    def test_wrong_channel_type_is_unreadable(self, config_path):
        config_path.write_text('{"enabled": true, "channels": "-100123"}', encoding="utf-8")
        with pytest.raises(ConfigUnreadable):
            ConfigStore(config_path).load()

    def test_channels_normalized(self, config_path):
        config_path.write_text(
            json.dumps({"enabled": True, "channels": [-100123, " 456 ", "-100123", ""]}),
            encoding="utf-8",
        )
        assert ConfigStore(config_path).load().channels == ["-100123", "456"]

    def test_exists(self, config_path, tmp_path):
        assert ConfigStore(config_path).exists()
        assert not ConfigStore(tmp_path / "absent.json").exists()


class TestSave:
    """Test full-document writes."""

    def test_save_writes_exactly_two_fields(self, store, config_path):
        store.save(RelayConfig(enabled=True, channels=["-100123"]))
        assert read_config(config_path) == {"enabled": True, "channels": ["-100123"]}

    def test_save_replaces_prior_state(self, store, config_path):
        store.save(RelayConfig(enabled=True, channels=["a", "b"]))
        store.save(RelayConfig(enabled=False, channels=[]))
        assert read_config(config_path) == {"enabled": False, "channels": []}

    def test_save_leaves_no_temp_files(self, store, config_path):
        store.save(RelayConfig(enabled=True, channels=["a"]))
        assert [p.name for p in config_path.parent.iterdir()] == [config_path.name]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
    def test_save_keeps_existing_file_mode(self, store, config_path):
        os.chmod(config_path, 0o640)
        store.save(RelayConfig(enabled=True, channels=["a"]))
        assert stat.S_IMODE(os.stat(config_path).st_mode) == 0o640

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
    def test_save_new_file_is_not_private(self, tmp_path):
        path = tmp_path / "fresh.json"
        ConfigStore(path).save(RelayConfig())
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_save_into_missing_directory_is_unwritable(self, tmp_path):
        store = ConfigStore(tmp_path / "missing" / "config.json")
        with pytest.raises(ConfigUnwritable):
            store.save(RelayConfig())


class TestRelayConfig:
    """Test in-memory mutations."""

    def test_add_channel_is_idempotent(self):
        config = RelayConfig(channels=["a"])
        assert config.add_channel("b") is True
        assert config.add_channel("b") is False
        assert config.channels == ["a", "b"]

    def test_remove_absent_channel_is_noop(self):
        config = RelayConfig(channels=["a"])
        config.remove_channel("z")
        assert config.channels == ["a"]


class TestTransaction:
    """Test serialized read-modify-write cycles."""

    @pytest.mark.asyncio
    async def test_transaction_persists_mutation(self, store, config_path):
        async with store.transaction() as config:
            config.enabled = False
            config.add_channel("-100123")
        assert read_config(config_path) == {"enabled": False, "channels": ["-100123"]}

    @pytest.mark.asyncio
    async def test_transaction_discards_on_error(self, store, config_path):
        with pytest.raises(RuntimeError):
            async with store.transaction() as config:
                config.add_channel("-100123")
                raise RuntimeError("abort")
        assert read_config(config_path)["channels"] == []

    @pytest.mark.asyncio
    async def test_concurrent_adds_do_not_lose_updates(self, store, config_path):
        async def add(channel_id: str) -> None:
            async with store.transaction() as config:
                # Yield mid-transaction so the other writer gets scheduled
                await asyncio.sleep(0)
                config.add_channel(channel_id)

        await asyncio.gather(*(add(f"-100{i}") for i in range(10)))

        assert sorted(read_config(config_path)["channels"]) == sorted(
            f"-100{i}" for i in range(10)
        )

    @pytest.mark.asyncio
    async def test_file_io_runs_off_the_event_loop(self, store, monkeypatch):
        loop_thread = threading.get_ident()
        io_threads = []
        original_load, original_save = store.load, store.save

        def recording_load():
            io_threads.append(threading.get_ident())
            return original_load()

        def recording_save(config):
            io_threads.append(threading.get_ident())
            original_save(config)

        monkeypatch.setattr(store, "load", recording_load)
        monkeypatch.setattr(store, "save", recording_save)

        async with store.transaction() as config:
            config.add_channel("-100123")
        await store.read()

        assert len(io_threads) == 3
        assert loop_thread not in io_threads

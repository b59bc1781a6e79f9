"""Tests for sirius/memory/store.py and the persistence backends"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from sirius.config_models import MemoryConfig
from sirius.exceptions import MemoryBackendError
from sirius.memory.backends import create_backend
from sirius.memory.backends.base import BackendStatus, MemoryBackend
from sirius.memory.backends.json_file import JsonFileBackend
from sirius.memory.backends.sqlite import SQLiteBackend
from sirius.memory.models import Interaction, LearnedBehavior, UserMemory
from sirius.memory.store import MemoryStore


class BrokenBackend(MemoryBackend):
    """Backend whose reads and writes always fail."""

    @property
    def name(self) -> str:
        return "broken"

    def read(self, user_id):
        raise OSError("disk on fire")

    def write(self, user_id, document):
        raise OSError("disk on fire")

    def check(self):
        return BackendStatus(ready=False, backend=self.name, error="disk on fire")


class TestInitialize:
    def test_ready_backend(self, store):
        status = store.initialize()
        assert status.ready
        assert status.backend == "json"

    def test_unreachable_backend_is_fatal(self):
        store = MemoryStore(backend=BrokenBackend(), config=MemoryConfig())
        with pytest.raises(MemoryBackendError):
            store.initialize()

    def test_sqlite_backend_ready(self, sqlite_store):
        assert sqlite_store.initialize().backend == "sqlite"

    def test_create_backend_unknown(self):
        config = MemoryConfig()
        config.backend.active = "redis"
        with pytest.raises(ValueError):
            create_backend(config)


class TestLoadSave:
    def test_missing_user_gets_defaults(self, store, mock_user_id):
        memory = store.load(mock_user_id)
        assert memory.user_id == mock_user_id
        assert memory.interactions == []
        assert memory.preferences.work_hours.start == 9
        assert set(memory.learned_behaviors) == {
            "meeting_preferences",
            "email_handling",
            "task_prioritization",
            "communication_style",
        }

    def test_roundtrip_preserves_interactions(self, store, mock_user_id, make_interaction):
        memory = store.load(mock_user_id)
        store.append_interaction(memory, Interaction.model_validate(make_interaction()))
        assert store.save(memory) is True

        loaded = store.load(mock_user_id)
        assert len(loaded.interactions) == 1
        assert loaded.interactions[0].action_type == "focus_mode"

    def test_save_updates_timestamp(self, store, mock_user_id):
        memory = UserMemory(user_id=mock_user_id, timestamp=datetime(2020, 1, 1))
        store.save(memory)
        assert memory.timestamp > datetime(2020, 1, 1)

    def test_corrupt_document_yields_defaults(self, temp_data_dir, memory_config, mock_user_id):
        backend = JsonFileBackend(temp_data_dir / "memory")
        backend.write(mock_user_id, "{not json")
        store = MemoryStore(backend=backend, config=memory_config)

        memory = store.load(mock_user_id)
        assert memory.user_id == mock_user_id
        assert memory.interactions == []

    def test_read_failure_yields_defaults(self, mock_user_id):
        store = MemoryStore(backend=BrokenBackend(), config=MemoryConfig())
        assert store.load(mock_user_id).user_id == mock_user_id

    def test_write_failure_returns_false(self, mock_user_id):
        store = MemoryStore(backend=BrokenBackend(), config=MemoryConfig())
        assert store.save(UserMemory(user_id=mock_user_id)) is False

    def test_camel_case_interaction_keys(self):
        interaction = Interaction.model_validate(
            {"type": "jira_operation", "timeBlock": "morning-focus", "actionType": "create_issue"}
        )
        assert interaction.time_block == "morning-focus"
        assert interaction.action_type == "create_issue"

    def test_aware_timestamp_stored_as_local_naive(self):
        interaction = Interaction.model_validate({"timestamp": "2024-05-15T07:00:00Z"})
        expected = datetime(2024, 5, 15, 7, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        assert interaction.timestamp.tzinfo is None
        assert interaction.timestamp == expected
        assert LearnedBehavior(timestamp="2024-05-15T07:00:00+02:00").timestamp.tzinfo is None

    def test_unknown_interaction_keys_kept(self, sqlite_store, mock_user_id):
        memory = sqlite_store.load(mock_user_id)
        sqlite_store.append_interaction(
            memory, Interaction.model_validate({"type": "custom", "source": "slack"})
        )
        sqlite_store.save(memory)

        loaded = sqlite_store.load(mock_user_id)
        assert loaded.interactions[0].model_extra == {"source": "slack"}


class TestInteractionCap:
    def test_oldest_evicted_beyond_cap(self, temp_data_dir, mock_user_id):
        config = MemoryConfig()
        config.retention.max_interactions = 5
        store = MemoryStore(backend=JsonFileBackend(temp_data_dir), config=config)
        memory = store.load(mock_user_id)

        for i in range(8):
            store.append_interaction(memory, Interaction(operation=f"op{i}"))

        assert len(memory.interactions) == 5
        assert [i.operation for i in memory.interactions] == ["op3", "op4", "op5", "op6", "op7"]


class TestRememberBehavior:
    def test_stores_value_with_confidence(self, store, mock_user_id):
        assert store.remember_behavior(mock_user_id, "meeting_preferences", "duration", 25, 0.8)

        behavior = store.load(mock_user_id).learned_behaviors["meeting_preferences"]["duration"]
        assert behavior.value == 25
        assert behavior.confidence == 0.8

    def test_creates_new_category(self, store, mock_user_id):
        store.remember_behavior(mock_user_id, "action_history", "action-1", {"success": True})
        assert "action-1" in store.load(mock_user_id).learned_behaviors["action_history"]

    def test_confidence_clamped(self, store, mock_user_id):
        store.remember_behavior(mock_user_id, "email_handling", "batch", True, confidence=3.0)
        assert store.load(mock_user_id).learned_behaviors["email_handling"]["batch"].confidence == 1.0

    def test_write_failure_returns_false(self, mock_user_id):
        store = MemoryStore(backend=BrokenBackend(), config=MemoryConfig())
        assert store.remember_behavior(mock_user_id, "email_handling", "batch", True) is False


class TestForgetOldMemories:
    def test_drops_old_interactions_and_behaviors(self, store, mock_user_id):
        old = datetime.now() - timedelta(days=120)
        memory = store.load(mock_user_id)
        store.append_interaction(memory, Interaction(operation="old", timestamp=old))
        store.append_interaction(memory, Interaction(operation="new"))
        memory.learned_behaviors["email_handling"]["stale"] = LearnedBehavior(value=1, timestamp=old)
        store.save(memory)
        store.remember_behavior(mock_user_id, "email_handling", "fresh", 2)

        assert store.forget_old_memories(mock_user_id, days_old=90)

        loaded = store.load(mock_user_id)
        assert [i.operation for i in loaded.interactions] == ["new"]
        assert set(loaded.learned_behaviors["email_handling"]) == {"fresh"}

    def test_timezone_aware_timestamps(self, store, mock_user_id):
        aware = datetime.now().astimezone() - timedelta(days=10)
        memory = store.load(mock_user_id)
        store.append_interaction(memory, Interaction(operation="aware", timestamp=aware))
        store.save(memory)

        assert store.forget_old_memories(mock_user_id, days_old=5)
        assert store.load(mock_user_id).interactions == []


class TestGetPreferences:
    def test_includes_last_updated(self, store, mock_user_id):
        store.remember_behavior(mock_user_id, "communication_style", "tone", "brief")
        prefs = store.get_preferences(mock_user_id)

        assert prefs["preferences"]["focus_duration"] == 25
        assert prefs["learned_behaviors"]["communication_style"]["tone"]["value"] == "brief"
        assert "last_updated" in prefs


class TestSQLiteBackend:
    def test_upsert_and_delete(self, temp_data_dir):
        backend = SQLiteBackend(temp_data_dir / "m.db")
        backend.write("alice", '{"a": 1}')
        backend.write("alice", '{"a": 2}')

        assert backend.read("alice") == '{"a": 2}'
        assert backend.delete("alice") is True
        assert backend.read("alice") is None


class TestConcurrency:
    def test_user_lock_serializes_load_modify_save(self, store, mock_user_id):
        def append(i):
            with store.user_lock(mock_user_id):
                memory = store.load(mock_user_id)
                store.append_interaction(memory, Interaction(operation=f"op{i}"))
                return store.save(memory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            assert all(pool.map(append, range(20)))

        operations = {i.operation for i in store.load(mock_user_id).interactions}
        assert operations == {f"op{i}" for i in range(20)}

    def test_concurrent_remember_behavior(self, sqlite_store, mock_user_id):
        def remember(i):
            return sqlite_store.remember_behavior(mock_user_id, "action_history", f"action-{i}", i)

        with ThreadPoolExecutor(max_workers=8) as pool:
            assert all(pool.map(remember, range(20)))

        history = sqlite_store.load(mock_user_id).learned_behaviors["action_history"]
        assert len(history) == 20

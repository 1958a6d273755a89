"""Tests for device state, tasks and the YAML state store."""
from datetime import datetime, timedelta, timezone

import pytest
from onboarder.errors import StateError
from onboarder.state import DeviceState, StateStore, Task, TaskState, mask


class TestMask:
    """Tests for secret masking."""

    def test_mask_removes_secrets(self):
        """password, passphrase and secret keys go at any depth."""
        data = {
            "Common": {
                "admin": {"password": "x", "userType": "regular"},
                "radius": {"servers": [{"secret": "s", "server": "10.0.0.1"}]},
                "cert": {"passphrase": "p", "Password": "X"},
            }
        }

        assert mask(data) == {
            "Common": {
                "admin": {"userType": "regular"},
                "radius": {"servers": [{"server": "10.0.0.1"}]},
                "cert": {},
            }
        }
        assert data["Common"]["admin"]["password"] == "x"


class TestTask:
    """Tests for Task."""

    def test_defaults(self):
        """New tasks are running with code 202."""
        task = Task(id="t1")

        assert task.state == TaskState.RUNNING
        assert task.code == 202
        assert not task.settled

    def test_update_result(self):
        """update_result sets code, state, message and errors."""
        task = Task(id="t1")
        before = task.last_update

        task.update_result(422, TaskState.ERROR, "invalid config - rolled back", errors=["boom"])

        assert task.settled
        assert task.code == 422
        assert task.errors == ["boom"]
        assert task.last_update >= before

    def test_round_trip(self):
        """to_dict and from_dict agree; the attempted config is not kept."""
        task = Task(id="t1", dry_run=True, declaration={"Common": {}}, attempted_config={"x": 1})
        task.update_result(200, TaskState.OK, "success")

        data = task.to_dict()
        restored = Task.from_dict(data)

        assert "attemptedConfig" not in data
        assert restored.state == TaskState.OK
        assert restored.dry_run is True
        assert restored.last_update == task.last_update
        assert restored.attempted_config is None


class TestDeviceState:
    """Tests for DeviceState."""

    def test_capture_original_once(self):
        """The first baseline is kept."""
        state = DeviceState(device_id="bigip-1")

        state.capture_original({"Common": {"DNS": {"nameServers": ["1.1.1.1"]}}})
        state.capture_original({"Common": {}})

        assert state.original_config == {"Common": {"DNS": {"nameServers": ["1.1.1.1"]}}}
        assert state.current_config == state.original_config

    def test_add_task(self):
        """New tasks are masked, dry-run aware and most recent."""
        state = DeviceState(device_id="bigip-1")

        task = state.add_task({"controls": {"dryRun": True}, "Common": {"u": {"password": "x"}}})

        assert task.dry_run is True
        assert task.declaration == {"controls": {"dryRun": True}, "Common": {"u": {}}}
        assert state.most_recent_task == task.id
        assert state.get_task() is task

    def test_get_unknown_task(self):
        """Unknown ids raise StateError."""
        state = DeviceState(device_id="bigip-1")

        with pytest.raises(StateError):
            state.get_task("missing")
        with pytest.raises(StateError):
            state.get_task()

    def test_prune_old_tasks(self):
        """Settled tasks past retention are dropped; running and newest tasks stay."""
        state = DeviceState(device_id="bigip-1", retention_days=7)
        old = state.add_task({})
        running = state.add_task({})
        newest = state.add_task({})
        old.update_result(200, TaskState.OK, "success")
        old.last_update = datetime.now(timezone.utc) - timedelta(days=8)
        running.last_update = datetime.now(timezone.utc) - timedelta(days=8)
        newest.update_result(200, TaskState.OK, "success")
        newest.last_update = datetime.now(timezone.utc) - timedelta(days=8)

        expired = state.prune_tasks()

        assert expired == [old.id]
        assert set(state.task_ids()) == {running.id, newest.id}

    def test_delete_task(self):
        """Deleting the most recent task clears the pointer."""
        state = DeviceState(device_id="bigip-1")
        task = state.add_task({})

        state.delete_task(task.id)

        assert state.task_ids() == []
        assert state.most_recent_task is None


class TestStateStore:
    """Tests for StateStore."""

    @pytest.fixture
    def store(self, tmp_path):
        return StateStore(tmp_path / "state")

    def test_load_missing(self, store):
        """Unknown devices load as None."""
        assert store.load("nope") is None
        assert not store.exists("nope")

    def test_save_and_load(self, store):
        """Saved state loads back equal."""
        state = DeviceState(device_id="bigip-1")
        state.capture_original({"parsed": True, "Common": {"VLAN": {"v": {"name": "v", "tag": 1}}}})
        task = state.add_task({"Common": {}})
        task.update_result(200, TaskState.OK, "success")

        path = store.save(state)
        loaded = store.load("bigip-1")

        assert path.exists()
        assert loaded.original_config == state.original_config
        assert loaded.most_recent_task == task.id
        assert loaded.get_task(task.id).message == "success"

    def test_list_and_delete(self, store):
        """Devices can be listed and removed."""
        store.save(DeviceState(device_id="b"))
        store.save(DeviceState(device_id="a"))

        assert store.list_devices() == ["a", "b"]
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.list_devices() == ["b"]

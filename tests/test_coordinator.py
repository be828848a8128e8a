"""Tests for the change coordinator (storage watch, debounce, poll)."""

import threading
import time
from pathlib import Path
from unittest.mock import Mock

import pytest

from vaultsync.config import (
    CatalogConfig,
    LibraryConfig,
    MonitoringConfig,
    StorageConfig,
    VaultSyncConfig,
)
from vaultsync.coordinator import ConfigFileHandler, StorageEventHandler, SyncCoordinator
from vaultsync.errors import CatalogUnavailable
from vaultsync.reconciler import SyncResult


class FakeReconciler:
    def __init__(self, error=None):
        self.calls = 0
        self.configs = []
        self.error = error
        self.synced = threading.Event()

    def sync(self, progress=None):
        self.calls += 1
        self.synced.set()
        if self.error:
            raise self.error
        return SyncResult(1, 1)

    def update_config(self, config):
        self.configs.append(config)


def _config(tmp_path, storage: Path, debounce=0.05, poll=60.0):
    return VaultSyncConfig(
        catalog=CatalogConfig(),
        storage=StorageConfig(path=storage),
        library=LibraryConfig(vault_path=tmp_path / "vault"),
        monitoring=MonitoringConfig(debounce_seconds=debounce, poll_seconds=poll),
    )


@pytest.fixture
def make_coordinator(tmp_path):
    created = []

    def factory(storage=None, **kwargs):
        storage = storage or tmp_path / "missing-storage"
        reconciler = FakeReconciler()
        coordinator = SyncCoordinator(_config(tmp_path, storage, **kwargs), reconciler)
        created.append(coordinator)
        return coordinator, reconciler

    yield factory
    for coordinator in created:
        coordinator.stop()


def test_storage_handler_forwards_changes():
    on_change = Mock()
    handler = StorageEventHandler(on_change)

    for event_type in ("created", "modified", "deleted", "moved"):
        handler.on_any_event(Mock(event_type=event_type, src_path="/storage/ABC/x.pdf"))

    assert on_change.call_count == 4


def test_storage_handler_ignores_reads():
    on_change = Mock()
    handler = StorageEventHandler(on_change)

    handler.on_any_event(Mock(event_type="opened", src_path="/storage/ABC/x.pdf"))
    handler.on_any_event(Mock(event_type="closed_no_write", src_path="/storage/ABC/x.pdf"))

    on_change.assert_not_called()


def test_config_handler_matches_only_its_file(tmp_path):
    config_path = tmp_path / "config.ini"
    on_change = Mock()
    handler = ConfigFileHandler(config_path, on_change)

    handler.on_modified(Mock(is_directory=False, src_path=str(tmp_path / "other.ini")))
    on_change.assert_not_called()

    handler.on_modified(Mock(is_directory=False, src_path=str(config_path)))
    handler.on_moved(Mock(is_directory=False, src_path=str(tmp_path / "tmp"), dest_path=str(config_path)))
    assert on_change.call_count == 2


def test_missing_storage_runs_poll_only(make_coordinator):
    coordinator, _ = make_coordinator()
    coordinator.start()

    assert coordinator.running
    assert not coordinator.watching


def test_burst_of_events_collapses_into_one_sync(make_coordinator):
    coordinator, reconciler = make_coordinator(debounce=0.1)
    coordinator.start()

    for _ in range(10):
        coordinator.notify()

    assert reconciler.synced.wait(timeout=2)
    time.sleep(0.3)
    assert reconciler.calls == 1


def test_new_event_resets_debounce_timer(make_coordinator):
    coordinator, reconciler = make_coordinator(debounce=0.4)
    coordinator.start()

    coordinator.notify()
    time.sleep(0.25)
    coordinator.notify()
    time.sleep(0.25)
    # 0.5s after the first event, but only 0.25s after the second
    assert reconciler.calls == 0

    assert reconciler.synced.wait(timeout=2)
    assert reconciler.calls == 1


def test_notify_before_start_is_ignored(make_coordinator):
    coordinator, reconciler = make_coordinator(debounce=0.01)
    coordinator.notify()
    time.sleep(0.1)
    assert reconciler.calls == 0


def test_stop_cancels_pending_debounce(make_coordinator):
    coordinator, reconciler = make_coordinator(debounce=0.1)
    coordinator.start()
    coordinator.notify()
    coordinator.stop()

    time.sleep(0.3)
    assert reconciler.calls == 0
    assert not coordinator.running


def test_poll_triggers_without_events(make_coordinator):
    coordinator, reconciler = make_coordinator(poll=0.05)
    coordinator.start()

    time.sleep(0.4)
    assert reconciler.calls >= 2


def test_trigger_sync_logs_catalog_errors(make_coordinator):
    coordinator, _ = make_coordinator()
    coordinator.reconciler = FakeReconciler(error=CatalogUnavailable(None, "http://catalog"))

    assert coordinator.trigger_sync() is None


def test_update_config_restarts_watch(make_coordinator, tmp_path):
    coordinator, reconciler = make_coordinator()
    coordinator.start()
    assert not coordinator.watching

    storage = tmp_path / "storage"
    storage.mkdir()
    new_config = _config(tmp_path, storage)
    coordinator.update_config(new_config)

    assert coordinator.running
    assert coordinator.watching
    assert coordinator.config is new_config
    assert reconciler.configs == [new_config]


def test_update_config_when_stopped_does_not_start(make_coordinator, tmp_path):
    coordinator, reconciler = make_coordinator()
    coordinator.update_config(_config(tmp_path, tmp_path))
    assert not coordinator.running
    assert len(reconciler.configs) == 1


def test_file_written_to_storage_triggers_sync(make_coordinator, tmp_path):
    storage = tmp_path / "storage"
    storage.mkdir()
    coordinator, reconciler = make_coordinator(storage=storage, debounce=0.1)
    coordinator.start()
    assert coordinator.watching

    (storage / "ABCD1234").mkdir()
    (storage / "ABCD1234" / "paper.pdf").write_bytes(b"%PDF")

    assert reconciler.synced.wait(timeout=5)

import os

import pytest

from backup import lock as backup_lock
from backup.errors import BackupInterrupted, ConfigurationError, ContentionError
from backup.lock import LockManager, read_owner


def test_acquire_writes_pid_and_release_removes(tmp_path):
    path = tmp_path / "backup.lock"
    manager = LockManager(path)

    handle = manager.acquire()

    assert read_owner(path) == os.getpid()
    assert handle.pid == os.getpid()
    assert manager.release(handle) is True
    assert not path.exists()


def test_live_owner_blocks_acquisition(tmp_path):
    path = tmp_path / "backup.lock"
    path.write_text(f"{os.getpid()}\n", encoding="utf-8")
    other = LockManager(path, pid=os.getpid() + 100000)

    with pytest.raises(ContentionError):
        other.acquire()

    assert read_owner(path) == os.getpid()


def test_stale_lock_is_reclaimed(tmp_path, monkeypatch):
    path = tmp_path / "backup.lock"
    path.write_text("999999\n", encoding="utf-8")
    monkeypatch.setattr(backup_lock, "_pid_alive", lambda pid: False)

    handle = LockManager(path).acquire()

    assert handle.pid == os.getpid()
    assert read_owner(path) == os.getpid()


def test_unparsable_lock_is_treated_as_stale(tmp_path):
    path = tmp_path / "backup.lock"
    path.write_text("not-a-pid", encoding="utf-8")

    handle = LockManager(path).acquire()

    assert read_owner(path) == handle.pid


def test_release_never_deletes_foreign_lock(tmp_path):
    path = tmp_path / "backup.lock"
    manager = LockManager(path)
    handle = manager.acquire()
    path.write_text("12345\n", encoding="utf-8")

    assert manager.release(handle) is False
    assert path.exists()
    assert read_owner(path) == 12345


def test_release_is_idempotent(tmp_path):
    path = tmp_path / "backup.lock"
    manager = LockManager(path)
    handle = manager.acquire()

    assert manager.release(handle) is True
    assert manager.release(handle) is False


@pytest.mark.parametrize("exc_type", [RuntimeError, BackupInterrupted, KeyboardInterrupt])
def test_hold_releases_on_every_exit_path(tmp_path, exc_type):
    path = tmp_path / "backup.lock"
    manager = LockManager(path)

    with pytest.raises(exc_type):
        with manager.hold():
            assert path.exists()
            raise exc_type()

    assert not path.exists()


def test_pid_alive_reports_current_process():
    assert backup_lock._pid_alive(os.getpid()) is True
    assert backup_lock._pid_alive(0) is False
    assert backup_lock._pid_alive(-5) is False


def test_reclaim_backs_off_when_a_rival_creates_first(tmp_path, monkeypatch):
    path = tmp_path / "backup.lock"
    path.write_text("999999\n", encoding="utf-8")
    rival = 4242
    monkeypatch.setattr(backup_lock, "_pid_alive", lambda pid: pid == rival)
    real_create = backup_lock._create_exclusive
    attempts = []

    def racing_create(target, pid):
        attempts.append(pid)
        if len(attempts) == 2:
            # The rival's exclusive create lands between our unlink and ours.
            real_create(target, rival)
        return real_create(target, pid)

    monkeypatch.setattr(backup_lock, "_create_exclusive", racing_create)

    with pytest.raises(ContentionError):
        LockManager(path).acquire()

    assert read_owner(path) == rival


def test_unwritable_lock_location_is_a_configuration_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("regular file", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        LockManager(blocker / "backup.lock").acquire()

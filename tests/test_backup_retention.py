import os
import random
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from backup import retention as retention_module
from backup.errors import DeletionError
from backup.records import archive_name, scan_backups
from backup.retention import RetentionPolicy, apply_retention, bucket_keys, plan_retention
from backup.types import BackupRecord


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def info(self, message, *args):  # pragma: no cover - simple recorder
        self.events.append(("INFO", message % args if args else message))

    def success(self, message, *args):  # pragma: no cover - simple recorder
        self.events.append(("SUCCESS", message % args if args else message))

    def error(self, message, *args):  # pragma: no cover - simple recorder
        self.events.append(("ERROR", message % args if args else message))


def _record(moment: datetime) -> BackupRecord:
    name = archive_name(moment)
    return BackupRecord(name=name, path=Path("/nonexistent") / name, created=moment)


def _create_archive(destination: Path, moment: datetime, *, sidecar: bool = True) -> Path:
    path = destination / archive_name(moment)
    path.write_bytes(b"archive " + moment.isoformat().encode("ascii"))
    if sidecar:
        (destination / f"{path.name}.sha256").write_text(f"deadbeef  {path.name}\n", encoding="utf-8")
    return path


def test_bucket_keys_use_iso_weeks():
    assert bucket_keys(datetime(2024, 1, 1, 9, 0)) == ("2024-01-01", "2024-01", "2024-01")
    # 2024-12-30 belongs to ISO week 1 of 2025.
    assert bucket_keys(datetime(2024, 12, 30, 9, 0)) == ("2024-12-30", "2025-01", "2024-12")


def test_same_week_days_fall_through_to_weekly_quota():
    records = [_record(datetime(2024, 1, day, 12, 0)) for day in (1, 2, 3)]
    policy = RetentionPolicy(daily_keep=2, weekly_keep=1, monthly_keep=1)

    decisions = plan_retention(records, policy)

    assert [(d.record.name, d.keep, d.bucket) for d in decisions] == [
        ("backup-2024-01-03-1200.tar.gz", True, "day"),
        ("backup-2024-01-02-1200.tar.gz", True, "day"),
        ("backup-2024-01-01-1200.tar.gz", True, "week"),
    ]


def test_older_same_day_archive_is_kept_by_weekly_quota():
    records = [_record(datetime(2024, 1, 3, 8, 0)), _record(datetime(2024, 1, 3, 18, 0))]
    policy = RetentionPolicy(daily_keep=1, weekly_keep=1, monthly_keep=0)

    decisions = plan_retention(records, policy)

    assert [(d.record.name, d.bucket) for d in decisions] == [
        ("backup-2024-01-03-1800.tar.gz", "day"),
        ("backup-2024-01-03-0800.tar.gz", "week"),
    ]


def test_exhausted_quotas_drop_remaining_records():
    records = [_record(datetime(2024, 3, 1) - timedelta(days=offset)) for offset in range(10)]
    policy = RetentionPolicy(daily_keep=1, weekly_keep=0, monthly_keep=1)

    decisions = plan_retention(records, policy)

    kept = [d.record.name for d in decisions if d.keep]
    assert kept == ["backup-2024-03-01-0000.tar.gz", "backup-2024-02-29-0000.tar.gz"]


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_kept_count_never_exceeds_policy_total(seed):
    rng = random.Random(seed)
    start = datetime(2023, 6, 1)
    records = [_record(start + timedelta(minutes=rng.randrange(0, 60 * 24 * 200))) for _ in range(60)]
    policy = RetentionPolicy(daily_keep=rng.randrange(0, 5), weekly_keep=rng.randrange(0, 4), monthly_keep=rng.randrange(0, 4))

    decisions = plan_retention(records, policy)

    assert sum(1 for d in decisions if d.keep) <= policy.max_kept
    for bucket, attr in (("day", "day"), ("week", "week"), ("month", "month")):
        claimed = [getattr(d, attr) for d in decisions if d.bucket == bucket]
        assert len(claimed) == len(set(claimed))


def test_apply_retention_deletes_archive_and_sidecar(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    newest = _create_archive(destination, datetime(2024, 1, 10, 12, 0))
    older = _create_archive(destination, datetime(2024, 1, 9, 12, 0))
    (destination / "backup.log").write_text("log\n", encoding="utf-8")
    logger = StubLogger()

    summary = apply_retention(destination, RetentionPolicy(1, 0, 0), logger=logger)

    assert summary.kept == [newest.name]
    assert summary.removed == [older.name]
    assert not older.exists()
    assert not (destination / f"{older.name}.sha256").exists()
    assert newest.exists()
    assert (destination / "backup.log").exists()
    assert summary.freed_bytes > 0
    assert ("SUCCESS", f"Deleted old backup: {older.name}") in logger.events


def test_apply_retention_removes_every_sidecar_of_a_deleted_archive(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    _create_archive(destination, datetime(2024, 1, 2, 12, 0))
    older = _create_archive(destination, datetime(2024, 1, 1, 12, 0))
    stale = destination / f"{older.name}.md5"
    stale.write_text(f"cafe  {older.name}\n", encoding="utf-8")

    summary = apply_retention(destination, RetentionPolicy(1, 0, 0), logger=StubLogger())

    assert summary.removed == [older.name]
    assert not stale.exists()
    assert not (destination / f"{older.name}.sha256").exists()
    assert sorted(path.name for path in destination.iterdir()) == [
        "backup-2024-01-02-1200.tar.gz",
        "backup-2024-01-02-1200.tar.gz.sha256",
    ]


def test_apply_retention_is_idempotent(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    start = datetime(2024, 1, 1, 6, 0)
    for offset in range(0, 120, 3):
        _create_archive(destination, start + timedelta(days=offset, hours=offset % 5))
    policy = RetentionPolicy(daily_keep=3, weekly_keep=2, monthly_keep=2)

    first = apply_retention(destination, policy, logger=StubLogger())
    second = apply_retention(destination, policy, logger=StubLogger())

    assert first.removed
    assert second.removed == []
    assert second.kept == first.kept


def test_dry_run_deletes_nothing(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    for day in (1, 2, 3):
        _create_archive(destination, datetime(2024, 2, day, 12, 0))
    before = sorted(path.name for path in destination.iterdir())
    logger = StubLogger()

    summary = apply_retention(destination, RetentionPolicy(1, 0, 0), logger=logger, dry_run=True)

    assert sorted(path.name for path in destination.iterdir()) == before
    assert summary.removed == ["backup-2024-02-02-1200.tar.gz", "backup-2024-02-01-1200.tar.gz"]
    assert ("INFO", "DRY RUN: Would delete backup-2024-02-01-1200.tar.gz and its checksum") in logger.events


def test_failed_deletion_does_not_stop_the_sweep(tmp_path, monkeypatch):
    destination = tmp_path / "dest"
    destination.mkdir()
    for day in (1, 2, 3, 4):
        _create_archive(destination, datetime(2024, 2, day, 12, 0))
    original = retention_module._delete_record
    stuck = "backup-2024-02-02-1200.tar.gz"

    def flaky_delete(record):
        if record.name == stuck:
            raise DeletionError(f"Failed to delete {record.name}: permission denied")
        return original(record)

    monkeypatch.setattr(retention_module, "_delete_record", flaky_delete)
    logger = StubLogger()

    summary = apply_retention(destination, RetentionPolicy(1, 0, 0), logger=logger)

    assert summary.failed == [stuck]
    assert summary.removed == ["backup-2024-02-03-1200.tar.gz", "backup-2024-02-01-1200.tar.gz"]
    assert (destination / stuck).exists()
    assert any(level == "ERROR" and stuck in message for level, message in logger.events)


def test_scan_orders_by_embedded_timestamp_not_mtime(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    old = _create_archive(destination, datetime(2023, 12, 31, 23, 59))
    new = _create_archive(destination, datetime(2024, 1, 1, 0, 1))
    os.utime(new, (1_000_000, 1_000_000))
    os.utime(old, (2_000_000_000, 2_000_000_000))
    (destination / "backup-2024-13-01-0000.tar.gz").write_bytes(b"bad date")
    (destination / "notes.txt").write_text("ignored", encoding="utf-8")

    records = scan_backups(destination)

    assert [record.name for record in records] == [new.name, old.name]
    assert records[0].sidecar == destination / f"{new.name}.sha256"

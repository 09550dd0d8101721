import tarfile
from pathlib import Path

import pytest

from backup.errors import ArchiveNotFoundError, RestoreError, RestoreTargetError
from backup.restore import resolve_archive, restore_backup


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def info(self, message, *args):  # pragma: no cover - recorder
        self.events.append(("INFO", message % args if args else message))

    def success(self, message, *args):  # pragma: no cover - recorder
        self.events.append(("SUCCESS", message % args if args else message))


def _build_archive(destination: Path, source_root: Path) -> Path:
    source = source_root / "project"
    (source / "docs").mkdir(parents=True)
    (source / "docs" / "readme.txt").write_text("restore me\n", encoding="utf-8")
    (source / "main.py").write_text("print('hi')\n", encoding="utf-8")
    destination.mkdir(parents=True, exist_ok=True)
    archive = destination / "backup-2024-05-06-0700.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(source, arcname="project")
    return archive


def test_resolve_prefers_path_then_destination_name(tmp_path):
    destination = tmp_path / "dest"
    archive = _build_archive(destination, tmp_path / "src")

    assert resolve_archive(str(archive), tmp_path / "elsewhere") == archive.resolve()
    assert resolve_archive(archive.name, destination) == archive.resolve()


def test_resolve_unknown_archive_raises(tmp_path):
    with pytest.raises(ArchiveNotFoundError) as excinfo:
        resolve_archive("backup-1999-01-01-0000.tar.gz", tmp_path)

    assert isinstance(excinfo.value, RestoreError)
    assert "Restore file not found" in str(excinfo.value)


def test_restore_extracts_full_tree(tmp_path):
    destination = tmp_path / "dest"
    archive = _build_archive(destination, tmp_path / "src")
    target = tmp_path / "restored" / "nested"
    logger = StubLogger()

    result = restore_backup(archive.name, target, destination=destination, logger=logger)

    assert result["dry_run"] is False
    assert (target / "project" / "docs" / "readme.txt").read_text(encoding="utf-8") == "restore me\n"
    assert (target / "project" / "main.py").exists()
    assert logger.events[-1][0] == "SUCCESS"


def test_restore_dry_run_leaves_target_absent(tmp_path):
    destination = tmp_path / "dest"
    archive = _build_archive(destination, tmp_path / "src")
    target = tmp_path / "restored"
    logger = StubLogger()

    result = restore_backup(archive, target, destination=destination, logger=logger, dry_run=True)

    assert result["dry_run"] is True
    assert not target.exists()
    assert logger.events[0][1].startswith("DRY RUN: Would restore")


def test_restore_of_corrupt_archive_fails(tmp_path):
    destination = tmp_path / "dest"
    destination.mkdir()
    archive = destination / "backup-2024-05-06-0700.tar.gz"
    archive.write_bytes(b"\x1f\x8b definitely not gzip")

    with pytest.raises(RestoreError):
        restore_backup(archive.name, tmp_path / "restored", destination=destination, logger=StubLogger())


def test_restore_target_that_cannot_be_created(tmp_path):
    destination = tmp_path / "dest"
    archive = _build_archive(destination, tmp_path / "src")
    blocker = tmp_path / "blocker"
    blocker.write_text("regular file", encoding="utf-8")

    with pytest.raises(RestoreTargetError):
        restore_backup(archive, blocker / "inside", destination=destination, logger=StubLogger())

"""Public API for backup operations."""
from __future__ import annotations

import contextlib
import signal
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from .checksum import DigestProvider, select_digest_provider
from .config import BackupConfig
from .create import ArchiveCreator
from .errors import BackupError, BackupInterrupted, ConfigurationError
from .lock import LockManager
from .logs import BackupLogger
from .notify import Notifier
from .probe import SpaceProbe, select_space_probe
from .records import ARCHIVE_EXTENSION, ARCHIVE_PREFIX, list_backups
from .restore import resolve_archive, restore_backup
from .retention import apply_retention
from .types import BackupRunResult, BackupState, BackupSummary, RestoreResult, RestoreState
from .verify import ChecksumVerifier


def _stamp(archive: Path) -> str:
    name = archive.name
    if name.startswith(ARCHIVE_PREFIX):
        name = name[len(ARCHIVE_PREFIX) :]
    return name.removesuffix(f".{ARCHIVE_EXTENSION}")


def ensure_destination(config: BackupConfig) -> Path:
    try:
        config.destination.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Cannot create backup destination {config.destination}: {exc}") from exc
    if not config.destination.is_dir():
        raise ConfigurationError(f"Backup destination {config.destination} is not a directory")
    return config.destination


@contextlib.contextmanager
def handle_interrupts(signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM)) -> Iterator[None]:
    """Turn the given signals into :class:`BackupInterrupted` while active."""

    def _raise(signum, frame):  # noqa: ARG001 - signal handler signature
        raise BackupInterrupted(signum)

    previous = {}
    for signum in signals:
        previous[signum] = signal.signal(signum, _raise)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


class BackupService:
    """Coordinate locking, archiving, verification, retention, and restore."""

    def __init__(
        self,
        config: BackupConfig,
        *,
        logger: Optional[BackupLogger] = None,
        lock_manager: Optional[LockManager] = None,
        space_probe: Optional[SpaceProbe] = None,
        digest_provider: Optional[DigestProvider] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._logger = logger or BackupLogger(config.log_path)
        self._lock = lock_manager or LockManager(config.lock_path, logger=self._logger)
        self._probe = space_probe or select_space_probe()
        self._digest_provider = digest_provider
        self._clock = clock
        self._notifier = Notifier(config.notify_email, config.notification_path, clock=clock)
        self.states: List[object] = []

    # ------------------------------------------------------------------
    @property
    def config(self) -> BackupConfig:
        return self._config

    def _notify(self, subject: str, body: str, *, dry_run: bool) -> None:
        if not self._notifier.enabled:
            return
        if dry_run:
            self._logger.info("DRY RUN: Would notify %s: %s", self._config.notify_email, subject)
            return
        try:
            self._notifier.send(subject, body)
        except OSError as exc:
            self._logger.error("Failed to write notification to %s: %s", self._config.notification_path, exc)

    def _digest(self) -> DigestProvider:
        if self._digest_provider is None:
            self._digest_provider = select_digest_provider(self._config.checksum_algo, logger=self._logger)
        return self._digest_provider

    # ------------------------------------------------------------------
    def run_backup(self, source: Path, *, dry_run: bool = False) -> BackupRunResult:
        states: List[BackupState] = [BackupState.INIT]
        self.states = states
        source = Path(source).expanduser()
        creator = ArchiveCreator(self._config.destination, logger=self._logger, probe=self._probe, clock=self._clock)
        archive = creator.target_path()
        try:
            ensure_destination(self._config)
            with self._lock.hold():
                states.append(BackupState.LOCK_ACQUIRED)
                verifier = ChecksumVerifier(self._digest(), logger=self._logger)

                archive = creator.create(source, self._config.exclude_patterns, dry_run=dry_run)
                states.append(BackupState.ARCHIVED)

                sidecar = verifier.compute_and_store(archive, dry_run=dry_run)
                states.append(BackupState.CHECKSUMMED)

                verifier.check(archive, sidecar, dry_run=dry_run)
                states.append(BackupState.VERIFIED)

                retention = apply_retention(
                    self._config.destination,
                    self._config.retention,
                    logger=self._logger,
                    dry_run=dry_run,
                )
                states.append(BackupState.RETAINED)

                self._logger.info("Backup job finished for %s", source)
                self._notify(
                    f"Backup completed: {archive.name}",
                    f"Backup completed for {source} at {_stamp(archive)}",
                    dry_run=dry_run,
                )
                states.append(BackupState.DONE)
        except (BackupInterrupted, KeyboardInterrupt):
            states.append(BackupState.INTERRUPTED)
            self._logger.info("Interrupted")
            raise
        except BackupError as exc:
            states.append(BackupState.FAILED)
            self._logger.log(exc.log_level, "%s", exc)
            self._notify(f"Backup failed: {archive.name}", f"Backup failed for {source}: {exc}", dry_run=dry_run)
            raise
        except Exception as exc:
            states.append(BackupState.FAILED)
            self._logger.error("Backup failed for %s: %s", source, exc)
            self._notify(f"Backup failed: {archive.name}", f"Backup failed for {source}: {exc}", dry_run=dry_run)
            raise

        return BackupRunResult(
            archive_path=archive,
            sidecar_path=None if dry_run else sidecar,
            dry_run=dry_run,
            states=list(states),
            retention=retention,
        )

    # ------------------------------------------------------------------
    def run_restore(self, archive_ref: str | Path, target_dir: Path, *, dry_run: bool = False) -> RestoreResult:
        states: List[RestoreState] = [RestoreState.INIT]
        self.states = states
        target = Path(target_dir).expanduser()
        label = Path(str(archive_ref)).name
        try:
            with self._lock.hold():
                states.append(RestoreState.LOCK_ACQUIRED)
                archive = resolve_archive(archive_ref, self._config.destination)
                label = archive.name
                restore_backup(
                    archive,
                    target,
                    destination=self._config.destination,
                    logger=self._logger,
                    dry_run=dry_run,
                )
                states.append(RestoreState.RESTORED)
                self._notify(f"Restore success: {label}", f"Restore completed to {target}", dry_run=dry_run)
        except (BackupInterrupted, KeyboardInterrupt):
            states.append(RestoreState.INTERRUPTED)
            self._logger.info("Interrupted")
            raise
        except BackupError as exc:
            states.append(RestoreState.FAILED)
            self._logger.log(exc.log_level, "%s", exc)
            self._notify(f"Restore failed: {label}", f"Restore failed for {archive_ref}", dry_run=dry_run)
            raise
        except Exception as exc:
            states.append(RestoreState.FAILED)
            self._logger.error("Restore failed for %s: %s", archive_ref, exc)
            self._notify(f"Restore failed: {label}", f"Restore failed for {archive_ref}", dry_run=dry_run)
            raise

        return RestoreResult(archive_path=archive, target_dir=target, dry_run=dry_run, states=list(states))

    # ------------------------------------------------------------------
    def list_backups(self) -> List[BackupSummary]:
        return list_backups(self._config.destination)


__all__ = [
    "BackupError",
    "BackupService",
    "ensure_destination",
    "handle_interrupts",
]

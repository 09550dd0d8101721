"""Checksum sidecars and archive integrity checks."""
from __future__ import annotations

import tarfile
import zlib
from pathlib import Path
from typing import Optional

from .checksum import DigestProvider, provider_for_sidecar
from .errors import CorruptArchiveError, IntegrityError
from .logs import BackupLogger
from .records import sidecar_path

_CHUNK = 1024 * 1024


def render_sidecar(digest: str, archive: Path) -> bytes:
    return f"{digest}  {archive.name}\n".encode("utf-8")


class ChecksumVerifier:
    """Write digest sidecars, verify them, and run the decode test."""

    def __init__(self, provider: DigestProvider, *, logger: BackupLogger) -> None:
        self._provider = provider
        self._logger = logger

    @property
    def provider(self) -> DigestProvider:
        return self._provider

    def sidecar_for(self, archive: Path) -> Path:
        return sidecar_path(archive, self._provider.name)

    def compute_and_store(self, archive: Path, *, dry_run: bool = False) -> Path:
        sidecar = self.sidecar_for(archive)
        if dry_run:
            self._logger.info("DRY RUN: Would compute checksum with %s", self._provider.name)
            self._logger.info("DRY RUN: Would create checksum file: %s", sidecar)
            return sidecar
        digest = self._provider.hexdigest(archive)
        sidecar.write_bytes(render_sidecar(digest, archive))
        self._logger.success("Checksum created: %s", sidecar.name)
        return sidecar

    def verify(self, archive: Path, sidecar: Path) -> bool:
        """Recompute the digest and compare it byte-for-byte with *sidecar*."""

        if sidecar.suffix.lstrip(".").lower() == self._provider.name:
            provider = self._provider
        else:
            provider = provider_for_sidecar(sidecar)
        try:
            stored = sidecar.read_bytes()
        except FileNotFoundError:
            return False
        return render_sidecar(provider.hexdigest(archive), archive) == stored

    def check(self, archive: Path, sidecar: Path, *, dry_run: bool = False) -> None:
        if dry_run:
            self._logger.info("DRY RUN: Would verify checksum and attempt archive extraction test")
            return
        if not self.verify(archive, sidecar):
            raise IntegrityError(f"Checksum mismatch for {archive.name}!")
        self._logger.info("Checksum verified successfully")
        self.decode_test(archive)

    def decode_test(self, archive: Path) -> Optional[str]:
        """List every entry, then read the first regular file into a discard sink.

        Returns the name of the entry read, or ``None`` for an empty archive.
        """

        try:
            with tarfile.open(archive, "r:*") as tar:
                members = tar.getmembers()
                self._logger.info("Archive list OK")
                if not members:
                    self._logger.info("Archive appears empty")
                    return None
                first = next((member for member in members if member.isfile()), None)
                if first is None:
                    self._logger.success("Archive extraction test passed")
                    return members[0].name
                stream = tar.extractfile(first)
                if stream is None:
                    raise CorruptArchiveError(f"Archive extraction test failed for {first.name}")
                with stream:
                    for _chunk in iter(lambda: stream.read(_CHUNK), b""):
                        pass
        except CorruptArchiveError:
            raise
        except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
            raise CorruptArchiveError(f"Archive is corrupted ({archive.name}): {exc}") from exc
        self._logger.success("Archive extraction test passed")
        return first.name


__all__ = ["ChecksumVerifier", "render_sidecar"]

"""Digest providers, negotiated once from an ordered preference list."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence

from .errors import ChecksumToolError
from .logs import BackupLogger

FALLBACK_ALGORITHMS: Sequence[str] = ("sha256", "md5", "sha1")
_CHUNK = 1024 * 1024


class DigestProvider(Protocol):
    name: str

    def hexdigest(self, path: Path) -> str: ...


class HashlibDigest:
    """Digest strategy backed by a :mod:`hashlib` algorithm."""

    def __init__(self, name: str) -> None:
        self.name = name

    @staticmethod
    def supported(name: str) -> bool:
        if name not in hashlib.algorithms_available:
            return False
        try:
            hashlib.new(name)
        except ValueError:
            return False
        return True

    def hexdigest(self, path: Path) -> str:
        digest = hashlib.new(self.name)
        with Path(path).open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def __repr__(self) -> str:
        return f"HashlibDigest({self.name!r})"


def candidate_algorithms(preferred: Optional[str]) -> List[str]:
    ordered: List[str] = []
    for name in ([preferred] if preferred else []) + list(FALLBACK_ALGORITHMS):
        key = str(name).strip().lower()
        if key and key not in ordered:
            ordered.append(key)
    return ordered


def select_digest_provider(
    preferred: Optional[str],
    *,
    logger: Optional[BackupLogger] = None,
    candidates: Optional[Iterable[str]] = None,
) -> DigestProvider:
    """Return the first usable digest strategy, logging any fallback."""

    names = list(candidates) if candidates is not None else candidate_algorithms(preferred)
    for name in names:
        if HashlibDigest.supported(name):
            if logger is not None and preferred and name != str(preferred).strip().lower():
                logger.info("Checksum algorithm %s unavailable, falling back to %s", preferred, name)
            return HashlibDigest(name)
    raise ChecksumToolError(f"No checksum tool available ({', '.join(names) or 'none'} requested)")


def provider_for_sidecar(sidecar: Path) -> DigestProvider:
    """Return the strategy matching the algorithm named by *sidecar*'s extension."""

    algorithm = sidecar.suffix.lstrip(".").lower()
    if not algorithm or not HashlibDigest.supported(algorithm):
        raise ChecksumToolError(f"No checksum tool available for {sidecar.name}")
    return HashlibDigest(algorithm)


__all__ = [
    "DigestProvider",
    "FALLBACK_ALGORITHMS",
    "HashlibDigest",
    "candidate_algorithms",
    "provider_for_sidecar",
    "select_digest_provider",
]

"""Retention policy enforcement for backups.

Archives are walked newest first. Each one is kept by the first tier whose
bucket key is still unclaimed and whose quota is not exhausted, in the order
day, week, month; everything else is deleted together with its sidecar.

An older archive whose day was already claimed by a newer archive on the
same day may still be kept by the weekly or monthly tier.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from .errors import DeletionError
from .logs import BackupLogger
from .records import SIDECAR_EXTENSIONS, scan_backups, sidecar_path
from .types import BackupRecord, RetentionDecision, RetentionSummary


@dataclass(frozen=True, slots=True)
class RetentionPolicy:
    daily_keep: int = 7
    weekly_keep: int = 4
    monthly_keep: int = 3

    @property
    def max_kept(self) -> int:
        return self.daily_keep + self.weekly_keep + self.monthly_keep


def bucket_keys(created: datetime) -> Tuple[str, str, str]:
    """Return the ``(day, week, month)`` keys for a timestamp."""

    day = created.date()
    iso_year, iso_week, _ = day.isocalendar()
    return day.isoformat(), f"{iso_year}-{iso_week:02d}", f"{day.year}-{day.month:02d}"


def _newest_first(records: Iterable[BackupRecord]) -> List[BackupRecord]:
    return sorted(records, key=lambda record: (record.created, record.name), reverse=True)


def plan_retention(records: Iterable[BackupRecord], policy: RetentionPolicy) -> List[RetentionDecision]:
    claimed_days: Set[str] = set()
    claimed_weeks: Set[str] = set()
    claimed_months: Set[str] = set()
    daily = weekly = monthly = 0

    decisions: List[RetentionDecision] = []
    for record in _newest_first(records):
        day, week, month = bucket_keys(record.created)
        bucket: Optional[str] = None
        if day not in claimed_days and daily < policy.daily_keep:
            claimed_days.add(day)
            daily += 1
            bucket = "day"
        elif week not in claimed_weeks and weekly < policy.weekly_keep:
            claimed_weeks.add(week)
            weekly += 1
            bucket = "week"
        elif month not in claimed_months and monthly < policy.monthly_keep:
            claimed_months.add(month)
            monthly += 1
            bucket = "month"
        decisions.append(
            RetentionDecision(
                record=record,
                keep=bucket is not None,
                bucket=bucket,
                day=day,
                week=week,
                month=month,
            )
        )
    return decisions


def _delete_record(record: BackupRecord) -> int:
    try:
        size = record.path.stat().st_size
    except OSError:
        size = 0
    try:
        record.path.unlink()
        for extension in SIDECAR_EXTENSIONS:
            sidecar_path(record.path, extension).unlink(missing_ok=True)
    except OSError as exc:
        raise DeletionError(f"Failed to delete {record.name}: {exc}") from exc
    return int(size)


def apply_retention(
    destination: Path,
    policy: RetentionPolicy,
    *,
    logger: BackupLogger,
    dry_run: bool = False,
) -> RetentionSummary:
    if dry_run:
        logger.info("DRY RUN: Retention policy would be applied")
    else:
        logger.info(
            "Applying retention policy: daily=%s, weekly=%s, monthly=%s",
            policy.daily_keep,
            policy.weekly_keep,
            policy.monthly_keep,
        )

    summary = RetentionSummary(dry_run=dry_run)
    for decision in plan_retention(scan_backups(destination), policy):
        name = decision.record.name
        if decision.keep:
            summary.kept.append(name)
            if dry_run:
                logger.info("DRY RUN: Would keep %s", name)
            else:
                logger.info("Keeping %s", name)
            continue
        if dry_run:
            summary.removed.append(name)
            logger.info("DRY RUN: Would delete %s and its checksum", name)
            continue
        logger.info("Deleting old backup: %s", name)
        try:
            summary.freed_bytes += _delete_record(decision.record)
        except DeletionError as exc:
            summary.failed.append(name)
            logger.error("%s", exc)
            continue
        summary.removed.append(name)
        logger.success("Deleted old backup: %s", name)
    return summary


__all__ = ["RetentionPolicy", "apply_retention", "bucket_keys", "plan_retention"]

"""Command-line entry point: ``backup``, ``list`` and ``restore``."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from backup.api import BackupService, ensure_destination, handle_interrupts
from backup.config import BackupConfig
from backup.errors import BackupError, BackupInterrupted
from backup.logs import BackupLogger
from backup.records import format_listing
from core.settings import SettingsFileError, load_settings, unknown_settings_keys

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Automated directory backups with checksums, verification and tiered retention."
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Settings file (.json or KEY=value backup.config). Default: first one found on the search path.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    backup_cmd = commands.add_parser("backup", help="Archive a source directory into the destination")
    backup_cmd.add_argument("source", type=Path, help="Directory to back up")
    backup_cmd.add_argument("--dry-run", action="store_true", help="Log the planned actions without changing anything")

    commands.add_parser("list", help="List archives in the destination")

    restore_cmd = commands.add_parser("restore", help="Extract an archive into a directory")
    restore_cmd.add_argument("archive", help="Archive filename (inside the destination) or path")
    restore_cmd.add_argument("--to", dest="target", type=Path, required=True, help="Directory to restore into")
    restore_cmd.add_argument("--dry-run", action="store_true", help="Report the restore without extracting")
    return parser.parse_args(argv)


def _load_config(config_path: Optional[str]) -> tuple[BackupConfig, list[str]]:
    settings = load_settings(config_path)
    return BackupConfig.from_settings(settings), unknown_settings_keys(settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config, unknown = _load_config(args.config)
        ensure_destination(config)
    except (SettingsFileError, BackupError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    if args.command == "list":
        service = BackupService(config, logger=BackupLogger(config.log_path, echo=False))
        print(format_listing(config.destination, service.list_backups()))
        return EXIT_OK

    logger = BackupLogger(config.log_path)
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
    service = BackupService(config, logger=logger)
    try:
        with handle_interrupts():
            if args.command == "backup":
                service.run_backup(args.source, dry_run=args.dry_run)
            else:
                service.run_restore(args.archive, args.target, dry_run=args.dry_run)
    except (BackupInterrupted, KeyboardInterrupt):
        return EXIT_CANCELLED
    except (BackupError, OSError):
        # Already logged by the service.
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

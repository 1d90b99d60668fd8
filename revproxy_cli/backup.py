"""
Snapshots of the nginx config and hosts file.

A snapshot is taken right before every mutation so a failed `nginx -t` can
be rolled back. Snapshots are never deleted here.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .errors import BackupError
from .files import LocalFileAccess

logger = logging.getLogger("revproxy.backup")

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
_CONFIG_BACKUP = re.compile(r"^nginx_(?P<ts>\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}(?:-\d+)?)\.conf$")


@dataclass(frozen=True)
class BackupSnapshot:
    config_copy_path: Path
    hosts_copy_path: Path
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "config_copy_path": str(self.config_copy_path),
            "hosts_copy_path": str(self.hosts_copy_path),
            "timestamp": self.timestamp,
        }


def format_timestamp(now: datetime | None = None) -> str:
    """Second-resolution UTC timestamp that is safe in file names and sorts by time"""
    now = now or datetime.now(timezone.utc)
    return now.strftime(TIMESTAMP_FORMAT)


def _snapshot_paths(backup_dir: Path, timestamp: str) -> tuple[Path, Path]:
    return (backup_dir / f"nginx_{timestamp}.conf", backup_dir / f"hosts_{timestamp}")


def create_snapshot(
    config_path: Path,
    hosts_path: Path,
    backup_dir: Path,
    files=None,
    now: datetime | None = None,
) -> BackupSnapshot:
    """
    Copy both managed files into backup_dir.

    Two snapshots taken within the same second get a numeric suffix so the
    earlier one is never overwritten.

    Raises:
        BackupError: a source file is unreadable or backup_dir can't be created
    """
    files = files or LocalFileAccess()
    backup_dir = Path(backup_dir)

    base = format_timestamp(now)
    timestamp = base
    counter = 0
    try:
        files.ensure_dir(backup_dir)
        while any(files.exists(p) for p in _snapshot_paths(backup_dir, timestamp)):
            counter += 1
            timestamp = f"{base}-{counter}"

        config_copy, hosts_copy = _snapshot_paths(backup_dir, timestamp)
        files.copy(Path(config_path), config_copy)
        files.copy(Path(hosts_path), hosts_copy)
    except OSError as e:
        raise BackupError(
            f"Failed to create backup: {e}",
            {"backup_dir": str(backup_dir), "config": str(config_path), "hosts": str(hosts_path)},
        ) from e

    logger.info("Created snapshot %s in %s", timestamp, backup_dir)
    return BackupSnapshot(config_copy_path=config_copy, hosts_copy_path=hosts_copy, timestamp=timestamp)


def restore_snapshot(snapshot: BackupSnapshot, config_path: Path, hosts_path: Path, files=None) -> None:
    """
    Copy the snapshot files back over the live paths.

    Raises:
        BackupError: a backup file is missing or a live path can't be written
    """
    files = files or LocalFileAccess()

    for copy_path in (snapshot.config_copy_path, snapshot.hosts_copy_path):
        if not files.exists(copy_path):
            raise BackupError(f"Backup file is missing: {copy_path}", {"timestamp": snapshot.timestamp})

    try:
        files.copy(snapshot.config_copy_path, Path(config_path))
        files.copy(snapshot.hosts_copy_path, Path(hosts_path))
    except OSError as e:
        raise BackupError(f"Failed to restore from backup: {e}", {"timestamp": snapshot.timestamp}) from e

    logger.info("Restored snapshot %s", snapshot.timestamp)


def list_snapshots(backup_dir: Path, files=None) -> list[BackupSnapshot]:
    """Complete snapshots in backup_dir, oldest first"""
    files = files or LocalFileAccess()
    backup_dir = Path(backup_dir)

    snapshots = []
    for path in files.list_dir(backup_dir):
        match = _CONFIG_BACKUP.match(path.name)
        if not match:
            continue
        timestamp = match.group("ts")
        config_copy, hosts_copy = _snapshot_paths(backup_dir, timestamp)
        if files.exists(hosts_copy):
            snapshots.append(BackupSnapshot(config_copy, hosts_copy, timestamp))

    snapshots.sort(key=lambda s: _sort_key(s.timestamp))
    return snapshots


def _sort_key(timestamp: str) -> tuple[str, int]:
    base, suffix = timestamp[:19], timestamp[20:]
    return (base, int(suffix) if suffix else 0)


def find_snapshot(backup_dir: Path, timestamp: str | None = None, files=None) -> BackupSnapshot | None:
    """Find a snapshot by timestamp, or the latest one if timestamp is None"""
    snapshots = list_snapshots(backup_dir, files)
    if not snapshots:
        return None
    if timestamp is None:
        return snapshots[-1]
    for snapshot in snapshots:
        if snapshot.timestamp == timestamp:
            return snapshot
    return None

"""
Reverse proxy lifecycle: add, remove, list, status and restore.

Every mutating operation runs the same sequence:

    validating -> checking existence -> backing up -> mutating
        -> server validating -> (committed | rolling back) -> reloading -> done

A snapshot of both files is taken before anything is written. If `nginx -t`
rejects the result, the snapshot is copied back so both files are
byte-identical to what they were before the call. A failed reload is not
rolled back: the config on disk is valid, only the running nginx is stale.

No locking is done. The manager assumes it is the only writer of the nginx
config and hosts file for the duration of an operation.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .backup import BackupSnapshot, create_snapshot, find_snapshot, list_snapshots, restore_snapshot
from .config import Settings
from .errors import (
    ERROR_BACKUP_FAILED,
    ERROR_DUPLICATE_ENTRY,
    ERROR_INVALID_INPUT,
    ERROR_IO,
    ERROR_NO_INSERTION_POINT,
    ERROR_NOT_FOUND,
    ERROR_RELOAD_FAILED,
    ERROR_SERVER_VALIDATION_FAILED,
    BackupError,
    ErrorCode,
    RollbackError,
    format_error_message,
)
from .files import LocalFileAccess
from .nginx import (
    add_hosts_line,
    brace_balance,
    find_entry_span,
    find_insertion_point,
    has_entry,
    insert_block,
    iter_entry_spans,
    list_hosts_entries,
    list_server_names,
    remove_block_for,
    remove_hosts_line,
    render_hosts_line,
    render_server_block,
)
from .oracle import NginxOracle, ServerOracle
from .validation import validate_hostname, validate_port

logger = logging.getLogger("revproxy.manager")


@dataclass
class OperationResult:
    success: bool
    message: str
    error: str | None = None
    code: ErrorCode | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {}
        for key, value in self.data.items():
            if isinstance(value, BackupSnapshot):
                value = value.to_dict()
            elif isinstance(value, Path):
                value = str(value)
            data[key] = value
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error:
            payload["error"] = self.error
        if self.code:
            payload["code"] = self.code
        if data:
            payload["data"] = data
        return payload


def _failure(message: str, code: ErrorCode, error: str | None = None, **data) -> OperationResult:
    return OperationResult(success=False, message=message, error=error, code=code, data=data)


class ReverseProxyManager:
    """Keep nginx server blocks and hosts lines in step"""

    def __init__(self, settings: Settings, files=None, oracle: ServerOracle | None = None):
        self.settings = settings
        self.files = files or LocalFileAccess()
        self.oracle = oracle or NginxOracle(settings.nginx_bin, settings.nginx_conf)

    @property
    def config_path(self) -> Path:
        return self.settings.nginx_conf

    @property
    def hosts_path(self) -> Path:
        return self.settings.hosts_file

    # ─────────────────────────────────────────────────────────────
    # Add / Remove
    # ─────────────────────────────────────────────────────────────

    def add_proxy(self, host_name: str, port: int | None = None) -> OperationResult:
        """Register host_name -> 127.0.0.1:port in nginx and the hosts file"""
        port = self.settings.local_port if port is None else port
        if isinstance(host_name, str):
            # nginx matches server names case-insensitively
            host_name = host_name.lower()
        logger.debug("add %s:%s: validating", host_name, port)

        host_check = validate_hostname(host_name)
        if not host_check:
            return _failure("Invalid host name", ERROR_INVALID_INPUT, host_check.message, reason=host_check.reason)
        port_check = validate_port(port)
        if not port_check:
            return _failure("Invalid port", ERROR_INVALID_INPUT, port_check.message, reason=port_check.reason)

        logger.debug("add %s: checking existence", host_name)
        texts = self._read_managed_files()
        if isinstance(texts, OperationResult):
            return texts
        config_text, hosts_text = texts

        if has_entry(config_text, host_name):
            return _failure(f"Proxy entry for {host_name} already exists", ERROR_DUPLICATE_ENTRY, host_name=host_name)

        snapshot = self._snapshot(host_name)
        if isinstance(snapshot, OperationResult):
            return snapshot

        at_line = find_insertion_point(config_text)
        if at_line is None:
            return _failure(
                "Could not find suitable insertion point in nginx configuration",
                ERROR_NO_INSERTION_POINT,
                f"No closed 'http {{' block in {self.config_path}",
                snapshot=snapshot,
            )

        logger.debug("add %s: mutating", host_name)
        new_config = insert_block(config_text, render_server_block(host_name, port), at_line)
        try:
            self.files.write_text(self.config_path, new_config)
            self.files.write_text(self.hosts_path, add_hosts_line(hosts_text, render_hosts_line(host_name)))
        except OSError as e:
            logger.error("Write failed while adding %s: %s", host_name, e)
            self._rollback(snapshot)
            return _failure(f"Failed to add proxy for {host_name}", ERROR_IO, str(e), snapshot=snapshot)
        logger.info("Added server block and hosts line for %s -> %s", host_name, port)

        return self._commit(
            snapshot,
            f"Successfully added proxy for {host_name}:{port}",
            host_name=host_name,
            port=port,
        )

    def remove_proxy(self, host_name: str) -> OperationResult:
        """Remove the server block and hosts line for host_name"""
        host_name = host_name.lower()
        logger.debug("remove %s: checking existence", host_name)
        texts = self._read_managed_files()
        if isinstance(texts, OperationResult):
            return texts
        config_text, hosts_text = texts

        if not has_entry(config_text, host_name):
            return _failure(f"No proxy entry found for {host_name}", ERROR_NOT_FOUND, host_name=host_name)

        if find_entry_span(config_text, host_name) is None:
            # server_name exists but the block was not written by revproxy
            return _failure(
                f"No proxy entry found for {host_name}",
                ERROR_NOT_FOUND,
                f"server_name {host_name} is declared in a block revproxy did not create; edit it by hand",
                host_name=host_name,
            )

        snapshot = self._snapshot(host_name)
        if isinstance(snapshot, OperationResult):
            return snapshot

        logger.debug("remove %s: mutating", host_name)
        try:
            self.files.write_text(self.config_path, remove_block_for(config_text, host_name))
            self.files.write_text(self.hosts_path, remove_hosts_line(hosts_text, host_name))
        except OSError as e:
            logger.error("Write failed while removing %s: %s", host_name, e)
            self._rollback(snapshot)
            return _failure(f"Failed to remove proxy for {host_name}", ERROR_IO, str(e), snapshot=snapshot)
        logger.info("Removed server block and hosts line for %s", host_name)

        return self._commit(snapshot, f"Successfully removed proxy for {host_name}", host_name=host_name)

    # ─────────────────────────────────────────────────────────────
    # Read-only
    # ─────────────────────────────────────────────────────────────

    def list_proxies(self) -> OperationResult:
        """List server_name declarations and hosts entries side by side.

        The two lists are reported as found; they are not reconciled.
        """
        texts = self._read_managed_files()
        if isinstance(texts, OperationResult):
            return texts
        config_text, hosts_text = texts

        return OperationResult(
            success=True,
            message="Proxy entries retrieved successfully",
            data={
                "nginx": list_server_names(config_text),
                "hosts": list_hosts_entries(hosts_text),
            },
        )

    def status(self) -> OperationResult:
        """Report paths, nginx validity and drift between the two files"""
        data: dict[str, Any] = {
            "settings": self.settings.to_dict(),
            "config_exists": self.files.exists(self.config_path),
            "hosts_exists": self.files.exists(self.hosts_path),
            "snapshots": len(list_snapshots(self.settings.backup_dir, self.files)),
        }

        if data["config_exists"] and data["hosts_exists"]:
            texts = self._read_managed_files()
            if isinstance(texts, OperationResult):
                texts.data.update(data)
                return texts
            config_text, hosts_text = texts

            managed = [span.host_name for span in iter_entry_spans(config_text)]
            hosts_entries = set(list_hosts_entries(hosts_text))
            data.update(
                {
                    "managed": managed,
                    "missing_hosts_lines": [name for name in managed if name not in hosts_entries],
                    "unmanaged_server_names": [
                        name for name in list_server_names(config_text) if name not in managed
                    ],
                    "brace_balance": brace_balance(config_text),
                    "insertion_point": find_insertion_point(config_text),
                }
            )

        version = getattr(self.oracle, "version", None)
        data["nginx_version"] = version() if callable(version) else None

        try:
            data["config_valid"] = bool(self.oracle.validate())
        except Exception:
            logger.exception("nginx validation raised")
            data["config_valid"] = False

        return OperationResult(success=True, message="Status retrieved successfully", data=data)

    # ─────────────────────────────────────────────────────────────
    # Snapshots
    # ─────────────────────────────────────────────────────────────

    def list_backups(self) -> list[BackupSnapshot]:
        return list_snapshots(self.settings.backup_dir, self.files)

    def restore(self, timestamp: str | None = None) -> OperationResult:
        """Restore a snapshot (latest if timestamp is None), then validate and reload.

        The current files are snapshotted first so a rejected restore can be
        undone the same way a rejected add is.
        """
        chosen = find_snapshot(self.settings.backup_dir, timestamp, self.files)
        if chosen is None:
            wanted = timestamp or "any"
            return _failure(f"No backup found ({wanted})", ERROR_NOT_FOUND, timestamp=timestamp)

        current = self._snapshot(f"restore {chosen.timestamp}")
        if isinstance(current, OperationResult):
            return current

        try:
            restore_snapshot(chosen, self.config_path, self.hosts_path, self.files)
        except BackupError as e:
            self._rollback(current)
            return _failure("Failed to restore backup", ERROR_IO, format_error_message(e), snapshot=current)

        return self._commit(current, f"Restored backup {chosen.timestamp}", restored=chosen)

    # ─────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────

    def _read_managed_files(self) -> tuple[str, str] | OperationResult:
        """Read the nginx config and hosts file before anything is written"""
        try:
            return self.files.read_text(self.config_path), self.files.read_text(self.hosts_path)
        except (OSError, UnicodeError) as e:
            logger.error("Could not read managed files: %s", e)
            return _failure("Failed to read managed files", ERROR_IO, str(e))

    def _snapshot(self, label: str) -> BackupSnapshot | OperationResult:
        logger.debug("%s: backing up", label)
        try:
            return create_snapshot(self.config_path, self.hosts_path, self.settings.backup_dir, self.files)
        except BackupError as e:
            logger.error("Backup failed, nothing changed: %s", format_error_message(e))
            return _failure("Failed to create backup", ERROR_BACKUP_FAILED, format_error_message(e))

    def _commit(self, snapshot: BackupSnapshot, message: str, **data) -> OperationResult:
        data["snapshot"] = snapshot

        logger.debug("validating nginx config")
        try:
            valid = bool(self.oracle.validate())
        except Exception:
            logger.exception("nginx validation raised")
            valid = False

        if not valid:
            logger.warning("nginx rejected the new config, restoring snapshot %s", snapshot.timestamp)
            self._rollback(snapshot)
            return _failure(
                "Nginx configuration test failed. Changes reverted.",
                ERROR_SERVER_VALIDATION_FAILED,
                getattr(self.oracle, "last_output", None) or None,
                **data,
            )

        logger.debug("reloading nginx")
        try:
            reloaded = bool(self.oracle.reload())
        except Exception:
            logger.exception("nginx reload raised")
            reloaded = False

        if not reloaded:
            return _failure("Failed to reload nginx. Please reload manually.", ERROR_RELOAD_FAILED, **data)

        return OperationResult(success=True, message=message, data=data)

    def _rollback(self, snapshot: BackupSnapshot) -> None:
        """Restore snapshot; any failure here is fatal and re-raised."""
        try:
            restore_snapshot(snapshot, self.config_path, self.hosts_path, self.files)
        except BackupError as e:
            logger.critical("Rollback to %s failed, files may be inconsistent: %s", snapshot.timestamp, e)
            raise RollbackError(
                f"Failed to restore from backup {snapshot.timestamp}: {e.message}",
                snapshot=snapshot,
                details=e.details,
            ) from e

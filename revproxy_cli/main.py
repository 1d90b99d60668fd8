"""Main entry point for revproxy CLI"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import Settings, get_settings_file, load_settings, save_settings, validate_settings
from .errors import ERROR_RELOAD_FAILED, ConfigError, RollbackError, format_error_message
from .manager import OperationResult, ReverseProxyManager
from .output import (
    console,
    print_backups,
    print_entries,
    print_error,
    print_info,
    print_status,
    print_success,
    print_warning,
)
from .structured_logging import setup_logging

logger = logging.getLogger("revproxy.main")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ROLLBACK_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revproxy",
        description="Manage nginx reverse proxy entries and their hosts file lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"revproxy {__version__}")
    parser.add_argument("--config", "-c", help="Path to settings file (default: ~/.revproxy/config.yml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # setup command
    setup_parser = subparsers.add_parser("setup", help="Write the settings file")
    setup_parser.add_argument("--nginx-conf", help="Nginx config file path")
    setup_parser.add_argument("--hosts-file", help="Hosts file path")
    setup_parser.add_argument("--nginx-bin", help="Nginx binary path")
    setup_parser.add_argument("--port", "-p", type=int, dest="local_port", help="Default local port")
    setup_parser.add_argument("--backup-dir", help="Directory for backups")
    setup_parser.add_argument("--no-validate", action="store_true", help="Save even if paths do not exist")

    # add command
    add_parser = subparsers.add_parser("add", help="Add a reverse proxy entry")
    add_parser.add_argument("host", help="Host name (e.g., myapp.test)")
    add_parser.add_argument("--port", "-p", type=int, help="Local port number (default: from settings)")
    add_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # remove command
    remove_parser = subparsers.add_parser("remove", help="Remove a reverse proxy entry")
    remove_parser.add_argument("host", help="Host name to remove")
    remove_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # list command
    list_parser = subparsers.add_parser("list", help="List all reverse proxy entries")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # status command
    status_parser = subparsers.add_parser("status", help="Check settings and nginx config")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # backups command
    backups_parser = subparsers.add_parser("backups", help="List backups")
    backups_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # restore command
    restore_parser = subparsers.add_parser("restore", help="Restore a backup (latest if omitted)")
    restore_parser.add_argument("timestamp", nargs="?", help="Backup timestamp (see `revproxy backups`)")
    restore_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def _report(result: OperationResult, as_json: bool = False) -> bool:
    """Print an operation result; returns result.success"""
    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return result.success

    if result.success:
        print_success(result.message)
    else:
        print_error(result.message)
        if result.error:
            print_error(f"  Error: {result.error}")
        if result.code == ERROR_RELOAD_FAILED:
            print_warning("The new config is saved; run `nginx -s reload` to apply it")

    snapshot = result.data.get("snapshot")
    if snapshot is not None:
        print_info(f"Backup created: {snapshot.timestamp}")
    return result.success


def handle_setup(args, settings_file: Path) -> bool:
    """Merge flags into the current settings and save them"""
    current = load_settings(settings_file)
    overrides = {
        "nginx_conf": args.nginx_conf,
        "hosts_file": args.hosts_file,
        "nginx_bin": args.nginx_bin,
        "local_port": args.local_port,
        "backup_dir": args.backup_dir,
    }
    settings = Settings.from_dict(overrides, current)

    if not args.no_validate:
        problems = validate_settings(settings)
        if problems:
            print_error("Configuration validation failed:")
            for problem in problems:
                print_error(f"  {problem}")
            return False

    saved = save_settings(settings, settings_file)
    print_success("Configuration saved successfully!")
    print_info(f"Config file: {saved}")
    return True


def handle_list(manager: ReverseProxyManager, as_json: bool) -> bool:
    result = manager.list_proxies()
    if as_json or not result.success:
        return _report(result, as_json)
    print_entries(result.data["nginx"], result.data["hosts"])
    return True


def handle_status(manager: ReverseProxyManager, as_json: bool) -> bool:
    result = manager.status()
    if as_json or not result.success:
        return _report(result, as_json)
    print_status(result.data)
    return True


def handle_backups(manager: ReverseProxyManager, as_json: bool) -> bool:
    snapshots = manager.list_backups()
    if as_json:
        console.print_json(json.dumps([s.to_dict() for s in snapshots]))
    else:
        print_backups(snapshots)
    return True


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else None)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    settings_file = Path(args.config).expanduser() if args.config else get_settings_file()

    try:
        if args.command == "setup":
            return EXIT_OK if handle_setup(args, settings_file) else EXIT_FAILED

        manager = ReverseProxyManager(load_settings(settings_file))
        logger.debug("Using settings from %s", settings_file)

        if args.command == "add":
            success = _report(manager.add_proxy(args.host, args.port), args.json)
        elif args.command == "remove":
            success = _report(manager.remove_proxy(args.host), args.json)
        elif args.command == "list":
            success = handle_list(manager, args.json)
        elif args.command == "status":
            success = handle_status(manager, args.json)
        elif args.command == "backups":
            success = handle_backups(manager, args.json)
        elif args.command == "restore":
            success = _report(manager.restore(args.timestamp), args.json)
        else:
            parser.print_help()
            return EXIT_FAILED

        return EXIT_OK if success else EXIT_FAILED

    except RollbackError as e:
        print_error(f"Rollback failed: {format_error_message(e)}")
        if e.snapshot is not None:
            print_error(f"  Restore by hand from {e.snapshot.config_copy_path} and {e.snapshot.hosts_copy_path}")
        print_error("  The nginx config and hosts file may be out of sync.")
        return EXIT_ROLLBACK_FAILED
    except ConfigError as e:
        print_error(format_error_message(e))
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


def run() -> None:
    """Console script wrapper"""
    sys.exit(main())


if __name__ == "__main__":
    run()

"""
Rich-powered console output for revproxy

Provides styled tables, status panels, and consistent formatting.
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console(force_terminal=None)
err_console = Console(stderr=True, force_terminal=None)

# ASCII fallbacks when not attached to a terminal
_USE_ASCII = not sys.stdout.isatty()

STATUS_STYLES = {
    "ok": ("+" if _USE_ASCII else "✓", "green"),
    "error": ("x" if _USE_ASCII else "✗", "red"),
    "warning": ("!", "yellow"),
    "info": ("i" if _USE_ASCII else "ℹ", "blue"),
}


def print_success(message: str):
    """Print a success message"""
    icon, style = STATUS_STYLES["ok"]
    console.print(f"[{style}]{icon}[/{style}] {escape(message)}")


def print_error(message: str):
    """Print an error message to stderr"""
    icon, style = STATUS_STYLES["error"]
    err_console.print(f"[{style}]{icon}[/{style}] {escape(message)}", style="red")


def print_warning(message: str):
    """Print a warning message"""
    console.print(f"[yellow]![/yellow] {escape(message)}")


def print_info(message: str):
    """Print an info message"""
    icon, style = STATUS_STYLES["info"]
    console.print(f"[{style}]{icon}[/{style}] {escape(message)}")


def status_icon(status: str) -> Text:
    """Create a styled status icon"""
    icon, style = STATUS_STYLES.get(status, ("?", "dim"))
    return Text(icon, style=style)


def entries_table(nginx: list[str], hosts: list[str]) -> Table:
    """
    Create a table of server_name declarations and hosts entries.

    Each name appears once; the two columns show where it was found, so a
    name present in only one file stands out.
    """
    table = Table(title="Reverse Proxy Entries", show_header=True, header_style="bold cyan")

    table.add_column("Host name", style="bold")
    table.add_column("Nginx", justify="center")
    table.add_column("Hosts", justify="center")

    nginx_set, hosts_set = set(nginx), set(hosts)
    seen = []
    for name in [*nginx, *hosts]:
        if name not in seen:
            seen.append(name)

    for name in seen:
        in_nginx = status_icon("ok") if name in nginx_set else Text("-", style="dim")
        in_hosts = status_icon("ok") if name in hosts_set else Text("-", style="dim")
        table.add_row(name, in_nginx, in_hosts)

    return table


def backups_table(snapshots: list) -> Table:
    """Create a table of snapshots, newest first"""
    table = Table(title="Backups", show_header=True, header_style="bold")

    table.add_column("Timestamp", style="bold")
    table.add_column("Nginx config", style="dim")
    table.add_column("Hosts file", style="dim")

    for snapshot in reversed(snapshots):
        table.add_row(snapshot.timestamp, str(snapshot.config_copy_path), str(snapshot.hosts_copy_path))

    return table


def status_panel(data: dict) -> Panel:
    """
    Create a status panel from the manager's status data.

    Args:
        data: OperationResult.data of ReverseProxyManager.status()
    """
    settings = data.get("settings", {})
    lines = [
        Text(f"Nginx Config: {settings.get('nginx_conf')}"),
        Text(f"Hosts File: {settings.get('hosts_file')}"),
        Text(f"Nginx Binary: {settings.get('nginx_bin')}"),
        Text(f"Nginx Version: {data.get('nginx_version') or 'unknown'}"),
        Text(f"Default Port: {settings.get('local_port')}"),
        Text(f"Backup Directory: {settings.get('backup_dir')} ({data.get('snapshots', 0)} snapshots)"),
        Text(""),
    ]

    for key, label in (("config_exists", "Nginx config"), ("hosts_exists", "Hosts file")):
        if data.get(key):
            lines.append(Text.assemble(status_icon("ok"), f" {label} found"))
        else:
            lines.append(Text.assemble(status_icon("error"), f" {label} missing"))

    if data.get("config_valid"):
        lines.append(Text.assemble(status_icon("ok"), " Nginx configuration is valid"))
    else:
        lines.append(Text.assemble(status_icon("error"), " Nginx configuration has issues"))

    if "managed" in data:
        lines.append(Text(f"Managed entries: {len(data['managed'])}"))
        if data.get("insertion_point") is None:
            lines.append(Text.assemble(status_icon("warning"), " No closed 'http {' block found"))
        if data.get("brace_balance"):
            lines.append(Text.assemble(status_icon("warning"), f" Brace balance is {data['brace_balance']}"))
        for name in data.get("missing_hosts_lines", []):
            lines.append(Text.assemble(status_icon("warning"), f" {name} has no hosts line"))

    content = Text("\n").join(lines)
    return Panel(content, title="Reverse Proxy Manager Status", border_style="cyan")


def print_entries(nginx: list[str], hosts: list[str]):
    """Print the entries table"""
    if not nginx and not hosts:
        print_info("No reverse proxy entries found")
        return
    console.print(entries_table(nginx, hosts))


def print_backups(snapshots: list):
    if not snapshots:
        print_info("No backups found")
        return
    console.print(backups_table(snapshots))


def print_status(data: dict):
    """Print the status panel"""
    console.print(status_panel(data))

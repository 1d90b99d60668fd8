from rich.console import Console

from revproxy_cli import output
from revproxy_cli.backup import BackupSnapshot


def _render(renderable) -> str:
    console = Console(width=120, record=True)
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def test_entries_table_marks_missing_side():
    text = _render(output.entries_table(["app.test", "legacy.test"], ["app.test", "orphan.test"]))
    assert "app.test" in text
    assert "legacy.test" in text
    assert "orphan.test" in text
    assert text.count("app.test") == 1


def test_backups_table_newest_first():
    snapshots = [
        BackupSnapshot("/b/nginx_2024-01-01T00-00-00.conf", "/b/hosts_2024-01-01T00-00-00", "2024-01-01T00-00-00"),
        BackupSnapshot("/b/nginx_2024-02-01T00-00-00.conf", "/b/hosts_2024-02-01T00-00-00", "2024-02-01T00-00-00"),
    ]
    text = _render(output.backups_table(snapshots))
    assert text.index("2024-02-01T00-00-00") < text.index("2024-01-01T00-00-00")


def test_status_panel_warnings():
    data = {
        "settings": {"nginx_conf": "/etc/nginx/nginx.conf", "hosts_file": "/etc/hosts"},
        "config_exists": True,
        "hosts_exists": False,
        "snapshots": 3,
        "managed": ["app.test"],
        "missing_hosts_lines": ["app.test"],
        "brace_balance": 1,
        "insertion_point": None,
        "config_valid": False,
    }
    text = _render(output.status_panel(data))
    assert "(3 snapshots)" in text
    assert "Nginx Version: unknown" in text
    assert "Hosts file missing" in text
    assert "Nginx configuration has issues" in text
    assert "No closed 'http {' block found" in text
    assert "Brace balance is 1" in text
    assert "app.test has no hosts line" in text


def test_messages_are_not_markup(capsys):
    output.print_error("nginx: [emerg] unexpected end of file")
    assert "[emerg]" in capsys.readouterr().err


def test_print_entries_empty(capsys):
    output.print_entries([], [])
    assert "No reverse proxy entries found" in capsys.readouterr().out

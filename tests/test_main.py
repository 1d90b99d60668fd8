"""CLI tests: run main() against real files in tmp_path with nginx faked out"""

from pathlib import Path

import pytest
import yaml

import revproxy_cli.manager as manager_module
from revproxy_cli.config import ENV_OVERRIDES
from revproxy_cli.main import EXIT_FAILED, EXIT_OK, EXIT_ROLLBACK_FAILED, main


class FakeNginx:
    valid = True
    reloaded = True
    before_validate = None

    def __init__(self, nginx_bin, config_path=None):
        self.nginx_bin = nginx_bin
        self.config_path = config_path
        self.last_output = ""

    def validate(self):
        if FakeNginx.before_validate:
            FakeNginx.before_validate()
        return FakeNginx.valid

    def reload(self):
        return FakeNginx.reloaded


@pytest.fixture
def env(tmp_path: Path, monkeypatch):
    for env_var in [*ENV_OVERRIDES.values(), "REVPROXY_CONFIG", "REVPROXY_LOG_FILE", "REVPROXY_LOG_FORMAT"]:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setattr(FakeNginx, "valid", True)
    monkeypatch.setattr(FakeNginx, "reloaded", True)
    monkeypatch.setattr(FakeNginx, "before_validate", None)
    monkeypatch.setattr(manager_module, "NginxOracle", FakeNginx)

    conf = tmp_path / "nginx.conf"
    hosts = tmp_path / "hosts"
    nginx = tmp_path / "nginx"
    conf.write_text("http {\n}\n")
    hosts.write_text("127.0.0.1 localhost\n")
    nginx.write_text("")

    settings_file = tmp_path / "config.yml"
    settings_file.write_text(
        yaml.safe_dump(
            {
                "nginx_conf": str(conf),
                "hosts_file": str(hosts),
                "nginx_bin": str(nginx),
                "local_port": 8004,
                "backup_dir": str(tmp_path / "backups"),
            }
        )
    )
    return {"conf": conf, "hosts": hosts, "config": str(settings_file), "backups": tmp_path / "backups"}


def test_no_command_prints_help(capsys):
    assert main([]) == EXIT_OK
    assert "usage" in capsys.readouterr().out.lower()


def test_add_list_remove(env, capsys):
    assert main(["-c", env["config"], "add", "app.test", "--port", "3000"]) == EXIT_OK
    assert "server_name app.test;" in env["conf"].read_text()
    assert env["hosts"].read_text() == "127.0.0.1 localhost\n127.0.0.1 app.test\n"
    out = capsys.readouterr().out
    assert "Successfully added proxy for app.test:3000" in out
    assert "Backup created" in out

    assert main(["-c", env["config"], "list"]) == EXIT_OK
    assert "app.test" in capsys.readouterr().out

    assert main(["-c", env["config"], "remove", "app.test"]) == EXIT_OK
    assert env["conf"].read_text() == "http {\n}\n"
    assert env["hosts"].read_text() == "127.0.0.1 localhost\n"


def test_add_json(env, capsys):
    assert main(["-c", env["config"], "add", "app.test", "--json"]) == EXIT_OK
    out = capsys.readouterr().out
    assert '"success": true' in out
    assert "8004" in out


def test_duplicate_add_fails(env, capsys):
    main(["-c", env["config"], "add", "app.test"])
    capsys.readouterr()

    assert main(["-c", env["config"], "add", "app.test"]) == EXIT_FAILED
    assert "already exists" in capsys.readouterr().err


def test_invalid_host(env, capsys):
    assert main(["-c", env["config"], "add", "bad..host"]) == EXIT_FAILED
    assert "Invalid host name" in capsys.readouterr().err
    assert not env["backups"].exists()


def test_validation_failure_reverts(env, capsys):
    FakeNginx.valid = False

    assert main(["-c", env["config"], "add", "app.test"]) == EXIT_FAILED
    assert env["conf"].read_text() == "http {\n}\n"
    assert env["hosts"].read_text() == "127.0.0.1 localhost\n"
    assert "Changes reverted" in capsys.readouterr().err


def test_rollback_failure_exit_code(env, capsys):
    def drop_backups():
        for path in env["backups"].iterdir():
            path.unlink()

    FakeNginx.valid = False
    FakeNginx.before_validate = drop_backups

    assert main(["-c", env["config"], "add", "app.test"]) == EXIT_ROLLBACK_FAILED
    assert "Rollback failed" in capsys.readouterr().err


def test_backups_and_restore(env, capsys):
    main(["-c", env["config"], "add", "app.test"])
    capsys.readouterr()

    assert main(["-c", env["config"], "backups"]) == EXIT_OK
    assert "Backups" in capsys.readouterr().out

    assert main(["-c", env["config"], "restore"]) == EXIT_OK
    assert env["conf"].read_text() == "http {\n}\n"
    assert "Restored backup" in capsys.readouterr().out

    assert main(["-c", env["config"], "restore", "1999-01-01T00-00-00"]) == EXIT_FAILED


def test_backups_empty(env, capsys):
    assert main(["-c", env["config"], "backups"]) == EXIT_OK
    assert "No backups found" in capsys.readouterr().out


def test_status(env, capsys):
    assert main(["-c", env["config"], "status"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "Reverse Proxy Manager Status" in out
    assert "Nginx configuration is valid" in out


def test_setup_writes_settings(tmp_path: Path, env, capsys):
    target = tmp_path / "new" / "config.yml"

    code = main(
        [
            "-c",
            str(target),
            "setup",
            "--nginx-conf",
            str(env["conf"]),
            "--hosts-file",
            str(env["hosts"]),
            "--nginx-bin",
            str(tmp_path / "nginx"),
            "--port",
            "9000",
        ]
    )

    assert code == EXIT_OK
    data = yaml.safe_load(target.read_text())
    assert data["local_port"] == 9000
    assert data["nginx_conf"] == str(env["conf"])


def test_setup_rejects_missing_paths(tmp_path: Path, env, capsys):
    target = tmp_path / "other.yml"
    code = main(["-c", str(target), "setup", "--nginx-conf", str(tmp_path / "missing.conf")])

    assert code == EXIT_FAILED
    assert not target.exists()
    assert "Configuration validation failed" in capsys.readouterr().err


def test_broken_settings_file(tmp_path: Path, env, capsys):
    broken = tmp_path / "broken.yml"
    broken.write_text("- not a mapping\n")

    assert main(["-c", str(broken), "list"]) == EXIT_FAILED
    assert "must contain a mapping" in capsys.readouterr().err


def test_reload_failure_keeps_change(env, capsys):
    FakeNginx.reloaded = False

    assert main(["-c", env["config"], "add", "app.test"]) == EXIT_FAILED
    assert "server_name app.test;" in env["conf"].read_text()
    captured = capsys.readouterr()
    assert "Failed to reload nginx" in captured.err
    assert "nginx -s reload" in captured.out

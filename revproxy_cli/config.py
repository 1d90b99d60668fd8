"""Settings management for ~/.revproxy/config.yml"""

import os
import sys
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .platform import IS_MACOS
from .validation import validate_port

DEFAULT_LOCAL_PORT = 8004

ENV_CONFIG = "REVPROXY_CONFIG"

# Setting name -> environment variable that overrides it
ENV_OVERRIDES = {
    "nginx_conf": "REVPROXY_NGINX_CONF",
    "hosts_file": "REVPROXY_HOSTS_FILE",
    "nginx_bin": "REVPROXY_NGINX_BIN",
    "local_port": "REVPROXY_LOCAL_PORT",
    "backup_dir": "REVPROXY_BACKUP_DIR",
}


def get_revproxy_dir() -> Path:
    """Get the ~/.revproxy directory path"""
    return Path.home() / ".revproxy"


def get_settings_file() -> Path:
    """Get the settings file path (REVPROXY_CONFIG wins)"""
    env_path = os.getenv(ENV_CONFIG)
    if env_path:
        return Path(env_path).expanduser()
    return get_revproxy_dir() / "config.yml"


@dataclass(frozen=True)
class Settings:
    """
    Paths and defaults used by the lifecycle manager.

    Schema (config.yml):
        nginx_conf: str   # nginx.conf holding the http { } block
        hosts_file: str   # hosts file receiving 127.0.0.1 lines
        nginx_bin: str    # nginx binary used for -t and -s reload
        local_port: int   # port used when `add` gets no --port
        backup_dir: str   # where snapshots are written
    """

    nginx_conf: Path
    hosts_file: Path
    nginx_bin: Path
    local_port: int
    backup_dir: Path

    @classmethod
    def defaults(cls) -> "Settings":
        if IS_MACOS:
            # Homebrew layout
            return cls(
                nginx_conf=Path("/opt/homebrew/etc/nginx/nginx.conf"),
                hosts_file=Path("/private/etc/hosts"),
                nginx_bin=Path("/opt/homebrew/bin/nginx"),
                local_port=DEFAULT_LOCAL_PORT,
                backup_dir=Path.home() / ".proxy-backups",
            )
        return cls(
            nginx_conf=Path("/etc/nginx/nginx.conf"),
            hosts_file=Path("/etc/hosts"),
            nginx_bin=Path("/usr/sbin/nginx"),
            local_port=DEFAULT_LOCAL_PORT,
            backup_dir=Path.home() / ".proxy-backups",
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: "Settings | None" = None) -> "Settings":
        """Overlay known keys from data onto base (defaults if None)"""
        base = base or cls.defaults()
        updates: dict[str, Any] = {}
        for f in fields(cls):
            value = data.get(f.name)
            if value is None or value == "":
                continue
            if f.name == "local_port":
                try:
                    updates[f.name] = int(value)
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid local_port: {value!r}", {"local_port": value}) from e
            else:
                updates[f.name] = Path(str(value)).expanduser()
        return replace(base, **updates)

    def to_dict(self) -> dict[str, Any]:
        return {key: (str(value) if isinstance(value, Path) else value) for key, value in asdict(self).items()}


def _env_overrides() -> dict[str, str]:
    overrides = {}
    for name, env_var in ENV_OVERRIDES.items():
        value = os.environ.get(env_var, "").strip()
        if value:
            overrides[name] = value
    return overrides


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings: defaults, then the YAML file, then environment overrides.

    Raises:
        ConfigError: the file exists but is unreadable or not a mapping
    """
    settings_file = path or get_settings_file()
    settings = Settings.defaults()

    if settings_file.exists():
        try:
            with open(settings_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load settings from {settings_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file must contain a mapping: {settings_file}")
        settings = Settings.from_dict(data, settings)

    return Settings.from_dict(_env_overrides(), settings)


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings atomically with owner-only permissions"""
    settings_file = path or get_settings_file()
    try:
        settings_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = settings_file.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            yaml.dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
        if sys.platform != "win32":
            tmp.chmod(0o600)
        tmp.replace(settings_file)
    except OSError as e:
        raise ConfigError(f"Failed to save settings: {e}") from e
    return settings_file


def validate_settings(settings: Settings) -> list[str]:
    """Return a list of problems; empty when the settings are usable"""
    problems = []
    if not settings.nginx_conf.is_file():
        problems.append(f"Nginx config file not found: {settings.nginx_conf}")
    if not settings.hosts_file.is_file():
        problems.append(f"Hosts file not found: {settings.hosts_file}")
    if not settings.nginx_bin.exists():
        problems.append(f"Nginx binary not found: {settings.nginx_bin}")
    port_check = validate_port(settings.local_port)
    if not port_check:
        problems.append(f"Invalid default port: {port_check.message}")
    return problems

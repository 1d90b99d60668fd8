"""
Nginx validate/reload oracle.

The lifecycle manager only needs two booleans from the running server: is
the config valid, and did the reload go through. How nginx is invoked, and
whether it goes through sudo, is decided by an InvocationPolicy.
"""

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .platform import is_admin
from .subprocess_timeouts import get_timeout

logger = logging.getLogger("revproxy.oracle")

SYNTAX_OK_MARKER = "syntax is ok"
TEST_OK_MARKER = "test is successful"


class ServerOracle(Protocol):
    def validate(self) -> bool: ...

    def reload(self) -> bool: ...


@dataclass
class InvocationPolicy:
    """
    Decide how a command is run with respect to privileges.

    Privileged processes run the command directly. Otherwise the command is
    tried through sudo first and then once more without it.
    """

    use_sudo: bool = True
    sudo_command: tuple[str, ...] = ("sudo",)
    is_privileged: Callable[[], bool] = field(default=is_admin)

    def attempts(self, cmd: list[str]) -> list[list[str]]:
        if self.is_privileged():
            return [cmd]
        attempts = []
        if self.use_sudo:
            attempts.append([*self.sudo_command, *cmd])
        attempts.append(cmd)
        return attempts


class NginxOracle:
    """Validate and reload nginx through its binary"""

    def __init__(
        self,
        nginx_bin: str | Path,
        config_path: str | Path | None = None,
        policy: InvocationPolicy | None = None,
    ):
        self.nginx_bin = str(nginx_bin)
        self.config_path = str(config_path) if config_path else None
        self.policy = policy or InvocationPolicy()
        self.last_output = ""

    def _run(self, cmd: list[str], operation: str) -> subprocess.CompletedProcess | None:
        timeout = get_timeout("sudo") if cmd[0] != self.nginx_bin else get_timeout(operation)
        logger.debug("Running: %s (timeout %ss)", " ".join(cmd), timeout)
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, " ".join(cmd))
        except OSError as e:
            logger.warning("Could not run %s: %s", " ".join(cmd), e)
        return None

    def _first_success(self, cmd: list[str], operation: str) -> subprocess.CompletedProcess | None:
        """Run each attempt from the policy until one exits 0."""
        for attempt in self.policy.attempts(cmd):
            result = self._run(attempt, operation)
            if result is None:
                continue
            self.last_output = ((result.stdout or "") + (result.stderr or "")).strip()
            if result.returncode == 0:
                return result
            logger.debug("%s exited %d: %s", attempt[0], result.returncode, self.last_output)
        return None

    def validate(self) -> bool:
        """Run `nginx -t`; valid only if nginx reports both syntax and test ok"""
        cmd = [self.nginx_bin, "-t"]
        if self.config_path:
            cmd += ["-c", self.config_path]

        result = self._first_success(cmd, "nginx_test")
        if result is None:
            logger.warning("nginx config test failed: %s", self.last_output or "no output")
            return False

        # nginx writes the test report to stderr
        output = result.stderr or ""
        ok = SYNTAX_OK_MARKER in output and TEST_OK_MARKER in output
        if not ok:
            logger.warning("nginx config test did not report success: %s", output.strip())
        return ok

    def reload(self) -> bool:
        """Send the reload signal to the running nginx master"""
        result = self._first_success([self.nginx_bin, "-s", "reload"], "nginx_reload")
        if result is None:
            logger.warning("nginx reload failed: %s", self.last_output or "no output")
            return False
        logger.info("nginx reloaded")
        return True

    def version(self) -> str | None:
        """nginx version string, or None if the binary can't be run"""
        result = self._run([self.nginx_bin, "-v"], "nginx_version")
        if result is None or result.returncode != 0:
            return None
        # `nginx -v` prints to stderr
        return (result.stderr or result.stdout or "").strip() or None

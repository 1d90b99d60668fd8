"""Host name and port validation"""

import logging
import re
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger("revproxy.validation")

# RFC 1035 limits
MIN_HOSTNAME_LENGTH = 3
MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63

MIN_PORT = 1
MAX_PORT = 65535

# One label: alphanumeric, internal hyphens allowed, 1-63 chars
_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
HOSTNAME_PATTERN = re.compile(rf"^{_LABEL}(?:\.{_LABEL})*$")

InvalidReason = Literal["empty", "too_short", "too_long", "bad_format", "out_of_range"]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: InvalidReason | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(valid=True)


def validate_hostname(hostname: str) -> ValidationResult:
    """Validate a host name for use as an nginx server_name and hosts entry"""
    if not hostname or not isinstance(hostname, str):
        return ValidationResult(False, "empty", "Host name is required")

    if len(hostname) < MIN_HOSTNAME_LENGTH:
        return ValidationResult(
            False, "too_short", f"Host name must be at least {MIN_HOSTNAME_LENGTH} characters long"
        )

    if len(hostname) > MAX_HOSTNAME_LENGTH:
        return ValidationResult(
            False, "too_long", f"Host name must be at most {MAX_HOSTNAME_LENGTH} characters long"
        )

    if not HOSTNAME_PATTERN.fullmatch(hostname):
        logger.debug("Rejected host name with bad format: %r", hostname)
        return ValidationResult(False, "bad_format", "Invalid host name format")

    return VALID


def validate_port(port: int) -> ValidationResult:
    """Validate port number"""
    # bool is an int subclass; True must not pass as port 1
    if isinstance(port, bool) or not isinstance(port, int) or not (MIN_PORT <= port <= MAX_PORT):
        return ValidationResult(False, "out_of_range", f"Port must be a number between {MIN_PORT} and {MAX_PORT}")
    return VALID

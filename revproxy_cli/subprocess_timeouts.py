"""
Subprocess timeouts for nginx invocations.

Every subprocess call made by revproxy looks its timeout up here instead of
hard-coding a value, so a hung `sudo` prompt or nginx binary can't block an
operation forever.
"""

# Short operations (< 5 seconds)
TIMEOUT_QUICK = 5
"""Quick operations: version checks."""

# Standard operations (< 30 seconds)
TIMEOUT_STANDARD = 30
"""Standard operations: config test, reload signal."""

# Long operations (< 60 seconds)
TIMEOUT_LONG = 60
"""Long operations: anything behind an interactive sudo password prompt."""


TIMEOUTS = {
    "nginx_version": TIMEOUT_QUICK,
    "nginx_test": TIMEOUT_STANDARD,
    "nginx_reload": TIMEOUT_STANDARD,
    # sudo may wait on a password prompt
    "sudo": TIMEOUT_LONG,
}


def get_timeout(operation: str, default: int = TIMEOUT_STANDARD) -> int:
    """
    Get the timeout for a specific operation.

    Args:
        operation: Operation name (e.g., "nginx_test", "sudo")
        default: Default timeout if operation not found

    Returns:
        Timeout in seconds

    Examples:
        >>> get_timeout("nginx_version")
        5
        >>> get_timeout("sudo")
        60
        >>> get_timeout("unknown_operation")
        30
    """
    return TIMEOUTS.get(operation, default)

"""Platform detection"""

import os
import platform

IS_MACOS = platform.system() == "Darwin"


def is_admin() -> bool:
    """Check if running with root privileges"""
    return os.geteuid() == 0 if hasattr(os, "geteuid") else False

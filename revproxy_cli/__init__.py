"""
revproxy - nginx reverse proxy entry manager
Keeps nginx server blocks and /etc/hosts lines in step, with backups and rollback
"""

__version__ = "1.0.0"

from .backup import BackupSnapshot
from .config import Settings, load_settings
from .manager import OperationResult, ReverseProxyManager
from .oracle import InvocationPolicy, NginxOracle

__all__ = [
    "BackupSnapshot",
    "Settings",
    "load_settings",
    "OperationResult",
    "ReverseProxyManager",
    "InvocationPolicy",
    "NginxOracle",
    "__version__",
]

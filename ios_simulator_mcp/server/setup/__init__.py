"""Remote host setup: analyze a macOS host, plan and apply the missing toolchain"""

from .engine import ReconciliationEngine, reconcile
from .report import render_report
from .shells import OpenSSHShell, PooledShell

__all__ = [
    "OpenSSHShell",
    "PooledShell",
    "ReconciliationEngine",
    "reconcile",
    "render_report",
]

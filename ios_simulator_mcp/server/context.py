"""Application Context Helpers

Global access to the running AppContext for resources that don't receive a
request Context.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .app import AppContext

logger = logging.getLogger(__name__)

# Set during lifespan
_app: "AppContext | None" = None


def get_app() -> "AppContext":
    """Get global app context

    Raises:
        RuntimeError: If application not initialized
    """
    if _app is None:
        raise RuntimeError("Application not initialized")
    return _app


def set_app(app: "AppContext") -> None:
    """Set global app context (called during startup)"""
    global _app
    _app = app


def clear_app() -> None:
    """Clear global app context (called during shutdown)"""
    global _app
    _app = None

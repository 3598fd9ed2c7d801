"""
Remote Host Setup Tool

Wraps the reconciliation engine for the MCP surface. Picks the pooled
session when the requested host is the configured one, otherwise goes
through the local ssh client.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..error_utils import create_error_response, remote_error_response
from ..exceptions import RemoteExecutionError
from ..interfaces import IRemoteShell
from ..models import ErrorCode
from ..setup import OpenSSHShell, PooledShell, reconcile

if TYPE_CHECKING:
    from ..app import AppContext

logger = logging.getLogger(__name__)

SETUP_TROUBLESHOOTING = (
    "Please check SSH connectivity and ensure you can manually SSH to the host:\n"
    "  ssh {username}@{host}\n"
    "Make sure Remote Login is enabled on the Mac "
    "(System Settings > General > Sharing > Remote Login)."
)


def select_shell(app: "AppContext", host: str, username: str) -> IRemoteShell:
    target = app.config.remote_target()
    if target is not None and target.host == host and target.username == username:
        return PooledShell(app.runner)
    port = target.port if target is not None and target.host == host else 22
    return OpenSSHShell(app.local_runner, host, username, port)


async def setup_remote_host_impl(
    app: "AppContext",
    host: Optional[str] = None,
    username: Optional[str] = None,
    dry_run: bool = False,
    auto_confirm: bool = False,
) -> str:
    """Analyze and (optionally) configure a macOS host for simulator automation

    Args:
        app: Application context
        host: Host to set up (default: configured IOS_SIMULATOR_SSH_HOST)
        username: SSH user (default: configured IOS_SIMULATOR_SSH_USERNAME)
        dry_run: Report only, change nothing
        auto_confirm: Apply needed actions without asking

    Returns:
        Plain-text reconciliation report, or ErrorResponse JSON on failure
    """
    host = host or app.config.ssh_host
    username = username or app.config.ssh_username
    if not host:
        return create_error_response(
            error="Setup failed",
            error_code=ErrorCode.INVALID_PARAMETER.value,
            details="No host given and IOS_SIMULATOR_SSH_HOST is not configured",
            suggested_action="Pass host (and username) explicitly, or configure the remote host first",
        )

    shell = select_shell(app, host, username)
    troubleshooting = SETUP_TROUBLESHOOTING.format(username=username, host=host)
    try:
        return await reconcile(shell, host, username, dry_run=dry_run, auto_confirm=auto_confirm)
    except RemoteExecutionError as e:
        logger.error(f"Setup of {username}@{host} failed: {e.message}")
        return remote_error_response(e, "Setup", troubleshooting)
    except Exception as e:
        logger.exception(f"Unexpected error setting up {username}@{host}")
        return remote_error_response(e, "Setup", troubleshooting)

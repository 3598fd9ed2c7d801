"""Error helpers: setup guidance and structured tool error responses"""

import logging
from typing import Any, Dict, Optional

from .exceptions import (
    CommandExecutionError,
    FileTransferError,
    RemoteExecutionError,
    SSHAuthenticationError,
    SSHConnectionError,
)
from .models import ErrorCode, ErrorResponse

logger = logging.getLogger(__name__)

SETUP_TOOL_NAME = "setup_remote_host"

SETUP_GUIDANCE = (
    "Command failed - this may indicate the remote macOS host needs setup.\n\n"
    'Try asking your AI assistant: "Setup the remote macOS host for iOS simulator access" '
    f"(tool: {SETUP_TOOL_NAME}, start with dry_run=true)"
)

# Substrings that point at a missing or broken toolchain on the remote host.
# Matched case-insensitively against the error message.
SETUP_INDICATORS = (
    "idb: command not found",
    "command not found",
    'xcrun: error: unable to find utility "simctl"',
    "brew: command not found",
    "python3: command not found",
    "pip3: command not found",
    "No such file or directory",
    "Permission denied",
    "Connection refused",
    "idb_companion",
    "Failed to connect to idb companion",
)


def get_version() -> str:
    """Package version for error responses"""
    try:
        from ios_simulator_mcp import __version__

        return __version__
    except ImportError:
        return "unknown"


def is_setup_related_error(error: BaseException) -> bool:
    """Check if an error message indicates missing setup/dependencies"""
    message = getattr(error, "message", None) or str(error)
    lowered = message.lower()
    return any(indicator.lower() in lowered for indicator in SETUP_INDICATORS)


def with_setup_guidance(error: BaseException, remote_configured: bool) -> BaseException:
    """Annotate setup-related failures with a pointer to the setup tool

    Only applies in remote mode. Anything else is returned unchanged.
    """
    if not remote_configured or not is_setup_related_error(error):
        return error

    if isinstance(error, RemoteExecutionError):
        if not error.suggestion or SETUP_GUIDANCE not in error.suggestion:
            error.suggestion = (
                f"{error.suggestion}\n\n{SETUP_GUIDANCE}" if error.suggestion else SETUP_GUIDANCE
            )
        return error

    return RemoteExecutionError(f"Original error: {error}", suggestion=SETUP_GUIDANCE)


def create_error_response(
    error: str,
    error_code: Optional[str] = None,
    details: Optional[str] = None,
    suggested_action: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """Render an ErrorResponse as indented JSON"""
    return ErrorResponse(
        error=error,
        error_code=error_code,
        details=details,
        suggested_action=suggested_action,
        context=context,
        server_version=get_version(),
    ).model_dump_json(indent=2)


def error_code_for(error: BaseException) -> str:
    """Pick the ErrorCode matching an exception from the execution core"""
    if isinstance(error, SSHAuthenticationError):
        return ErrorCode.AUTH_FAILED.value
    if isinstance(error, SSHConnectionError):
        return ErrorCode.SSH_CONNECTION_FAILED.value
    if isinstance(error, FileTransferError):
        return ErrorCode.TRANSFER_FAILED.value
    if isinstance(error, CommandExecutionError):
        if is_setup_related_error(error):
            return ErrorCode.SETUP_REQUIRED.value
        return ErrorCode.COMMAND_FAILED.value
    return ErrorCode.INTERNAL_ERROR.value


def remote_error_response(
    error: BaseException, operation: str, troubleshooting: Optional[str] = None
) -> str:
    """ErrorResponse for a failure raised by execute/download/reconcile

    The exception's own suggestion comes first, then `troubleshooting`.
    """
    suggestion = "\n\n".join(
        s for s in (getattr(error, "suggestion", None), troubleshooting) if s
    )
    message = getattr(error, "message", None) or str(error)
    context: Dict[str, Any] = {"exception": error.__class__.__name__}
    if isinstance(error, CommandExecutionError):
        context["exit_code"] = error.exit_code
        context["command"] = error.command

    return create_error_response(
        error=f"{operation} failed",
        error_code=error_code_for(error),
        details=message,
        suggested_action=suggestion or "Check SSH connectivity and ensure you can manually SSH to the host",
        context=context,
    )

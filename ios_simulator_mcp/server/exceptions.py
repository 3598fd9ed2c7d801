"""Remote execution error taxonomy

Every failure that leaves the execution core is one of these types, so callers
never see raw paramiko or socket exceptions.
"""

import socket
from typing import Optional

import paramiko
from paramiko.ssh_exception import NoValidConnectionsError


class RemoteExecutionError(Exception):
    """Base class; carries optional human-readable remediation guidance"""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\n{self.suggestion}"
        return self.message


class SSHConnectionError(RemoteExecutionError):
    """Transport could not be established or was lost; retried once"""


class SSHAuthenticationError(RemoteExecutionError):
    """Remote host rejected our credentials; never retried"""


class CommandExecutionError(RemoteExecutionError):
    """Command exited with a nonzero status"""

    def __init__(
        self,
        command: str,
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
        suggestion: Optional[str] = None,
    ):
        super().__init__(
            f"Command failed with exit code {exit_code}: {stderr or stdout}", suggestion
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout


class FileTransferError(RemoteExecutionError):
    """SFTP download failed for a reason other than a dropped transport"""


class SetupActionError(RemoteExecutionError):
    """A remediation action failed while applying host setup"""

    def __init__(self, action: str, message: str, log_tail: Optional[str] = None):
        super().__init__(message)
        self.action = action
        self.log_tail = log_tail


# ============================================================================
# SSH Error Detection and Mapping
# ============================================================================


def classify_ssh_error(exception: BaseException) -> RemoteExecutionError:
    """Map a paramiko/socket exception onto the error taxonomy

    Retry eligibility downstream is decided purely by the returned type:
    only SSHConnectionError is retried.
    """
    if isinstance(exception, RemoteExecutionError):
        return exception

    error_str = str(exception) or exception.__class__.__name__

    # Authentication failures (includes BadAuthenticationType, PasswordRequiredException)
    if isinstance(exception, paramiko.AuthenticationException):
        return SSHAuthenticationError(
            f"SSH authentication failed: {error_str}",
            suggestion=(
                "Check the configured credentials:\n"
                "1. Key: IOS_SIMULATOR_SSH_KEY_PATH points to a key listed in ~/.ssh/authorized_keys on the Mac\n"
                "2. Password: IOS_SIMULATOR_SSH_PASSWORD is correct\n"
                "3. Agent: keys are loaded (ssh-add -l)"
            ),
        )

    if isinstance(exception, paramiko.BadHostKeyException):
        return SSHAuthenticationError(
            f"SSH host key verification failed: {error_str}",
            suggestion="Remove the stale entry with ssh-keygen -R <host> and reconnect manually once.",
        )

    # Connection refused / unreachable (NoValidConnectionsError wraps per-address errors)
    if isinstance(exception, NoValidConnectionsError) or "Connection refused" in error_str:
        return SSHConnectionError(
            f"SSH connection refused: {error_str}",
            suggestion=(
                "SSH server not reachable. On the Mac enable "
                "System Settings > General > Sharing > Remote Login, "
                "then retry."
            ),
        )

    if isinstance(exception, (socket.timeout, TimeoutError)):
        return SSHConnectionError(
            f"SSH connection timeout: {error_str}",
            suggestion=(
                "Connection timed out. Possible causes:\n"
                "1. Wrong host or port\n"
                "2. Host asleep or offline\n"
                "3. Firewall blocking the SSH port"
            ),
        )

    if isinstance(exception, (paramiko.SSHException, EOFError, OSError)):
        return SSHConnectionError(f"SSH connection lost: {error_str}")

    return SSHConnectionError(f"SSH connection failed: {error_str}")

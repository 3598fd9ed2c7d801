"""Abstract Base Classes for iOS Simulator MCP Server

Contracts for the remote execution core. The setup engine and the MCP
tools depend on these, so tests can substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .exceptions import CommandExecutionError
from .models import CommandResult, RemoteTarget, SessionState


class ISession(ABC):
    """Live SSH transport handle owned by a session manager"""

    @property
    @abstractmethod
    def state(self) -> SessionState:
        pass

    @abstractmethod
    def is_healthy(self) -> bool:
        """True while the underlying transport is active"""
        pass

    @abstractmethod
    async def run(self, command: str) -> tuple[int, str, str]:
        """Run a single command string on the remote host

        Returns:
            (exit_status, stdout, stderr)

        Raises:
            SSHConnectionError: If the transport fails (session becomes BROKEN)
        """
        pass

    @abstractmethod
    async def download(self, remote_path: str, local_path: str) -> None:
        """Copy a remote file to a local path over SFTP

        Raises:
            SSHConnectionError: If the transport fails
            FileTransferError: If the file cannot be read or written
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class ISessionManager(ABC):
    """Owns at most one pooled SSH session"""

    @property
    @abstractmethod
    def target(self) -> RemoteTarget:
        pass

    @property
    @abstractmethod
    def state(self) -> SessionState:
        pass

    @abstractmethod
    async def acquire(self) -> ISession:
        """Return the healthy session, establishing one if needed

        Raises:
            SSHConnectionError: Establishment failed
            SSHAuthenticationError: Credentials rejected
        """
        pass

    @abstractmethod
    async def discard(self, session: Optional[ISession] = None) -> None:
        """Drop the current session so the next acquire() reconnects

        With `session`, a no-op unless it is still the current session.
        """
        pass

    @abstractmethod
    async def release(self) -> None:
        """Tear the session down (process shutdown)"""
        pass


class ICommandRunner(ABC):
    """Executes commands locally or on the configured remote host"""

    @property
    @abstractmethod
    def is_remote(self) -> bool:
        pass

    @abstractmethod
    async def execute(self, command: str, args: List[str]) -> CommandResult:
        """Run command with an argument vector

        Raises:
            CommandExecutionError: Nonzero exit status
            SSHConnectionError: Transport failed twice
            SSHAuthenticationError: Credentials rejected
        """
        pass

    @abstractmethod
    def invalidate_tool(self, tool: str) -> None:
        """Forget a cached remote tool path"""
        pass

    @abstractmethod
    def cached_tool_paths(self) -> Dict[str, str]:
        pass


class IFileTransfer(ABC):
    """Copies remote artifacts to the local machine"""

    @abstractmethod
    async def download(self, remote_path: str, local_path: str) -> None:
        """Download a remote file; no-op when running locally"""
        pass


class IRemoteShell(ABC):
    """Runs shell snippets on the host being set up"""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable route, e.g. 'pooled SSH session'"""
        pass

    @abstractmethod
    async def run(self, script: str) -> CommandResult:
        """Run a shell snippet in a login shell

        Raises:
            CommandExecutionError: Snippet exited nonzero
            SSHConnectionError / SSHAuthenticationError: Transport failures
        """
        pass

    @abstractmethod
    def invalidate_tool(self, tool: str) -> None:
        """Forget any cached path for a tool reinstalled by setup"""
        pass

    async def check(self, script: str) -> bool:
        """Run a predicate snippet; nonzero exit means False

        Transport failures propagate.
        """
        try:
            await self.run(script)
            return True
        except CommandExecutionError:
            return False

    async def output(self, script: str, default: Optional[str] = None) -> Optional[str]:
        """Run an informational snippet; nonzero exit returns default"""
        try:
            result = await self.run(script)
            return result.stdout
        except CommandExecutionError:
            return default

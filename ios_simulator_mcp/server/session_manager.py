"""
SSH Session Manager

Owns the single pooled SSH connection to the remote macOS host.

- Lazy establishment on first acquire()
- Concurrent acquire() calls during establishment share one in-flight attempt
- Health check (transport.is_active) on every acquire; broken sessions are
  discarded and transparently re-established
- Authentication failures are fatal and never retried

Paramiko is blocking, so every network call runs in asyncio.to_thread.
"""

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

import paramiko

from .config import DEFAULT_CONNECT_TIMEOUT
from .exceptions import (
    FileTransferError,
    SSHAuthenticationError,
    SSHConnectionError,
    classify_ssh_error,
)
from .interfaces import ISession, ISessionManager
from .models import AuthMethod, RemoteTarget, SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEEPALIVE_INTERVAL = 30  # seconds


class SSHSession(ISession):
    """Live paramiko connection

    States: READY -> BROKEN (transport failure) or DISCONNECTED (closed).
    """

    def __init__(self, client: paramiko.SSHClient, target: RemoteTarget):
        self._client = client
        self._target = target
        self._state = SessionState.READY
        self.connected_at = datetime.now(timezone.utc)

    @property
    def state(self) -> SessionState:
        return self._state

    def is_healthy(self) -> bool:
        if self._state != SessionState.READY:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def mark_broken(self, reason: str) -> None:
        if self._state == SessionState.READY:
            logger.warning(f"SSH session to {self._target.address} broken: {reason}")
            self._state = SessionState.BROKEN

    async def run(self, command: str) -> tuple[int, str, str]:
        if not self.is_healthy():
            self.mark_broken("transport not active")
            raise SSHConnectionError(f"Not connected to {self._target.address}")

        try:
            exit_status, stdout, stderr = await asyncio.to_thread(self._exec_blocking, command)
        except (paramiko.SSHException, EOFError, OSError) as e:
            self.mark_broken(str(e))
            raise classify_ssh_error(e) from e

        # -1: channel closed without an exit status (connection dropped mid-command)
        if exit_status == -1:
            self.mark_broken("channel closed without exit status")
            raise SSHConnectionError(
                f"Connection to {self._target.address} closed before command finished"
            )
        return exit_status, stdout, stderr

    def _exec_blocking(self, command: str) -> tuple[int, str, str]:
        stdin, stdout, stderr = self._client.exec_command(command)
        stdin.close()
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        return stdout.channel.recv_exit_status(), out, err

    async def download(self, remote_path: str, local_path: str) -> None:
        if not self.is_healthy():
            self.mark_broken("transport not active")
            raise SSHConnectionError(f"Not connected to {self._target.address}")

        try:
            await asyncio.to_thread(self._sftp_get_blocking, remote_path, local_path)
        except (paramiko.SSHException, EOFError, OSError) as e:
            # Same exception types cover both a dead transport and a missing file;
            # the transport state tells them apart.
            transport = self._client.get_transport()
            if transport is None or not transport.is_active():
                self.mark_broken(str(e))
                raise classify_ssh_error(e) from e
            raise FileTransferError(
                f"Failed to download {remote_path} to {local_path}: {e}"
            ) from e

    def _sftp_get_blocking(self, remote_path: str, local_path: str) -> None:
        sftp = self._client.open_sftp()
        try:
            sftp.get(remote_path, local_path)
        except Exception:
            # sftp.get creates the local file before reading; drop the partial copy
            if os.path.exists(local_path):
                os.remove(local_path)
            raise
        finally:
            sftp.close()

    async def close(self) -> None:
        if self._state == SessionState.DISCONNECTED:
            return
        self._state = SessionState.DISCONNECTED
        await asyncio.to_thread(self._client.close)
        logger.info(f"SSH connection closed: {self._target.address}")


class SSHSessionManager(ISessionManager):
    """Process-wide owner of the pooled SSH session"""

    def __init__(
        self,
        target: RemoteTarget,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ):
        self._target = target
        self._connect_timeout = connect_timeout
        self._client_factory = client_factory
        self._session: Optional[SSHSession] = None
        self._connecting: Optional["asyncio.Task[SSHSession]"] = None

    @property
    def target(self) -> RemoteTarget:
        return self._target

    @property
    def state(self) -> SessionState:
        if self._connecting is not None and not self._connecting.done():
            return SessionState.CONNECTING
        if self._session is None:
            return SessionState.DISCONNECTED
        if self._session.state == SessionState.READY and not self._session.is_healthy():
            return SessionState.BROKEN
        return self._session.state

    @property
    def session(self) -> Optional[SSHSession]:
        """Current session, if any (no health check)"""
        return self._session

    # ========================================================================
    # Session Lifecycle
    # ========================================================================

    async def acquire(self) -> SSHSession:
        if self._session is not None:
            if self._session.is_healthy():
                return self._session
            logger.warning(f"Pooled SSH session unhealthy, reconnecting to {self._target.address}")
            await self.discard()

        if self._connecting is None:
            self._connecting = asyncio.create_task(self._establish())
            self._connecting.add_done_callback(self._on_connect_done)

        # Shield: a cancelled waiter must not abort the attempt other waiters share
        return await asyncio.shield(self._connecting)

    def _on_connect_done(self, task: "asyncio.Task[SSHSession]") -> None:
        if self._connecting is task:
            self._connecting = None
        if not task.cancelled():
            # Mark the exception retrieved; waiters re-raise it themselves
            task.exception()

    async def _establish(self) -> SSHSession:
        target = self._target
        logger.info(f"Connecting to {target.address} (auth: {target.auth_method.value})")

        if target.auth_method == AuthMethod.PRIVATE_KEY and not os.path.isfile(target.key_path):
            raise SSHAuthenticationError(
                f"SSH private key not found: {target.key_path}",
                suggestion="Set IOS_SIMULATOR_SSH_KEY_PATH to an existing private key file",
            )

        client = self._client_factory()
        client.load_system_host_keys()
        # Unknown hosts are accepted with a warning; a changed key still fails
        client.set_missing_host_key_policy(paramiko.WarningPolicy())

        try:
            await asyncio.to_thread(client.connect, **self._connect_kwargs())
        except Exception as e:
            error = classify_ssh_error(e)
            logger.error(f"SSH connection to {target.address} failed: {error.message}")
            await asyncio.to_thread(client.close)
            raise error from e

        transport = client.get_transport()
        if transport is not None:
            transport.set_keepalive(KEEPALIVE_INTERVAL)

        logger.info(f"SSH connection established: {target.address}")
        self._session = SSHSession(client, target)
        return self._session

    def _connect_kwargs(self) -> dict:
        target = self._target
        kwargs = {
            "hostname": target.host,
            "port": target.port,
            "username": target.username,
            "timeout": self._connect_timeout,
            "banner_timeout": self._connect_timeout,
            "auth_timeout": self._connect_timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if target.auth_method == AuthMethod.PRIVATE_KEY:
            kwargs["key_filename"] = target.key_path
        elif target.auth_method == AuthMethod.PASSWORD:
            kwargs["password"] = target.password
        else:
            kwargs["allow_agent"] = True
        return kwargs

    async def discard(self, session: Optional[SSHSession] = None) -> None:
        """Drop the pooled session

        With `session`, a no-op once another caller has replaced it.
        """
        if session is not None and session is not self._session:
            return
        session, self._session = self._session, None
        if session is None:
            return
        logger.info(f"Discarding pooled SSH session to {self._target.address}")
        try:
            await session.close()
        except Exception as e:
            # Closing an already-dead transport can fail; the session is gone either way
            logger.debug(f"Error closing discarded session: {e}")

    async def release(self) -> None:
        pending = self._connecting
        if pending is not None and not pending.done():
            try:
                await pending
            except (SSHConnectionError, SSHAuthenticationError) as e:
                logger.debug(f"Pending connection failed during release: {e}")
        await self.discard()


# ============================================================================
# Retry helper shared by the command runner and file transfer
# ============================================================================


async def run_with_reconnect(
    sessions: ISessionManager, operation: Callable[[ISession], Awaitable[T]]
) -> T:
    """Run operation on the pooled session, retrying once on transport loss

    Only SSHConnectionError is retried; the session that failed is discarded
    first, unless another caller already replaced it.
    A second failure propagates, chained to the first.
    """
    session = None
    try:
        session = await sessions.acquire()
        return await operation(session)
    except SSHConnectionError as first:
        logger.warning(f"SSH transport failed ({first.message}), reconnecting and retrying once")
        if session is not None:
            await sessions.discard(session)
        try:
            session = await sessions.acquire()
            return await operation(session)
        except SSHConnectionError as second:
            raise second from first

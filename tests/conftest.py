"""
Pytest configuration and shared fixtures for iOS Simulator MCP tests.

Fakes implement the interfaces.py contracts so the execution core and the
setup engine can be tested without SSH or a Mac.
"""
import asyncio
from typing import Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import paramiko
import pytest

from ios_simulator_mcp.server.exceptions import CommandExecutionError
from ios_simulator_mcp.server.interfaces import IRemoteShell, ISession, ISessionManager
from ios_simulator_mcp.server.models import CommandResult, RemoteTarget, SessionState


# ===== Fake SSH session / manager =====

class FakeSession(ISession):
    """Records commands; handler(command) returns (exit, stdout, stderr) or an exception"""

    def __init__(self, handler: Optional[Callable] = None, download_error: Optional[BaseException] = None):
        self.handler = handler or (lambda command: (0, "", ""))
        self.download_error = download_error
        self.commands: List[str] = []
        self.downloads: List[tuple] = []
        self.closed = False

    @property
    def state(self) -> SessionState:
        return SessionState.DISCONNECTED if self.closed else SessionState.READY

    def is_healthy(self) -> bool:
        return not self.closed

    async def run(self, command: str) -> tuple:
        self.commands.append(command)
        result = self.handler(command)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def download(self, remote_path: str, local_path: str) -> None:
        self.downloads.append((remote_path, local_path))
        if self.download_error is not None:
            error, self.download_error = self.download_error, None
            raise error

    async def close(self) -> None:
        self.closed = True


class FakeSessionManager(ISessionManager):
    """Hands out sessions in order; the last one is reused once the list runs out"""

    def __init__(self, *sessions: FakeSession):
        self._pending = list(sessions) or [FakeSession()]
        self.current: Optional[FakeSession] = None
        self.acquired = 0
        self.discarded = 0
        self.released = 0

    @property
    def target(self) -> RemoteTarget:
        return RemoteTarget(host="mac.local", username="builder")

    @property
    def state(self) -> SessionState:
        return SessionState.READY if self.current else SessionState.DISCONNECTED

    async def acquire(self) -> FakeSession:
        self.acquired += 1
        if self.current is None:
            self.current = self._pending.pop(0) if len(self._pending) > 1 else self._pending[0]
        return self.current

    async def discard(self, session: Optional[FakeSession] = None) -> None:
        self.discarded += 1
        if session is None or session is self.current:
            self.current = None

    async def release(self) -> None:
        self.released += 1
        self.current = None


# ===== Fake shell for the setup engine =====

Outcome = Union[bool, str, BaseException]


class FakeShell(IRemoteShell):
    """Scripted remote host

    rules: substring -> outcome, first match wins (insertion order).
        True / str  -> success (str is stdout)
        False       -> exit 1
        exception   -> raised
    effects: substring -> rule updates applied after a matching script succeeds
    """

    def __init__(self, rules: Optional[Dict[str, Outcome]] = None, default: Outcome = True):
        self.rules: Dict[str, Outcome] = dict(rules or {})
        self.effects: Dict[str, Dict[str, Outcome]] = {}
        self.default = default
        self.scripts: List[str] = []
        self.invalidated: List[str] = []

    @property
    def description(self) -> str:
        return "fake shell"

    def _match(self, script: str) -> Outcome:
        for substring, outcome in self.rules.items():
            if substring in script:
                return outcome
        return self.default

    async def run(self, script: str) -> CommandResult:
        self.scripts.append(script)
        outcome = self._match(script)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is False:
            raise CommandExecutionError(script, 1, stderr="failed")
        for trigger, updates in self.effects.items():
            if trigger in script:
                self.rules.update(updates)
        return CommandResult(stdout="" if outcome is True else str(outcome))

    def invalidate_tool(self, tool: str) -> None:
        self.invalidated.append(tool)

    def ran(self, substring: str) -> bool:
        return any(substring in script for script in self.scripts)


# ===== Fixtures =====

@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_sessions(fake_session):
    return FakeSessionManager(fake_session)


@pytest.fixture
def fake_shell():
    return FakeShell()


@pytest.fixture
def no_sleep():
    """Replaces asyncio.sleep for the daemon grace period"""
    return AsyncMock()


@pytest.fixture
def key_target(tmp_path):
    key = tmp_path / "id_ed25519"
    key.write_text("not a real key")
    return RemoteTarget(host="mac.local", username="builder", key_path=str(key))


def make_paramiko_client(active: bool = True, connect_error: Optional[BaseException] = None):
    """MagicMock SSHClient with a transport whose liveness can be flipped"""
    client = MagicMock(spec=paramiko.SSHClient)
    transport = MagicMock()
    transport.is_active.return_value = active
    client.get_transport.return_value = transport
    if connect_error is not None:
        client.connect.side_effect = connect_error
    return client


def set_exec_result(client, exit_status: int = 0, stdout: bytes = b"", stderr: bytes = b""):
    stdin_mock = MagicMock()
    stdout_mock = MagicMock()
    stderr_mock = MagicMock()
    stdout_mock.read.return_value = stdout
    stderr_mock.read.return_value = stderr
    stdout_mock.channel.recv_exit_status.return_value = exit_status
    client.exec_command.return_value = (stdin_mock, stdout_mock, stderr_mock)
    return stdin_mock

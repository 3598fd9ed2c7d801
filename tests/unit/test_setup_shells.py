"""Unit tests for setup shell adapters"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ios_simulator_mcp.server.exceptions import CommandExecutionError, SSHConnectionError
from ios_simulator_mcp.server.interfaces import ICommandRunner
from ios_simulator_mcp.server.models import CommandResult
from ios_simulator_mcp.server.setup import OpenSSHShell, PooledShell


@pytest.fixture
def runner():
    mock = MagicMock(spec=ICommandRunner)
    mock.execute = AsyncMock(return_value=CommandResult(stdout="ok"))
    return mock


class TestPooledShell:
    @pytest.mark.asyncio
    async def test_runs_login_bash(self, runner):
        shell = PooledShell(runner)
        result = await shell.run("which idb")

        assert result.stdout == "ok"
        runner.execute.assert_awaited_once_with("bash", ["-l", "-c", "which idb"])

    def test_invalidate_delegates(self, runner):
        PooledShell(runner).invalidate_tool("idb")
        runner.invalidate_tool.assert_called_once_with("idb")

    @pytest.mark.asyncio
    async def test_check_false_on_nonzero_exit(self, runner):
        runner.execute.side_effect = CommandExecutionError("which brew", 1)
        assert await PooledShell(runner).check("which brew") is False

    @pytest.mark.asyncio
    async def test_check_propagates_transport_failure(self, runner):
        runner.execute.side_effect = SSHConnectionError("lost")
        with pytest.raises(SSHConnectionError):
            await PooledShell(runner).check("which brew")

    @pytest.mark.asyncio
    async def test_output_default_on_failure(self, runner):
        runner.execute.side_effect = CommandExecutionError("sw_vers", 1)
        assert await PooledShell(runner).output("sw_vers", default="unknown") == "unknown"


class TestOpenSSHShell:
    @pytest.mark.asyncio
    async def test_ssh_argv(self, runner):
        shell = OpenSSHShell(runner, "mac.local", "builder", port=2222)
        await shell.run("uname | grep -i darwin")

        command, args = runner.execute.await_args.args
        assert command == "ssh"
        assert args == [
            "-o", "ConnectTimeout=5",
            "-o", "BatchMode=yes",
            "-p", "2222",
            "builder@mac.local",
            "bash -l -c 'uname | grep -i darwin'",
        ]
        assert shell.description == "ssh builder@mac.local"

    @pytest.mark.asyncio
    async def test_exit_255_is_transport_failure(self, runner):
        runner.execute.side_effect = CommandExecutionError(
            "ssh", 255, stderr="ssh: connect to host mac.local port 22: Connection refused"
        )
        shell = OpenSSHShell(runner, "mac.local", "builder")

        with pytest.raises(SSHConnectionError) as exc:
            await shell.run("echo 'SSH connection test'")
        assert "ssh-add -l" in exc.value.suggestion

    @pytest.mark.asyncio
    async def test_remote_exit_status_propagates(self, runner):
        runner.execute.side_effect = CommandExecutionError("ssh", 1, stderr="")
        shell = OpenSSHShell(runner, "mac.local", "builder")

        assert await shell.check("pgrep -f '[i]db_companion'") is False

    def test_invalidate_is_noop(self, runner):
        OpenSSHShell(runner, "mac.local", "builder").invalidate_tool("idb")
        runner.invalidate_tool.assert_not_called()

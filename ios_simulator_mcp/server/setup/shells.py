"""Shell adapters used by the setup engine

Both route through a CommandRunner so checks and remediation share the
runner's serialization and error handling.
"""

import logging
import shlex

from ..exceptions import CommandExecutionError, SSHConnectionError
from ..interfaces import ICommandRunner, IRemoteShell
from ..models import CommandResult

logger = logging.getLogger(__name__)

# ssh(1) reserves 255 for its own errors (connect, auth, host key)
OPENSSH_TRANSPORT_EXIT = 255


class PooledShell(IRemoteShell):
    """Runs snippets over the configured remote runner's pooled session"""

    def __init__(self, runner: ICommandRunner):
        self._runner = runner

    @property
    def description(self) -> str:
        return "pooled SSH session"

    async def run(self, script: str) -> CommandResult:
        return await self._runner.execute("bash", ["-l", "-c", script])

    def invalidate_tool(self, tool: str) -> None:
        self._runner.invalidate_tool(tool)


class OpenSSHShell(IRemoteShell):
    """Runs snippets through the local ssh client against an ad-hoc host

    Used when setting up a host other than the configured one. BatchMode
    means key/agent auth only; no password prompts.
    """

    def __init__(self, local_runner: ICommandRunner, host: str, username: str, port: int = 22):
        self._runner = local_runner
        self._host = host
        self._username = username
        self._port = port

    @property
    def description(self) -> str:
        return f"ssh {self._username}@{self._host}"

    def _argv(self, script: str) -> list:
        return [
            "-o", "ConnectTimeout=5",
            "-o", "BatchMode=yes",
            "-p", str(self._port),
            f"{self._username}@{self._host}",
            f"bash -l -c {shlex.quote(script)}",
        ]

    async def run(self, script: str) -> CommandResult:
        try:
            return await self._runner.execute("ssh", self._argv(script))
        except CommandExecutionError as e:
            if e.exit_code == OPENSSH_TRANSPORT_EXIT:
                raise SSHConnectionError(
                    f"ssh to {self._username}@{self._host} failed: {e.stderr or e.stdout}",
                    suggestion=(
                        f"Verify the host is reachable, your key is loaded (ssh-add -l) "
                        f"and that 'ssh {self._username}@{self._host}' works without a password"
                    ),
                ) from e
            raise

    def invalidate_tool(self, tool: str) -> None:
        # Nothing cached for ad-hoc hosts
        pass

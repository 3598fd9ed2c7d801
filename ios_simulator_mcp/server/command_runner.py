"""
Command Runner

Executes automation commands either on this machine or on the configured
remote macOS host over the pooled SSH session.

Local mode: argv passed straight to the OS, never through a shell.
Remote mode: every argument is shell-quoted individually and the command line
is prefixed with the profile preamble so setup-installed tools are on PATH.
"""

import asyncio
import logging
import shlex
from typing import Dict, List, Optional, Sequence

from .error_utils import with_setup_guidance
from .exceptions import CommandExecutionError, RemoteExecutionError
from .interfaces import ICommandRunner, ISession, ISessionManager
from .models import CommandResult
from .session_manager import run_with_reconnect
from .tool_paths import ToolPathCache, is_resolvable, resolve_tool_path, with_profile

logger = logging.getLogger(__name__)

END_OF_OPTIONS = "--"


def with_positionals(options: Sequence[str], positionals: Sequence[str]) -> List[str]:
    """Build an argv with `--` between options and user-controlled values

    Keeps a value such as "-rf" from being parsed as a flag.
    """
    args = list(options)
    if positionals:
        args.append(END_OF_OPTIONS)
        args.extend(positionals)
    return args


def build_remote_command(executable: str, args: Sequence[str]) -> str:
    """Remote command line: profile preamble + individually quoted argv"""
    quoted = " ".join(shlex.quote(part) for part in [executable, *args])
    return with_profile(quoted)


class CommandRunner(ICommandRunner):
    """Dual-mode executor; one instance per process per mode

    Executions are serialized: remote commands share one SSH session and
    are never interleaved.
    """

    def __init__(
        self,
        session_manager: Optional[ISessionManager] = None,
        tool_paths: Optional[ToolPathCache] = None,
        tool_overrides: Optional[Dict[str, str]] = None,
    ):
        self._sessions = session_manager
        self._tool_paths = tool_paths if tool_paths is not None else ToolPathCache()
        self._overrides = dict(tool_overrides or {})
        self._lock = asyncio.Lock()

    @property
    def is_remote(self) -> bool:
        return self._sessions is not None

    @property
    def tool_paths(self) -> ToolPathCache:
        return self._tool_paths

    async def execute(self, command: str, args: List[str]) -> CommandResult:
        async with self._lock:
            try:
                if self._sessions is None:
                    return await self._execute_local(command, args)
                return await self._execute_remote(command, args)
            except RemoteExecutionError as e:
                raise with_setup_guidance(e, remote_configured=self.is_remote)

    # ========================================================================
    # Local
    # ========================================================================

    async def _execute_local(self, command: str, args: List[str]) -> CommandResult:
        argv = [command, *args]
        logger.debug(f"Executing locally: {argv}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CommandExecutionError(
                shlex.join(argv), 127, stderr=f"{command}: command not found"
            ) from e
        except PermissionError as e:
            raise CommandExecutionError(
                shlex.join(argv), 126, stderr=f"{command}: Permission denied"
            ) from e

        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

        if process.returncode != 0:
            raise CommandExecutionError(
                shlex.join(argv), process.returncode, stderr=stderr, stdout=stdout
            )
        return CommandResult(stdout=stdout, stderr=stderr)

    # ========================================================================
    # Remote
    # ========================================================================

    async def _execute_remote(self, command: str, args: List[str]) -> CommandResult:
        executable = await self._resolve(command)
        remote_command = build_remote_command(executable, args)
        logger.debug(f"Executing remotely: {remote_command}")

        async def run(session: ISession) -> tuple[int, str, str]:
            return await session.run(remote_command)

        exit_status, stdout, stderr = await run_with_reconnect(self._sessions, run)
        stdout, stderr = stdout.strip(), stderr.strip()

        if exit_status != 0:
            raise CommandExecutionError(remote_command, exit_status, stderr=stderr, stdout=stdout)
        return CommandResult(stdout=stdout, stderr=stderr)

    async def _resolve(self, tool: str) -> str:
        override = self._overrides.get(tool)
        if override:
            return override
        if not is_resolvable(tool):
            return tool

        cached = self._tool_paths.get(tool)
        if cached is not None:
            return cached

        async def run_probe(probe: str) -> tuple[int, str, str]:
            async def run(session: ISession) -> tuple[int, str, str]:
                return await session.run(probe)

            return await run_with_reconnect(self._sessions, run)

        path = await resolve_tool_path(tool, run_probe)
        if path is None:
            return tool
        self._tool_paths.store(tool, path)
        return path

    def invalidate_tool(self, tool: str) -> None:
        self._tool_paths.invalidate(tool)

    def cached_tool_paths(self) -> Dict[str, str]:
        return self._tool_paths.snapshot()

"""Remote tool path resolution

Logical tool names (currently only ``idb``) are looked up on the remote host
once and cached. pip installs idb into the interpreter's user base, which is
often not on the PATH of a non-interactive SSH session, so lookup falls back
through well-known install locations.
"""

import logging
import shlex
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Sourced before every remote command so PATH changes made by setup are visible
PROFILE_PREAMBLE = "source ~/.zshrc 2>/dev/null || source ~/.bash_profile 2>/dev/null || true"

# Logical tool -> well-known install locations, checked in order after `which`.
# $HOME is expanded by the remote shell.
KNOWN_LOCATIONS: Dict[str, tuple] = {
    "idb": (
        "/opt/homebrew/bin/idb",
        "/usr/local/bin/idb",
        "$HOME/.local/bin/idb",
    ),
}

RemoteRun = Callable[[str], Awaitable[tuple[int, str, str]]]


def with_profile(command: str) -> str:
    return f"{PROFILE_PREAMBLE}; {command}"


class ToolPathCache:
    """Logical tool name -> resolved absolute path on the remote host

    Entries are written once by resolution and only removed by invalidate()
    or clear(); a resolved path is never overwritten in place.
    """

    def __init__(self):
        self._paths: Dict[str, str] = {}

    def get(self, tool: str) -> Optional[str]:
        return self._paths.get(tool)

    def store(self, tool: str, path: str) -> None:
        if tool in self._paths:
            raise KeyError(f"Path for '{tool}' already cached; invalidate it first")
        self._paths[tool] = path
        logger.info(f"Resolved remote {tool}: {path}")

    def invalidate(self, tool: str) -> bool:
        removed = self._paths.pop(tool, None)
        if removed is not None:
            logger.info(f"Invalidated cached path for {tool} ({removed})")
        return removed is not None

    def clear(self) -> None:
        self._paths.clear()

    def snapshot(self) -> Dict[str, str]:
        return dict(self._paths)

    def __contains__(self, tool: str) -> bool:
        return tool in self._paths

    def __len__(self) -> int:
        return len(self._paths)


def is_resolvable(tool: str) -> bool:
    return tool in KNOWN_LOCATIONS


async def resolve_tool_path(tool: str, run: RemoteRun) -> Optional[str]:
    """Find the absolute path of a tool on the remote host

    Order: ``which`` on the login PATH, well-known install locations, then
    ``<python3 user base>/bin``. Returns None when nothing is found.

    Args:
        tool: Logical tool name
        run: Runs one remote command string, returns (exit, stdout, stderr)
    """
    exit_status, stdout, _ = await run(with_profile(f"which {shlex.quote(tool)}"))
    if exit_status == 0 and stdout.strip():
        return stdout.strip().splitlines()[0]

    for location in KNOWN_LOCATIONS.get(tool, ()):
        # Double quotes so $HOME expands; locations are static strings
        exit_status, stdout, _ = await run(f'test -x "{location}" && echo "{location}"')
        if exit_status == 0 and stdout.strip():
            return stdout.strip()

    exit_status, stdout, _ = await run(with_profile("python3 -m site --user-base"))
    user_base = stdout.strip()
    if exit_status == 0 and user_base:
        candidate = f"{user_base}/bin/{tool}"
        exit_status, _, _ = await run(f"test -f {shlex.quote(candidate)}")
        if exit_status == 0:
            return candidate

    logger.warning(f"Could not resolve {tool} on remote host, falling back to bare name")
    return None

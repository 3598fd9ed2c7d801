"""Remediation actions

Each action is idempotent: its precondition is re-checked right before it
runs and a satisfied precondition skips it. Actions apply in rank order so
dependencies (Homebrew before idb-companion, pip before fb-idb) come first.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Tuple

from ..exceptions import SetupActionError
from ..interfaces import IRemoteShell

logger = logging.getLogger(__name__)

INSTALL_HOMEBREW = "install_homebrew"
REGISTER_HOMEBREW_PATH = "register_homebrew_path"
INSTALL_PYTHON = "install_python"
CONFIGURE_PIP = "configure_pip"
INSTALL_IDB_COMPANION = "install_idb_companion"
INSTALL_FB_IDB = "install_fb_idb"
REGISTER_PYTHON_BIN_PATH = "register_python_bin_path"
START_IDB_COMPANION = "start_idb_companion"

BREW = "PATH=/opt/homebrew/bin:$PATH"
PROFILES = "~/.zshrc ~/.bash_profile"

DAEMON_LOG = "/tmp/idb_companion.log"
DAEMON_GRPC_PORT = 10882
DEFAULT_GRACE_PERIOD = 3.0

# Shared with the analysis checks
HOMEBREW_ON_PATH = (
    "which brew || grep -qs '/opt/homebrew/bin' ~/.zshrc || grep -qs '/opt/homebrew/bin' ~/.bash_profile"
)
IDB_COMPANION_INSTALLED = f"{BREW} brew list idb-companion >/dev/null 2>&1 || which idb_companion"
PYTHON_BIN_ON_PATH = (
    'bin_dir="$(python3 -m site --user-base)/bin"; '
    'grep -qsF "$bin_dir" ~/.zshrc || grep -qsF "$bin_dir" ~/.bash_profile '
    "|| grep -qs '/.local/bin' ~/.zshrc || grep -qs '/.local/bin' ~/.bash_profile"
)

# Single-quoted echo so $PATH is written literally, not expanded now
_REGISTER_HOMEBREW = (
    f"for profile in {PROFILES}; do "
    "grep -qs '/opt/homebrew/bin' \"$profile\" || "
    "echo 'export PATH=\"/opt/homebrew/bin:$PATH\"' >> \"$profile\"; done"
)
_REGISTER_PYTHON_BIN = (
    'bin_dir="$(python3 -m site --user-base)/bin"; '
    f"for profile in {PROFILES}; do "
    'grep -qsF "$bin_dir" "$profile" || '
    'echo "export PATH=\\"$bin_dir:\\$PATH\\"" >> "$profile"; done'
)


@dataclass(frozen=True)
class RemediationAction:
    """One automatable fix for a MISSING check"""

    key: str
    title: str
    rank: int
    precondition: Optional[str] = None
    steps: Tuple[str, ...] = ()
    postcondition: Optional[str] = None
    invalidates: FrozenSet[str] = frozenset()

    async def is_satisfied(self, shell: IRemoteShell) -> bool:
        if self.precondition is None:
            return False
        return await shell.check(self.precondition)

    async def apply(self, shell: IRemoteShell) -> str:
        """Run the steps, then verify

        Raises:
            CommandExecutionError: A step exited nonzero
            SetupActionError: Steps ran but the postcondition does not hold
        """
        for step in self.steps:
            await shell.run(step)
        if self.postcondition and not await shell.check(self.postcondition):
            raise SetupActionError(self.key, f"{self.title}: verification failed after install")
        return f"{self.title}: done"


@dataclass(frozen=True)
class DaemonStartAction(RemediationAction):
    """Restart idb_companion and confirm it is still alive after a grace period"""

    grace_period: float = DEFAULT_GRACE_PERIOD
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    async def apply(self, shell: IRemoteShell) -> str:
        await shell.run("pkill -f '[i]db_companion' >/dev/null 2>&1 || true")
        await shell.run(
            f"{BREW} nohup idb_companion --udid all --grpc-port {DAEMON_GRPC_PORT} "
            f"--log-level INFO >{DAEMON_LOG} 2>&1 </dev/null &"
        )
        await self.sleep(self.grace_period)

        if await shell.check("pgrep -f '[i]db_companion'"):
            logger.info("idb_companion daemon started")
            return "idb_companion daemon started successfully"

        log_tail = await shell.output(f"tail -10 {DAEMON_LOG} 2>/dev/null", default=None)
        raise SetupActionError(
            self.key, "Failed to start idb_companion daemon", log_tail=log_tail or None
        )


def default_actions(
    grace_period: float = DEFAULT_GRACE_PERIOD,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Dict[str, RemediationAction]:
    """Action catalog keyed by action key"""
    catalog = [
        RemediationAction(
            key=INSTALL_HOMEBREW,
            title="Install Homebrew package manager",
            rank=0,
            precondition=f"{BREW} which brew",
            steps=(
                'NONINTERACTIVE=1 /bin/bash -c "$(curl -fsSL '
                'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"',
                _REGISTER_HOMEBREW,
            ),
            postcondition=f"{BREW} which brew",
        ),
        RemediationAction(
            key=REGISTER_HOMEBREW_PATH,
            title="Add /opt/homebrew/bin to PATH in shell profiles",
            rank=1,
            precondition=HOMEBREW_ON_PATH,
            steps=(_REGISTER_HOMEBREW,),
        ),
        RemediationAction(
            key=INSTALL_PYTHON,
            title="Install Python3 via Homebrew",
            rank=2,
            precondition="which python3",
            steps=(f"{BREW} brew install python3",),
            postcondition=f"{BREW} which python3",
        ),
        RemediationAction(
            key=CONFIGURE_PIP,
            title="Configure pip3 for Python3",
            rank=3,
            precondition="which pip3",
            steps=("python3 -m ensurepip --upgrade",),
            postcondition="python3 -m pip --version",
        ),
        RemediationAction(
            key=INSTALL_IDB_COMPANION,
            title="Install idb-companion via Homebrew",
            rank=4,
            precondition=IDB_COMPANION_INSTALLED,
            steps=(f"{BREW} brew tap facebook/fb", f"{BREW} brew install idb-companion"),
            postcondition=f"{BREW} which idb_companion",
        ),
        RemediationAction(
            key=INSTALL_FB_IDB,
            title="Install fb-idb Python package",
            rank=5,
            precondition="pip3 show fb-idb",
            # Homebrew Python refuses plain installs (externally managed environment)
            steps=(
                "pip3 install fb-idb || pip3 install --user --break-system-packages fb-idb",
            ),
            postcondition="pip3 show fb-idb",
            invalidates=frozenset({"idb"}),
        ),
        RemediationAction(
            key=REGISTER_PYTHON_BIN_PATH,
            title="Add Python bin directory to PATH for idb command",
            rank=6,
            precondition=PYTHON_BIN_ON_PATH,
            steps=(_REGISTER_PYTHON_BIN,),
            invalidates=frozenset({"idb"}),
        ),
        DaemonStartAction(
            key=START_IDB_COMPANION,
            title="Start idb_companion daemon",
            rank=7,
            precondition="pgrep -f '[i]db_companion'",
            grace_period=grace_period,
            sleep=sleep,
        ),
    ]
    return {action.key: action for action in catalog}

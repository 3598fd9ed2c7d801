"""Host analysis checks

Each check inspects one piece of the remote toolchain and produces a
CheckResult. Things we cannot fix (no macOS, no Xcode, no simulators) are
BLOCKING; things we can install or start are MISSING and name the
remediation action that fixes them.
"""

import logging
from typing import List, Optional

from ..exceptions import RemoteExecutionError
from ..interfaces import IRemoteShell
from ..models import CheckResult, CheckStatus
from . import actions as keys

logger = logging.getLogger(__name__)

BREW_PATH = "PATH=/opt/homebrew/bin:$PATH"

# Bracketed first letter keeps pgrep/ps from matching the shell running the check
DAEMON_PATTERN = "[i]db_companion"


def satisfied(name: str, detail: str, info: Optional[List[str]] = None) -> CheckResult:
    return CheckResult(name=name, status=CheckStatus.SATISFIED, detail=detail, info=info or [])


def missing(name: str, detail: str, action: str) -> CheckResult:
    return CheckResult(name=name, status=CheckStatus.MISSING, detail=detail, action=action)


def blocking(name: str, detail: str, info: Optional[List[str]] = None) -> CheckResult:
    return CheckResult(name=name, status=CheckStatus.BLOCKING, detail=detail, info=info or [])


class HostAnalyzer:
    """Runs the ordered analysis checks against one host

    Once reachability is confirmed, transport failures propagate instead of
    being reported as failed checks.
    """

    def __init__(self, shell: IRemoteShell, host: str, username: str):
        self.shell = shell
        self.host = host
        self.username = username

    async def analyze(self) -> List[CheckResult]:
        results: List[CheckResult] = []

        reachability = await self.check_ssh()
        results.append(reachability)
        if reachability.status == CheckStatus.BLOCKING:
            logger.warning(f"Host {self.host} unreachable, skipping remaining checks")
            return results

        results.append(await self.check_macos())
        results.append(await self.check_xcode())
        results.append(await self.check_simulators())
        results.extend(await self.check_homebrew())
        results.append(await self.check_python())
        results.append(await self.check_pip())
        results.append(await self.check_idb_companion())
        results.append(await self.check_fb_idb())
        results.append(await self.check_idb_command())
        results.append(await self.check_daemon())
        return results

    async def _version(self, script: str, prefix: str = "Version: ") -> List[str]:
        value = await self.shell.output(script, default="")
        return [f"{prefix}{(value or '').strip() or 'unknown'}"]

    # ========================================================================
    # Missing requirements (manual)
    # ========================================================================

    async def check_ssh(self) -> CheckResult:
        try:
            await self.shell.run("echo 'SSH connection test'")
        except RemoteExecutionError as e:
            logger.warning(f"SSH reachability check failed for {self.host}: {e.message}")
            return blocking(
                "ssh",
                f"SSH connection to {self.host} failed - check network, host, and SSH keys",
                info=[
                    f"Error: {e.message}",
                    f"Host is reachable: {self.host}",
                    "SSH keys are loaded: ssh-add -l",
                    f"Can SSH manually: ssh {self.username}@{self.host}",
                ],
            )
        return satisfied("ssh", "SSH connection working")

    async def check_macos(self) -> CheckResult:
        if not await self.shell.check("uname | grep -i darwin"):
            return blocking("macos", "Remote host is not macOS (expected Darwin kernel)")
        return satisfied("macos", "macOS confirmed", await self._version("sw_vers -productVersion"))

    async def check_xcode(self) -> CheckResult:
        if not await self.shell.check("which xcrun"):
            return blocking(
                "xcode",
                "Xcode not installed - please install from Mac App Store or developer.apple.com",
            )
        if not await self.shell.check("xcrun simctl help"):
            return blocking(
                "xcode",
                "Xcode found but xcrun simctl not working - may need to complete installation",
            )
        return satisfied(
            "xcode", "Xcode working", await self._version("xcrun --version 2>/dev/null | head -1")
        )

    async def check_simulators(self) -> CheckResult:
        if not await self.shell.check("xcrun simctl list devices | grep -E '(iPhone|iPad)'"):
            return blocking(
                "simulators",
                "No iOS simulators found - install via Xcode > Settings > Platforms",
            )
        booted = await self.shell.output(
            "xcrun simctl list devices | grep 'Booted' | wc -l | tr -d ' '", default="0"
        )
        return satisfied(
            "simulators", "iOS Simulators found", [f"Booted simulators: {(booted or '').strip() or '0'}"]
        )

    # ========================================================================
    # Needed actions (automatable)
    # ========================================================================

    async def check_homebrew(self) -> List[CheckResult]:
        if not await self.shell.check(f"{BREW_PATH} which brew"):
            return [missing("homebrew", "Homebrew missing", keys.INSTALL_HOMEBREW)]

        results = [
            satisfied(
                "homebrew",
                "Homebrew installed",
                await self._version(f"{BREW_PATH} brew --version 2>/dev/null | head -1"),
            )
        ]
        if await self.shell.check(keys.HOMEBREW_ON_PATH):
            results.append(satisfied("homebrew_path", "Homebrew on PATH"))
        else:
            results.append(
                missing("homebrew_path", "Homebrew not on login PATH", keys.REGISTER_HOMEBREW_PATH)
            )
        return results

    async def check_python(self) -> CheckResult:
        if not await self.shell.check("which python3"):
            return missing("python3", "Python3 missing", keys.INSTALL_PYTHON)
        return satisfied(
            "python3", "Python3 installed", await self._version("python3 --version 2>/dev/null")
        )

    async def check_pip(self) -> CheckResult:
        if not await self.shell.check("which pip3"):
            return missing("pip3", "pip3 missing", keys.CONFIGURE_PIP)
        return satisfied("pip3", "pip3 available", await self._version("pip3 --version 2>/dev/null"))

    async def check_idb_companion(self) -> CheckResult:
        if await self.shell.check(keys.IDB_COMPANION_INSTALLED):
            return satisfied("idb_companion", "idb-companion installed")
        return missing("idb_companion", "idb-companion missing", keys.INSTALL_IDB_COMPANION)

    async def check_fb_idb(self) -> CheckResult:
        if not await self.shell.check("pip3 show fb-idb"):
            return missing("fb_idb", "fb-idb missing", keys.INSTALL_FB_IDB)
        return satisfied(
            "fb_idb",
            "fb-idb installed",
            await self._version("pip3 show fb-idb 2>/dev/null | grep Version", prefix=""),
        )

    async def check_idb_command(self) -> CheckResult:
        if await self.shell.check("which idb"):
            return satisfied("idb_command", "idb command in PATH")
        if await self.shell.check("python3 -c 'import idb'"):
            if await self.shell.check(keys.PYTHON_BIN_ON_PATH):
                return satisfied("idb_command", "idb module available, Python bin registered")
            return missing(
                "idb_command", "idb module available but not on PATH", keys.REGISTER_PYTHON_BIN_PATH
            )
        # Resolved by installing fb-idb
        return missing("idb_command", "idb not accessible", keys.INSTALL_FB_IDB)

    async def check_daemon(self) -> CheckResult:
        if not await self.shell.check(f"pgrep -f '{DAEMON_PATTERN}'"):
            return missing(
                "idb_companion_daemon", "idb_companion daemon not running", keys.START_IDB_COMPANION
            )
        process = await self.shell.output(
            f"ps aux | grep '{DAEMON_PATTERN}' | head -1", default=""
        )
        return satisfied(
            "idb_companion_daemon",
            "idb_companion daemon running",
            [f"Process: {(process or '').strip() or 'running'}"],
        )

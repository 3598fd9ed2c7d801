"""Application Lifecycle Management

Builds the execution core at startup and tears it down on shutdown.
"""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastmcp import FastMCP

from .command_runner import CommandRunner
from .config import ServerConfig, load_config
from .context import clear_app, set_app
from .file_transfer import FileTransfer
from .models import SessionState, SessionStatus
from .session_manager import SSHSessionManager

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "ios-simulator-mcp-"


@dataclass
class AppContext:
    """Process-wide services shared by tools and resources

    `runner` targets the configured host (remote mode) or this machine;
    `local_runner` always runs locally (used for ad-hoc ssh during setup).
    """

    config: ServerConfig = field()
    runner: CommandRunner = field()
    local_runner: CommandRunner = field()
    file_transfer: FileTransfer = field()
    scratch_dir: str = field()
    sessions: Optional[SSHSessionManager] = field(default=None)

    def session_status(self) -> SessionStatus:
        """Snapshot for the remote://session resource"""
        if self.sessions is None:
            return SessionStatus(mode="local")

        target = self.sessions.target
        session = self.sessions.session
        state = self.sessions.state
        return SessionStatus(
            mode="remote",
            state=state,
            target=target.address,
            auth_method=target.auth_method,
            connected_at=session.connected_at if session and state == SessionState.READY else None,
            tool_paths=self.runner.cached_tool_paths(),
        )


def create_app_context(config: ServerConfig) -> AppContext:
    """Wire the execution core for a configuration"""
    target = config.remote_target()
    sessions = SSHSessionManager(target, config.connect_timeout) if target else None
    if target:
        logger.info(f"Remote mode: {target.address} (auth: {target.auth_method.value})")
    else:
        logger.info("Local mode: commands run on this machine")

    return AppContext(
        config=config,
        runner=CommandRunner(sessions, tool_overrides=config.tool_overrides()),
        local_runner=CommandRunner(),
        file_transfer=FileTransfer(sessions),
        scratch_dir=tempfile.mkdtemp(prefix=SCRATCH_PREFIX),
        sessions=sessions,
    )


async def shutdown_app_context(context: AppContext) -> None:
    try:
        if context.sessions is not None:
            await context.sessions.release()
    finally:
        await asyncio.to_thread(shutil.rmtree, context.scratch_dir, True)
        logger.info(f"Removed scratch directory {context.scratch_dir}")


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle"""
    get_config = getattr(server, "get_config", None)
    config = get_config() if get_config else load_config()

    context = create_app_context(config)
    set_app(context)
    logger.info("iOS Simulator MCP server ready")

    try:
        yield context
    finally:
        clear_app()
        await shutdown_app_context(context)
        logger.info("iOS Simulator MCP server shutdown complete")

"""iOS Simulator MCP server

Remote execution and host setup for iOS simulator automation
"""

import argparse
import logging
import sys
from typing import Annotated, Optional

from fastmcp import Context, FastMCP

from .app import AppContext, app_lifespan
from .config import ServerConfig, load_config, load_env_file
from .context import get_app
from .error_utils import SETUP_TOOL_NAME, get_version
from .prompts import render_remote_setup_prompt
from .tools.setup_tools import setup_remote_host_impl

VERSION = get_version()

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S %d.%m.%Y"

# Logs go to stderr; stdout carries the stdio transport
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stderr)
logger = logging.getLogger(__name__)


def create_server(config: ServerConfig) -> FastMCP:
    """Build the FastMCP server for a configuration

    Tools named in IOS_SIMULATOR_MCP_FILTERED_TOOLS are not registered.
    """
    mcp = FastMCP("iOS Simulator", lifespan=app_lifespan)
    mcp.get_config = lambda: config

    # ========================================================================
    # MCP Resources
    # ========================================================================

    @mcp.resource(
        "remote://session",
        name="Remote session",
        title="Remote execution session",
        description="Execution mode, SSH session state, target and resolved tool paths",
        mime_type="application/json",
    )
    async def resource_session() -> str:
        """Remote session state"""
        return get_app().session_status().model_dump_json(indent=2)

    # ========================================================================
    # MCP Prompts
    # ========================================================================

    @mcp.prompt(
        name="Remote Host Setup Workflow",
        title="Prepare a Mac for remote simulator automation",
        description="Dry run, apply and configure steps for setup_remote_host",
        tags={"workflow", "setup", "ssh", "guided"},
    )
    async def remote_setup(
        host: Annotated[Optional[str], "macOS host to set up"] = None,
        username: Annotated[Optional[str], "SSH username"] = None,
    ) -> str:
        """Remote Host Setup Workflow"""
        return await render_remote_setup_prompt(
            host or config.ssh_host, username or config.ssh_username
        )

    # ========================================================================
    # MCP Tools
    # ========================================================================

    if config.is_tool_filtered(SETUP_TOOL_NAME):
        logger.info(f"Tool {SETUP_TOOL_NAME} filtered by configuration")
    else:

        @mcp.tool(name=SETUP_TOOL_NAME, tags={"setup", "ssh", "remote"})
        async def setup_remote_host(
            ctx: Context,
            host: Annotated[
                Optional[str], "macOS host (default: IOS_SIMULATOR_SSH_HOST)"
            ] = None,
            username: Annotated[
                Optional[str], "SSH username (default: IOS_SIMULATOR_SSH_USERNAME)"
            ] = None,
            dry_run: Annotated[bool, "Only analyze, make no changes"] = False,
            auto_confirm: Annotated[bool, "Apply needed actions without asking"] = False,
        ) -> str:
            """Set up a remote macOS host for iOS simulator automation

            Analyzes the host (SSH, macOS, Xcode, simulators, Homebrew, Python,
            idb-companion, fb-idb, idb_companion daemon), reports what is missing
            and, with auto_confirm, installs and starts what can be automated.

            Start with dry_run=true. Missing requirements (Xcode, simulators)
            must be resolved manually; nothing is changed while any remain.

            Returns:
                Plain-text setup report, or ErrorResponse JSON on failure
            """
            app: AppContext = ctx.request_context.lifespan_context
            return await setup_remote_host_impl(app, host, username, dry_run, auto_confirm)

    return mcp


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="iOS Simulator MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="MCP transport mode: stdio (default), http (Streamable HTTP), sse (legacy SSE)",
    )
    parser.add_argument(
        "--http-host",
        default="127.0.0.1",
        help="HTTP server host (only for http/sse transport, default: 127.0.0.1)",
    )
    parser.add_argument(
        "--http-port",
        type=int,
        default=8000,
        help="HTTP server port (only for http/sse transport, default: 8000)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: IOS_SIMULATOR_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    args = parser.parse_args(argv)

    load_env_file()
    config = load_config()

    level = (args.log_level or config.log_level).upper()
    logging.getLogger().setLevel(level)
    logger.info(f"iOS Simulator MCP server v{VERSION} starting ({args.transport})")
    logger.debug(f"Configuration: {config.model_dump_json(exclude={'ssh_password'})}")

    mcp = create_server(config)

    if args.transport == "stdio":
        mcp.run()
    elif args.transport == "http":
        logger.info(f"HTTP transport at http://{args.http_host}:{args.http_port}/mcp/")
        mcp.run(transport="http", host=args.http_host, port=args.http_port)
    else:
        logger.warning("SSE transport is deprecated. Consider using --transport http instead.")
        mcp.run(transport="sse", host=args.http_host, port=args.http_port)


if __name__ == "__main__":
    main()

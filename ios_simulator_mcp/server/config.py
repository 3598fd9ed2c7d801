"""Server configuration

Read-only settings loaded from the environment (optionally from a .env file).
Remote mode is enabled by IOS_SIMULATOR_SSH_HOST; everything else has defaults.
"""

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import RemoteTarget

logger = logging.getLogger(__name__)

ENV_PREFIX = "IOS_SIMULATOR_"
DEFAULT_CONNECT_TIMEOUT = 10.0


class ServerConfig(BaseModel):
    """Settings consumed by the execution core and the MCP surface"""

    ssh_host: Optional[str] = None
    ssh_port: int = 22
    ssh_username: str = "user"
    ssh_key_path: Optional[str] = None
    ssh_password: Optional[str] = Field(default=None, repr=False)
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    idb_path: Optional[str] = Field(default=None, description="Custom idb path override")
    filtered_tools: List[str] = Field(default_factory=list)
    log_level: str = "INFO"

    model_config = {"frozen": True}

    @property
    def remote_enabled(self) -> bool:
        return bool(self.ssh_host)

    def remote_target(self) -> Optional[RemoteTarget]:
        """RemoteTarget for the configured host, or None in local mode"""
        if not self.remote_enabled:
            return None
        return RemoteTarget(
            host=self.ssh_host,
            port=self.ssh_port,
            username=self.ssh_username,
            key_path=os.path.expanduser(self.ssh_key_path) if self.ssh_key_path else None,
            password=self.ssh_password,
        )

    def tool_overrides(self) -> dict:
        """Logical tool name -> configured remote path"""
        return {"idb": self.idb_path} if self.idb_path else {}

    def is_tool_filtered(self, tool_name: str) -> bool:
        return tool_name in self.filtered_tools


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_env_file(path: Optional[Path] = None) -> bool:
    """Load a .env file into os.environ without overriding existing values

    Defaults to .env in the current working directory.
    """
    env_file = path or Path.cwd() / ".env"
    if not env_file.exists():
        return False
    loaded = load_dotenv(env_file, override=False)
    logger.debug(f"Loaded environment from {env_file}")
    return loaded


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Build ServerConfig from environment variables

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ValueError: If a numeric setting cannot be parsed
    """
    env = os.environ if environ is None else environ

    def get(name: str, default: Optional[str] = None) -> Optional[str]:
        value = env.get(f"{ENV_PREFIX}{name}")
        return value if value not in (None, "") else default

    try:
        port = int(get("SSH_PORT", "22"))
        connect_timeout = float(get("SSH_CONNECT_TIMEOUT", str(DEFAULT_CONNECT_TIMEOUT)))
    except ValueError as e:
        raise ValueError(f"Invalid SSH port/timeout setting: {e}") from e

    return ServerConfig(
        ssh_host=get("SSH_HOST"),
        ssh_port=port,
        ssh_username=get("SSH_USERNAME", "user"),
        ssh_key_path=get("SSH_KEY_PATH"),
        ssh_password=get("SSH_PASSWORD"),
        connect_timeout=connect_timeout,
        idb_path=get("IDB_PATH"),
        filtered_tools=_split_list(get("MCP_FILTERED_TOOLS")),
        log_level=(get("LOG_LEVEL", "INFO") or "INFO").upper(),
    )

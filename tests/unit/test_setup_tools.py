"""Unit tests for the setup_remote_host tool implementation"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ios_simulator_mcp.server.config import ServerConfig
from ios_simulator_mcp.server.exceptions import SSHConnectionError
from ios_simulator_mcp.server.setup import OpenSSHShell, PooledShell
from ios_simulator_mcp.server.tools.setup_tools import select_shell, setup_remote_host_impl

RECONCILE = "ios_simulator_mcp.server.tools.setup_tools.reconcile"


def make_app(**config):
    return SimpleNamespace(
        config=ServerConfig(**config), runner=MagicMock(), local_runner=MagicMock()
    )


class TestSelectShell:
    def test_configured_host_uses_pool(self):
        app = make_app(ssh_host="mac.local", ssh_username="builder")
        assert isinstance(select_shell(app, "mac.local", "builder"), PooledShell)

    def test_other_host_uses_openssh(self):
        app = make_app(ssh_host="mac.local", ssh_username="builder")
        shell = select_shell(app, "other.local", "builder")
        assert isinstance(shell, OpenSSHShell)
        assert shell.description == "ssh builder@other.local"

    def test_other_user_uses_openssh(self):
        app = make_app(ssh_host="mac.local", ssh_username="builder")
        assert isinstance(select_shell(app, "mac.local", "admin"), OpenSSHShell)

    def test_local_mode_uses_openssh(self):
        assert isinstance(select_shell(make_app(), "mac.local", "builder"), OpenSSHShell)


class TestSetupRemoteHostImpl:
    @pytest.mark.asyncio
    async def test_defaults_to_configured_host(self):
        app = make_app(ssh_host="mac.local", ssh_username="builder")
        with patch(RECONCILE, new=AsyncMock(return_value="report")) as reconcile:
            result = await setup_remote_host_impl(app, dry_run=True)

        assert result == "report"
        shell, host, username = reconcile.await_args.args
        assert isinstance(shell, PooledShell)
        assert (host, username) == ("mac.local", "builder")
        assert reconcile.await_args.kwargs == {"dry_run": True, "auto_confirm": False}

    @pytest.mark.asyncio
    async def test_no_host(self):
        data = json.loads(await setup_remote_host_impl(make_app()))
        assert data["error"] == "Setup failed"
        assert data["error_code"] == "INVALID_PARAMETER"
        assert "IOS_SIMULATOR_SSH_HOST" in data["details"]

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_error_response(self):
        app = make_app(ssh_host="mac.local", ssh_username="builder")
        with patch(RECONCILE, new=AsyncMock(side_effect=SSHConnectionError("Socket is closed"))):
            data = json.loads(await setup_remote_host_impl(app, auto_confirm=True))

        assert data["error"] == "Setup failed"
        assert data["error_code"] == "SSH_CONNECTION_FAILED"
        assert data["details"] == "Socket is closed"
        assert "ssh builder@mac.local" in data["suggested_action"]
        assert data["server_version"]

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_error_response(self):
        app = make_app(ssh_host="mac.local")
        with patch(RECONCILE, new=AsyncMock(side_effect=KeyError("install_xcode"))):
            data = json.loads(await setup_remote_host_impl(app))

        assert data["error_code"] == "INTERNAL_ERROR"
        assert data["context"] == {"exception": "KeyError"}
        assert "Remote Login" in data["suggested_action"]

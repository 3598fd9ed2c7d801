"""Unit tests for FileTransfer"""

import pytest

from conftest import FakeSession, FakeSessionManager
from ios_simulator_mcp.server.exceptions import FileTransferError, SSHConnectionError
from ios_simulator_mcp.server.file_transfer import FileTransfer


class TestFileTransfer:
    @pytest.mark.asyncio
    async def test_local_mode_is_noop(self, tmp_path):
        local_path = tmp_path / "nested" / "shot.png"
        await FileTransfer().download("/tmp/shot.png", str(local_path))
        assert not local_path.parent.exists()

    @pytest.mark.asyncio
    async def test_download_creates_parent(self, tmp_path, fake_sessions, fake_session):
        local_path = tmp_path / "out" / "shots" / "shot.png"

        await FileTransfer(fake_sessions).download("/tmp/shot.png", str(local_path))
        assert local_path.parent.is_dir()
        assert fake_session.downloads == [("/tmp/shot.png", str(local_path))]

    @pytest.mark.asyncio
    async def test_retries_once_on_transport_loss(self, tmp_path):
        broken = FakeSession(download_error=SSHConnectionError("lost"))
        healthy = FakeSession()
        sessions = FakeSessionManager(broken, healthy)

        await FileTransfer(sessions).download("/tmp/rec.mp4", str(tmp_path / "rec.mp4"))
        assert sessions.discarded == 1
        assert len(healthy.downloads) == 1

    @pytest.mark.asyncio
    async def test_missing_remote_file_not_retried(self, tmp_path):
        session = FakeSession(download_error=FileTransferError("No such file"))
        sessions = FakeSessionManager(session)

        with pytest.raises(FileTransferError):
            await FileTransfer(sessions).download("/tmp/missing.png", str(tmp_path / "x.png"))
        assert sessions.discarded == 0
        assert len(session.downloads) == 1

    @pytest.mark.asyncio
    async def test_unwritable_parent(self, tmp_path, fake_sessions):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(FileTransferError):
            await FileTransfer(fake_sessions).download("/tmp/shot.png", str(blocker / "shot.png"))

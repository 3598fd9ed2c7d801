"""File transfer from the remote host

Screenshots and recordings are produced on the Mac; this copies them back
over SFTP on the pooled session. In local mode the artifact is already where
it needs to be.
"""

import logging
import os
from typing import Optional

from .exceptions import FileTransferError
from .interfaces import IFileTransfer, ISession, ISessionManager
from .session_manager import run_with_reconnect

logger = logging.getLogger(__name__)


class FileTransfer(IFileTransfer):
    def __init__(self, session_manager: Optional[ISessionManager] = None):
        # Shared with the command runner, so a broken session found here is
        # discarded for both
        self._sessions = session_manager

    async def download(self, remote_path: str, local_path: str) -> None:
        if self._sessions is None:
            return

        parent = os.path.dirname(os.path.abspath(local_path))
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise FileTransferError(
                f"Cannot create local directory {parent}: {e}",
                suggestion="Choose an output path in a writable directory",
            ) from e

        async def fetch(session: ISession) -> None:
            await session.download(remote_path, local_path)

        await run_with_reconnect(self._sessions, fetch)
        logger.info(f"Downloaded {remote_path} -> {local_path}")

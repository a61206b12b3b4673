"""Raw message storage: one .eml file per message, never overwritten."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from imap_sync.core.exceptions import DirectoryError, WriteError
from imap_sync.core.models import LocalMessageRecord
from imap_sync.core.naming import fingerprint, message_path

logger = logging.getLogger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


class MessageStore:
    """Store raw message bytes under a directory, keyed by Message-ID fingerprint."""

    def __init__(self, messages_dir: Path | str) -> None:
        self._messages_dir = Path(messages_dir)

    @property
    def messages_dir(self) -> Path:
        return self._messages_dir

    def ensure_directory(self) -> None:
        """Create the messages directory (and parents) with owner-only permissions.

        Raises:
            DirectoryError: If the directory cannot be created.
        """
        # Path.mkdir(parents=True) gives ancestors the umask default, so create
        # each missing one explicitly.
        try:
            for directory in [*reversed(self._messages_dir.parents), self._messages_dir]:
                if not directory.is_dir():
                    directory.mkdir(mode=DIR_MODE, exist_ok=True)
        except OSError as e:
            raise DirectoryError(
                f"Error creating email directory {self._messages_dir}: {e}"
            ) from e

    def record_for(self, message_id: str) -> LocalMessageRecord:
        """Resolve the file path for a message and check once whether it exists.

        Raises:
            WriteError: If the path exists but cannot be inspected.
        """
        path = message_path(self._messages_dir, message_id)
        try:
            path.stat()
            exists = True
        except FileNotFoundError:
            exists = False
        except OSError as e:
            raise WriteError(f"Error checking {path}: {e}") from e
        return LocalMessageRecord(fingerprint=fingerprint(message_id), path=path, exists=exists)

    def write(self, path: Path, body: bytes) -> Path:
        """Write message bytes to path without ever replacing an existing file.

        The content goes to a temporary file in the same directory first and is
        published with a hard link once fully written, so an interrupted run
        never leaves a truncated file at the final path.

        Args:
            path: Target path, normally from record_for().
            body: Raw message bytes (header block and body).

        Returns:
            The written path.

        Raises:
            WriteError: If writing fails or the target already exists.
        """
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.stem[:16]}.", suffix=".tmp"
            )
        except OSError as e:
            raise WriteError(f"Failed to create temporary file for {path}: {e}") from e

        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    os.fchmod(f.fileno(), FILE_MODE)
                    f.write(body)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise WriteError(f"Failed to write body to {path}: {e}") from e

            try:
                os.link(tmp_name, path)
            except FileExistsError as e:
                raise WriteError(f"Refusing to overwrite existing file {path}") from e
            except OSError as e:
                raise WriteError(f"Failed to publish {path}: {e}") from e
        finally:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass

        logger.debug("Wrote message: %s (%d bytes)", path, len(body))
        return path

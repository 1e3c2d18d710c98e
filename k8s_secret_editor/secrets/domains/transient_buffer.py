"""Owner-only temp file holding secret bytes while they are being edited."""
import logging
import os
import tempfile
from typing import Optional

from ...errors import BufferIOError

logger = logging.getLogger(__name__)

TEMP_PREFIX = "k8s-secret-editor-"
OWNER_READ_WRITE = 0o600


class TransientBuffer:
    """
    Scratch file for one edit session.

    Use it as a context manager so the file is removed on every exit path:

        with TransientBuffer.create() as buf:
            buf.write(data)
            editor.open(buf.path)
            edited = buf.read()

    Calling release() twice raises BufferIOError, which surfaces
    double-free bugs instead of hiding them.
    """

    def __init__(self, file, path: str):
        self._file = file
        self._path = path
        self._released = False

    @classmethod
    def create(cls, directory: Optional[str] = None) -> "TransientBuffer":
        """
        Allocate a uniquely named file readable and writable by the owner only.

        Raises:
            BufferIOError: If the file cannot be created or protected. A file
                that could not be protected is removed before raising.
        """
        try:
            fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=directory or tempfile.gettempdir())
        except OSError as e:
            raise BufferIOError(f"error creating temp file: {e}") from e

        try:
            os.chmod(path, OWNER_READ_WRITE)
        except OSError as e:
            try:
                os.close(fd)
            except OSError as cleanup_error:
                logger.warning(f"Could not close temp file {path}: {cleanup_error}")
            try:
                os.remove(path)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove temp file {path}: {cleanup_error}")
            raise BufferIOError(f"error setting file permissions: {e}") from e

        logger.debug(f"Created temp file {path}")
        return cls(os.fdopen(fd, "w+b"), path)

    @property
    def path(self) -> str:
        """Backing path, for the external editor only."""
        return self._path

    @property
    def released(self) -> bool:
        return self._released

    def write(self, data: bytes) -> None:
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError) as e:
            raise BufferIOError(f"error writing to temp file: {e}") from e

    def read(self) -> bytes:
        """Return the full content, always from the start of the file."""
        # Editors often save by writing a new file and renaming it over the
        # old one, so read through the path rather than the open handle.
        try:
            with open(self._path, "rb") as f:
                return f.read()
        except OSError as e:
            raise BufferIOError(f"error reading from temp file: {e}") from e

    def release(self) -> None:
        """Close the handle and delete the file."""
        self._released = True
        try:
            self._file.close()
        except OSError as e:
            raise BufferIOError(f"error closing temp file: {e}") from e
        finally:
            try:
                os.remove(self._path)
            except OSError as e:
                raise BufferIOError(f"error removing temp file: {e}") from e
        logger.debug(f"Removed temp file {self._path}")

    def __enter__(self) -> "TransientBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._released:
            return
        if exc is None:
            self.release()
            return
        # the session is already failing; report that error, not the cleanup one
        try:
            self.release()
        except BufferIOError as e:
            logger.warning(f"Could not remove temp file {self._path}: {e}")

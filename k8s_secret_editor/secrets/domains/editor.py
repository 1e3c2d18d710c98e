"""External text editor resolution and invocation."""
import logging
import os
import shutil
import subprocess
from typing import Mapping, Optional, Protocol

from ...errors import (
    EditorExecutionError,
    EditorIsDirectoryError,
    EditorNotExecutableError,
    EditorNotFoundError,
    NoEditorConfiguredError,
)

logger = logging.getLogger(__name__)

EDITOR_ENV_VAR = "EDITOR"
ANY_EXECUTE_BIT = 0o111


class Editor(Protocol):
    """Anything that can open a file for interactive editing and block until done."""

    def open(self, path: str) -> None:
        ...


def resolve_editor_path(
    explicit: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    fallback: Optional[str] = None,
) -> str:
    """
    Pick the editor program to run.

    Priority order:
    1. Explicit path (--editor)
    2. EDITOR environment variable
    3. Fallback from the config file

    Bare program names are looked up on PATH.

    Raises:
        NoEditorConfiguredError: If none of the sources is set
    """
    if environ is None:
        environ = os.environ

    for source, value in (
        ("flag", explicit),
        ("environment", environ.get(EDITOR_ENV_VAR)),
        ("config file", fallback),
    ):
        if value:
            logger.debug(f"Using editor from {source}: {value}")
            return _lookup(value)

    raise NoEditorConfiguredError(
        "no editor configured: pass --editor or set the EDITOR environment variable"
    )


def _lookup(value: str) -> str:
    if os.sep in value or os.path.exists(value):
        return value
    return shutil.which(value) or value


def validate_editor_path(path: str) -> str:
    """
    Check that path is an existing, executable, non-directory file.

    Raises:
        EditorNotFoundError, EditorIsDirectoryError, EditorNotExecutableError
    """
    try:
        st = os.stat(path)
    except FileNotFoundError as e:
        raise EditorNotFoundError(f"editor '{path}' does not exist") from e
    except OSError as e:
        raise EditorNotFoundError(f"error checking editor '{path}': {e}") from e

    if os.path.isdir(path):
        raise EditorIsDirectoryError(f"editor '{path}' is a directory, not an executable")
    if st.st_mode & ANY_EXECUTE_BIT == 0:
        raise EditorNotExecutableError(f"editor '{path}' is not executable")
    return path


class ExternalEditor:
    """Runs an editor program in the foreground on the invoking terminal."""

    def __init__(self, path: str):
        self.path = validate_editor_path(path)

    @classmethod
    def resolve(
        cls,
        explicit: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        fallback: Optional[str] = None,
    ) -> "ExternalEditor":
        return cls(resolve_editor_path(explicit, environ, fallback))

    def open(self, path: str) -> None:
        """
        Run the editor with path as its only argument and wait for it to exit.

        The child inherits stdin, stdout and stderr. There is no timeout:
        only a signal from outside ends a hung editor.

        Raises:
            EditorExecutionError: If the editor cannot be spawned or exits non-zero
        """
        logger.debug(f"Running editor {self.path} on {path}")
        try:
            subprocess.run([self.path, path], check=True)
        except subprocess.CalledProcessError as e:
            raise EditorExecutionError(
                f"error opening editor '{self.path}': exit status {e.returncode}"
            ) from e
        except OSError as e:
            raise EditorExecutionError(f"error opening editor '{self.path}': {e}") from e

    def __repr__(self) -> str:
        return f"ExternalEditor({self.path!r})"

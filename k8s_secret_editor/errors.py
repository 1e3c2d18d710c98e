"""Error taxonomy for k8s-secret-editor.

Every error is fatal to the current edit session. The CLI reports the
``category`` of the error together with its message and chained cause.
"""


class EditSessionError(Exception):
    """Base class for all edit session failures."""
    category = "error"


class ConfigError(EditSessionError):
    """Bad or missing editor / cluster configuration."""
    category = "config"


class EditorError(EditSessionError):
    """Resolution, validation or execution failure of the external editor."""
    category = "editor"


class EditorConfigError(ConfigError, EditorError):
    """The configured editor cannot be used."""
    category = "config"


class NoEditorConfiguredError(EditorConfigError):
    pass


class EditorNotFoundError(EditorConfigError):
    pass


class EditorIsDirectoryError(EditorConfigError):
    pass


class EditorNotExecutableError(EditorConfigError):
    pass


class EditorExecutionError(EditorError):
    """The editor could not be spawned or exited with a non-zero status."""


class StoreError(EditSessionError):
    """Transport, authorization or generic failure talking to the cluster."""
    category = "store"


class StoreNotFoundError(StoreError):
    pass


class StoreAuthError(StoreError):
    pass


class StoreTimeoutError(StoreError):
    pass


class StoreConflictError(StoreError):
    """The secret changed underneath the session and was not overwritten."""


class BufferIOError(EditSessionError, OSError):
    """Temp file creation, write, read or release failure."""
    category = "io"


class PromptError(EditSessionError):
    """The interactive input mechanism failed."""
    category = "input"

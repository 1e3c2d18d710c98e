"""Workflow for editing one key of a Secret in an external editor."""
import logging
import sys
from enum import Enum
from typing import Iterable, List, Optional, Protocol, TextIO

from ..domains import diff
from ..domains.editor import Editor
from ..domains.models import EditSession, SecretData, SecretRef
from ..domains.transient_buffer import TransientBuffer
from ...errors import StoreNotFoundError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    SELECT_NAMESPACE = "select-namespace"
    SELECT_NAME = "select-name"
    FETCH = "fetch"
    SELECT_KEY = "select-key"
    POPULATE = "populate"
    EDIT = "edit"
    COMPARE = "compare"
    DIFF = "diff"
    CONFIRM = "confirm"
    APPLY = "apply"
    DONE = "done"
    CANCELLED = "cancelled"


class Prompter(Protocol):
    """Interactive selection and confirmation."""

    def select(self, label: str, options: List[str]) -> str:
        ...

    def confirm(self, label: str) -> bool:
        ...


class SecretStore(Protocol):
    def list_namespaces(self) -> List[str]:
        ...

    def list_names(self, namespace: str) -> List[str]:
        ...

    def fetch(self, ref: SecretRef) -> SecretData:
        ...

    def patch(self, ref: SecretRef, key: str, value: bytes, expected: Optional[bytes] = None) -> None:
        ...


class EditSessionWorkflow:
    """
    One edit session: pick a key, edit it, review the diff, write it back.

    Any exception raised by a collaborator aborts the session; the temp file
    is removed on the way out. The only non-error early exit is answering
    "no" at the confirmation prompt.
    """

    def __init__(
        self,
        store: SecretStore,
        editor: Editor,
        prompter: Prompter,
        out: Optional[TextIO] = None,
        buffer_factory=TransientBuffer.create,
    ):
        self.store = store
        self.editor = editor
        self.prompter = prompter
        self.out = out
        self.buffer_factory = buffer_factory
        self.state: Optional[SessionState] = None
        self.session: Optional[EditSession] = None

    def _enter(self, state: SessionState) -> None:
        logger.debug(f"Edit session: {self.state.value if self.state else 'start'} -> {state.value}")
        self.state = state

    def _print(self, message: str) -> None:
        print(message, file=self.out or sys.stdout)

    def _select(self, label: str, options: Iterable[str]) -> str:
        return self.prompter.select(label, sorted(options))

    def run(self) -> SessionState:
        """
        Run the session to completion.

        Returns:
            SessionState.DONE if the key was saved or left unchanged,
            SessionState.CANCELLED if the user declined to save
        """
        self._enter(SessionState.SELECT_NAMESPACE)
        self._print("Loading namespaces...")
        namespace = self._select("Select namespace", self.store.list_namespaces())

        self._enter(SessionState.SELECT_NAME)
        self._print(f"Loading secrets in namespace '{namespace}'...")
        name = self._select(f"Select secret in '{namespace}'", self.store.list_names(namespace))
        ref = SecretRef(namespace, name)

        self._enter(SessionState.FETCH)
        self._print(f"Loading secret '{name}' in namespace '{namespace}'...")
        data = self.store.fetch(ref)

        self._enter(SessionState.SELECT_KEY)
        key = self._select(f"Select key in secret '{name}'", data.keys())
        if key not in data:
            raise StoreNotFoundError(f"Key '{key}' not found in secret '{name}' in namespace '{namespace}'")
        self.session = EditSession(ref=ref, key=key, original=data[key])

        self._enter(SessionState.POPULATE)
        with self.buffer_factory() as buf:
            buf.write(self.session.original)

            self._enter(SessionState.EDIT)
            self.editor.open(buf.path)

            self._enter(SessionState.COMPARE)
            self.session.edited = buf.read()
            if not self.session.changed:
                self._print("No changes detected.")
                self._enter(SessionState.DONE)
                return self.state

            return self._review_and_apply()

    def _review_and_apply(self) -> SessionState:
        session = self.session

        self._enter(SessionState.DIFF)
        self._print(f"Changes to key '{session.key}':")
        self._print(diff.render(diff.compute(session.original, session.edited)))

        self._enter(SessionState.CONFIRM)
        label = f"Save changes to secret '{session.ref}' key '{session.key}'"
        if not self.prompter.confirm(label):
            self._print("Save cancelled")
            self._enter(SessionState.CANCELLED)
            return self.state

        self._enter(SessionState.APPLY)
        self.store.patch(session.ref, session.key, session.edited, expected=session.original)
        self._print(f"Secret '{session.ref.name}' in namespace '{session.ref.namespace}' updated successfully.")
        self._enter(SessionState.DONE)
        return self.state

"""End-to-end tests for the edit session workflow."""
import io
import os
from unittest import mock

import pytest

from k8s_secret_editor.errors import (
    BufferIOError,
    EditorExecutionError,
    StoreConflictError,
    StoreNotFoundError,
    StoreTimeoutError,
)
from k8s_secret_editor.secrets.domains.editor import ExternalEditor
from k8s_secret_editor.secrets.domains.transient_buffer import TransientBuffer
from k8s_secret_editor.secrets.workflows.edit_session import EditSessionWorkflow, SessionState


class ScriptedPrompter:
    """Answers selections from a queue and records every prompt."""

    def __init__(self, selections, confirm=True):
        self.selections = list(selections)
        self.answer = confirm
        self.select_calls = []
        self.confirm_calls = []

    def select(self, label, options):
        self.select_calls.append((label, list(options)))
        return self.selections.pop(0)

    def confirm(self, label):
        self.confirm_calls.append(label)
        return self.answer


class RewritingEditor:
    """Editor stand-in that replaces the file content and remembers the path."""

    def __init__(self, new_content=None):
        self.new_content = new_content
        self.opened = []

    def open(self, path):
        self.opened.append(path)
        assert os.path.exists(path)
        if self.new_content is not None:
            with open(path, "wb") as f:
                f.write(self.new_content)


@pytest.fixture
def populated_api(fake_api):
    fake_api.add_namespace("kube-system")
    fake_api.add_secret("default", "db-credentials", {"password": b"old-pass", "username": b"admin"})
    fake_api.add_secret("default", "api-token", {"token": b"abc"})
    return fake_api


@pytest.fixture
def buffers(tmp_path):
    """Buffer factory writing into tmp_path and recording every buffer created."""
    created = []

    def factory():
        buf = TransientBuffer.create(str(tmp_path))
        created.append(buf)
        return buf

    factory.created = created
    return factory


def make_workflow(store, editor, prompter, buffers):
    return EditSessionWorkflow(store, editor, prompter, out=io.StringIO(), buffer_factory=buffers)


class TestHappyPath:
    def test_edit_and_save(self, store, populated_api, buffers):
        """Test that a confirmed edit updates only the selected key."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"], confirm=True)
        editor = RewritingEditor(b"new-pass")
        workflow = make_workflow(store, editor, prompter, buffers)

        assert workflow.run() is SessionState.DONE

        assert populated_api.stored("default", "db-credentials") == {"password": b"new-pass", "username": b"admin"}
        assert workflow.session.original == b"old-pass"
        assert workflow.session.edited == b"new-pass"
        assert "updated successfully" in workflow.out.getvalue()

    def test_diff_is_shown_before_confirmation(self, store, populated_api, buffers):
        """Test that the rendered diff is printed and confirmation requested."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"], confirm=True)
        workflow = make_workflow(store, RewritingEditor(b"old-pass2"), prompter, buffers)

        workflow.run()

        assert "old-pass{+2+}" in workflow.out.getvalue()
        assert prompter.confirm_calls == ["Save changes to secret 'default/db-credentials' key 'password'"]

    def test_options_are_sorted(self, store, populated_api, buffers):
        """Test that every selection list is presented in sorted order."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        make_workflow(store, RewritingEditor(), prompter, buffers).run()

        assert [options for _, options in prompter.select_calls] == [
            ["default", "kube-system"],
            ["api-token", "db-credentials"],
            ["password", "username"],
        ]

    def test_editor_sees_original_value(self, store, populated_api, buffers):
        """Test that the editor opens the temp file holding the original value."""
        seen = {}

        class Peek:
            def open(self, path):
                with open(path, "rb") as f:
                    seen["content"] = f.read()

        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        make_workflow(store, Peek(), prompter, buffers).run()

        assert seen["content"] == b"old-pass"

    def test_with_real_editor_script(self, store, populated_api, buffers, make_script):
        """Test the full session with an external editor process."""
        editor = ExternalEditor(make_script('printf "from-script" > "$1"'))
        prompter = ScriptedPrompter(["default", "api-token", "token"], confirm=True)

        assert make_workflow(store, editor, prompter, buffers).run() is SessionState.DONE

        assert populated_api.stored("default", "api-token") == {"token": b"from-script"}


class TestShortCircuits:
    def test_unchanged_content_skips_diff_confirm_and_apply(self, store, populated_api, buffers):
        """Test that an unchanged value ends the session without any write."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        store.patch = mock.MagicMock()
        workflow = make_workflow(store, RewritingEditor(), prompter, buffers)

        assert workflow.run() is SessionState.DONE

        assert prompter.confirm_calls == []
        store.patch.assert_not_called()
        assert populated_api.replace_calls() == []
        assert "No changes detected." in workflow.out.getvalue()
        assert "Changes to key" not in workflow.out.getvalue()
        assert not workflow.session.changed

    def test_rewriting_identical_bytes_counts_as_unchanged(self, store, populated_api, buffers):
        """Test that saving the same bytes again is not treated as a change."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        workflow = make_workflow(store, RewritingEditor(b"old-pass"), prompter, buffers)

        assert workflow.run() is SessionState.DONE
        assert prompter.confirm_calls == []

    def test_cancel_does_not_write(self, store, populated_api, buffers):
        """Test that answering no leaves the secret untouched and releases the buffer."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"], confirm=False)
        store.patch = mock.MagicMock()
        workflow = make_workflow(store, RewritingEditor(b"new-pass"), prompter, buffers)

        assert workflow.run() is SessionState.CANCELLED

        store.patch.assert_not_called()
        assert populated_api.stored("default", "db-credentials")["password"] == b"old-pass"
        assert buffers.created[0].released
        assert not os.path.exists(buffers.created[0].path)
        assert "Save cancelled" in workflow.out.getvalue()


class TestFailures:
    def test_editor_failure_releases_buffer(self, store, populated_api, buffers):
        """Test that an editor error aborts the session but still removes the temp file."""
        editor = mock.MagicMock()
        editor.open.side_effect = EditorExecutionError("exit status 1")
        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        workflow = make_workflow(store, editor, prompter, buffers)

        with pytest.raises(EditorExecutionError):
            workflow.run()

        assert workflow.state is SessionState.EDIT
        assert not os.path.exists(buffers.created[0].path)
        assert populated_api.replace_calls() == []

    def test_apply_failure_releases_buffer(self, store, populated_api, buffers):
        """Test that a failed write is fatal and still removes the temp file."""
        store.patch = mock.MagicMock(side_effect=StoreTimeoutError("update secret: timed out"))
        prompter = ScriptedPrompter(["default", "db-credentials", "password"], confirm=True)
        workflow = make_workflow(store, RewritingEditor(b"new"), prompter, buffers)

        with pytest.raises(StoreTimeoutError):
            workflow.run()

        assert workflow.state is SessionState.APPLY
        assert not os.path.exists(buffers.created[0].path)

    def test_apply_passes_original_as_expected_value(self, store, populated_api, buffers):
        """Test that a concurrent change to the edited key aborts the save."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"], confirm=True)

        class ConcurrentEditor(RewritingEditor):
            def open(self, path):
                super().open(path)
                populated_api.add_secret("default", "db-credentials", {"password": b"theirs", "username": b"admin"})

        workflow = make_workflow(store, ConcurrentEditor(b"mine"), prompter, buffers)

        with pytest.raises(StoreConflictError):
            workflow.run()

        assert populated_api.stored("default", "db-credentials")["password"] == b"theirs"

    def test_fetch_failure_creates_no_buffer(self, store, populated_api, buffers):
        """Test that a secret vanishing before fetch fails without touching the disk."""
        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        store.list_names = mock.MagicMock(return_value=["ghost"])
        prompter.selections[1] = "ghost"

        with pytest.raises(StoreNotFoundError):
            make_workflow(store, RewritingEditor(), prompter, buffers).run()

        assert buffers.created == []

    def test_unknown_key_selected(self, store, populated_api, buffers):
        """Test that a key missing from the snapshot is rejected."""
        prompter = ScriptedPrompter(["default", "db-credentials", "nope"])

        with pytest.raises(StoreNotFoundError) as exc_info:
            make_workflow(store, RewritingEditor(), prompter, buffers).run()

        assert "nope" in str(exc_info.value)

    def test_editor_deleting_file_fails_read_back(self, store, populated_api, buffers):
        """Test that an editor deleting the file surfaces the read error, not the cleanup one."""
        class DeletingEditor:
            def open(self, path):
                os.remove(path)

        prompter = ScriptedPrompter(["default", "db-credentials", "password"])
        workflow = make_workflow(store, DeletingEditor(), prompter, buffers)

        with pytest.raises(BufferIOError) as exc_info:
            workflow.run()

        assert "reading" in str(exc_info.value)
        assert workflow.state is SessionState.COMPARE

"""Shared fixtures: an in-memory CoreV1Api and helpers for scripted editors."""
import base64
import copy
import logging
import os

import pytest
from kubernetes import client as k8s_client
from kubernetes.client.exceptions import ApiException

from k8s_secret_editor.secrets.domains.kube_client import KubeSecretStore


def encode(data):
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


class FakeCoreV1Api:
    """Just enough of CoreV1Api for the store, with resourceVersion checks."""

    def __init__(self):
        self.namespaces = []
        self.secrets = {}
        self.calls = []
        self.before_replace = None
        self._version = 0

    def _next_version(self):
        self._version += 1
        return str(self._version)

    def add_namespace(self, name):
        self.namespaces.append(name)

    def add_secret(self, namespace, name, data=None):
        if namespace not in self.namespaces:
            self.add_namespace(namespace)
        self.secrets[(namespace, name)] = k8s_client.V1Secret(
            metadata=k8s_client.V1ObjectMeta(name=name, namespace=namespace, resource_version=self._next_version()),
            data=encode(data) if data is not None else None,
        )

    def stored(self, namespace, name):
        secret = self.secrets[(namespace, name)]
        return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}

    def list_namespace(self, _request_timeout=None):
        self.calls.append(("list_namespace", _request_timeout))
        return k8s_client.V1NamespaceList(
            items=[k8s_client.V1Namespace(metadata=k8s_client.V1ObjectMeta(name=n)) for n in self.namespaces]
        )

    def list_namespaced_secret(self, namespace, _request_timeout=None):
        self.calls.append(("list_namespaced_secret", _request_timeout))
        return k8s_client.V1SecretList(
            items=[copy.deepcopy(s) for (ns, _), s in self.secrets.items() if ns == namespace]
        )

    def read_namespaced_secret(self, name, namespace, _request_timeout=None):
        self.calls.append(("read_namespaced_secret", _request_timeout))
        if (namespace, name) not in self.secrets:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(self.secrets[(namespace, name)])

    def replace_namespaced_secret(self, name, namespace, body, _request_timeout=None):
        self.calls.append(("replace_namespaced_secret", _request_timeout))
        if self.before_replace is not None:
            hook, self.before_replace = self.before_replace, None
            hook(self)
        current = self.secrets.get((namespace, name))
        if current is None:
            raise ApiException(status=404, reason="Not Found")
        if body.metadata.resource_version != current.metadata.resource_version:
            raise ApiException(status=409, reason="Conflict")
        body = copy.deepcopy(body)
        body.metadata.resource_version = self._next_version()
        self.secrets[(namespace, name)] = body
        return copy.deepcopy(body)

    def replace_calls(self):
        return [c for c in self.calls if c[0] == "replace_namespaced_secret"]


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger changes made by the CLI entrypoint."""
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    for handler in [h for h in root.handlers if h not in before]:
        root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def fake_api():
    return FakeCoreV1Api()


@pytest.fixture
def store(fake_api):
    return KubeSecretStore(fake_api, request_timeout=30)


@pytest.fixture
def make_script(tmp_path):
    """Write an executable shell script and return its path."""
    def _make(body, name="editor.sh", mode=0o755):
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        os.chmod(path, mode)
        return str(path)
    return _make

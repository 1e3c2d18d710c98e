"""Kubernetes Secret store client wrapper."""
import base64
import logging
import time
from typing import List, Optional

import urllib3
from kubernetes import client as k8s_client, config as k8s_config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from .config_loader import DEFAULT_REQUEST_TIMEOUT
from .models import SecretData, SecretRef
from ...errors import (
    ConfigError,
    StoreAuthError,
    StoreConflictError,
    StoreError,
    StoreNotFoundError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

PATCH_ATTEMPTS = 3
PATCH_BACKOFF_SECONDS = 0.5


def _store_error(e: Exception, action: str) -> StoreError:
    """Map a kubernetes client or transport failure onto the store error taxonomy."""
    if isinstance(e, ApiException):
        message = f"{action}: {e.status} {e.reason}"
        if e.status == 404:
            return StoreNotFoundError(message)
        if e.status in (401, 403):
            return StoreAuthError(message)
        return StoreError(message)

    reason = getattr(e, "reason", None)
    if isinstance(e, urllib3.exceptions.TimeoutError) or isinstance(reason, urllib3.exceptions.TimeoutError):
        return StoreTimeoutError(f"{action}: timed out")
    return StoreError(f"{action}: {e}")


def _decode_data(data: Optional[dict]) -> SecretData:
    return {key: base64.b64decode(value or "") for key, value in (data or {}).items()}


class KubeSecretStore:
    """Reads and writes Secrets through the Kubernetes CoreV1 API."""

    def __init__(self, api: k8s_client.CoreV1Api, request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.api = api
        self.request_timeout = request_timeout

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: Optional[str] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> "KubeSecretStore":
        """
        Build a store from a kubeconfig file.

        Args:
            kubeconfig: Path (or KUBECONFIG-style list of paths); None uses
                the library default (KUBECONFIG or ~/.kube/config)
            request_timeout: Upper bound in seconds for every single API call

        Raises:
            ConfigError: If the kubeconfig is missing or invalid
        """
        configuration = k8s_client.Configuration()
        try:
            k8s_config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
        except (ConfigException, OSError) as e:
            raise ConfigError(f"Error loading kubeconfig '{kubeconfig or '~/.kube/config'}': {e}") from e
        # request_timeout bounds the whole call; urllib3 must not retry behind it
        configuration.retries = False
        api_client = k8s_client.ApiClient(configuration)
        logger.debug(f"Kubernetes client configured for {api_client.configuration.host}")
        return cls(k8s_client.CoreV1Api(api_client), request_timeout)

    def list_namespaces(self) -> List[str]:
        try:
            namespaces = self.api.list_namespace(_request_timeout=self.request_timeout)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _store_error(e, "list namespaces") from e
        return [ns.metadata.name for ns in namespaces.items]

    def list_names(self, namespace: str) -> List[str]:
        try:
            secrets = self.api.list_namespaced_secret(namespace, _request_timeout=self.request_timeout)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _store_error(e, f"list secrets in namespace '{namespace}'") from e
        return [secret.metadata.name for secret in secrets.items]

    def _read(self, ref: SecretRef) -> k8s_client.V1Secret:
        try:
            return self.api.read_namespaced_secret(ref.name, ref.namespace, _request_timeout=self.request_timeout)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _store_error(e, f"get secret '{ref.name}' in namespace '{ref.namespace}'") from e

    def fetch(self, ref: SecretRef) -> SecretData:
        """
        Fetch every key of a Secret.

        Returns:
            Mapping of key to decoded value bytes

        Raises:
            StoreNotFoundError: If the Secret does not exist
            StoreError: On any other cluster failure
        """
        return _decode_data(self._read(ref).data)

    def patch(self, ref: SecretRef, key: str, value: bytes, expected: Optional[bytes] = None) -> None:
        """
        Set one key of a Secret, leaving every other key as stored.

        The Secret is read, modified in memory and replaced. The replacement
        carries the resourceVersion of the read, so the API server refuses it
        with 409 if another writer got in between; the read is then repeated.

        Args:
            ref: Secret to update
            key: Key to set (created if absent)
            value: New value bytes
            expected: Value the caller last saw for key; when given, the write
                is refused if the stored value no longer matches

        Raises:
            StoreNotFoundError: If the Secret does not exist (or vanished)
            StoreConflictError: If key changed since the caller read it, or
                conflicts persisted through every attempt
            StoreError: On any other cluster failure
        """
        for attempt in range(1, PATCH_ATTEMPTS + 1):
            secret = self._read(ref)
            data = secret.data or {}

            if expected is not None:
                current = _decode_data(data).get(key)
                if current != expected:
                    raise StoreConflictError(
                        f"key '{key}' of secret '{ref}' was changed by someone else since it was loaded; "
                        "not overwriting"
                    )

            data[key] = base64.b64encode(value).decode("ascii")
            secret.data = data

            try:
                self.api.replace_namespaced_secret(
                    ref.name, ref.namespace, secret, _request_timeout=self.request_timeout
                )
                logger.info(f"Updated key '{key}' of secret '{ref}'")
                return
            except ApiException as e:
                if e.status != 409:
                    raise _store_error(e, f"update secret '{ref.name}' in namespace '{ref.namespace}'") from e
                logger.warning(f"Secret '{ref}' changed during update (attempt {attempt}/{PATCH_ATTEMPTS})")
                if attempt < PATCH_ATTEMPTS:
                    time.sleep(PATCH_BACKOFF_SECONDS * attempt)
            except urllib3.exceptions.HTTPError as e:
                raise _store_error(e, f"update secret '{ref.name}' in namespace '{ref.namespace}'") from e

        raise StoreConflictError(f"secret '{ref}' kept changing during update; gave up after {PATCH_ATTEMPTS} attempts")

"""Kubernetes API client wrapper.

Builds an official kubernetes Python client from explicit credentials
(API server URL, bearer token, CA data) instead of a kubeconfig, with lazy
API group initialization and consistent error translation.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kube_deploy.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)

if TYPE_CHECKING:
    from kubernetes.client import (
        ApiClient,
        AppsV1Api,
        CoreV1Api,
        NetworkingV1Api,
        VersionApi,
    )
    from kubernetes.watch import Watch

    from kube_deploy.integrations.kubernetes.config import KubeConfig

logger = structlog.get_logger()

PROBE_RETRY_ATTEMPTS = 3


class KubernetesClient:
    """Kubernetes API client for a single cluster.

    Wraps the official kubernetes Python client with:
    - Configuration from server URL, bearer token and CA data
    - Lazy API group initialization
    - Retry with tenacity for the pre-flight connection probe
    - Consistent error translation to custom exceptions
    - Context manager support (removes the temporary CA file on exit)

    Example:
        ```python
        from kube_deploy.integrations.kubernetes import KubeConfig, KubernetesClient

        config = KubeConfig(server="https://10.0.0.1", token="...", ca="...")
        with KubernetesClient(config) as client:
            print(client.get_cluster_version())
        ```
    """

    def __init__(self, kube_config: KubeConfig, *, retries: int = PROBE_RETRY_ATTEMPTS) -> None:
        """Initialize Kubernetes client from connection settings.

        Args:
            kube_config: Cluster connection settings.
            retries: Attempts for the connection probe.
        """
        self._config = kube_config
        self._retries = retries
        self._ca_file: str | None = None
        self._api_client: ApiClient | None = None

        # Lazy-loaded API group instances
        self._core_v1: CoreV1Api | None = None
        self._apps_v1: AppsV1Api | None = None
        self._networking_v1: NetworkingV1Api | None = None
        self._version_api: VersionApi | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            server=kube_config.server,
            insecure=kube_config.insecure_skip_tls_verify,
        )

    def _load_config(self) -> None:
        """Build the API client configuration from the connection settings."""
        from kubernetes.client import ApiClient, Configuration

        configuration = Configuration()
        configuration.host = self._config.server
        configuration.api_key = {"authorization": self._config.token}
        configuration.api_key_prefix = {"authorization": "Bearer"}

        if self._config.insecure_skip_tls_verify:
            configuration.verify_ssl = False
        else:
            self._ca_file = self._write_ca_file(self._config.ca_data())
            configuration.ssl_ca_cert = self._ca_file

        try:
            self._api_client = ApiClient(configuration)
        except Exception as e:
            self._remove_ca_file()
            raise KubernetesConnectionError(
                message=f"Cannot configure Kubernetes client for {self._config.server}",
                original_error=e,
            ) from e
        logger.debug("loaded_client_config", server=self._config.server, ca_file=self._ca_file)

    @staticmethod
    def _write_ca_file(data: bytes) -> str:
        """Write CA data to a temporary file; the client only accepts a path."""
        fd, path = tempfile.mkstemp(prefix="kube-deploy-ca-", suffix=".crt")
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        return path

    def _remove_ca_file(self) -> None:
        if self._ca_file is None:
            return
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self._ca_file)
        self._ca_file = None

    def _invalidate_api_cache(self) -> None:
        """Clear cached API group instances."""
        self._core_v1 = None
        self._apps_v1 = None
        self._networking_v1 = None
        self._version_api = None

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (services, configmaps)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api(self._api_client)
        return self._core_v1

    @property
    def apps_v1(self) -> AppsV1Api:
        """Get AppsV1Api instance (deployments)."""
        if self._apps_v1 is None:
            from kubernetes.client import AppsV1Api

            self._apps_v1 = AppsV1Api(self._api_client)
        return self._apps_v1

    @property
    def networking_v1(self) -> NetworkingV1Api:
        """Get NetworkingV1Api instance (ingresses)."""
        if self._networking_v1 is None:
            from kubernetes.client import NetworkingV1Api

            self._networking_v1 = NetworkingV1Api(self._api_client)
        return self._networking_v1

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance for cluster version info."""
        if self._version_api is None:
            from kubernetes.client import VersionApi

            self._version_api = VersionApi(self._api_client)
        return self._version_api

    def new_watch(self) -> Watch:
        """Create a fresh watch handle for one subscription."""
        from kubernetes.watch import Watch

        return Watch()

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a custom exception.

        Args:
            e: The original ApiException.
            resource_type: Type of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException

        if isinstance(e, KubernetesError):
            return e

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorator
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    # =========================================================================
    # Connection Check
    # =========================================================================

    def get_cluster_version(self) -> str:
        """Get the Kubernetes cluster version string, retrying connection errors.

        Returns:
            Kubernetes version (e.g., "v1.28").

        Raises:
            KubernetesAuthError: If the token is rejected.
            KubernetesConnectionError: If the cluster stays unreachable.
        """

        @self.make_retry_decorator()
        def _probe() -> str:
            from kubernetes.client import ApiException

            try:
                version_info = self.version_api.get_code()
            except ApiException as e:
                raise self.translate_api_exception(e) from e
            except Exception as e:
                raise KubernetesConnectionError(
                    message=f"Failed to reach Kubernetes API at {self._config.server}",
                    original_error=e,
                ) from e
            return f"v{version_info.major}.{version_info.minor}"

        return _probe()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        if self._api_client is not None:
            self._api_client.close()
            self._api_client = None
        self._remove_ca_file()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

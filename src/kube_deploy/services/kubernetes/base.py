"""Base applier for Kubernetes resource kinds.

Provides shared infrastructure for all appliers, including client access,
structured logging, existence checks and error translation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn

import structlog

from kube_deploy.integrations.kubernetes.exceptions import KubernetesNotFoundError

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.client import KubernetesClient
    from kube_deploy.integrations.kubernetes.models.resources import ResourceDescriptor
    from kube_deploy.services.kubernetes.settlement import SettlementResult

logger = structlog.get_logger()


@dataclass
class ApplyOutcome:
    """Result of a successful create-or-update.

    Failures are raised, so an outcome always means the resource exists
    with the desired spec. ``settlement`` is set only for kinds that wait.
    """

    resource: str
    namespace: str
    action: str
    settlement: SettlementResult | None = None


class K8sBaseApplier:
    """Base class for per-kind appliers.

    Provides shared concerns for all appliers:
    - Client reference and API group access
    - Structured logging with entity binding
    - Not-found tolerant reads and deletes
    - Consistent API error translation

    Subclasses set ``_entity_name`` for structured log context and
    implement :meth:`apply`.
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient) -> None:
        """Initialize the applier.

        Args:
            client: Kubernetes API client instance.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)

    def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        """Create or update *descriptor* in *namespace*."""
        raise NotImplementedError

    def _read_if_exists(
        self,
        read: Callable[..., Any],
        name: str,
        namespace: str,
    ) -> Any | None:
        """Read a resource, returning None when it does not exist.

        Raises:
            KubernetesError: For any failure other than not-found.
        """
        try:
            return read(name=name, namespace=namespace)
        except Exception as e:
            error = self._client.translate_api_exception(e, self._entity_name, name, namespace)
            if isinstance(error, KubernetesNotFoundError):
                return None
            raise error from e

    def _delete_if_exists(
        self,
        delete: Callable[..., Any],
        name: str,
        namespace: str,
    ) -> bool:
        """Delete a resource, tolerating its absence.

        Returns:
            True if a resource was deleted, False if it was already gone.

        Raises:
            KubernetesError: For any failure other than not-found.
        """
        try:
            delete(name=name, namespace=namespace)
        except Exception as e:
            error = self._client.translate_api_exception(e, self._entity_name, name, namespace)
            if isinstance(error, KubernetesNotFoundError):
                self._log.debug("delete_target_already_gone", name=name, namespace=namespace)
                return False
            raise error from e
        return True

    def _handle_api_error(
        self,
        e: Exception,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> NoReturn:
        """Translate a Kubernetes API exception and re-raise.

        Raises:
            KubernetesError: Always raises an appropriate subclass.
        """
        raise self._client.translate_api_exception(
            e,
            resource_type=self._entity_name,
            resource_name=resource_name,
            namespace=namespace,
        ) from e

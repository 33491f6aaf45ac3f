"""Service applier.

Services are replaced by delete-then-create. Between the two calls the
Service does not exist, and if the create fails the old Service is not
restored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kube_deploy.integrations.kubernetes.config import DEFAULT_SETTLE_TIMEOUT
from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier
from kube_deploy.services.kubernetes.settlement import SERVICE_POLICY, SettlementWatcher

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.client import KubernetesClient
    from kube_deploy.integrations.kubernetes.models.resources import ResourceDescriptor


class ServiceApplier(K8sBaseApplier):
    """Create or replace a Service, then wait for a load balancer address."""

    _entity_name = "Service"

    def __init__(self, client: KubernetesClient, *, timeout: int = DEFAULT_SETTLE_TIMEOUT) -> None:
        super().__init__(client)
        self._timeout = timeout

    def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        """Replace the Service and wait for it to settle.

        Args:
            descriptor: Decoded Service manifest.
            namespace: Resolved target namespace.

        Returns:
            Outcome carrying the settlement result.

        Raises:
            KubernetesError: If the existence check, delete, create or watch
                fails. A failed delete aborts before create is attempted.
        """
        action = self.create_or_replace(descriptor, namespace)

        self._log.info("watching_service", name=descriptor.name, namespace=namespace)
        watcher = SettlementWatcher(
            self._client,
            list_fn=self._client.core_v1.list_namespaced_service,
            read_fn=self._client.core_v1.read_namespaced_service,
            policy=SERVICE_POLICY,
            timeout=self._timeout,
        )
        settlement = watcher.wait(descriptor.name, namespace)
        return ApplyOutcome(
            resource=descriptor.identifier,
            namespace=namespace,
            action=action,
            settlement=settlement,
        )

    def create_or_replace(self, descriptor: ResourceDescriptor, namespace: str) -> str:
        """Delete any existing Service of the same name, then create it.

        Returns:
            ``"replaced"`` if an existing Service was deleted, else ``"created"``.
        """
        name = descriptor.name
        core_v1 = self._client.core_v1
        action = "created"

        existing = self._read_if_exists(core_v1.read_namespaced_service, name, namespace)
        if existing is not None:
            self._log.info("removing_existing_service", name=name, namespace=namespace)
            if self._delete_if_exists(core_v1.delete_namespaced_service, name, namespace):
                action = "replaced"

        self._log.info("creating_service", name=name, namespace=namespace)
        try:
            core_v1.create_namespaced_service(
                namespace=namespace, body=descriptor.body_for(namespace)
            )
        except Exception as e:
            self._handle_api_error(e, name, namespace)
        self._log.info("created_service", name=name, namespace=namespace, action=action)
        return action

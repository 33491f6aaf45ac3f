"""Deployment applier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kube_deploy.integrations.kubernetes.config import DEFAULT_SETTLE_TIMEOUT
from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier
from kube_deploy.services.kubernetes.settlement import DEPLOYMENT_POLICY, SettlementWatcher

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.client import KubernetesClient
    from kube_deploy.integrations.kubernetes.models.resources import ResourceDescriptor


class DeploymentApplier(K8sBaseApplier):
    """Create or update a Deployment in place, then wait until no replica is unavailable."""

    _entity_name = "Deployment"

    def __init__(self, client: KubernetesClient, *, timeout: int = DEFAULT_SETTLE_TIMEOUT) -> None:
        super().__init__(client)
        self._timeout = timeout

    def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        """Create or replace the Deployment and wait for it to settle.

        The existing Deployment is replaced with a full PUT of the desired
        manifest, so after a successful return the live spec matches it.

        Raises:
            KubernetesError: If the existence check, write or watch fails.
        """
        name = descriptor.name
        apps_v1 = self._client.apps_v1
        body = descriptor.body_for(namespace)

        existing = self._read_if_exists(apps_v1.read_namespaced_deployment, name, namespace)
        try:
            if existing is None:
                self._log.info("creating_deployment", name=name, namespace=namespace)
                apps_v1.create_namespaced_deployment(namespace=namespace, body=body)
                action = "created"
            else:
                self._log.info("updating_deployment", name=name, namespace=namespace)
                apps_v1.replace_namespaced_deployment(name=name, namespace=namespace, body=body)
                action = "updated"
        except Exception as e:
            self._handle_api_error(e, name, namespace)
        self._log.info("applied_deployment", name=name, namespace=namespace, action=action)

        self._log.info("watching_deployment", name=name, namespace=namespace)
        watcher = SettlementWatcher(
            self._client,
            list_fn=apps_v1.list_namespaced_deployment,
            read_fn=apps_v1.read_namespaced_deployment,
            policy=DEPLOYMENT_POLICY,
            timeout=self._timeout,
        )
        return ApplyOutcome(
            resource=descriptor.identifier,
            namespace=namespace,
            action=action,
            settlement=watcher.wait(name, namespace),
        )

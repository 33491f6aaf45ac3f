"""Ingress applier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.models.resources import ResourceDescriptor


class IngressApplier(K8sBaseApplier):
    """Create an Ingress with a single call; no existence check, no wait."""

    _entity_name = "Ingress"

    def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        self._log.info("creating_ingress", name=descriptor.name, namespace=namespace)
        try:
            self._client.networking_v1.create_namespaced_ingress(
                namespace=namespace, body=descriptor.body_for(namespace)
            )
        except Exception as e:
            self._handle_api_error(e, descriptor.name, namespace)
        self._log.info("created_ingress", name=descriptor.name, namespace=namespace)
        return ApplyOutcome(resource=descriptor.identifier, namespace=namespace, action="created")

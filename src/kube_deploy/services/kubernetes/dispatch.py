"""Dispatch engine.

Routes a decoded resource descriptor to the applier for its kind. The
registry is keyed by :class:`ResourceKind` and must cover every supported
kind; ``Unsupported`` is rejected before any store call.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

import structlog

from kube_deploy.integrations.kubernetes.config import DEFAULT_NAMESPACE, DEFAULT_SETTLE_TIMEOUT
from kube_deploy.integrations.kubernetes.exceptions import UnsupportedResourceKindError
from kube_deploy.integrations.kubernetes.models.resources import (
    ResourceDescriptor,
    ResourceKind,
    UnsupportedResource,
)
from kube_deploy.services.kubernetes.configmap_applier import ConfigMapApplier
from kube_deploy.services.kubernetes.deployment_applier import DeploymentApplier
from kube_deploy.services.kubernetes.ingress_applier import IngressApplier
from kube_deploy.services.kubernetes.service_applier import ServiceApplier

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.client import KubernetesClient
    from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier

logger = structlog.get_logger()

SUPPORTED_KINDS = frozenset(kind for kind in ResourceKind if kind is not ResourceKind.UNSUPPORTED)


def resolve_namespace(configured: str | None, descriptor: ResourceDescriptor) -> str:
    """Pick the target namespace.

    An explicitly configured namespace wins over the one declared in the
    manifest; with neither, ``DEFAULT_NAMESPACE`` is used.
    """
    return configured or descriptor.get_namespace() or DEFAULT_NAMESPACE


def build_appliers(
    client: KubernetesClient,
    *,
    timeout: int = DEFAULT_SETTLE_TIMEOUT,
    config_map_file: str | None = None,
) -> dict[ResourceKind, K8sBaseApplier]:
    """Create the default applier for every supported kind."""
    return {
        ResourceKind.DEPLOYMENT: DeploymentApplier(client, timeout=timeout),
        ResourceKind.SERVICE: ServiceApplier(client, timeout=timeout),
        ResourceKind.CONFIG_MAP: ConfigMapApplier(client, config_map_file=config_map_file),
        ResourceKind.INGRESS: IngressApplier(client),
    }


class DispatchEngine:
    """Select and invoke exactly one applier per descriptor."""

    def __init__(self, appliers: Mapping[ResourceKind, K8sBaseApplier]) -> None:
        """Initialize the engine.

        Args:
            appliers: Applier per resource kind.

        Raises:
            ValueError: If a supported kind has no applier.
        """
        missing = SUPPORTED_KINDS - set(appliers)
        if missing:
            names = ", ".join(sorted(kind.value for kind in missing))
            raise ValueError(f"No applier registered for: {names}")
        self._appliers = dict(appliers)

    def dispatch(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        """Apply *descriptor* with the applier registered for its kind.

        Raises:
            UnsupportedResourceKindError: If the descriptor's kind is not supported.
            DeployError: Whatever the selected applier raises.
        """
        kind = descriptor.resource_kind
        if kind is ResourceKind.UNSUPPORTED:
            type_name = (
                descriptor.type_name
                if isinstance(descriptor, UnsupportedResource)
                else type(descriptor).__name__
            )
            logger.error("unsupported_resource_type", resource_type=type_name)
            raise UnsupportedResourceKindError(type_name)

        logger.info("resource_type_matched", resource_type=kind.value, name=descriptor.name)
        return self._appliers[kind].apply(descriptor, namespace)
